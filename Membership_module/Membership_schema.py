from typing import Any, Dict, Optional
import json
import logging

import phpserialize
from pydantic import BaseModel, ConfigDict, field_validator

from errors import InvalidArgument
from Member_module.Member_schema import MemberOut

logger = logging.getLogger(__name__)


class MembershipPermissions(BaseModel):
    """
    Capabilities granted by a membership group.
    Anything not listed is denied.
    """
    member_site_access: bool = False
    quick_search_profiles: bool = False
    advanced_search_profiles: bool = False
    read_mails: bool = False
    send_mails: bool = False
    view_pictures: bool = False
    upload_pictures: bool = False
    view_videos: bool = False
    upload_videos: bool = False
    instant_messaging: bool = False
    chat: bool = False
    chatroulette: bool = False
    hot_or_not: bool = False
    love_calculator: bool = False
    read_notes: bool = False
    write_notes: bool = False
    read_blog_posts: bool = False
    view_games: bool = False
    webcam: bool = False
    forum_access: bool = False
    create_forum_topics: bool = False
    answer_forum_topics: bool = False

    model_config = ConfigDict(extra="ignore")


def parse_permissions(blob: Any) -> MembershipPermissions:
    """
    Build the typed permissions from the stored column value.

    New rows hold JSON. Rows written by the legacy PHP application hold a
    PHP ``serialize()`` array such as ``a:1:{s:10:"read_mails";i:1;}``.
    """
    if blob is None or blob == "":
        return MembershipPermissions()
    if isinstance(blob, MembershipPermissions):
        return blob
    if isinstance(blob, dict):
        return MembershipPermissions(**blob)
    if isinstance(blob, bytes):
        blob = blob.decode("utf-8")

    text = blob.strip()
    try:
        if text.startswith("{"):
            data = json.loads(text)
        elif text.startswith("a:"):
            logger.debug("Reading legacy serialized permissions blob")
            data = phpserialize.loads(text.encode("utf-8"), decode_strings=True)
        else:
            raise ValueError("unknown permissions format")
    except ValueError as e:
        raise InvalidArgument(f"Unreadable permissions blob: {e}") from e

    unknown = set(data) - set(MembershipPermissions.model_fields)
    if unknown:
        logger.debug(f"Ignoring unknown permissions: {', '.join(sorted(map(str, unknown)))}")
    return MembershipPermissions(**{str(k): v for k, v in data.items()})


def serialize_permissions(permissions: MembershipPermissions) -> str:
    return permissions.model_dump_json()


class MembershipOut(BaseModel):
    group_id: int
    name: str
    description: Optional[str] = None
    permissions: MembershipPermissions
    price: float = 0
    expiration_days: int = 0
    enable: int = 1

    @field_validator("permissions", mode="before")
    @classmethod
    def deserialize_permissions(cls, v):
        return parse_permissions(v)

    model_config = ConfigDict(from_attributes=True)


class MembershipDetailsOut(MemberOut):
    """A member row together with the name and duration of its membership."""
    expiration_days: int
    membership_name: str

    @classmethod
    def from_row(cls, member, expiration_days: int, membership_name: str) -> "MembershipDetailsOut":
        data: Dict[str, Any] = MemberOut.model_validate(member).model_dump()
        data.update(expiration_days=expiration_days, membership_name=membership_name)
        return cls(**data)
