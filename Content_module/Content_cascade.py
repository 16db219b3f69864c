"""
Removal of every row a member owns outside the identity table.

The plan is an ordered list of (model, criterion) pairs: dependent records
first, then the 1:1 side rows. Forum topics and messages are not part of it.
"""
from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import Callable, Dict, List, Tuple
import logging

from Member_module.Member_model import MemberBackground, MemberInfo, MemberNotification, MemberPrivacy
from .Content_model import (
    BlogComment,
    Friend,
    GameComment,
    Like,
    Message,
    MessengerMessage,
    Note,
    NoteCategory,
    NoteComment,
    Picture,
    PictureAlbum,
    PictureComment,
    ProfileComment,
    ProfileVisit,
    Report,
    Video,
    VideoAlbum,
    VideoComment,
    WallPost,
)

logger = logging.getLogger(__name__)

# recipient is a member in these tables
MEMBER_COMMENT_MODELS = (ProfileComment, PictureComment, VideoComment, NoteComment)
# recipient is a blog post or a game, only the author side belongs to the member
AUTHORED_COMMENT_MODELS = (BlogComment, GameComment)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def cascade_plan(profile_id: int, username: str) -> List[Tuple[type, Callable]]:
    plan = [
        (Message, lambda: or_(Message.sender == profile_id, Message.recipient == profile_id)),
        (MessengerMessage, lambda: or_(MessengerMessage.from_user == username, MessengerMessage.to_user == username)),
    ]
    for model in MEMBER_COMMENT_MODELS:
        plan.append((model, lambda m=model: or_(m.sender == profile_id, m.recipient == profile_id)))
    for model in AUTHORED_COMMENT_MODELS:
        plan.append((model, lambda m=model: m.sender == profile_id))

    plan += [
        (Picture, lambda: Picture.profile_id == profile_id),
        (PictureAlbum, lambda: PictureAlbum.profile_id == profile_id),
        (Video, lambda: Video.profile_id == profile_id),
        (VideoAlbum, lambda: VideoAlbum.profile_id == profile_id),
        (Friend, lambda: or_(Friend.profile_id == profile_id, Friend.friend_id == profile_id)),
        (WallPost, lambda: WallPost.profile_id == profile_id),
        (NoteCategory, lambda: NoteCategory.profile_id == profile_id),
        (Note, lambda: Note.profile_id == profile_id),
        (Like, lambda: Like.key_id.like(f"%{_escape_like(username)}.html", escape="\\")),
        (ProfileVisit, lambda: or_(ProfileVisit.profile_id == profile_id, ProfileVisit.visitor_id == profile_id)),
        (Report, lambda: Report.spammer_id == profile_id),
        (MemberBackground, lambda: MemberBackground.profile_id == profile_id),
        (MemberInfo, lambda: MemberInfo.profile_id == profile_id),
        (MemberPrivacy, lambda: MemberPrivacy.profile_id == profile_id),
        (MemberNotification, lambda: MemberNotification.profile_id == profile_id),
    ]
    return plan


def delete_owned_rows(db: Session, profile_id: int, username: str) -> Dict[str, int]:
    """
    Delete everything `profile_id` owns. Does not commit; the caller wraps
    this and the identity-row delete in one transaction.
    Returns the number of rows removed per table.
    """
    counts: Dict[str, int] = {}
    for model, criterion in cascade_plan(profile_id, username):
        removed = db.query(model).filter(criterion()).delete(synchronize_session=False)
        counts[model.__tablename__] = removed
    logger.info(f"Removed {sum(counts.values())} owned rows of profile {profile_id}")
    return counts
