"""
Avatar and profile background of a member, each with an approval flag.
"""
from sqlalchemy.orm import Session
from typing import Optional, Union
import logging

from errors import InvalidArgument, NotFound
from Cache_module.cache_manager import MISS
from . import Member_cache
from .Member_model import MemberBackground
from .Member_realm import Realm, realm_model, resolve_realm
from .Member_schema import AvatarOut

logger = logging.getLogger(__name__)


def _approval_part(approved: Optional[int]) -> str:
    return "any" if approved is None else str(int(approved))


def _check_approval(approved: int) -> int:
    if approved not in (0, 1):
        raise InvalidArgument("Approval flag must be 0 or 1")
    return int(approved)


def set_avatar(
    db: Session,
    profile_id: int,
    path: Optional[str],
    approved: int = 1,
    realm: Union[str, Realm] = Realm.MEMBERS,
) -> bool:
    """Store a new avatar path (None removes it) with its approval state."""
    approved = _check_approval(approved)
    realm = resolve_realm(realm)
    model = realm_model(realm)

    updated = (
        db.query(model)
        .filter(model.profile_id == profile_id)
        .update({model.avatar: path, model.approved_avatar: approved}, synchronize_session=False)
    )
    db.commit()

    Member_cache.invalidate_profile(realm, profile_id, "avatar")
    Member_cache.invalidate_group(realm, profile_id, Member_cache.AVATAR)
    return updated == 1


def delete_avatar(db: Session, profile_id: int, realm: Union[str, Realm] = Realm.MEMBERS) -> bool:
    return set_avatar(db, profile_id, None, 1, realm)


def get_avatar(
    db: Session,
    profile_id: int,
    approved: Optional[int] = None,
    realm: Union[str, Realm] = Realm.MEMBERS,
) -> AvatarOut:
    """
    Avatar of a member. With `approved` set, an avatar in the other approval
    state is reported as no picture.
    """
    realm = resolve_realm(realm)
    model = realm_model(realm)
    entry = Member_cache.entry(
        Member_cache.member_key(realm, profile_id, Member_cache.AVATAR, _approval_part(approved))
    )
    data = entry.get()

    if data is MISS:
        row = (
            db.query(model.profile_id, model.avatar, model.approved_avatar)
            .filter(model.profile_id == profile_id)
            .first()
        )
        data = None
        if row:
            pic = row.avatar
            if approved is not None and row.approved_avatar != approved:
                pic = None
            data = {"profile_id": row.profile_id, "pic": pic, "approved_avatar": row.approved_avatar}
        entry.put(data)

    if data is None:
        raise NotFound(f"Profile {profile_id} not found in {realm.value}")
    return AvatarOut(**data)


def add_background(db: Session, profile_id: int, file: str, approved: int = 1) -> None:
    """Set the profile background. A member has at most one."""
    approved = _check_approval(approved)
    row = db.query(MemberBackground).filter(MemberBackground.profile_id == profile_id).first()
    if row:
        row.file = file
        row.approved = approved
    else:
        db.add(MemberBackground(profile_id=profile_id, file=file, approved=approved))
    db.commit()

    Member_cache.invalidate_profile(Realm.MEMBERS, profile_id, "background")
    Member_cache.invalidate_group(Realm.MEMBERS, profile_id, Member_cache.BACKGROUND)


def delete_background(db: Session, profile_id: int) -> bool:
    removed = (
        db.query(MemberBackground)
        .filter(MemberBackground.profile_id == profile_id)
        .delete(synchronize_session=False)
    )
    db.commit()

    Member_cache.invalidate_profile(Realm.MEMBERS, profile_id, "background")
    Member_cache.invalidate_group(Realm.MEMBERS, profile_id, Member_cache.BACKGROUND)
    return removed == 1


def get_background(db: Session, profile_id: int, approved: Optional[int] = None) -> Optional[str]:
    """Background file of a member, None when there is none (in that approval state)."""
    entry = Member_cache.entry(
        Member_cache.member_key(Realm.MEMBERS, profile_id, Member_cache.BACKGROUND, _approval_part(approved))
    )
    file = entry.get()

    if file is MISS:
        query = db.query(MemberBackground.file).filter(MemberBackground.profile_id == profile_id)
        if approved is not None:
            query = query.filter(MemberBackground.approved == approved)
        file = query.scalar()
        entry.put(file)
    return file
