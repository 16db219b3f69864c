"""
Membership groups: permission lookup, expiration and group changes.
"""
from datetime import datetime, timedelta
from sqlalchemy.orm import Session
from typing import List, Optional, Union
import logging

from config import settings
from errors import Conflict, InvalidArgument, NotFound
from Cache_module import cache_manager
from Cache_module.cache_manager import MISS, USER_GROUP
from Login_module.Utils.datetime_utils import now_utc
from Member_module import Member_cache
from Member_module.Member_model import Member
from Member_module.Member_realm import Realm
from .Membership_model import Membership
from .Membership_schema import (
    MembershipDetailsOut,
    MembershipOut,
    MembershipPermissions,
    parse_permissions,
    serialize_permissions,
)

logger = logging.getLogger(__name__)

MEMBERSHIPS_KEY = "memberships"


def _memberships_key(group_id: Optional[int]) -> str:
    return f"{MEMBERSHIPS_KEY}:{group_id if group_id else 'all'}"


def check_group(db: Session, session) -> MembershipPermissions:
    """
    Permissions of the group stored in the visitor's session.
    A session without a group is given a fresh id and the visitor group.
    """
    if not session.exists("member_group_id"):
        session.regenerate_id()
        session.set("member_group_id", settings.VISITOR_GROUP_ID)

    group_id = int(session.get("member_group_id"))
    return get_permissions(db, group_id)


def get_permissions(db: Session, group_id: int) -> MembershipPermissions:
    blob = (
        db.query(Membership.permissions)
        .filter(Membership.group_id == group_id)
        .limit(1)
        .scalar()
    )
    if blob is None:
        raise NotFound(f"Membership group {group_id} does not exist")
    return parse_permissions(blob)


def get_memberships(db: Session, group_id: Optional[int] = None) -> Union[MembershipOut, List[MembershipOut]]:
    """
    One membership when `group_id` is given, otherwise all of them,
    enabled groups first then by name.
    """
    entry = cache_manager.start(USER_GROUP, _memberships_key(group_id))
    data = entry.get()

    if data is MISS:
        query = db.query(Membership)
        if group_id:
            query = query.filter(Membership.group_id == group_id)
        query = query.order_by(Membership.enable.desc(), Membership.name.asc())

        if group_id:
            row = query.first()
            data = MembershipOut.model_validate(row).model_dump(mode="json") if row else None
        else:
            data = [MembershipOut.model_validate(row).model_dump(mode="json") for row in query.all()]
        entry.put(data)

    if group_id:
        if data is None:
            raise NotFound(f"Membership group {group_id} does not exist")
        return MembershipOut.model_validate(data)
    return [MembershipOut.model_validate(item) for item in data]


def create_membership(
    db: Session,
    name: str,
    permissions: MembershipPermissions,
    description: Optional[str] = None,
    price: float = 0,
    expiration_days: int = 0,
    enable: int = 1,
    group_id: Optional[int] = None,
) -> Membership:
    membership = Membership(
        group_id=group_id,
        name=name,
        description=description,
        permissions=serialize_permissions(permissions),
        price=price,
        expiration_days=expiration_days,
        enable=enable,
    )
    db.add(membership)
    db.commit()
    db.refresh(membership)
    cache_manager.clear_prefix(USER_GROUP, MEMBERSHIPS_KEY)
    logger.info(f"Created membership group {membership.group_id} ({name})")
    return membership


# Columns an administrator may change on an existing group
MEMBERSHIP_SECTIONS = ("name", "description", "permissions", "price", "expiration_days", "enable")


def update_membership_group(db: Session, section: str, value, group_id: int) -> bool:
    """Change one column of a membership group."""
    if section not in MEMBERSHIP_SECTIONS:
        raise InvalidArgument(f"Membership column '{section}' cannot be updated")
    if section == "permissions":
        value = serialize_permissions(parse_permissions(value))
    elif section == "name" and not (value or "").strip():
        raise InvalidArgument("Membership name cannot be empty")

    updated = (
        db.query(Membership)
        .filter(Membership.group_id == group_id)
        .update({getattr(Membership, section): value}, synchronize_session=False)
    )
    if not updated:
        db.rollback()
        raise NotFound(f"Membership group {group_id} does not exist")
    db.commit()
    cache_manager.clear_prefix(USER_GROUP, MEMBERSHIPS_KEY)
    if section in ("name", "expiration_days"):
        # membership details embed both columns
        members = db.query(Member.profile_id).filter(Member.group_id == group_id).all()
        for (profile_id,) in members:
            cache_manager.clear(
                USER_GROUP, Member_cache.member_key(Realm.MEMBERS, profile_id, Member_cache.MEMBERSHIP_DETAILS)
            )
    logger.info(f"Updated {section} of membership group {group_id}")
    return True


def delete_membership(db: Session, group_id: int) -> bool:
    """Remove a membership group. Refused while members still belong to it."""
    in_use = db.query(Member.profile_id).filter(Member.group_id == group_id).first()
    if in_use:
        raise Conflict(f"Membership group {group_id} still has members")

    deleted = (
        db.query(Membership)
        .filter(Membership.group_id == group_id)
        .delete(synchronize_session=False)
    )
    if not deleted:
        db.rollback()
        raise NotFound(f"Membership group {group_id} does not exist")
    db.commit()
    cache_manager.clear_prefix(USER_GROUP, MEMBERSHIPS_KEY)
    logger.info(f"Deleted membership group {group_id}")
    return True


def get_membership_details(db: Session, profile_id: int) -> MembershipDetailsOut:
    entry = Member_cache.entry(
        Member_cache.member_key(Realm.MEMBERS, profile_id, Member_cache.MEMBERSHIP_DETAILS)
    )
    data = entry.get()

    if data is MISS:
        row = (
            db.query(Member, Membership.expiration_days, Membership.name)
            .join(Membership, Membership.group_id == Member.group_id)
            .filter(Member.profile_id == profile_id)
            .first()
        )
        data = None
        if row:
            member, expiration_days, membership_name = row
            data = MembershipDetailsOut.from_row(member, expiration_days, membership_name).model_dump(mode="json")
        entry.put(data)

    if data is None:
        raise NotFound(f"Profile {profile_id} has no membership")
    return MembershipDetailsOut.model_validate(data)


def check_membership_expiration(db: Session, profile_id: int, now: Optional[datetime] = None) -> bool:
    """
    True while the membership is valid: perpetual groups (expirationDays = 0)
    always pass, others until membershipDate + expirationDays.
    """
    now = now or now_utc()
    row = (
        db.query(Member.membership_date, Membership.expiration_days)
        .join(Membership, Membership.group_id == Member.group_id)
        .filter(Member.profile_id == profile_id)
        .first()
    )
    if row is None:
        return False

    membership_date, expiration_days = row
    if not expiration_days:
        return True
    if membership_date is None:
        return False
    return membership_date + timedelta(days=expiration_days) >= now


def update_membership(
    db: Session,
    new_group_id: int,
    profile_id: int,
    now: Optional[datetime] = None,
    commit: bool = True,
) -> bool:
    """
    Move a member to another group. When `now` is given the membership
    period restarts from it. With commit=False the caller owns the transaction.
    """
    exists = db.query(Membership.group_id).filter(Membership.group_id == new_group_id).first()
    if not exists:
        raise InvalidArgument(f"Membership group {new_group_id} does not exist")

    values = {Member.group_id: new_group_id}
    if now is not None:
        values[Member.membership_date] = now

    updated = (
        db.query(Member)
        .filter(Member.profile_id == profile_id)
        .update(values, synchronize_session=False)
    )
    if commit:
        db.commit()

    Member_cache.invalidate_profile(Realm.MEMBERS, profile_id, "group_id")
    return updated == 1
