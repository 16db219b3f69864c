from .Member_model import (
    SEX_VALUES,
    ActiveState,
    Member,
    MemberBackground,
    MemberInfo,
    MemberNotification,
    MemberPrivacy,
)
from .Member_realm import Realm, realm_model, resolve_realm
from .Member_schema import (
    MemberCreate,
    MemberInfoOut,
    MemberNotificationOut,
    MemberOut,
    MemberPrivacyOut,
    UsernameOut,
    split_match_sex,
)
from . import Member_cache
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy import func, or_
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Union
import logging

from pydantic import ValidationError

from config import settings
from database import transaction
from errors import Conflict, DataAccessError, Forbidden, InvalidArgument, NotFound
from Cache_module.cache_manager import MISS
from Content_module.Content_cascade import delete_owned_rows
from Login_module.Utils.datetime_utils import now_utc
from Login_module.Utils.Security import generate_hash_validation, hash_password
from Membership_module.Membership_crud import update_membership
from Settings_module import Settings_crud

logger = logging.getLogger(__name__)

# Columns readable one at a time through get_field
READABLE_FIELDS = (
    "email", "username", "first_name", "sex", "match_sex", "birth_date",
    "group_id", "user_status", "avatar", "background",
)

# Identity columns writable through update_field. The password goes through
# change_password and the group through update_membership.
UPDATABLE_FIELDS = (
    "email", "username", "first_name", "last_name", "sex", "match_sex", "birth_date",
    "active", "user_status", "ip", "hash_validation", "avatar", "approved_avatar",
    "ban", "views", "votes", "score", "last_activity", "last_edit",
)

PRIVACY_VALUES = {
    "privacy_profile": ("all", "members", "friends", "only_me"),
    "search_profile": ("yes", "no"),
    "user_save_views": ("yes", "no"),
}

NOTIFICATION_FIELDS = ("enable_newsletters", "new_msg", "friend_request", "comment_msg")

INFO_FIELDS = tuple(MemberInfoOut.model_fields)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _is_ghost(username: Optional[str]) -> bool:
    return bool(username) and username.lower() == settings.GHOST_USERNAME.lower()


# ---------------------------------------------------------------------------
# Reads

def read_profile(db: Session, profile_id: int, realm: Union[str, Realm] = Realm.MEMBERS) -> MemberOut:
    """
    Full identity row of an account, read through the cache.
    A missing account is cached as null and reported as NotFound.
    """
    model = realm_model(realm)
    entry = Member_cache.entry(Member_cache.profile_key(resolve_realm(realm), profile_id))
    data = entry.get()

    if data is MISS:
        member = db.query(model).filter(model.profile_id == profile_id).first()
        data = MemberOut.model_validate(member).model_dump(mode="json") if member else None
        entry.put(data)

    if data is None:
        raise NotFound(f"Profile {profile_id} not found in {resolve_realm(realm).value}")
    return MemberOut.model_validate(data)


def _load_field(db: Session, model, profile_id: int, field: str):
    if field == "background":
        member = db.query(model.profile_id).filter(model.profile_id == profile_id).first()
        if not member:
            return None
        file = (
            db.query(MemberBackground.file)
            .filter(MemberBackground.profile_id == profile_id)
            .scalar()
        )
        return {"value": file}

    row = db.query(getattr(model, field)).filter(model.profile_id == profile_id).first()
    if row is None:
        return None
    value = row[0]
    if field == "match_sex":
        value = split_match_sex(value)
    elif isinstance(value, date):
        value = value.isoformat()
    return {"value": value}


def get_field(db: Session, profile_id: int, field: str, realm: Union[str, Realm] = Realm.MEMBERS) -> Any:
    """
    One column of an account, cached per (realm, profile, field).
    The username of the administrator profile is the administration label.
    """
    if field not in READABLE_FIELDS:
        raise InvalidArgument(f"Field '{field}' cannot be read individually")
    realm = resolve_realm(realm)

    if field == "username" and profile_id == settings.ADMIN_PROFILE_ID:
        return f"Administration of {settings.SITE_NAME}"

    model = realm_model(realm)
    entry = Member_cache.entry(Member_cache.field_key(realm, profile_id, field))
    data = entry.get()
    if data is MISS:
        data = _load_field(db, model, profile_id, field)
        entry.put(data)

    if data is None:
        raise NotFound(f"Profile {profile_id} not found in {realm.value}")

    value = data["value"]
    if field == "birth_date" and value:
        return date.fromisoformat(value)
    return value


def resolve_id(
    db: Session,
    email: Optional[str] = None,
    username: Optional[str] = None,
    realm: Union[str, Realm] = Realm.MEMBERS,
) -> int:
    """Profile id from an email (case-insensitive) or a username. The email wins when both are given."""
    model = realm_model(realm)
    if email:
        criterion = func.lower(model.email) == email.strip().lower()
    elif username:
        criterion = model.username == username
    else:
        raise InvalidArgument("An email or a username is required")

    profile_id = db.query(model.profile_id).filter(criterion).limit(1).scalar()
    if profile_id is None:
        raise NotFound(f"No account matches {email or username}")
    return profile_id


def get_username_list(db: Session, pattern: str, realm: Union[str, Realm] = Realm.MEMBERS) -> List[UsernameOut]:
    model = realm_model(realm)
    rows = (
        db.query(model.profile_id, model.username, model.sex)
        .filter(
            model.username.like(f"%{_escape_like(pattern or '')}%", escape="\\"),
            model.username != settings.GHOST_USERNAME,
        )
        .order_by(model.username.asc())
        .all()
    )
    return [UsernameOut(profile_id=r.profile_id, username=r.username, sex=r.sex) for r in rows]


def check_wait_join(
    db: Session,
    ip: str,
    minutes: int,
    now: Optional[datetime] = None,
    realm: Union[str, Realm] = Realm.MEMBERS,
) -> bool:
    """
    Registration flood control: False while an account from `ip` was created
    less than `minutes` ago.
    """
    now = now or now_utc()
    model = realm_model(realm)
    recent = (
        db.query(model.profile_id)
        .filter(model.ip == ip, model.join_date > now - timedelta(minutes=minutes))
        .first()
    )
    return recent is None


def total(
    db: Session,
    realm: Union[str, Realm] = Realm.MEMBERS,
    days: Optional[int] = None,
    gender: Optional[str] = None,
    now: Optional[datetime] = None,
) -> int:
    """Number of accounts, optionally joined in the last `days` days and of one sex."""
    realm = resolve_realm(realm)
    model = realm_model(realm)
    query = db.query(func.count(model.profile_id)).filter(model.username != settings.GHOST_USERNAME)

    if days:
        now = now or now_utc()
        query = query.filter(model.join_date > now - timedelta(days=days))
    if gender:
        allowed = SEX_VALUES if realm is Realm.MEMBERS else ("male", "female")
        if gender not in allowed:
            raise InvalidArgument(f"Unknown sex '{gender}' for {realm.value}")
        query = query.filter(model.sex == gender)
    return query.scalar() or 0


# ---------------------------------------------------------------------------
# Identity writes

def update_field(
    db: Session,
    field: str,
    value: Any,
    profile_id: int,
    realm: Union[str, Realm] = Realm.MEMBERS,
) -> bool:
    if field not in UPDATABLE_FIELDS:
        raise InvalidArgument(f"Field '{field}' cannot be updated")
    realm = resolve_realm(realm)
    model = realm_model(realm)

    if field == "match_sex" and not isinstance(value, str) and value is not None:
        value = ",".join(value)
    if field in ("email", "username") and value:
        value = value.strip()
        _check_unique(db, model, exclude_id=profile_id, **{field: value})

    try:
        with transaction(db):
            updated = (
                db.query(model)
                .filter(model.profile_id == profile_id)
                .update({getattr(model, field): value}, synchronize_session=False)
            )
    except IntegrityError as e:
        logger.error(f"Update of {field} rolled back for profile {profile_id}: {e}")
        raise Conflict(f"{field.capitalize()} is already used by another account") from e

    Member_cache.invalidate_profile(realm, profile_id, field)
    if field in ("avatar", "approved_avatar"):
        Member_cache.invalidate_group(realm, profile_id, Member_cache.AVATAR)
    return updated == 1


def set_last_activity(
    db: Session,
    profile_id: int,
    realm: Union[str, Realm] = Realm.MEMBERS,
    now: Optional[datetime] = None,
) -> bool:
    return update_field(db, "last_activity", now or now_utc(), profile_id, realm)


def set_last_edit(
    db: Session,
    profile_id: int,
    realm: Union[str, Realm] = Realm.MEMBERS,
    now: Optional[datetime] = None,
) -> bool:
    return update_field(db, "last_edit", now or now_utc(), profile_id, realm)


def approve(db: Session, profile_id: int, status: int, realm: Union[str, Realm] = Realm.MEMBERS) -> bool:
    """Enable (1) or disable (0) an account."""
    if status not in (ActiveState.DISABLED, ActiveState.ACTIVE):
        raise InvalidArgument("Approval status must be 0 or 1")
    return update_field(db, "active", int(status), profile_id, realm)


# ---------------------------------------------------------------------------
# Lifecycle

def _check_unique(
    db: Session,
    model=Member,
    email: Optional[str] = None,
    username: Optional[str] = None,
    exclude_id: Optional[int] = None,
) -> None:
    """Case-insensitive uniqueness of email and username, ignoring `exclude_id`."""
    criteria = []
    if email:
        criteria.append(func.lower(model.email) == email.lower())
    if username:
        criteria.append(func.lower(model.username) == username.lower())
    if not criteria:
        return

    query = db.query(model.email, model.username).filter(or_(*criteria))
    if exclude_id is not None:
        query = query.filter(model.profile_id != exclude_id)
    taken = query.first()
    if taken:
        what = "Email" if email and taken.email.lower() == email.lower() else "Username"
        raise Conflict(f"{what} is already used by another account")


def add_member(db: Session, data: Union[MemberCreate, Dict[str, Any]], now: Optional[datetime] = None) -> int:
    """
    Register a member: identity row, info, privacy and notification rows and
    the default membership group, all in one transaction.
    Returns the new profile id.
    """
    if not isinstance(data, MemberCreate):
        try:
            data = MemberCreate(**data)
        except ValidationError as e:
            raise InvalidArgument(str(e)) from e

    now = now or now_utc()
    _check_unique(db, email=data.email, username=data.username)

    is_active = data.is_active if data.is_active is not None else ActiveState.ACTIVE
    hash_validation = data.hash_validation
    if is_active == ActiveState.PENDING and not hash_validation:
        hash_validation = generate_hash_validation()

    group_id = Settings_crud.get_default_membership_group_id(db)

    try:
        with transaction(db):
            member = Member(
                email=data.email,
                username=data.username,
                password=hash_password(data.password),
                first_name=data.first_name,
                last_name=data.last_name,
                sex=data.sex,
                match_sex=",".join(data.match_sex),
                birth_date=data.birth_date,
                active=int(is_active),
                ip=data.ip,
                hash_validation=hash_validation,
                join_date=now,
                last_activity=now,
                group_id=group_id,
            )
            db.add(member)
            db.flush()
            profile_id = member.profile_id

            db.add(MemberInfo(
                profile_id=profile_id,
                middle_name=data.middle_name or "",
                country=data.country or "",
                city=data.city or "",
                state=data.state or "",
                zip_code=data.zip_code or "",
                description=data.description or "",
                website=data.website or "",
                social_network_site=data.social_network_site or "",
            ))
            db.add(MemberPrivacy(profile_id=profile_id, privacy_profile="all", search_profile="yes", user_save_views="yes"))
            db.add(MemberNotification(profile_id=profile_id, enable_newsletters=0, new_msg=1, friend_request=1))
            db.flush()

            update_membership(db, group_id, profile_id, now=now, commit=False)
    except IntegrityError as e:
        logger.error(f"Member registration rolled back for {data.email}: {e}")
        raise Conflict("Email or username is already used by another account") from e
    except (DataAccessError, SQLAlchemyError) as e:
        logger.error(f"Member registration rolled back for {data.email}: {e}")
        raise

    # A miss may have been cached before the row existed
    Member_cache.purge_member(Realm.MEMBERS, profile_id)
    logger.info(f"Member {profile_id} registered (group {group_id}, active {int(is_active)})")
    return profile_id


def delete_member(
    db: Session,
    profile_id: int,
    username: str,
    realm: Union[str, Realm] = Realm.MEMBERS,
) -> Dict[str, int]:
    """
    Delete an account and every row it owns. Forum topics and messages are
    kept. Returns the number of rows removed per table.
    """
    if _is_ghost(username):
        logger.warning(f"Refused to delete the reserved ghost account (profile {profile_id})")
        raise Forbidden("The ghost account cannot be deleted")

    realm = resolve_realm(realm)
    model = realm_model(realm)
    stored = db.query(model.username).filter(model.profile_id == profile_id).scalar()
    if stored is None:
        raise NotFound(f"Profile {profile_id} not found in {realm.value}")
    if stored != username:
        raise InvalidArgument(f"Profile {profile_id} does not belong to '{username}'")

    logger.info(f"Deleting profile {profile_id} ({username}) from {realm.value}")
    try:
        with transaction(db):
            counts = delete_owned_rows(db, profile_id, username) if realm is Realm.MEMBERS else {}
            counts[model.__tablename__] = (
                db.query(model).filter(model.profile_id == profile_id).delete(synchronize_session=False)
            )
    except (DataAccessError, SQLAlchemyError) as e:
        logger.error(f"Delete of profile {profile_id} rolled back: {e}")
        raise

    Member_cache.purge_member(realm, profile_id)
    logger.info(f"Profile {profile_id} deleted, {sum(counts.values())} rows removed")
    return counts


# ---------------------------------------------------------------------------
# Side rows

def get_privacy_setting(db: Session, profile_id: int) -> MemberPrivacyOut:
    entry = Member_cache.entry(Member_cache.member_key(Realm.MEMBERS, profile_id, Member_cache.PRIVACY))
    data = entry.get()
    if data is MISS:
        row = db.query(MemberPrivacy).filter(MemberPrivacy.profile_id == profile_id).first()
        data = MemberPrivacyOut.model_validate(row).model_dump() if row else None
        entry.put(data)
    if data is None:
        raise NotFound(f"No privacy settings for profile {profile_id}")
    return MemberPrivacyOut.model_validate(data)


def update_privacy_setting(db: Session, field: str, value: str, profile_id: int) -> bool:
    if field not in PRIVACY_VALUES:
        raise InvalidArgument(f"Unknown privacy setting '{field}'")
    if value not in PRIVACY_VALUES[field]:
        raise InvalidArgument(f"'{value}' is not a valid value for {field}")

    updated = (
        db.query(MemberPrivacy)
        .filter(MemberPrivacy.profile_id == profile_id)
        .update({getattr(MemberPrivacy, field): value}, synchronize_session=False)
    )
    db.commit()
    Member_cache.invalidate_group(Realm.MEMBERS, profile_id, Member_cache.PRIVACY)
    return updated == 1


def get_notification(db: Session, profile_id: int) -> MemberNotificationOut:
    entry = Member_cache.entry(Member_cache.member_key(Realm.MEMBERS, profile_id, Member_cache.NOTIFICATION))
    data = entry.get()
    if data is MISS:
        row = db.query(MemberNotification).filter(MemberNotification.profile_id == profile_id).first()
        data = MemberNotificationOut.model_validate(row).model_dump() if row else None
        entry.put(data)
    if data is None:
        raise NotFound(f"No notification settings for profile {profile_id}")
    return MemberNotificationOut.model_validate(data)


def is_notification(db: Session, profile_id: int, name: str) -> bool:
    """Whether the member accepts notifications of kind `name` (e.g. new_msg)."""
    if name not in NOTIFICATION_FIELDS:
        raise InvalidArgument(f"Unknown notification '{name}'")

    entry = Member_cache.entry(
        Member_cache.member_key(Realm.MEMBERS, profile_id, Member_cache.IS_NOTIFICATION, name)
    )
    data = entry.get()
    if data is MISS:
        data = (
            db.query(getattr(MemberNotification, name))
            .filter(MemberNotification.profile_id == profile_id)
            .scalar()
        )
        entry.put(data)
    return data == 1


def set_notification(db: Session, field: str, value: int, profile_id: int) -> bool:
    if field not in NOTIFICATION_FIELDS:
        raise InvalidArgument(f"Unknown notification '{field}'")
    value = 1 if value else 0

    updated = (
        db.query(MemberNotification)
        .filter(MemberNotification.profile_id == profile_id)
        .update({getattr(MemberNotification, field): value}, synchronize_session=False)
    )
    db.commit()
    Member_cache.invalidate_group(Realm.MEMBERS, profile_id, Member_cache.NOTIFICATION)
    Member_cache.invalidate_group(Realm.MEMBERS, profile_id, Member_cache.IS_NOTIFICATION)
    return updated == 1


def get_info_fields(db: Session, profile_id: int) -> MemberInfoOut:
    entry = Member_cache.entry(Member_cache.member_key(Realm.MEMBERS, profile_id, Member_cache.INFO))
    data = entry.get()
    if data is MISS:
        row = db.query(MemberInfo).filter(MemberInfo.profile_id == profile_id).first()
        data = MemberInfoOut.model_validate(row).model_dump() if row else None
        entry.put(data)
    if data is None:
        raise NotFound(f"No profile information for profile {profile_id}")
    return MemberInfoOut.model_validate(data)


def update_info_field(db: Session, field: str, value: Any, profile_id: int) -> bool:
    if field not in INFO_FIELDS:
        raise InvalidArgument(f"Unknown profile information field '{field}'")
    if field == "country" and value:
        value = str(value).strip().upper()
        if len(value) != 2:
            raise InvalidArgument("Country must be an ISO-3166 alpha-2 code")

    updated = (
        db.query(MemberInfo)
        .filter(MemberInfo.profile_id == profile_id)
        .update({getattr(MemberInfo, field): value}, synchronize_session=False)
    )
    db.commit()
    Member_cache.invalidate_group(Realm.MEMBERS, profile_id, Member_cache.INFO)
    return updated == 1
