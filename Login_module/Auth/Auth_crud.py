"""
Credential checks, password changes and account activation tokens.
"""
from datetime import datetime
from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import Optional, Union
import logging

from config import settings
from errors import AuthRejected, InvalidArgument, NotFound
from Member_module import Member_cache
from Member_module.Member_model import ActiveState
from Member_module.Member_realm import Realm, login_log_model, realm_model, resolve_realm
from Member_module.Member_schema import HashValidationOut
from Login_module.Utils.datetime_utils import now_utc
from Login_module.Utils.Security import hash_password, is_valid_hash_validation, verify_password

logger = logging.getLogger(__name__)


def _email_matches(model, email: str):
    return func.lower(model.email) == (email or "").strip().lower()


def _rejected(reason: str) -> AuthRejected:
    if not settings.LOGIN_DISTINCT_FAILURE_REASONS:
        reason = AuthRejected.INVALID_CREDENTIALS
    return AuthRejected(reason)


def login(db: Session, email: str, password: str, realm: Union[str, Realm] = Realm.MEMBERS) -> bool:
    """
    Check an email/password pair. Returns True on success and raises
    AuthRejected with the failure reason otherwise.
    """
    model = realm_model(realm)
    stored_hash = db.query(model.password).filter(_email_matches(model, email)).limit(1).scalar()

    if stored_hash is None:
        logger.info("Login rejected: unknown email")
        raise _rejected(AuthRejected.EMAIL_DOES_NOT_EXIST)
    if not verify_password(password, stored_hash):
        logger.info("Login rejected: wrong password")
        raise _rejected(AuthRejected.PASSWORD_DOES_NOT_EXIST)
    return True


def session_log(
    db: Session,
    email: str,
    username: Optional[str],
    first_name: Optional[str],
    realm: Union[str, Realm] = Realm.MEMBERS,
    ip: Optional[str] = None,
    now: Optional[datetime] = None,
) -> None:
    """Append a row to the login log of the realm."""
    log_model = login_log_model(realm)
    db.add(log_model(
        email=email,
        username=username,
        first_name=first_name,
        ip=ip,
        date_time=now or now_utc(),
    ))
    db.commit()


def change_password(db: Session, email: str, new_password: str, realm: Union[str, Realm] = Realm.MEMBERS) -> bool:
    """Hash and store a new password. The caller is responsible for authorising the change."""
    if not new_password:
        raise InvalidArgument("Password cannot be empty")
    realm = resolve_realm(realm)
    model = realm_model(realm)

    profile_id = db.query(model.profile_id).filter(_email_matches(model, email)).limit(1).scalar()
    if profile_id is None:
        raise NotFound(f"No account for {email}")

    db.query(model).filter(model.profile_id == profile_id).update(
        {model.password: hash_password(new_password)}, synchronize_session=False
    )
    db.commit()
    Member_cache.invalidate_profile(realm, profile_id)
    logger.info(f"Password changed for profile {profile_id}")
    return True


def set_new_hash_validation(
    db: Session,
    profile_id: int,
    hash_validation: str,
    realm: Union[str, Realm] = Realm.MEMBERS,
) -> bool:
    if not is_valid_hash_validation(hash_validation):
        raise InvalidArgument("Hash validation must be 40 characters")
    realm = resolve_realm(realm)
    model = realm_model(realm)

    updated = (
        db.query(model)
        .filter(model.profile_id == profile_id)
        .update({model.hash_validation: hash_validation}, synchronize_session=False)
    )
    db.commit()
    Member_cache.invalidate_profile(realm, profile_id)
    return updated == 1


def check_hash_validation(
    db: Session,
    email: str,
    hash_validation: str,
    realm: Union[str, Realm] = Realm.MEMBERS,
) -> bool:
    if not is_valid_hash_validation(hash_validation):
        return False
    model = realm_model(realm)
    matches = (
        db.query(func.count(model.profile_id))
        .filter(_email_matches(model, email), model.hash_validation == hash_validation)
        .scalar()
    )
    return matches == 1


def get_hash_validation(db: Session, email: str, realm: Union[str, Realm] = Realm.MEMBERS) -> HashValidationOut:
    """Activation details of a pending account."""
    model = realm_model(realm)
    row = (
        db.query(model)
        .filter(_email_matches(model, email), model.active == ActiveState.PENDING)
        .first()
    )
    if row is None:
        raise NotFound(f"No pending account for {email}")
    return HashValidationOut.model_validate(row)


def validate_account(
    db: Session,
    email: str,
    hash_validation: str,
    realm: Union[str, Realm] = Realm.MEMBERS,
) -> bool:
    """
    Activate a pending account when the email and token match.
    The update is a single conditional statement, so a second call moves no
    row and returns False.
    """
    if not is_valid_hash_validation(hash_validation):
        return False
    realm = resolve_realm(realm)
    model = realm_model(realm)

    profile_id = (
        db.query(model.profile_id)
        .filter(_email_matches(model, email), model.hash_validation == hash_validation)
        .limit(1)
        .scalar()
    )
    if profile_id is None:
        return False

    updated = (
        db.query(model)
        .filter(
            model.profile_id == profile_id,
            model.hash_validation == hash_validation,
            model.active == ActiveState.PENDING,
        )
        .update({model.active: int(ActiveState.ACTIVE)}, synchronize_session=False)
    )
    db.commit()

    if updated:
        Member_cache.invalidate_profile(realm, profile_id, "active")
        logger.info(f"Account {profile_id} activated")
    return updated == 1
