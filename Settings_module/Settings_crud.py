"""
System settings provider.
Values come from the Settings table when a row exists and fall back to the
defaults in config.py otherwise.
"""
from sqlalchemy.orm import Session
from typing import Optional
import logging

from config import settings
from Cache_module import cache_manager
from Cache_module.cache_manager import MISS, SETTINGS_GROUP
from .Settings_model import SiteSetting

logger = logging.getLogger(__name__)

DEFAULT_MEMBERSHIP_GROUP_ID = "defaultMembershipGroupId"
USER_TIMEOUT = "userTimeout"
PROFILE_WITH_AVATAR_SET = "profileWithAvatarSet"


def _config_default(name: str):
    return {
        DEFAULT_MEMBERSHIP_GROUP_ID: settings.DEFAULT_MEMBERSHIP_GROUP_ID,
        USER_TIMEOUT: settings.USER_TIMEOUT_MINUTES,
        PROFILE_WITH_AVATAR_SET: settings.PROFILE_WITH_AVATAR_SET,
    }.get(name)


def get_setting(db: Session, name: str) -> Optional[str]:
    """Raw value of a setting, or None when the table has no row for it."""
    entry = cache_manager.start(SETTINGS_GROUP, f"setting:{name}")
    value = entry.get()
    if value is MISS:
        row = db.query(SiteSetting).filter(SiteSetting.name == name).first()
        value = row.value if row else None
        entry.put(value)
    return value


def set_setting(db: Session, name: str, value) -> None:
    row = db.query(SiteSetting).filter(SiteSetting.name == name).first()
    if row:
        row.value = str(value)
    else:
        db.add(SiteSetting(name=name, value=str(value)))
    db.commit()
    cache_manager.clear(SETTINGS_GROUP, f"setting:{name}")
    logger.info(f"Setting '{name}' updated")


def _int_setting(db: Session, name: str) -> int:
    value = get_setting(db, name)
    if value is None or value == "":
        return int(_config_default(name))
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Setting '{name}' has a non-integer value {value!r}, using default")
        return int(_config_default(name))


def get_default_membership_group_id(db: Session) -> int:
    return _int_setting(db, DEFAULT_MEMBERSHIP_GROUP_ID)


def get_user_timeout(db: Session) -> int:
    """Inactivity window in minutes after which an online member counts as offline."""
    return _int_setting(db, USER_TIMEOUT)


def get_profile_with_avatar_set(db: Session) -> bool:
    value = get_setting(db, PROFILE_WITH_AVATAR_SET)
    if value is None or value == "":
        return bool(_config_default(PROFILE_WITH_AVATAR_SET))
    return str(value).strip().lower() in ("1", "true", "yes", "on")
