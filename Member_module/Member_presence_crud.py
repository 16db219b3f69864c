from datetime import datetime, timedelta
from sqlalchemy.orm import Session
from typing import Optional, Union
import logging

from errors import InvalidArgument
from Login_module.Utils.datetime_utils import now_utc
from . import Member_crud
from .Member_model import UserStatus
from .Member_realm import Realm, realm_model

logger = logging.getLogger(__name__)


def is_online(
    db: Session,
    profile_id: int,
    minutes: int = 1,
    now: Optional[datetime] = None,
    realm: Union[str, Realm] = Realm.MEMBERS,
) -> bool:
    """Online status set and activity within the last `minutes` minutes."""
    now = now or now_utc()
    model = realm_model(realm)
    found = (
        db.query(model.profile_id)
        .filter(
            model.profile_id == profile_id,
            model.user_status == UserStatus.ONLINE,
            model.last_activity >= now - timedelta(minutes=minutes),
        )
        .first()
    )
    return found is not None


def set_user_status(db: Session, profile_id: int, status: int, realm: Union[str, Realm] = Realm.MEMBERS) -> bool:
    try:
        status = UserStatus(status)
    except ValueError:
        raise InvalidArgument(f"Unknown user status {status!r}")
    return Member_crud.update_field(db, "user_status", int(status), profile_id, realm)


def get_user_status(db: Session, profile_id: int, realm: Union[str, Realm] = Realm.MEMBERS) -> int:
    return Member_crud.get_field(db, profile_id, "user_status", realm)
