import logging
from typing import Optional

from sqlalchemy.orm import Session

from database import SessionLocal
from .Membership_model import Membership
from .Membership_schema import MembershipPermissions, serialize_permissions

logger = logging.getLogger(__name__)

_BROWSE = dict(
    member_site_access=True,
    quick_search_profiles=True,
    advanced_search_profiles=True,
    view_pictures=True,
    view_videos=True,
    read_notes=True,
    read_blog_posts=True,
    view_games=True,
    forum_access=True,
)

_MEMBER = dict(
    _BROWSE,
    read_mails=True,
    send_mails=True,
    upload_pictures=True,
    upload_videos=True,
    instant_messaging=True,
    chat=True,
    chatroulette=True,
    hot_or_not=True,
    love_calculator=True,
    write_notes=True,
    webcam=True,
    create_forum_topics=True,
    answer_forum_topics=True,
)

# group id, name, description, permissions, price, expiration days
DEFAULT_MEMBERSHIPS = [
    (1, "Visitor", "Visitors who are not logged in.", dict(_BROWSE, advanced_search_profiles=False), 0, 0),
    (2, "Regular (Free)", "Free membership given on registration.", _MEMBER, 0, 0),
    (4, "Platinum", "Paid membership with every feature.", _MEMBER, 19.99, 30),
    (5, "Silver", "Paid membership with most features.", dict(_MEMBER, webcam=False, chatroulette=False), 9.99, 30),
    (9, "Pending", "Accounts waiting for approval.", {}, 0, 0),
]


def seed_default_memberships(db: Optional[Session] = None) -> int:
    """
    Ensure the default membership groups exist.
    Existing groups are left untouched. Returns the number of groups created.
    """
    session = db or SessionLocal()
    try:
        existing = {gid for (gid,) in session.query(Membership.group_id).all()}
        created = 0
        for group_id, name, description, permissions, price, expiration_days in DEFAULT_MEMBERSHIPS:
            if group_id in existing:
                continue
            session.add(Membership(
                group_id=group_id,
                name=name,
                description=description,
                permissions=serialize_permissions(MembershipPermissions(**permissions)),
                price=price,
                expiration_days=expiration_days,
                enable=1,
            ))
            created += 1
        session.commit()
        if created:
            logger.info(f"Seeded {created} membership group(s)")
        return created
    finally:
        if db is None:
            session.close()
