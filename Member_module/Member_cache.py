"""
Cache keys owned by one account and their invalidation.
Every write path in the member modules goes through these helpers so the
read-through cache never serves a value older than the last write.
"""
from Cache_module import cache_manager
from Cache_module.cache_manager import USER_GROUP, member_key, member_prefix

PROFILE = "readProfile"
FIELD = "field"
AVATAR = "avatar"
BACKGROUND = "background"
PRIVACY = "privacySetting"
NOTIFICATION = "notification"
IS_NOTIFICATION = "isNotification"
INFO = "infoFields"
MEMBERSHIP_DETAILS = "membershipDetails"


def profile_key(realm, profile_id: int) -> str:
    return member_key(realm, profile_id, PROFILE)


def field_key(realm, profile_id: int, field: str) -> str:
    return member_key(realm, profile_id, FIELD, field)


def entry(key: str):
    return cache_manager.start(USER_GROUP, key)


def invalidate_profile(realm, profile_id: int, *fields: str) -> None:
    """
    Drop the full-row entry, the membership details (they embed the row)
    and the per-field entries of `fields`.
    """
    cache_manager.clear(USER_GROUP, profile_key(realm, profile_id))
    cache_manager.clear(USER_GROUP, member_key(realm, profile_id, MEMBERSHIP_DETAILS))
    for field in fields:
        cache_manager.clear(USER_GROUP, field_key(realm, profile_id, field))


def invalidate_group(realm, profile_id: int, name: str) -> None:
    """Drop every entry whose name starts with `name` (all variants of a lookup)."""
    cache_manager.clear_prefix(USER_GROUP, member_key(realm, profile_id, name))


def purge_member(realm, profile_id: int) -> int:
    return cache_manager.clear_prefix(USER_GROUP, member_prefix(realm, profile_id))
