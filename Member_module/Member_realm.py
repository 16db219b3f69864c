"""
Identifier validation for operations that act on a caller-chosen table.

A realm is one partition of identity tables (Members, Affiliates, Admins).
Only names in ``ALLOWED_TABLES`` are ever turned into table references.
"""
import enum
from typing import Union

from errors import InvalidIdentifier


class Realm(str, enum.Enum):
    MEMBERS = "Members"
    AFFILIATES = "Affiliates"
    ADMINS = "Admins"


ALLOWED_TABLES = frozenset(
    [realm.value for realm in Realm]
    + [f"{realm.value}LogSess" for realm in Realm]
    + ["MembersInfo", "MembersPrivacy", "MembersNotifications"]
)


def check_table(name: Union[str, Realm]) -> str:
    """Return the table name if it is allow-listed, raise InvalidIdentifier otherwise."""
    table = name.value if isinstance(name, Realm) else name
    if not isinstance(table, str) or table not in ALLOWED_TABLES:
        raise InvalidIdentifier(f"Table '{table}' is not allowed")
    return table


def resolve_realm(realm: Union[str, Realm]) -> Realm:
    check_table(realm)
    try:
        return Realm(realm)
    except ValueError:
        raise InvalidIdentifier(f"'{realm}' is not a realm")


def realm_model(realm: Union[str, Realm]):
    """Declarative model holding the identity rows of `realm`."""
    from .Member_model import Member, Affiliate, Admin

    return {
        Realm.MEMBERS: Member,
        Realm.AFFILIATES: Affiliate,
        Realm.ADMINS: Admin,
    }[resolve_realm(realm)]


def login_log_model(realm: Union[str, Realm]):
    """Declarative model of the append-only ``{realm}LogSess`` table."""
    from Login_module.Auth.LoginLog_model import MemberLoginLog, AffiliateLoginLog, AdminLoginLog

    resolved = resolve_realm(realm)
    check_table(f"{resolved.value}LogSess")
    return {
        Realm.MEMBERS: MemberLoginLog,
        Realm.AFFILIATES: AffiliateLoginLog,
        Realm.ADMINS: AdminLoginLog,
    }[resolved]
