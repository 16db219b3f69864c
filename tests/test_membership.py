from datetime import timedelta

import pytest

from errors import Conflict, InvalidArgument, NotFound
from Login_module.Session.session_store import RedisSessionStore
from Member_module import Member_crud
from Member_module.Member_media_crud import set_avatar
from Membership_module import Membership_crud
from Membership_module.Membership_model import Membership
from Membership_module.Membership_schema import MembershipPermissions, parse_permissions
from Membership_module.bootstrap import seed_default_memberships

LEGACY_BLOB = 'a:2:{s:10:"read_mails";i:1;s:4:"chat";b:1;}'


def test_seed_is_idempotent(db):
    assert seed_default_memberships(db) == 0
    assert db.query(Membership).count() == 5


def test_get_memberships_ordering(db):
    names = [m.name for m in Membership_crud.get_memberships(db)]
    assert names == ["Pending", "Platinum", "Regular (Free)", "Silver", "Visitor"]


def test_disabled_groups_come_last(db):
    db.query(Membership).filter(Membership.group_id == 4).update({Membership.enable: 0})
    db.commit()
    assert Membership_crud.get_memberships(db)[-1].name == "Platinum"


def test_get_single_membership(db):
    platinum = Membership_crud.get_memberships(db, 4)
    assert platinum.name == "Platinum"
    assert platinum.expiration_days == 30
    assert platinum.permissions.webcam is True
    with pytest.raises(NotFound):
        Membership_crud.get_memberships(db, 77)


def test_create_membership_clears_cached_list(db):
    assert len(Membership_crud.get_memberships(db)) == 5
    Membership_crud.create_membership(db, "Gold", MembershipPermissions(chat=True), price=5)
    assert len(Membership_crud.get_memberships(db)) == 6


def test_legacy_serialized_permissions_are_read(db):
    db.add(Membership(group_id=20, name="Legacy", permissions=LEGACY_BLOB))
    db.commit()

    permissions = Membership_crud.get_permissions(db, 20)
    assert permissions.read_mails is True
    assert permissions.chat is True
    assert permissions.send_mails is False


def test_parse_permissions_formats():
    assert parse_permissions(None) == MembershipPermissions()
    assert parse_permissions('{"chat": true, "unknown_flag": true}').chat is True
    with pytest.raises(InvalidArgument):
        parse_permissions("garbage")


def test_check_group_puts_new_session_in_visitor_group(db, redis_client):
    session = RedisSessionStore(session_id="abc", client=redis_client)
    permissions = Membership_crud.check_group(db, session)

    assert session.session_id != "abc"
    assert session.get("member_group_id") == 1
    assert permissions.member_site_access is True
    assert permissions.advanced_search_profiles is False


def test_check_group_uses_existing_group(db, redis_client):
    session = RedisSessionStore(client=redis_client)
    session.set("member_group_id", 9)
    session_id = session.session_id

    permissions = Membership_crud.check_group(db, session)
    assert session.session_id == session_id
    assert permissions.member_site_access is False


def test_membership_details_follow_updates(db, make_member, now):
    pid = make_member()
    details = Membership_crud.get_membership_details(db, pid)
    assert (details.membership_name, details.expiration_days) == ("Regular (Free)", 0)

    Membership_crud.update_membership(db, 4, pid, now=now)
    details = Membership_crud.get_membership_details(db, pid)
    assert (details.membership_name, details.expiration_days) == ("Platinum", 30)
    assert details.membership_date == now

    with pytest.raises(NotFound):
        Membership_crud.get_membership_details(db, pid + 100)


def test_update_membership_rejects_unknown_group(db, make_member):
    pid = make_member()
    with pytest.raises(InvalidArgument):
        Membership_crud.update_membership(db, 77, pid)


def test_perpetual_membership_never_expires(db, make_member, now):
    pid = make_member()
    assert Membership_crud.check_membership_expiration(db, pid, now=now + timedelta(days=10000)) is True


def test_membership_expiration(db, make_member, now):
    pid = make_member()
    Membership_crud.update_membership(db, 4, pid, now=now)

    assert Membership_crud.check_membership_expiration(db, pid, now=now + timedelta(days=29)) is True
    assert Membership_crud.check_membership_expiration(db, pid, now=now + timedelta(days=30)) is True
    assert Membership_crud.check_membership_expiration(db, pid, now=now + timedelta(days=31)) is False
    assert Membership_crud.check_membership_expiration(db, pid + 100, now=now) is False


def test_membership_details_follow_member_writes(db, make_member):
    pid = make_member(email="old@example.com")
    assert Membership_crud.get_membership_details(db, pid).email == "old@example.com"

    Member_crud.update_field(db, "email", "new@example.com", pid)
    set_avatar(db, pid, "x.jpg", 1)
    Member_crud.approve(db, pid, 0)

    details = Membership_crud.get_membership_details(db, pid)
    assert (details.email, details.avatar, details.active) == ("new@example.com", "x.jpg", 0)


def test_update_membership_group(db, make_member):
    pid = make_member()
    assert Membership_crud.get_memberships(db, 2).name == "Regular (Free)"
    assert Membership_crud.get_membership_details(db, pid).membership_name == "Regular (Free)"

    assert Membership_crud.update_membership_group(db, "name", "Free", 2)
    assert Membership_crud.update_membership_group(db, "permissions", {"chat": True}, 2)

    free = Membership_crud.get_memberships(db, 2)
    assert free.name == "Free"
    assert free.permissions == MembershipPermissions(chat=True)
    assert db.query(Membership.permissions).filter(Membership.group_id == 2).scalar().startswith("{")
    assert Membership_crud.get_membership_details(db, pid).membership_name == "Free"


def test_update_membership_group_rejects_bad_input(db):
    with pytest.raises(InvalidArgument):
        Membership_crud.update_membership_group(db, "group_id", 3, 2)
    with pytest.raises(InvalidArgument):
        Membership_crud.update_membership_group(db, "name", " ", 2)
    with pytest.raises(NotFound):
        Membership_crud.update_membership_group(db, "price", 9, 77)


def test_delete_membership(db, make_member):
    pid = make_member()
    assert len(Membership_crud.get_memberships(db)) == 5

    with pytest.raises(Conflict):
        Membership_crud.delete_membership(db, 2)

    assert Membership_crud.delete_membership(db, 5) is True
    names = [m.name for m in Membership_crud.get_memberships(db)]
    assert "Silver" not in names and len(names) == 4
    with pytest.raises(NotFound):
        Membership_crud.get_memberships(db, 5)
    with pytest.raises(NotFound):
        Membership_crud.delete_membership(db, 5)
    assert Membership_crud.get_membership_details(db, pid).group_id == 2
