from datetime import timedelta

import pytest

from errors import InvalidArgument, NotFound
from Member_module import Member_crud
from Member_module.Member_listing_crud import get_geo_profiles, get_profiles
from Member_module.Member_media_crud import (
    add_background,
    delete_avatar,
    delete_background,
    get_avatar,
    get_background,
    set_avatar,
)
from Member_module.Member_presence_crud import get_user_status, is_online, set_user_status
from Settings_module.Settings_crud import PROFILE_WITH_AVATAR_SET, set_setting


# Listings

def test_get_profiles_lists_visible_members(db, make_member):
    a = make_member(username="a")
    b = make_member(username="b")

    assert {row.profile_id for row in get_profiles(db)} == {a, b}
    assert [row.profile_id for row in get_profiles(db, actor_id=a)] == [b]


def test_get_profiles_requires_complete_identity(db, make_member):
    make_member(username="complete")
    make_member(username="nameless", first_name=None)
    assert [row.username for row in get_profiles(db)] == ["complete"]


def test_get_profiles_with_avatar_setting(db, make_member):
    with_pic = make_member(username="pic")
    make_member(username="nopic")
    set_avatar(db, with_pic, "pic.jpg", 1)

    set_setting(db, PROFILE_WITH_AVATAR_SET, "1")
    assert [row.username for row in get_profiles(db)] == ["pic"]


def test_get_profiles_pagination(db, make_member):
    for _ in range(3):
        make_member()
    assert len(list(get_profiles(db, offset=0, limit=2))) == 2
    assert len(list(get_profiles(db, offset=2, limit=2))) == 1
    with pytest.raises(InvalidArgument):
        get_profiles(db, offset=-1, limit=2)


def test_get_geo_profiles(db, make_member):
    make_member(username="paris1", country="FR", city="Paris")
    make_member(username="lyon", country="FR", city="Lyon")
    make_member(username="berlin", country="DE", city="Berlin")

    assert get_geo_profiles(db, "FR", count=True) == 2
    assert [row.username for row in get_geo_profiles(db, "FR", "Par")] == ["paris1"]
    assert get_geo_profiles(db, "US", count=True) == 0


# Presence

def test_presence_follows_activity_window(db, make_member, now):
    pid = make_member()
    set_user_status(db, pid, 1)
    Member_crud.set_last_activity(db, pid, now=now)

    assert is_online(db, pid, 1, now=now) is True
    assert is_online(db, pid, 1, now=now + timedelta(minutes=2)) is False


def test_offline_status_is_never_online(db, make_member, now):
    pid = make_member()
    Member_crud.set_last_activity(db, pid, now=now)
    assert get_user_status(db, pid) == 0
    assert is_online(db, pid, 5, now=now) is False


def test_user_status_is_cached_and_invalidated(db, make_member):
    pid = make_member()
    assert get_user_status(db, pid) == 0
    set_user_status(db, pid, 3)
    assert get_user_status(db, pid) == 3
    with pytest.raises(InvalidArgument):
        set_user_status(db, pid, 7)


# Media

def test_avatar_round_trip(db, make_member):
    pid = make_member()
    set_avatar(db, pid, "x.jpg", 1)
    assert get_avatar(db, pid).pic == "x.jpg"
    assert get_avatar(db, pid, approved=1).pic == "x.jpg"
    assert Member_crud.get_field(db, pid, "avatar") == "x.jpg"

    delete_avatar(db, pid)
    assert get_avatar(db, pid).pic is None
    assert get_avatar(db, pid, approved=1).pic is None
    assert Member_crud.get_field(db, pid, "avatar") is None


def test_pending_avatar_is_hidden_from_approved_lookup(db, make_member):
    pid = make_member()
    set_avatar(db, pid, "pending.jpg", 0)
    assert get_avatar(db, pid, approved=1).pic is None
    assert get_avatar(db, pid, approved=0).pic == "pending.jpg"
    assert get_avatar(db, pid).approved_avatar == 0


def test_avatar_of_missing_profile(db):
    with pytest.raises(NotFound):
        get_avatar(db, 999)


def test_background_round_trip(db, make_member):
    pid = make_member()
    assert get_background(db, pid) is None

    add_background(db, pid, "bg.png", 0)
    assert get_background(db, pid) == "bg.png"
    assert get_background(db, pid, approved=1) is None
    assert Member_crud.get_field(db, pid, "background") == "bg.png"

    add_background(db, pid, "bg2.png", 1)
    assert get_background(db, pid, approved=1) == "bg2.png"

    assert delete_background(db, pid) is True
    assert get_background(db, pid) is None
    assert Member_crud.get_field(db, pid, "background") is None
