from datetime import timedelta

import pytest

from errors import InvalidArgument, InvalidIdentifier
from Member_module import Member_crud
from Member_module.Member_media_crud import set_avatar
from Member_module.Member_presence_crud import set_user_status
from Member_module.Member_search import search


@pytest.fixture
def two_members(make_member, now):
    # now is 2024-06-15: born 1994-01-10 is 30, born 1999-03-02 is 25
    male = make_member(
        joined=now - timedelta(days=2), username="marc", first_name="Marc", sex="male",
        match_sex=["female"], birth_date="1994-01-10", country="FR", city="Saint Etienne",
    )
    female = make_member(
        joined=now - timedelta(days=1), username="lea", first_name="Lea", sex="female",
        match_sex=["male"], birth_date="1999-03-02", country="FR", city="Paris", email="lea@example.org",
    )
    return male, female


def usernames(rows):
    return [row.username for row in rows]


def test_search_by_sex_and_country(db, two_members, now):
    rows = list(search(db, {"sex": ["male"], "country": "FR"}, count=False, offset=0, limit=10, now=now))
    assert usernames(rows) == ["marc"]
    assert rows[0].country == "FR"
    assert rows[0].privacy_profile == "all"


def test_count_matches_list_length(db, two_members, now):
    params = {"country": "FR"}
    rows = list(search(db, params, now=now))
    assert search(db, params, count=True, now=now) == len(rows) == 2
    # same predicates, same answer
    assert usernames(search(db, params, now=now)) == usernames(rows)


def test_email_disables_other_predicates(db, two_members, now):
    rows = list(search(db, {"email": "lea@", "sex": ["male"], "country": "US"}, now=now))
    assert usernames(rows) == ["lea"]


def test_invalid_predicates_are_dropped(db, two_members, now):
    rows = list(search(db, {"first_name": "Ma rc", "height": "tall", "sex": ["robot"]}, now=now))
    assert sorted(usernames(rows)) == ["lea", "marc"]


def test_age_predicates(db, two_members, now):
    assert usernames(search(db, {"age": 30}, now=now)) == ["marc"]
    assert usernames(search(db, {"min_age": 24, "max_age": 26}, now=now)) == ["lea"]
    assert sorted(usernames(search(db, {"min_age": 20, "max_age": 40}, now=now))) == ["lea", "marc"]


def test_city_dash_matches_space(db, two_members, now):
    assert usernames(search(db, {"city": "saint-etienne"}, now=now)) == ["marc"]


def test_match_sex_substring(db, two_members, now):
    assert sorted(usernames(search(db, {"match_sex": "male"}, now=now))) == ["lea", "marc"]
    assert usernames(search(db, {"match_sex": "female"}, now=now)) == ["marc"]


def test_online_respects_user_timeout(db, two_members, now):
    male, _ = two_members
    set_user_status(db, male, 1)
    Member_crud.set_last_activity(db, male, now=now)

    assert usernames(search(db, {"online": True}, now=now + timedelta(seconds=30))) == ["marc"]
    assert usernames(search(db, {"online": True}, now=now + timedelta(minutes=2))) == []


def test_avatar_only(db, two_members, now):
    _, female = two_members
    set_avatar(db, female, "lea.jpg", 1)
    assert usernames(search(db, {"avatar": True}, now=now)) == ["lea"]


def test_baseline_exclusions(db, two_members, now):
    male, female = two_members
    Member_crud.update_privacy_setting(db, "search_profile", "no", female)
    assert usernames(search(db, {}, now=now)) == ["marc"]

    Member_crud.update_field(db, "ban", 1, male)
    assert usernames(search(db, {}, now=now)) == []


def test_acting_member_is_excluded(db, two_members, now):
    male, _ = two_members
    assert usernames(search(db, {}, actor_id=male, now=now)) == ["lea"]


def test_ordering(db, two_members, now):
    male, female = two_members
    Member_crud.update_field(db, "views", 10, female)

    assert usernames(search(db, {"order": "views", "sort": "desc"}, now=now)) == ["lea", "marc"]
    assert usernames(search(db, {"order": "username", "sort": "asc"}, now=now)) == ["lea", "marc"]
    # unknown order falls back to joinDate ascending
    assert usernames(search(db, {"order": "bogus"}, now=now)) == ["marc", "lea"]


def test_pagination(db, two_members, now):
    assert len(list(search(db, {}, offset=1, limit=10, now=now))) == 1
    with pytest.raises(InvalidArgument):
        search(db, {}, offset=-1, now=now)
    with pytest.raises(InvalidArgument):
        search(db, {}, limit=-5, now=now)


def test_realm_checks(db):
    with pytest.raises(InvalidIdentifier):
        search(db, {}, realm="Hackers")
    with pytest.raises(InvalidArgument):
        search(db, {}, realm="Affiliates")
