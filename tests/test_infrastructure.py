from pathlib import Path
from types import SimpleNamespace
import subprocess
import sys

import pytest
import redis
from sqlalchemy.exc import OperationalError

from config import settings, CACHE_MAX_TTL_SECONDS
from database import prefix, session_scope, transaction
from deps import get_client_ip
from errors import CacheUnavailable, DatabaseUnavailable, InvalidIdentifier
from Cache_module import cache_manager
from Cache_module import redis_client as redis_client_module
from Cache_module.cache_manager import MISS, USER_GROUP, member_key
from Cache_module.redis_client import set_redis_client
from Login_module.Session.session_store import RedisSessionStore
from Login_module.Utils.Security import (
    generate_hash_validation,
    hash_password,
    is_valid_hash_validation,
    verify_password,
)
from Member_module import Member_cache
from Member_module.Member_realm import Realm, check_table, login_log_model, realm_model, resolve_realm
from Settings_module import Settings_crud

ROOT = Path(__file__).resolve().parent.parent


# Identifier validation

def test_check_table_allow_list():
    assert check_table("Members") == "Members"
    assert check_table(Realm.ADMINS) == "Admins"
    assert check_table("AffiliatesLogSess") == "AffiliatesLogSess"
    for name in ("Users", "Members; DROP TABLE x", "", None):
        with pytest.raises(InvalidIdentifier):
            check_table(name)


def test_only_realms_resolve_to_identity_models():
    assert resolve_realm("Affiliates") is Realm.AFFILIATES
    assert realm_model("Admins").__tablename__ == prefix("Admins")
    assert login_log_model(Realm.MEMBERS).__tablename__ == prefix("MembersLogSess")
    with pytest.raises(InvalidIdentifier):
        resolve_realm("MembersInfo")


# Cache adapter

def test_cached_null_is_not_a_miss():
    entry = cache_manager.start(USER_GROUP, "k")
    assert entry.get() is MISS
    entry.put(None)
    assert entry.get() is None


def test_ttl_is_clamped(redis_client):
    entry = cache_manager.start(USER_GROUP, "long", ttl=10 * CACHE_MAX_TTL_SECONDS)
    entry.put({"a": 1})
    assert entry.ttl == CACHE_MAX_TTL_SECONDS
    assert 0 < redis_client.ttl(entry.full_key) <= CACHE_MAX_TTL_SECONDS


def test_clear_and_clear_prefix():
    for name in ("readProfile", "field:email", "avatar:any"):
        cache_manager.start(USER_GROUP, member_key(Realm.MEMBERS, 7, name)).put(1)
    other = cache_manager.start(USER_GROUP, member_key(Realm.MEMBERS, 70, "readProfile"))
    other.put(1)

    cache_manager.clear(USER_GROUP, member_key(Realm.MEMBERS, 7, "readProfile"))
    assert cache_manager.start(USER_GROUP, member_key(Realm.MEMBERS, 7, "readProfile")).get() is MISS

    assert Member_cache.purge_member(Realm.MEMBERS, 7) == 2
    assert cache_manager.start(USER_GROUP, member_key(Realm.MEMBERS, 7, "avatar:any")).get() is MISS
    assert other.get() == 1


def test_disabled_cache_is_always_a_miss(monkeypatch):
    monkeypatch.setattr(settings, "CACHE_ENABLED", False)
    entry = cache_manager.start(USER_GROUP, "k")
    entry.put("value")
    assert entry.get() is MISS


class BrokenRedis:
    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise redis.ConnectionError("down")
        return fail


def test_redis_errors_degrade_to_uncached():
    set_redis_client(BrokenRedis())
    entry = cache_manager.start(USER_GROUP, "k")
    entry.put("value")
    assert entry.get() is MISS
    cache_manager.clear(USER_GROUP, "k")
    assert cache_manager.clear_prefix(USER_GROUP, "k") == 0


def test_reads_work_without_redis(db, make_member):
    from Member_module.Member_crud import read_profile

    pid = make_member(username="nocache")
    set_redis_client(BrokenRedis())
    assert read_profile(db, pid).username == "nocache"


def test_failed_connect_backs_off(monkeypatch):
    attempts = []

    def refuse():
        attempts.append(1)
        raise CacheUnavailable("refused")

    monkeypatch.setattr(redis_client_module, "_connect", refuse)
    set_redis_client(None)

    entry = cache_manager.start(USER_GROUP, "k")
    assert entry.get() is MISS
    entry.put("value")
    cache_manager.clear(USER_GROUP, "k")
    assert len(attempts) == 1

    monkeypatch.setattr(settings, "REDIS_RETRY_SECONDS", 0)
    set_redis_client(None)
    assert entry.get() is MISS
    assert entry.get() is MISS
    assert len(attempts) == 3


# Settings provider

def test_settings_fall_back_to_config(db):
    assert Settings_crud.get_default_membership_group_id(db) == settings.DEFAULT_MEMBERSHIP_GROUP_ID
    assert Settings_crud.get_user_timeout(db) == settings.USER_TIMEOUT_MINUTES
    assert Settings_crud.get_profile_with_avatar_set(db) is False


def test_settings_table_overrides_config(db):
    Settings_crud.set_setting(db, Settings_crud.USER_TIMEOUT, 15)
    Settings_crud.set_setting(db, Settings_crud.PROFILE_WITH_AVATAR_SET, "true")
    assert Settings_crud.get_user_timeout(db) == 15
    assert Settings_crud.get_profile_with_avatar_set(db) is True

    Settings_crud.set_setting(db, Settings_crud.USER_TIMEOUT, "soon")
    assert Settings_crud.get_user_timeout(db) == settings.USER_TIMEOUT_MINUTES


# Session store

def test_session_store(redis_client):
    session = RedisSessionStore(client=redis_client)
    assert session.exists("member_id") is False
    assert session.get("member_id", 0) == 0

    session.set("member_id", 42)
    old_id = session.session_id
    new_id = session.regenerate_id()

    assert new_id != old_id
    assert session.get("member_id") == 42
    assert not redis_client.exists(f"session:{old_id}")
    assert redis_client.ttl(session.key) > 0


# Password hasher and tokens

def test_password_hashing():
    hashed = hash_password("pw")
    assert hashed != "pw"
    assert verify_password("pw", hashed) is True
    assert verify_password("nope", hashed) is False
    assert verify_password("pw", "not-a-bcrypt-hash") is False
    assert verify_password("", hashed) is False


def test_generated_tokens():
    token = generate_hash_validation()
    assert is_valid_hash_validation(token)
    assert token != generate_hash_validation()


# SQL gateway

def test_transaction_rolls_back(db):
    from Settings_module.Settings_model import SiteSetting

    with pytest.raises(RuntimeError):
        with transaction(db):
            db.add(SiteSetting(name="temp", value="1"))
            db.flush()
            raise RuntimeError("boom")
    assert db.query(SiteSetting).filter(SiteSetting.name == "temp").count() == 0


def test_operational_errors_become_database_unavailable(db):
    with pytest.raises(DatabaseUnavailable):
        with transaction(db):
            raise OperationalError("SELECT 1", {}, Exception("gone"))


def test_session_scope_commits_and_closes(engine):
    from sqlalchemy.orm import sessionmaker
    from Settings_module.Settings_model import SiteSetting

    factory = sessionmaker(bind=engine, future=True)
    with session_scope(factory) as session:
        session.add(SiteSetting(name="scoped", value="yes"))

    with session_scope(factory) as session:
        assert session.query(SiteSetting).filter(SiteSetting.name == "scoped").one().value == "yes"


# IP provider

def test_client_ip():
    forwarded = SimpleNamespace(headers={"X-Forwarded-For": "9.9.9.9, 10.0.0.1"}, client=None)
    real_ip = SimpleNamespace(headers={"X-Real-IP": " 8.8.8.8 "}, client=None)
    direct = SimpleNamespace(headers={}, client=SimpleNamespace(host="7.7.7.7"))
    unknown = SimpleNamespace(headers={}, client=None)

    assert get_client_ip(forwarded) == "9.9.9.9"
    assert get_client_ip(real_ip) == "8.8.8.8"
    assert get_client_ip(direct) == "7.7.7.7"
    assert get_client_ip(unknown) == "unknown"


# Schemas

def test_schemas_use_current_pydantic_api():
    code = (
        "import warnings\n"
        "from pydantic.warnings import PydanticDeprecatedSince20\n"
        "warnings.simplefilter('error', PydanticDeprecatedSince20)\n"
        "import Member_module.Member_schema, Membership_module.Membership_schema\n"
    )
    result = subprocess.run(
        [sys.executable, "-c", code], cwd=ROOT, capture_output=True, text=True
    )
    assert result.returncode == 0, result.stderr
