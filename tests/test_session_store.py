"""
Tests for the client session store and its storage backends.
"""

import json
from datetime import timedelta

import pytest

from conftest import make_env, make_org, make_user
from fusion_portal.config import SessionSettings
from fusion_portal.core.session_store import SessionStore
from fusion_portal.core.storage import FileStorage, MemoryStorage, RedisStorage
from fusion_portal.exceptions import PortalException


class TestRoundTrip:
    """Setter then getter returns an equal value."""

    def test_user(self, session_store):
        user = make_user(totp_enabled=True, timezone="America/Mexico_City")
        session_store.set_current_user(user)
        assert session_store.get_current_user() == user

    def test_organizations(self, session_store):
        orgs = [make_org("a", "owner"), make_org("b", "member", billing_status="trial")]
        session_store.set_organizations(orgs)
        assert session_store.get_organizations() == orgs

    def test_current_organization(self, session_store):
        org = make_org("a", "admin")
        session_store.set_organizations([org])
        assert session_store.set_current_organization(org) is True
        assert session_store.get_current_organization() == org

    def test_current_environment(self, session_store):
        org = make_org("a")
        env = make_env("env-prod", is_production=True, description="Live traffic")
        session_store.set_organizations([org])
        session_store.set_current_organization(org)
        session_store.set_current_environment(env)
        assert session_store.get_current_environment() == env


class TestEmptyAndCorrupt:
    """Getters degrade to None/[] instead of raising."""

    def test_empty_store(self, session_store):
        assert session_store.get_current_user() is None
        assert session_store.get_organizations() == []
        assert session_store.get_current_organization() is None
        assert session_store.get_current_environment() is None
        assert session_store.get_session_token() is None
        assert session_store.validate_session() is False

    def test_unparseable_record_reads_as_absent(self):
        storage = MemoryStorage({"fusion_client_user": "{not json"})
        store = SessionStore(storage, SessionSettings())
        assert store.get_current_user() is None

    def test_other_schema_version_reads_as_absent(self):
        record = {"version": 99, "data": make_user().model_dump(mode="json")}
        storage = MemoryStorage({"fusion_client_user": json.dumps(record)})
        store = SessionStore(storage, SessionSettings())
        assert store.get_current_user() is None

    def test_unversioned_blob_reads_as_absent(self):
        storage = MemoryStorage({"fusion_client_user": json.dumps(make_user().model_dump(mode="json"))})
        store = SessionStore(storage, SessionSettings())
        assert store.get_current_user() is None

    def test_schema_mismatch_reads_as_absent(self):
        record = {"version": 1, "data": {"id": "u1"}}
        storage = MemoryStorage({"fusion_client_user": json.dumps(record)})
        store = SessionStore(storage, SessionSettings())
        assert store.get_current_user() is None

    def test_records_are_versioned(self, session_store):
        session_store.set_current_user(make_user())
        raw = json.loads(session_store.storage.get("fusion_client_user"))
        assert raw["version"] == 1
        assert raw["data"]["email"] == "ana@example.com"


class TestSwitchOrganization:
    """switch_organization succeeds iff the id is listed."""

    @pytest.mark.parametrize("org_id", ["a", "b"])
    def test_listed_ids_succeed(self, signed_in, org_id):
        assert signed_in.switch_organization(org_id) is True
        assert signed_in.get_current_organization().id == org_id

    def test_unlisted_id_leaves_state_unchanged(self, signed_in):
        org_before = signed_in.get_current_organization()
        env_before = signed_in.get_current_environment()

        assert signed_in.switch_organization("zzz") is False
        assert signed_in.get_current_organization() == org_before
        assert signed_in.get_current_environment() == env_before

    def test_owner_switches_to_member_org(self, session_store):
        session_store.set_organizations([make_org("a", "owner"), make_org("b", "member")])
        session_store.set_current_organization(make_org("a", "owner"))

        assert session_store.switch_organization("b") is True
        assert session_store.get_current_organization().id == "b"

    def test_switch_clears_environment(self, signed_in):
        assert signed_in.get_current_environment() is not None
        signed_in.switch_organization("b")
        assert signed_in.get_current_environment() is None


class TestSelectionInvariants:
    def test_set_current_organization_refuses_non_member(self, signed_in):
        assert signed_in.set_current_organization(make_org("x")) is False
        assert signed_in.get_current_organization().id == "a"

    def test_refreshed_list_without_current_org_clears_selection(self, signed_in):
        signed_in.set_organizations([make_org("b", "member")])
        assert signed_in.get_current_organization() is None
        assert signed_in.get_current_environment() is None

    def test_refreshed_list_updates_current_org(self, signed_in):
        signed_in.set_organizations([make_org("a", "admin", quota_used_current_month=55)])
        current = signed_in.get_current_organization()
        assert current.role == "admin"
        assert current.quota_used_current_month == 55

    def test_environment_of_other_org_is_ignored(self, signed_in):
        signed_in.set_current_environment(make_env("env-b", org_id="b"))
        assert signed_in.get_current_environment() is None


class TestValidateSession:
    def test_token_and_user_required(self, session_store):
        session_store.set_session_token("tok")
        assert session_store.validate_session() is False

        session_store.set_current_user(make_user())
        assert session_store.validate_session() is True

    def test_expired_token(self, session_store, clock):
        session_store.set_session_token("tok")
        session_store.set_current_user(make_user())

        clock.now = clock.now + timedelta(hours=24)
        assert session_store.validate_session() is False

    def test_remembered_device_lasts_thirty_days(self, session_store, clock):
        session_store.set_session_token("tok", remember_device=True)
        session_store.set_current_user(make_user())

        clock.now = clock.now + timedelta(days=29)
        assert session_store.validate_session() is True

    def test_auth_headers(self, signed_in):
        assert signed_in.auth_headers() == {"Authorization": "Bearer tok-123"}


class TestLogout:
    def test_logout_clears_session_but_keeps_device(self, signed_in):
        device_id = signed_in.get_device_id()

        signed_in.logout()

        assert signed_in.validate_session() is False
        assert signed_in.get_current_user() is None
        assert signed_in.get_organizations() == []
        assert signed_in.get_current_organization() is None
        assert signed_in.get_device_id() == device_id

    def test_pending_checkout_pops_once(self, session_store):
        session_store.set_pending_checkout("business_pro", "yearly")
        pending = session_store.pop_pending_checkout()
        assert pending.plan_code == "business_pro"
        assert pending.billing_cycle == "yearly"
        assert session_store.pop_pending_checkout() is None


class TestFileStorage:
    def test_survives_new_instance(self, tmp_path):
        path = tmp_path / "state" / "session.json"
        SessionStore(FileStorage(path)).set_current_user(make_user())

        assert SessionStore(FileStorage(path)).get_current_user() == make_user()

    def test_malformed_document_reads_as_empty(self, tmp_path):
        path = tmp_path / "session.json"
        path.write_text("[]garbage", encoding="utf-8")
        storage = FileStorage(path)

        assert storage.get("fusion_client_user") is None
        storage.set("k", "v")
        assert storage.get("k") == "v"

    def test_delete(self, tmp_path):
        storage = FileStorage(tmp_path / "session.json")
        storage.set("k", "v")
        storage.delete("k")
        assert storage.get("k") is None


class _DictRedis:
    """In-memory stand-in for a redis client's get/set/delete."""

    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def delete(self, key):
        self.data.pop(key, None)


class _DownRedis:
    def get(self, key):
        raise ConnectionError("connection refused")


class TestRedisStorage:
    def test_round_trip(self):
        store = SessionStore(RedisStorage("redis://unused", client=_DictRedis()))
        store.set_current_user(make_user())
        assert store.get_current_user() == make_user()

    def test_bytes_are_decoded(self):
        fake = _DictRedis()
        fake.data["k"] = b"value"
        assert RedisStorage("redis://unused", client=fake).get("k") == "value"

    def test_connection_failure(self):
        storage = RedisStorage("redis://unused", client=_DownRedis())
        with pytest.raises(PortalException) as exc_info:
            storage.get("k")
        assert exc_info.value.code == "SESSION_STORAGE_DOWN"
        assert exc_info.value.status_code == 503
