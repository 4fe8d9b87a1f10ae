"""Unit tests for resources/service.py -- Result values for every failure path.

Covers:
- validation failures return before any store call
- self-service misses are NOT_FOUND_OR_UNAUTHORIZED whether missing or not owned
- privileged denials are PRIVILEGE_DENIED and happen before any store call
- persistence faults become INTERNAL without leaking the driver message
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from auth.models import User
from auth.store import UserStore
from core.access import Actor, Role
from core.errors import ErrorKind
from resources.models import Resource, ResourceDraft
from resources.service import ResourceService
from resources.store import ResourceStore


@pytest.fixture
def env():
    users = UserStore("sqlite:///:memory:")
    alice = users.create_user(User(user_name="alice", email="alice@example.com", password="h"))
    bob = users.create_user(User(user_name="bob", email="bob@example.com", password="h"))
    admin = users.create_user(User(user_name="root", email="root@example.com", password="h", role="admin"))
    store = ResourceStore("sqlite:///:memory:")
    service = ResourceService(store, users)
    yield service, Actor(alice), Actor(bob), Actor(admin, Role.PRIVILEGED)
    store.close()
    users.close()


def _draft(**overrides) -> ResourceDraft:
    fields = dict(name="Mittens", latitude=61.4965, longitude=23.7705, weight=4.0, birthdate="2020-01-01")
    fields.update(overrides)
    return ResourceDraft(**fields)


class TestCreate:
    def test_owner_is_actor(self, env):
        service, alice, _bob, _admin = env
        result = service.create(alice, _draft())
        assert result.ok
        assert result.value.owner_id == alice.id

    def test_out_of_range_location(self, env):
        service, alice, _bob, _admin = env
        result = service.create(alice, _draft(latitude=123.0))
        assert result.error.kind == ErrorKind.VALIDATION
        assert service.store.list_all() == []


class TestSelfService:
    def test_owner_update(self, env):
        service, alice, _bob, _admin = env
        rid = service.create(alice, _draft()).value.id
        result = service.update_own(alice, rid, {"name": "Tom"})
        assert result.ok and result.value.name == "Tom"

    def test_not_owner_looks_like_missing(self, env):
        service, alice, bob, _admin = env
        rid = service.create(alice, _draft()).value.id
        not_owned = service.update_own(bob, rid, {"name": "x"})
        missing = service.update_own(bob, 9999, {"name": "x"})
        assert not_owned.error == missing.error
        assert not_owned.error.kind == ErrorKind.NOT_FOUND_OR_UNAUTHORIZED

    def test_admin_cannot_use_self_service_on_others(self, env):
        service, alice, _bob, admin = env
        rid = service.create(alice, _draft()).value.id
        assert service.delete_own(admin, rid).error.kind == ErrorKind.NOT_FOUND_OR_UNAUTHORIZED

    def test_owner_change_rejected(self, env):
        service, alice, bob, _admin = env
        rid = service.create(alice, _draft()).value.id
        result = service.update_own(alice, rid, {"owner_id": bob.id})
        assert result.error.kind == ErrorKind.VALIDATION
        assert service.store.get(rid).owner_id == alice.id

    def test_half_location_rejected(self, env):
        service, alice, _bob, _admin = env
        rid = service.create(alice, _draft()).value.id
        assert service.update_own(alice, rid, {"latitude": 1.0}).error.kind == ErrorKind.VALIDATION

    @pytest.mark.parametrize("changes", [{"name": None}, {"latitude": None, "longitude": None}])
    def test_null_required_field_rejected_before_store(self, env, changes):
        service, alice, _bob, _admin = env
        rid = service.create(alice, _draft()).value.id
        result = service.update_own(alice, rid, changes)
        assert result.error.kind == ErrorKind.VALIDATION
        assert "may not be null" in result.error.message
        assert service.store.get(rid).name == "Mittens"

    def test_delete_scenario_other_owner(self, env):
        service, alice, bob, _admin = env
        rid = service.create(bob, _draft()).value.id
        assert service.delete_own(alice, rid).error.kind == ErrorKind.NOT_FOUND_OR_UNAUTHORIZED
        assert service.store.get(rid) is not None


class TestPrivileged:
    def test_standard_actor_denied_before_store(self):
        store = MagicMock()
        service = ResourceService(store, MagicMock())
        result = service.update_any(Actor(1), 5, {"name": "x"})
        assert result.error.kind == ErrorKind.PRIVILEGE_DENIED
        store.update.assert_not_called()
        assert service.delete_any(Actor(1), 5).error.kind == ErrorKind.PRIVILEGE_DENIED
        store.delete.assert_not_called()

    def test_admin_updates_and_transfers(self, env):
        service, alice, bob, admin = env
        rid = service.create(alice, _draft()).value.id
        result = service.update_any(admin, rid, {"owner_id": bob.id, "weight": 5.5})
        assert result.ok
        assert result.value.owner_id == bob.id
        assert result.value.weight == 5.5

    def test_transfer_to_unknown_user_rejected(self, env):
        service, alice, _bob, admin = env
        rid = service.create(alice, _draft()).value.id
        assert service.update_any(admin, rid, {"owner_id": 9999}).error.kind == ErrorKind.VALIDATION

    def test_admin_null_owner_rejected(self, env):
        service, alice, _bob, admin = env
        rid = service.create(alice, _draft()).value.id
        assert service.update_any(admin, rid, {"owner_id": None}).error.kind == ErrorKind.VALIDATION
        assert service.store.get(rid).owner_id == alice.id

    def test_admin_delete_missing(self, env):
        service, _alice, _bob, admin = env
        assert service.delete_any(admin, 9999).error.kind == ErrorKind.NOT_FOUND_OR_UNAUTHORIZED


class TestReads:
    def test_list_within_bad_corner(self, env):
        service, _alice, _bob, _admin = env
        result = service.list_within("61.497", "61.496,23.770")
        assert result.error.kind == ErrorKind.VALIDATION

    def test_list_within(self, env):
        service, alice, _bob, _admin = env
        inside = service.create(alice, _draft()).value.id
        service.create(alice, _draft(latitude=0.0, longitude=0.0))
        result = service.list_within("61.497,23.771", "61.496,23.770")
        assert [r.id for r in result.value] == [inside]

    def test_to_public_redacts_owner(self, env):
        service, alice, _bob, _admin = env
        created = service.create(alice, _draft()).value
        public = service.to_public([created])[0]
        assert public["owner"] == {"id": alice.id, "user_name": "alice", "email": "alice@example.com"}
        assert public["location"] == {"type": "Point", "coordinates": [23.7705, 61.4965]}

    def test_to_public_missing_owner(self, env):
        service, _alice, _bob, _admin = env
        rid = service.store.create(Resource(name="stray", owner_id=9999, latitude=1.0, longitude=1.0))
        public = service.to_public([service.store.get(rid)])[0]
        assert public["owner"] == {"id": 9999}


def test_persistence_fault_is_internal():
    store = MagicMock()
    store.list_all.side_effect = OperationalError("SELECT", {}, Exception("disk I/O error"))
    result = ResourceService(store, MagicMock()).list_resources()
    assert result.error.kind == ErrorKind.INTERNAL
    assert "disk" not in result.error.message
