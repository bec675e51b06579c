"""Tests for the session manager and its store backends."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import fakeredis
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from account_service.domain.account import Role
from account_service.domain.errors import NotAuthenticated, SessionStoreError, SessionTeardownError, StorageError
from account_service.security.redis_session_store import RedisSessionStore
from account_service.security.session_store import InMemorySessionStore
from account_service.security.tokens import hash_session_token
from account_service.sessions import Session, SessionManager


@pytest.fixture()
def redis_client() -> fakeredis.FakeStrictRedis:
    client = fakeredis.FakeStrictRedis()
    client.flushall()
    return client


@pytest.fixture()
def redis_manager(redis_client) -> SessionManager:
    return SessionManager(RedisSessionStore(redis_client, key_prefix="test"), ttl_seconds=120)


def test_load_without_token_creates_fresh_session(session_manager):
    first = session_manager.load(None)
    second = session_manager.load("unknown-token")

    assert first.is_new and second.is_new
    assert not first.is_authenticated
    assert first.token != second.token


def test_establish_round_trips_through_the_store(session_manager):
    session = session_manager.load(None)
    session_manager.establish(session, 17, Role.WORKER, workspace_id=3)

    restored = session_manager.load(session.token)

    assert not restored.is_new
    assert restored.is_authenticated
    assert (restored.account_id, restored.role, restored.workspace_id) == (17, Role.WORKER, 3)


def test_establish_overwrites_previous_identity(session_manager):
    session = session_manager.load(None)
    session_manager.establish(session, 1, Role.MANAGER, workspace_id=9)
    session_manager.establish(session, 2, Role.WORKER)

    restored = session_manager.load(session.token)
    assert (restored.account_id, restored.role, restored.workspace_id) == (2, Role.WORKER, None)


def test_establish_requires_an_account_id(session_manager):
    session = session_manager.load(None)

    with pytest.raises(ValueError):
        session_manager.establish(session, None, Role.MANAGER)
    assert not session.is_authenticated


def test_establish_write_failure_leaves_session_anonymous():
    store = MagicMock()
    store.set.side_effect = SessionStoreError("session write failed")
    manager = SessionManager(store, ttl_seconds=60)
    session = Session(token="abc")

    with pytest.raises(StorageError):
        manager.establish(session, 1, Role.MANAGER)
    assert not session.is_authenticated
    assert session.account_id is None


def test_current_identity_requires_authentication(session_manager):
    with pytest.raises(NotAuthenticated):
        session_manager.current_identity(session_manager.load(None))


def test_record_missing_role_is_not_authenticated():
    session = Session.from_record("t", {"is_authenticated": True, "account_id": 4, "role": None})
    assert not session.is_authenticated


def test_destroy_failure_raises_teardown_error():
    store = MagicMock()
    store.delete.side_effect = SessionStoreError("session delete failed")
    manager = SessionManager(store, ttl_seconds=60)
    session = Session(token="abc", is_authenticated=True, account_id=1, role=Role.MANAGER)

    with pytest.raises(SessionTeardownError):
        manager.destroy(session)
    assert session.is_authenticated
    assert session.account_id == 1


def test_in_memory_store_expires_entries():
    store = InMemorySessionStore()
    store.set("k", {"a": 1}, ttl_seconds=0)

    assert store.get("k") is None
    assert len(store) == 0


def test_in_memory_store_returns_copies():
    store = InMemorySessionStore()
    store.set("k", {"a": 1}, ttl_seconds=60)

    store.get("k")["a"] = 2

    assert store.get("k") == {"a": 1}


def test_redis_store_keys_by_token_digest(redis_manager, redis_client):
    session = redis_manager.load(None)
    redis_manager.establish(session, 5, Role.MANAGER, workspace_id=11)

    key = f"test:{hash_session_token(session.token)}"
    assert redis_client.get(f"test:{session.token}") is None
    assert json.loads(redis_client.get(key)) == {
        "is_authenticated": True,
        "account_id": 5,
        "role": 0,
        "workspace_id": 11,
    }
    assert 0 < redis_client.ttl(key) <= 120


def test_redis_store_destroy(redis_manager, redis_client):
    session = redis_manager.load(None)
    redis_manager.establish(session, 5, Role.MANAGER)

    redis_manager.destroy(session)

    assert redis_client.keys("test:*") == []
    assert not redis_manager.load(session.token).is_authenticated


def test_redis_store_wraps_client_errors():
    client = MagicMock()
    client.get.side_effect = RedisConnectionError("down")
    client.delete.side_effect = RedisConnectionError("down")
    store = RedisSessionStore(client)

    with pytest.raises(SessionStoreError):
        store.get("k")
    with pytest.raises(SessionStoreError):
        store.delete("k")


def test_load_surfaces_store_read_failures():
    client = MagicMock()
    client.get.side_effect = RedisConnectionError("down")
    manager = SessionManager(RedisSessionStore(client), ttl_seconds=60)

    with pytest.raises(StorageError):
        manager.load("some-token")


def test_in_memory_store_sweeps_expired_entries_on_write():
    store = InMemorySessionStore(sweep_threshold=16)
    for index in range(1000):
        store.set(f"stale-{index}", {"a": index}, ttl_seconds=0)

    store.set("live", {"a": 1}, ttl_seconds=60)

    assert len(store) <= 16
    assert store.get("live") == {"a": 1}


def test_in_memory_store_sweep_keeps_live_entries():
    store = InMemorySessionStore(sweep_threshold=4)
    for index in range(10):
        store.set(f"live-{index}", {"a": index}, ttl_seconds=60)

    assert len(store) == 10
    assert all(store.get(f"live-{index}") == {"a": index} for index in range(10))


def test_redis_store_rejects_corrupt_records(redis_manager, redis_client):
    token = "corrupt-token"
    redis_client.set(f"test:{hash_session_token(token)}", b"{not json")

    with pytest.raises(SessionStoreError):
        RedisSessionStore(redis_client, key_prefix="test").get(hash_session_token(token))
    with pytest.raises(StorageError):
        redis_manager.load(token)
