from __future__ import annotations

from itertools import count
from threading import Lock
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from account_service.api import routes
from account_service.domain.account import Role
from account_service.domain.contracts import JoinInput, ProfileUpdateInput
from account_service.domain.errors import DuplicateUsername, MissingResultError, SessionStoreError
from account_service.domain.service import AuthService
from account_service.security.session_store import InMemorySessionStore
from account_service.sessions import SessionManager

# md5("password")
PASSWORD_HASH = "5f4dcc3b5aa765d61d8327deb882cf99"
OTHER_HASH = "0d107d09f5bbe40cade3de5c71e9e9b7"


class FakeRepository:
    """In-memory repository mimicking the stored-function contract.

    Usernames are unique per role under a lock, the way the database
    constraint behaves for concurrent inserts.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._ids = count(1)
        self.accounts: dict[tuple[Role, str], dict[str, Any]] = {}
        self.workspaces: dict[tuple[Role, Any], list[Any]] = {}
        self.failures: dict[str, Exception] = {}
        self.calls: list[str] = []
        self.updates: list[tuple[Any, Role, ProfileUpdateInput]] = []
        self.omit_ids = False

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]

    def create_account(self, payload: JoinInput) -> Any:
        self._enter("create_account")
        with self._lock:
            key = (payload.role, payload.username)
            if key in self.accounts:
                raise DuplicateUsername(f"duplicate key value: {payload.username}")
            account_id = next(self._ids)
            self.accounts[key] = {
                "account_id": account_id,
                "first_name": payload.first_name,
                "last_name": payload.last_name,
                "email": payload.email,
                "username": payload.username,
                "pass": payload.password_hash,
                "availability": "0000000",
            }
        if self.omit_ids:
            raise MissingResultError("no account id returned")
        return account_id

    def find_account(self, username: str, password_hash: str, role: Role) -> Any | None:
        self._enter("find_account")
        account = self.accounts.get((role, username))
        if account is None or account["pass"] != password_hash:
            return None
        return account["account_id"]

    def list_workspaces(self, account_id: Any, role: Role) -> list[Any]:
        self._enter("list_workspaces")
        return list(self.workspaces.get((role, account_id), []))

    def read_profile(self, role: Role, account_id: Any) -> dict[str, Any]:
        self._enter("read_profile")
        for (account_role, _), account in self.accounts.items():
            if account_role == role and account["account_id"] == account_id:
                return {key: value for key, value in account.items() if key != "pass"}
        raise MissingResultError(f"no profile for {account_id}")

    def update_profile(self, account_id: Any, role: Role, payload: ProfileUpdateInput) -> None:
        self._enter("update_profile")
        self.updates.append((account_id, role, payload))


class FailingDeleteStore(InMemorySessionStore):
    """Session store whose deletes always fail."""

    def delete(self, key: str) -> None:
        raise SessionStoreError("session delete failed: connection reset")


class FailingReadStore(InMemorySessionStore):
    """Session store whose reads always fail."""

    def get(self, key: str) -> dict[str, Any] | None:
        raise SessionStoreError("session read failed: connection reset")


def join_fields(**overrides: Any) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "first_name": "Ann",
        "last_name": "Lee",
        "username": "annlee",
        "pass": PASSWORD_HASH,
        "email": "ann@x.com",
        "account_type": 0,
    }
    fields.update(overrides)
    return fields


def profile_fields(**overrides: Any) -> dict[str, Any]:
    fields = join_fields(availability="1111100")
    del fields["account_type"]
    fields.update(overrides)
    return fields


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def session_manager(session_store) -> SessionManager:
    return SessionManager(session_store, ttl_seconds=3600)


@pytest.fixture
def service(repository, session_manager) -> AuthService:
    return AuthService(repository, session_manager)


@pytest.fixture
def api_client(service, session_manager):
    """Provide a FastAPI test client with isolated state."""
    app = FastAPI()
    app.include_router(routes.router)
    routes.add_exception_handlers(app)
    app.state.auth_service = service
    app.state.session_manager = session_manager

    with TestClient(app) as client:
        yield client
