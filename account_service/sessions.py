"""Server-held session state and the identity contract built on it."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .domain.account import Identity, Role
from .domain.errors import NotAuthenticated, SessionStoreError, SessionTeardownError, StorageError
from .security.session_store import SessionStore
from .security.tokens import generate_session_token, hash_session_token

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Session:
    """Per-caller session bound to an opaque token.

    ``is_authenticated`` is only ever true together with ``account_id`` and
    ``role``; :class:`SessionManager` is the sole writer of those fields.
    """

    token: str
    is_authenticated: bool = False
    account_id: Any = None
    role: Role | None = None
    workspace_id: Any = None
    is_new: bool = False

    def to_record(self) -> dict[str, Any]:
        return {
            "is_authenticated": self.is_authenticated,
            "account_id": self.account_id,
            "role": None if self.role is None else int(self.role),
            "workspace_id": self.workspace_id,
        }

    @classmethod
    def from_record(cls, token: str, record: dict[str, Any]) -> "Session":
        role = record.get("role")
        session = cls(
            token=token,
            account_id=record.get("account_id"),
            role=None if role is None else Role(role),
            workspace_id=record.get("workspace_id"),
        )
        session.is_authenticated = bool(
            record.get("is_authenticated") and session.account_id is not None and session.role is not None
        )
        return session


class SessionManager:
    """Establishes, reads and tears down authenticated identities."""

    def __init__(self, store: SessionStore, *, ttl_seconds: int) -> None:
        """Store the backend and the lifetime applied to every session write."""
        self._store = store
        self._ttl_seconds = ttl_seconds

    def load(self, token: str | None) -> Session:
        """Return the session for ``token`` or a fresh empty one.

        Raises
        ------
        StorageError
            The session store could not be read.
        """
        if token:
            try:
                record = self._store.get(hash_session_token(token))
            except SessionStoreError as exc:
                raise StorageError(str(exc)) from exc
            if record is not None:
                return Session.from_record(token, record)
        return Session(token=generate_session_token(), is_new=True)

    def is_authenticated(self, session: Session) -> bool:
        return session.is_authenticated

    def establish(
        self,
        session: Session,
        account_id: Any,
        role: Role,
        workspace_id: Any = None,
    ) -> None:
        """Bind ``session`` to an account, overwriting any previous identity.

        The full record is persisted in one write before the in-memory session
        changes, so a failed write leaves the caller anonymous.
        """
        if account_id is None:
            raise ValueError("account_id is required to establish a session")
        established = Session(
            token=session.token,
            is_authenticated=True,
            account_id=account_id,
            role=Role(role),
            workspace_id=workspace_id,
        )
        record = established.to_record()
        try:
            self._store.set(hash_session_token(session.token), record, self._ttl_seconds)
        except SessionStoreError as exc:
            raise StorageError(str(exc)) from exc

        session.account_id = established.account_id
        session.role = established.role
        session.workspace_id = established.workspace_id
        session.is_authenticated = True

    def current_identity(self, session: Session) -> Identity:
        if not session.is_authenticated or session.role is None:
            raise NotAuthenticated("session is not authenticated")
        return Identity(account_id=session.account_id, role=session.role)

    def destroy(self, session: Session) -> None:
        """Delete the stored session and clear the local copy.

        Raises
        ------
        SessionTeardownError
            The store could not delete the entry; ``session`` is left untouched.
        """
        try:
            self._store.delete(hash_session_token(session.token))
        except SessionStoreError as exc:
            raise SessionTeardownError(str(exc)) from exc

        session.is_authenticated = False
        session.account_id = None
        session.role = None
        session.workspace_id = None
        logger.debug("session destroyed")
