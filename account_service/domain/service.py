"""Auth service orchestrating validation, persistence and session identity."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from .contracts import JoinInput, LoginInput, ProfileUpdateInput
from .errors import (
    AccountServiceError,
    DuplicateUsername,
    MissingResultError,
    SessionTeardownError,
    StorageError,
)
from .results import AuthResult, InternalError, Redirect, Success, Unauthorized, Unprocessable
from .validation import Operation, coerce_role, validate
from ..repository import AccountRepository
from ..sessions import Session, SessionManager

logger = logging.getLogger(__name__)

DUPLICATE_USERNAME_MESSAGE = "Username already exists"
INVALID_ACCOUNT_MESSAGE = "Invalid account information"
UNKNOWN_ACCOUNT_MESSAGE = "Account does not exist"


class AuthService:
    """Join, login, logout and profile workflows for a single request.

    Every public method takes the caller's :class:`Session` and returns an
    :data:`AuthResult`; no exception from the repository or session store
    escapes to the caller.
    """

    def __init__(
        self,
        repository: AccountRepository,
        sessions: SessionManager,
        *,
        authenticated_redirect: str = "/scheduler",
        anonymous_redirect: str = "/",
    ) -> None:
        """Store collaborators and the redirect targets handed back to clients."""
        self._repository = repository
        self._sessions = sessions
        self._authenticated_redirect = authenticated_redirect
        self._anonymous_redirect = anonymous_redirect

    def join(self, session: Session, fields: Mapping[str, Any]) -> AuthResult:
        """Create an account and sign the caller in as that account."""
        if self._sessions.is_authenticated(session):
            return Redirect(self._authenticated_redirect)

        violations = validate(Operation.JOIN, fields)
        if violations:
            return Unprocessable(violations)

        payload = JoinInput.from_fields(fields, coerce_role(fields["account_type"]))
        try:
            account_id = self._repository.create_account(payload)
        except DuplicateUsername:
            logger.warning("join rejected, username %r already exists", payload.username)
            return Unprocessable([DUPLICATE_USERNAME_MESSAGE])
        except MissingResultError:
            logger.error("no account id returned when creating a new %s", payload.role.name.lower())
            return InternalError()
        except StorageError:
            logger.exception("account creation failed")
            return InternalError()

        try:
            self._sessions.establish(session, account_id, payload.role)
        except StorageError:
            logger.exception("could not establish session for new account %s", account_id)
            return InternalError()
        return Redirect(self._authenticated_redirect)

    def login(self, session: Session, fields: Mapping[str, Any]) -> AuthResult:
        """Authenticate a returning user and attach their first workspace."""
        if self._sessions.is_authenticated(session):
            return Redirect(self._authenticated_redirect)

        # Never reveal which field was wrong.
        if validate(Operation.LOGIN, fields):
            return Unauthorized(INVALID_ACCOUNT_MESSAGE)

        credentials = LoginInput(
            role=coerce_role(fields["account_type"]),
            username=str(fields["username"]),
            password_hash=str(fields["pass"]),
        )
        try:
            account_id = self._repository.find_account(
                credentials.username, credentials.password_hash, credentials.role
            )
            if account_id is None:
                return Unauthorized(UNKNOWN_ACCOUNT_MESSAGE)
            workspaces = self._repository.list_workspaces(account_id, credentials.role)
            workspace_id = workspaces[0] if workspaces else None
            self._sessions.establish(session, account_id, credentials.role, workspace_id)
        except AccountServiceError:
            logger.exception("login failed")
            return InternalError()
        return Redirect(self._authenticated_redirect)

    def logout(self, session: Session) -> AuthResult:
        try:
            self._sessions.destroy(session)
        except SessionTeardownError:
            logger.exception("session teardown failed")
            return InternalError()
        return Redirect(self._anonymous_redirect)

    def current_user_id(self, session: Session) -> AuthResult:
        if not self._sessions.is_authenticated(session):
            return Unauthorized()
        return Success({"user_id": self._sessions.current_identity(session).account_id})

    def get_profile(self, session: Session) -> AuthResult:
        if not self._sessions.is_authenticated(session):
            return Unauthorized()

        identity = self._sessions.current_identity(session)
        try:
            profile = self._repository.read_profile(identity.role, identity.account_id)
        except AccountServiceError:
            logger.exception("profile read failed for account %s", identity.account_id)
            return InternalError()
        return Success({"profile": profile})

    def update_profile(self, session: Session, fields: Mapping[str, Any]) -> AuthResult:
        """Overwrite the caller's profile.

        The account being edited is always the session's; identity keys in
        ``fields`` are never consulted.
        """
        if not self._sessions.is_authenticated(session):
            return Unauthorized()

        violations = validate(Operation.PROFILE_UPDATE, fields)
        if violations:
            return Unprocessable(violations)

        identity = self._sessions.current_identity(session)
        try:
            self._repository.update_profile(
                identity.account_id,
                identity.role,
                ProfileUpdateInput.from_fields(fields),
            )
        except AccountServiceError:
            logger.exception("profile update failed for account %s", identity.account_id)
            return InternalError()
        return Success()
