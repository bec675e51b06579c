"""Exceptions raised by the repository and session layers."""

from __future__ import annotations


class AccountServiceError(Exception):
    """Base class for account service failures."""


class DuplicateUsername(AccountServiceError):
    """The store rejected an account because the username is taken."""


class StorageError(AccountServiceError):
    """A persistence call failed."""


class MissingResultError(StorageError):
    """The store reported success but returned no identifier."""


class SessionTeardownError(AccountServiceError):
    """The session store could not clear a session."""


class NotAuthenticated(AccountServiceError):
    """An identity was requested from an anonymous session."""


class SessionStoreError(AccountServiceError):
    """A session store backend failed to read, write or delete an entry."""
