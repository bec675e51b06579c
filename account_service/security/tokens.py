"""Utilities for minting and fingerprinting session tokens."""

from __future__ import annotations

import hashlib
import secrets


def generate_session_token() -> str:
    """Return a new opaque, URL-safe session token."""
    return secrets.token_urlsafe(32)


def hash_session_token(token: str) -> str:
    """Return the SHA-256 hex digest under which a session is stored.

    Stores only ever see this digest, never the raw token.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
