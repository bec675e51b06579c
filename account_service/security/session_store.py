"""Session store contract and its in-memory implementation."""

from __future__ import annotations

import copy
import time
from threading import Lock
from typing import Any, Protocol


class SessionStore(Protocol):
    """Key/value storage for session records with per-entry expiry."""

    def get(self, key: str) -> dict[str, Any] | None:
        ...

    def set(self, key: str, data: dict[str, Any], ttl_seconds: int) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class InMemorySessionStore:
    """Thread-safe, process-local session store."""

    def __init__(self, *, sweep_threshold: int = 128) -> None:
        """Initialise the entry table, its guarding lock and the expiry sweep trigger."""
        self._entries: dict[str, tuple[float, dict[str, Any]]] = {}
        self._lock = Lock()
        self._sweep_threshold = sweep_threshold
        self._next_sweep = sweep_threshold

    def get(self, key: str) -> dict[str, Any] | None:
        """Return a copy of the live record for ``key``, dropping it if expired."""
        now = time.monotonic()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, data = entry
            if expires_at <= now:
                del self._entries[key]
                return None
            return copy.deepcopy(data)

    def set(self, key: str, data: dict[str, Any], ttl_seconds: int) -> None:
        """Store ``data`` under ``key``, sweeping expired entries once the table grows."""
        now = time.monotonic()
        with self._lock:
            if len(self._entries) >= self._next_sweep:
                self._sweep(now)
            self._entries[key] = (now + ttl_seconds, copy.deepcopy(data))

    def _sweep(self, now: float) -> None:
        # Caller holds the lock.
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        # Next sweep once the table doubles past its live size.
        self._next_sweep = max(self._sweep_threshold, 2 * len(self._entries))

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
