"""Caller-visible outcomes produced by :class:`AuthService`.

The HTTP layer maps each variant onto a status code and body; the service
itself never deals in responses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True, slots=True)
class Redirect:
    """Success that the client should follow with a page navigation."""

    location: str


@dataclass(frozen=True, slots=True)
class Success:
    payload: Any = None


@dataclass(frozen=True, slots=True)
class Unprocessable:
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Unauthorized:
    message: str | None = None


@dataclass(frozen=True, slots=True)
class InternalError:
    pass


AuthResult = Union[Redirect, Success, Unprocessable, Unauthorized, InternalError]
