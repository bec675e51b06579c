from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any


class Role(IntEnum):
    """Account role; the integer value is the wire ``account_type``."""

    MANAGER = 0
    WORKER = 1


@dataclass(frozen=True, slots=True)
class Identity:
    """The account a session is bound to."""

    account_id: Any
    role: Role
