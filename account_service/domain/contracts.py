"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .account import Role


@dataclass(slots=True)
class JoinInput:
    """Validated inputs required to create an account."""

    role: Role
    first_name: str
    last_name: str
    email: str
    username: str
    password_hash: str

    @classmethod
    def from_fields(cls, fields: Mapping[str, Any], role: Role) -> "JoinInput":
        return cls(
            role=role,
            first_name=str(fields["first_name"]),
            last_name=str(fields["last_name"]),
            email=str(fields["email"]),
            username=str(fields["username"]),
            password_hash=str(fields["pass"]),
        )


@dataclass(slots=True)
class LoginInput:
    """Validated credentials presented by a returning user."""

    role: Role
    username: str
    password_hash: str


@dataclass(slots=True)
class ProfileUpdateInput:
    """Replacement values for every editable profile field.

    The account being edited always comes from the session, so this contract
    carries no identity fields.
    """

    first_name: str
    last_name: str
    email: str
    username: str
    password_hash: str
    availability: str

    @classmethod
    def from_fields(cls, fields: Mapping[str, Any]) -> "ProfileUpdateInput":
        return cls(
            first_name=str(fields["first_name"]),
            last_name=str(fields["last_name"]),
            email=str(fields["email"]),
            username=str(fields["username"]),
            password_hash=str(fields["pass"]),
            availability=str(fields["availability"]),
        )
