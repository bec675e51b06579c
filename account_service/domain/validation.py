"""Shape checks for join, login and profile payloads.

Each operation declares an ordered list of ``(field, predicate, message)``
rules. Every rule runs, and the messages of the failing ones are returned in
declaration order so clients can map them back onto form fields.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Callable, Mapping

from email_validator import EmailNotValidError, validate_email

from .account import Role

_ALPHA = re.compile(r"[A-Za-z]+")
_MD5 = re.compile(r"[a-f0-9]{32}")
_INT = re.compile(r"[-+]?(?:0|[1-9][0-9]*)")

USERNAME_MIN_LENGTH = 5
USERNAME_MAX_LENGTH = 30
AVAILABILITY_LENGTH = 7


class Operation(str, Enum):
    JOIN = "join"
    LOGIN = "login"
    PROFILE_UPDATE = "profile_update"


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def is_not_empty(value: Any) -> bool:
    return _as_text(value) != ""


def is_alpha(value: Any) -> bool:
    return _ALPHA.fullmatch(_as_text(value)) is not None


def is_username_length(value: Any) -> bool:
    return USERNAME_MIN_LENGTH <= len(_as_text(value)) <= USERNAME_MAX_LENGTH


def is_password_hash(value: Any) -> bool:
    """Return ``True`` for a 32 character lowercase hex digest."""
    return _MD5.fullmatch(_as_text(value)) is not None


def is_email(value: Any) -> bool:
    text = _as_text(value)
    if not text:
        return False
    try:
        validate_email(text, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def _account_type_value(value: Any) -> int | None:
    # bool is an int subclass but never a valid account type
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INT.fullmatch(value):
        return int(value)
    return None


def is_account_type(value: Any) -> bool:
    return _account_type_value(value) in {role.value for role in Role}


def is_availability(value: Any) -> bool:
    """Check the weekly availability token length; positions are not inspected."""
    if not isinstance(value, str):
        return False
    return len(value) == AVAILABILITY_LENGTH


def coerce_role(value: Any) -> Role:
    """Convert an ``account_type`` that already passed validation to a :class:`Role`."""
    number = _account_type_value(value)
    if number is None:
        raise ValueError(f"invalid account type: {value!r}")
    return Role(number)


Rule = tuple[str, Callable[[Any], bool], str]

_NAME_RULES: list[Rule] = [
    ("first_name", is_not_empty, "First name can not be empty"),
    ("first_name", is_alpha, "First name can only contain letters (a-zA-Z)"),
    ("last_name", is_not_empty, "Last name can not be empty"),
    ("last_name", is_alpha, "Last name can only contain letters (a-zA-Z)"),
]
_USERNAME_RULE: Rule = ("username", is_username_length, "Username size needs to be between 5 and 30")
_PASSWORD_RULE: Rule = ("pass", is_password_hash, "Chosen password is weak")
_EMAIL_RULE: Rule = ("email", is_email, "Provide a valid email address")
_ACCOUNT_TYPE_RULE: Rule = ("account_type", is_account_type, "Account type is not a valid type")
_AVAILABILITY_RULE: Rule = ("availability", is_availability, "Availability is not in a valid format")

RULES: dict[Operation, list[Rule]] = {
    Operation.JOIN: [*_NAME_RULES, _USERNAME_RULE, _PASSWORD_RULE, _EMAIL_RULE, _ACCOUNT_TYPE_RULE],
    Operation.LOGIN: [_USERNAME_RULE, _PASSWORD_RULE, _ACCOUNT_TYPE_RULE],
    Operation.PROFILE_UPDATE: [
        *_NAME_RULES,
        _USERNAME_RULE,
        _PASSWORD_RULE,
        _EMAIL_RULE,
        _AVAILABILITY_RULE,
    ],
}


def validate(operation: Operation, fields: Mapping[str, Any]) -> list[str]:
    """Return the violation messages for ``fields``; an empty list means valid."""
    return [
        message
        for field_name, check, message in RULES[operation]
        if not check(fields.get(field_name))
    ]
