"""Validation of user creation payloads.

Rules are plain data: each field has an ordered list of rules, all fields
are checked in one pass and every violation is reported. A rule marked
``halt`` stops the remaining rules of its own field (a missing name is not
also reported as too short), never the other fields.

Payloads are whitelisted: any key other than ``name``/``email`` rejects the
whole request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from email_validator import EmailNotValidError, validate_email

from app.core.errors import ValidationFailure
from app.schemas.user import NewUser

logger = logging.getLogger(__name__)

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 255

_MISSING = object()


@dataclass(frozen=True)
class Rule:
    """A single field check.

    Attributes:
        check: Returns True when the value satisfies the rule.
        message: Violation reported when the check fails.
        halt: Skip the field's remaining rules after a failure.
    """

    check: Callable[[Any], bool]
    message: str
    halt: bool = False


def _present(value: Any) -> bool:
    return value is not _MISSING and value is not None and value != ""


def _is_string(value: Any) -> bool:
    return isinstance(value, str)


def _min_length(length: int) -> Callable[[Any], bool]:
    return lambda value: len(value) >= length


def _max_length(length: int) -> Callable[[Any], bool]:
    return lambda value: len(value) <= length


def is_valid_email(value: Any) -> bool:
    """Check email syntax (local-part@domain.tld) without DNS lookups."""
    if not isinstance(value, str):
        return False
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


FIELD_RULES: dict[str, list[Rule]] = {
    "name": [
        Rule(_present, "Name is required", halt=True),
        Rule(_is_string, "Name must be a string", halt=True),
        Rule(_min_length(NAME_MIN_LENGTH), f"Name must be at least {NAME_MIN_LENGTH} characters long"),
        Rule(_max_length(NAME_MAX_LENGTH), f"Name must be at most {NAME_MAX_LENGTH} characters long"),
    ],
    "email": [
        Rule(_present, "Email is required", halt=True),
        Rule(is_valid_email, "Email must be a valid email address"),
    ],
}


def collect_violations(payload: Mapping[str, Any]) -> list[str]:
    """Evaluate every rule against the payload.

    Args:
        payload: Decoded JSON object from the request body.

    Returns:
        Violation messages in field order, then unknown-field messages.
    """
    violations: list[str] = []

    for field_name, rules in FIELD_RULES.items():
        value = payload.get(field_name, _MISSING)
        for rule in rules:
            if rule.check(value):
                continue
            violations.append(rule.message)
            if rule.halt:
                break

    for key in payload:
        if key not in FIELD_RULES:
            violations.append(f"property {key} should not exist")

    return violations


def validate_create_user(payload: Any) -> NewUser | ValidationFailure:
    """Turn a raw request body into a NewUser or a ValidationFailure.

    Values are taken as given (no trimming or case folding).
    """
    if not isinstance(payload, Mapping):
        return ValidationFailure(message=["Request body must be a JSON object"])

    violations = collect_violations(payload)
    if violations:
        logger.info(
            "users.validation_failed",
            extra={"violation_count": len(violations), "fields": sorted(map(str, payload))},
        )
        return ValidationFailure(message=violations)

    return NewUser(name=payload["name"], email=payload["email"])
