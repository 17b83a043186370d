"""
Low-level checks on request input.

Prices, currency and stat deltas are bounded non-negative integers. Names,
titles and lookup keys are stripped and length-limited. Emails need a
``local@domain.tld`` shape. Uniqueness and existence are checked later by
the services inside their transactions.

Every failure raises ``ValidationError`` (INVALID_ARGUMENT) and is logged at
debug level.
"""

from __future__ import annotations

import re
from typing import Any, NoReturn, Optional

from src.core.logging.logger import get_logger
from src.modules.shared.exceptions import ValidationError

logger = get_logger(__name__)

MAX_NAME_LENGTH = 64
MAX_EMAIL_LENGTH = 255
MAX_TITLE_LENGTH = 255
MAX_IDENTIFIER_LENGTH = 255
MAX_AMOUNT = 2**62
# Largest value a BigInteger column holds
MAX_STORED_TOTAL = 2**63 - 1

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _reject(field_name: str, value: Any, message: str) -> NoReturn:
    logger.debug(
        f"Rejected {field_name}",
        extra={"field_name": field_name, "raw_value": repr(value), "reason": message},
    )
    raise ValidationError(field_name, message)


class InputValidator:
    @staticmethod
    def validate_integer(
        value: Any,
        field_name: str,
        min_value: Optional[int] = None,
        max_value: Optional[int] = None,
    ) -> int:
        if value is None:
            _reject(field_name, value, f"{field_name} is required")
        # bool is an int subclass
        if isinstance(value, bool):
            _reject(field_name, value, f"{field_name} must be a whole number")
        try:
            number = int(value)
        except (TypeError, ValueError):
            _reject(field_name, value, f"{field_name} must be a whole number, got '{value}'")

        if min_value is not None and number < min_value:
            _reject(field_name, number, f"{field_name} must be at least {min_value}, got {number}")
        if max_value is not None and number > max_value:
            _reject(field_name, number, f"{field_name} cannot exceed {max_value}, got {number}")
        return number

    @staticmethod
    def validate_non_negative_integer(value: Any, field_name: str) -> int:
        return InputValidator.validate_integer(value, field_name, 0, MAX_AMOUNT)

    @staticmethod
    def validate_string(
        value: Any,
        field_name: str,
        min_length: int = 1,
        max_length: Optional[int] = None,
    ) -> str:
        """Required string, returned stripped."""
        if not isinstance(value, str):
            _reject(field_name, value, f"{field_name} is required")

        text = value.strip()
        if len(text) < min_length:
            message = (
                f"{field_name} must not be empty"
                if min_length == 1
                else f"{field_name} must be at least {min_length} characters"
            )
            _reject(field_name, text, message)
        if max_length is not None and len(text) > max_length:
            _reject(field_name, text, f"{field_name} cannot exceed {max_length} characters")
        return text

    @staticmethod
    def validate_email(value: Any, field_name: str = "email") -> str:
        email = InputValidator.validate_string(value, field_name, max_length=MAX_EMAIL_LENGTH)
        if _EMAIL_PATTERN.match(email) is None:
            _reject(field_name, email, "Invalid email address")
        return email

    @staticmethod
    def validate_identifier(value: Any, field_name: str = "id") -> str:
        """A row id, name or email used as a lookup key."""
        return InputValidator.validate_string(value, field_name, max_length=MAX_IDENTIFIER_LENGTH)

    @staticmethod
    def optional_string(
        value: Optional[str],
        field_name: str,
        max_length: Optional[int] = None,
    ) -> Optional[str]:
        """Blank counts as not provided."""
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return InputValidator.validate_string(value, field_name, max_length=max_length)

    @staticmethod
    def validate_total(current: int, delta: int, field_name: str) -> int:
        """``current + delta``, rejected when it would not fit in a BigInteger column."""
        total = current + delta
        if total > MAX_STORED_TOTAL:
            _reject(field_name, delta, f"{field_name} would exceed {MAX_STORED_TOTAL}")
        return total
