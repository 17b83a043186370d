"""Request input validation."""

from src.core.validation.input_validator import (
    MAX_EMAIL_LENGTH,
    MAX_NAME_LENGTH,
    MAX_TITLE_LENGTH,
    InputValidator,
)

__all__ = [
    "InputValidator",
    "MAX_NAME_LENGTH",
    "MAX_EMAIL_LENGTH",
    "MAX_TITLE_LENGTH",
]
