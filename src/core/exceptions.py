"""
Infrastructure exceptions.

These describe broken deployments (bad keys, unreadable config), never
caller mistakes, so the HTTP layer always answers them with a bare INTERNAL.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """How loudly a failure should be logged."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class MedievalInfrastructureException(Exception):
    severity: ErrorSeverity = ErrorSeverity.ERROR

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": type(self).__name__,
            "message": self.message,
            "severity": self.severity.value,
            **self.details,
        }


class ConfigurationError(MedievalInfrastructureException):
    """A setting needed at runtime is missing or unusable."""

    severity = ErrorSeverity.CRITICAL

    def __init__(self, config_key: str, problem: str, hint: Optional[str] = None) -> None:
        self.config_key = config_key
        text = f"{config_key}: {problem}"
        if hint:
            text = f"{text} ({hint})"
        super().__init__(text, config_key=config_key)
