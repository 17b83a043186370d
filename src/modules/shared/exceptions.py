"""
Domain exceptions raised by the service layer.

Each class pins an ``ErrorCategory``; ``src.api.errors`` turns the category
into an HTTP status and sends ``message`` to the caller. ``details`` is for
logs only and may hold amounts, identifiers and other internals.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from src.core.exceptions import ErrorSeverity


class ErrorCategory(Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL = "INTERNAL"
    UNIMPLEMENTED = "UNIMPLEMENTED"
    DEADLINE_EXCEEDED = "DEADLINE_EXCEEDED"


class MedievalDomainException(Exception):
    """
    Base for everything a service raises on purpose.

    Subclasses set ``CATEGORY`` and ``DEFAULT_SEVERITY`` and pass a
    caller-safe ``message`` plus any log-only ``details``.
    """

    CATEGORY: ErrorCategory = ErrorCategory.INTERNAL
    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details or {}
        self.severity = severity or self.DEFAULT_SEVERITY

    @property
    def category(self) -> ErrorCategory:
        return self.CATEGORY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": type(self).__name__,
            "category": self.category.value,
            "message": self.message,
            "severity": self.severity.value,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, category={self.category.value})"


class UnauthenticatedError(MedievalDomainException):
    """No usable credential, or the credential may not run this operation."""

    CATEGORY = ErrorCategory.UNAUTHENTICATED
    DEFAULT_SEVERITY = ErrorSeverity.WARNING

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class ValidationError(MedievalDomainException):
    CATEGORY = ErrorCategory.INVALID_ARGUMENT
    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(message, {"field": field})


class InsufficientResourcesError(MedievalDomainException):
    """
    The user cannot afford a purchase.

    Callers only see "Not enough <resource>"; the balance and price are
    kept in ``details``.
    """

    CATEGORY = ErrorCategory.INVALID_ARGUMENT
    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, resource: str, required: int, current: int) -> None:
        self.resource = resource
        self.required = required
        self.current = current
        super().__init__(
            f"Not enough {resource}",
            {"required": required, "current": current, "deficit": required - current},
        )


class AlreadyExistsError(MedievalDomainException):
    CATEGORY = ErrorCategory.INVALID_ARGUMENT
    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, resource_type: str, message: str) -> None:
        self.resource_type = resource_type
        super().__init__(message, {"resource_type": resource_type})


class NotFoundError(MedievalDomainException):
    """``NotFoundError("Item", item_id)`` renders as "Item not found"."""

    CATEGORY = ErrorCategory.NOT_FOUND
    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier
        super().__init__(f"{resource_type} not found", {"identifier": identifier})


class InternalError(MedievalDomainException):
    CATEGORY = ErrorCategory.INTERNAL

    def __init__(self, message: str = "Internal error", **details: Any) -> None:
        super().__init__(message, details)


class UnimplementedError(MedievalDomainException):
    CATEGORY = ErrorCategory.UNIMPLEMENTED
    DEFAULT_SEVERITY = ErrorSeverity.DEBUG

    def __init__(self, operation: str, message: str = "Non-MVP endpoint") -> None:
        self.operation = operation
        super().__init__(message, {"operation": operation})


class DeadlineExceededError(MedievalDomainException):
    CATEGORY = ErrorCategory.DEADLINE_EXCEEDED
    DEFAULT_SEVERITY = ErrorSeverity.WARNING

    def __init__(self, operation: str, timeout_seconds: float) -> None:
        self.operation = operation
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"{operation} did not complete within {timeout_seconds:g}s",
            {"operation": operation},
        )


def get_error_category(exc: BaseException) -> ErrorCategory:
    """Unknown exception types count as INTERNAL."""
    if isinstance(exc, MedievalDomainException):
        return exc.category
    return ErrorCategory.INTERNAL


def get_error_severity(exc: BaseException) -> ErrorSeverity:
    if isinstance(exc, MedievalDomainException):
        return exc.severity
    return ErrorSeverity.ERROR


def should_alert(exc: BaseException) -> bool:
    return get_error_severity(exc) in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
