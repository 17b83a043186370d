"""
Shared Module

Purpose
-------
Domain-level foundations for every service module:
- Domain exceptions and their caller-visible categories
- Base service and repository patterns

Usage
-----
    from src.modules.shared import (
        BaseService,
        BaseRepository,
        InsufficientResourcesError,
        NotFoundError,
    )
"""

from __future__ import annotations

# Base patterns
from .base_repository import BaseRepository
from .base_service import BaseService

# Domain exceptions
from .exceptions import (
    AlreadyExistsError,
    DeadlineExceededError,
    ErrorCategory,
    InsufficientResourcesError,
    InternalError,
    MedievalDomainException,
    NotFoundError,
    UnauthenticatedError,
    UnimplementedError,
    ValidationError,
    get_error_category,
    get_error_severity,
    should_alert,
)

__all__ = [
    # Base patterns
    "BaseService",
    "BaseRepository",
    # Exceptions
    "MedievalDomainException",
    "ErrorCategory",
    "UnauthenticatedError",
    "ValidationError",
    "InsufficientResourcesError",
    "AlreadyExistsError",
    "NotFoundError",
    "InternalError",
    "UnimplementedError",
    "DeadlineExceededError",
    "get_error_category",
    "get_error_severity",
    "should_alert",
]
