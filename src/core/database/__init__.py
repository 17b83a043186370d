"""
Database subsystem for the users service.

Provides the async SQLAlchemy engine, session and transaction management,
and the ORM base classes and mixins used by the models.
"""

from src.core.database.base import Base, TimestampMixin, UuidMixin, new_uuid, utcnow
from src.core.database.service import (
    DatabaseInitializationError,
    DatabaseNotInitializedError,
    DatabaseService,
)

__all__ = [
    # ORM Base & Mixins
    "Base",
    "TimestampMixin",
    "UuidMixin",
    "new_uuid",
    "utcnow",
    # Main service
    "DatabaseService",
    # Exceptions
    "DatabaseInitializationError",
    "DatabaseNotInitializedError",
]
