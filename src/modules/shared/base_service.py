"""
Common base for the domain services.

A service owns its transactions through the injected ``DatabaseService``
and raises domain exceptions only. Callers are authorized before a service
method runs, so services never look at claims.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .exceptions import InternalError

if TYPE_CHECKING:
    from logging import Logger

    from src.core.database.service import DatabaseService


class BaseService:
    def __init__(self, db: DatabaseService, logger: Logger) -> None:
        self.db = db
        self.log = logger

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(operation, extra={"operation": operation, **context})

    def log_error(self, operation: str, error: BaseException, **context: Any) -> None:
        self.log.error(
            f"{operation} failed: {error}",
            extra={"operation": operation, "error_type": type(error).__name__, **context},
        )

    def storage_failure(
        self,
        operation: str,
        error: BaseException,
        message: str = "Internal error",
        **context: Any,
    ) -> InternalError:
        """
        Log a database failure and return the caller-safe error to raise.

            except SQLAlchemyError as exc:
                raise self.storage_failure("buy_by_user", exc, user_id=uid) from exc
        """
        self.log_error(operation, error, **context)
        return InternalError(message, operation=operation, **context)
