"""
Structured logging for the users service.

Exports the logging setup/teardown helpers and the request-scoped
``LogContext`` used by the request pipeline and services.
"""

from src.core.logging.logger import (
    LogContext,
    LogSettings,
    get_log_context,
    get_logger,
    get_logging_health,
    new_request_id,
    set_log_context,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "setup_logging",
    "shutdown_logging",
    "get_logger",
    "get_logging_health",
    "LogContext",
    "LogSettings",
    "new_request_id",
    "set_log_context",
    "get_log_context",
]
