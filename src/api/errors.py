"""
Error Response Service
======================

Purpose
-------
Translate domain and infrastructure exceptions into HTTP responses.

Responsibilities
----------------
- Map ``ErrorCategory`` to an HTTP status
- Render ``{"error": {"code": ..., "message": ...}}`` bodies
- Hide infrastructure and unexpected failures behind a fixed message

Non-Responsibilities
--------------------
- Deciding outcomes (services raise, this module only renders)
- Logging domain errors below ERROR severity (the raising service logs)
"""

from __future__ import annotations

from typing import Any, Dict, Tuple

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.core.exceptions import MedievalInfrastructureException
from src.core.logging.logger import get_logger
from src.modules.shared.exceptions import (
    ErrorCategory,
    MedievalDomainException,
    should_alert,
)

logger = get_logger(__name__)

CATEGORY_STATUS: Dict[ErrorCategory, int] = {
    ErrorCategory.UNAUTHENTICATED: 401,
    ErrorCategory.INVALID_ARGUMENT: 400,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.INTERNAL: 500,
    ErrorCategory.UNIMPLEMENTED: 501,
    ErrorCategory.DEADLINE_EXCEEDED: 504,
}

GENERIC_INTERNAL_MESSAGE = "Internal error"


def error_body(code: str, message: str) -> Dict[str, Any]:
    return {"error": {"code": code, "message": message}}


class ErrorResponseService:
    """Stateless exception -> (status, body) formatter."""

    def format_error(self, error: BaseException) -> Tuple[int, Dict[str, Any]]:
        if isinstance(error, MedievalDomainException):
            category = error.category
            return CATEGORY_STATUS[category], error_body(category.value, error.message)

        # Infrastructure and unexpected failures never leak their cause
        return 500, error_body(ErrorCategory.INTERNAL.value, GENERIC_INTERNAL_MESSAGE)


_error_responses = ErrorResponseService()


async def _domain_exception_handler(
    request: Request, exc: MedievalDomainException
) -> JSONResponse:
    status_code, body = _error_responses.format_error(exc)

    if should_alert(exc):
        logger.error(
            "Request failed",
            extra={"path": request.url.path, "error": exc.to_dict()},
        )

    return JSONResponse(status_code=status_code, content=body)


async def _infrastructure_exception_handler(
    request: Request, exc: MedievalInfrastructureException
) -> JSONResponse:
    logger.error(
        "Infrastructure failure",
        extra={"path": request.url.path, "error": exc.to_dict()},
    )
    status_code, body = _error_responses.format_error(exc)
    return JSONResponse(status_code=status_code, content=body)


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        detail = first.get("msg", "invalid value")
        message = f"{location}: {detail}" if location else detail
    else:
        message = "Invalid request"

    return JSONResponse(
        status_code=400,
        content=error_body(ErrorCategory.INVALID_ARGUMENT.value, message),
    )


async def _http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    code = {404: ErrorCategory.NOT_FOUND.value, 405: "METHOD_NOT_ALLOWED"}.get(
        exc.status_code, "HTTP_ERROR"
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception",
        extra={"path": request.url.path, "error_type": type(exc).__name__},
        exc_info=exc,
    )
    status_code, body = _error_responses.format_error(exc)
    return JSONResponse(status_code=status_code, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MedievalDomainException, _domain_exception_handler)
    app.add_exception_handler(
        MedievalInfrastructureException, _infrastructure_exception_handler
    )
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
