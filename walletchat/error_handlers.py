"""
Centralized error handling for the walletchat FastAPI application.

Maps the exception hierarchy onto HTTP status codes and renders every error
with the standard JSON error body.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .error_types import (
    ErrorMessages,
    ErrorSeverity,
    ErrorType,
    create_standard_error_response,
)
from .exceptions import (
    AuthenticationError,
    RateLimitError,
    ValidationError,
    WalletChatError,
)
from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


def _get_status_code_for_error(error: WalletChatError) -> int:
    """Get appropriate HTTP status code for error type."""
    if isinstance(error, AuthenticationError):
        return 401
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, RateLimitError):
        return 429
    return 500


def _get_error_type(error: WalletChatError) -> ErrorType:
    if isinstance(error, AuthenticationError):
        return ErrorType.AUTHENTICATION_FAILED
    if isinstance(error, ValidationError):
        return ErrorType.VALIDATION_ERROR
    if isinstance(error, RateLimitError):
        return ErrorType.RATE_LIMIT_EXCEEDED
    return ErrorType.INTERNAL_ERROR


async def walletchat_exception_handler(request: Request, exc: WalletChatError) -> JSONResponse:
    """Handle walletchat-specific exceptions."""
    if not exc.context.request_id:
        exc.context.request_id = str(request.url.path)

    status_code = _get_status_code_for_error(exc)
    body = create_standard_error_response(
        _get_error_type(exc),
        exc.message,
        exc.user_friendly,
        exc.details,
        ErrorSeverity.LOW if status_code < 500 else ErrorSeverity.HIGH,
    )

    headers: dict[str, str] = {}
    if isinstance(exc, RateLimitError) and exc.retry_after:
        headers["Retry-After"] = str(exc.retry_after)

    logger.info(
        "walletchat exception handled",
        error_type=exc.__class__.__name__,
        path=request.url.path,
        method=request.method,
        status_code=status_code,
    )
    return JSONResponse(status_code=status_code, content=body, headers=headers or None)


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render malformed request bodies as 400 Bad Request."""
    errors: list[dict[str, Any]] = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
        for error in exc.errors()
    ]
    logger.warning("Request validation failed", path=request.url.path, method=request.method, error_count=len(errors))
    body = create_standard_error_response(
        ErrorType.INVALID_INPUT,
        "Request validation failed",
        ErrorMessages.INVALID_INPUT,
        {"errors": errors},
        ErrorSeverity.LOW,
    )
    return JSONResponse(status_code=400, content=body)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions raised by routing or endpoints."""
    logger.warning(
        "HTTP exception handled",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
        method=request.method,
    )
    error_type = ErrorType.INVALID_INPUT if exc.status_code < 500 else ErrorType.INTERNAL_ERROR
    body = create_standard_error_response(error_type, str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all other exceptions."""
    logger.error(
        "Unhandled exception",
        original_type=type(exc).__name__,
        original_message=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=exc,
    )
    body = create_standard_error_response(
        ErrorType.INTERNAL_ERROR,
        ErrorMessages.INTERNAL_ERROR,
        severity=ErrorSeverity.HIGH,
    )
    return JSONResponse(status_code=500, content=body)


def register_error_handlers(app: FastAPI) -> None:
    """
    Register all error handlers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(WalletChatError, walletchat_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info("Error handlers registered with FastAPI application")
