"""Application error taxonomy and the JSON error body.

Learn: Every failure a client can see belongs to a closed set of kinds
(ErrorKind). Services raise an AppError subclass carrying one of those
kinds; the handlers registered in main.py turn it into

    {"status": 401, "message": "Token has expired", "error": "token_expired"}

Nothing else ever reaches the wire — no exception class names, no stack
traces. Unexpected exceptions are logged and rendered as a generic 500.
"""

from enum import Enum
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger()


class ErrorKind(str, Enum):
    """Machine-readable failure tags returned in the `error` field."""

    # Authentication (401)
    MISSING_TOKEN = "missing_token"
    INVALID_TOKEN_FORMAT = "invalid_token_format"
    INVALID_SIGNATURE = "invalid_signature"
    TOKEN_EXPIRED = "token_expired"
    MALFORMED_TOKEN = "malformed_token"
    INVALID_CREDENTIALS = "invalid_credentials"

    # Password reset (401)
    RESET_TOKEN_INVALID = "reset_token_invalid"
    RESET_TOKEN_EXPIRED = "reset_token_expired"

    # Authorization (403)
    FORBIDDEN = "forbidden"

    # Client errors
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    METHOD_NOT_ALLOWED = "method_not_allowed"

    # Server errors
    INTERNAL_ERROR = "internal_error"


class AppError(Exception):
    """Base class for errors that map to a structured HTTP response."""

    status_code: int = 500
    default_kind: ErrorKind = ErrorKind.INTERNAL_ERROR

    def __init__(self, message: str, kind: Optional[ErrorKind] = None):
        super().__init__(message)
        self.message = message
        self.kind = kind or self.default_kind


class AuthenticationError(AppError):
    """Missing, malformed, expired or forged credentials."""

    status_code = 401
    default_kind = ErrorKind.MALFORMED_TOKEN


class AuthorizationError(AppError):
    """Valid identity, insufficient rights on the resource."""

    status_code = 403
    default_kind = ErrorKind.FORBIDDEN


class ResetTokenError(AppError):
    """Password reset token unknown, already used, or expired."""

    status_code = 401
    default_kind = ErrorKind.RESET_TOKEN_INVALID


class ValidationError(AppError):
    status_code = 400
    default_kind = ErrorKind.VALIDATION_ERROR


class NotFoundError(AppError):
    status_code = 404
    default_kind = ErrorKind.NOT_FOUND


class ConflictError(AppError):
    status_code = 409
    default_kind = ErrorKind.CONFLICT


class PayloadTooLargeError(AppError):
    status_code = 413
    default_kind = ErrorKind.PAYLOAD_TOO_LARGE


# Starlette raises its own HTTPException for routing failures (404 on an
# unknown path, 405 on a wrong method). Map those statuses onto our kinds.
_HTTP_STATUS_KINDS = {
    400: ErrorKind.VALIDATION_ERROR,
    401: ErrorKind.MISSING_TOKEN,
    403: ErrorKind.FORBIDDEN,
    404: ErrorKind.NOT_FOUND,
    405: ErrorKind.METHOD_NOT_ALLOWED,
    409: ErrorKind.CONFLICT,
    413: ErrorKind.PAYLOAD_TOO_LARGE,
}


def error_body(status: int, message: str, kind: ErrorKind) -> dict:
    return {"status": status, "message": message, "error": kind.value}


def error_response(status: int, message: str, kind: ErrorKind) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if status == 401 else None
    return JSONResponse(
        status_code=status,
        content=error_body(status, message, kind),
        headers=headers,
    )


async def _handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    logger.info(
        "request.rejected",
        path=request.url.path,
        status=exc.status_code,
        error=exc.kind.value,
    )
    return error_response(exc.status_code, exc.message, exc.kind)


async def _handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    # First error only, without echoing the submitted input back
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    return error_response(400, message, ErrorKind.VALIDATION_ERROR)


async def _handle_http_exception(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    kind = _HTTP_STATUS_KINDS.get(exc.status_code, ErrorKind.INTERNAL_ERROR)
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return error_response(exc.status_code, message, kind)


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request.unhandled_error", path=request.url.path)
    return error_response(500, "Unexpected error", ErrorKind.INTERNAL_ERROR)


def install_error_handlers(app: FastAPI) -> None:
    """Register the JSON error handlers on an app."""
    app.add_exception_handler(AppError, _handle_app_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)
    app.add_exception_handler(Exception, _handle_unexpected)
