"""
Domain error taxonomy and global exception handlers.

Services raise ``AppError`` subclasses; the handlers below turn them (and
anything unexpected) into the ``{success: false, message}`` envelope
without leaking stack traces to clients.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500
    message = "Server Error"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class BadRequest(AppError):
    status_code = 400
    message = "Bad request"


class Conflict(AppError):
    status_code = 409
    message = "User already exists"


class NotFound(AppError):
    status_code = 404
    message = "Not found"


class InvalidCredentials(AppError):
    status_code = 401
    message = "Invalid credentials"


class AccountDisabled(AppError):
    status_code = 401
    message = "Your account is disabled"


class PasswordNotSet(AppError):
    status_code = 401
    message = "Please set up your password first"


class InvalidOrExpiredOTP(AppError):
    status_code = 400
    message = "Invalid or expired OTP"


class InvalidToken(AppError):
    status_code = 400
    message = "Invalid token"


class AlreadySet(AppError):
    status_code = 400
    message = "Password already set"


class NotificationFailure(AppError):
    status_code = 500
    message = "Email could not be sent"


class Forbidden(AppError):
    status_code = 403
    message = "Not authorized to access this resource"


class Unauthorized(AppError):
    status_code = 401
    message = "Could not validate credentials"


def _envelope(message: Any, error: Any = None) -> dict:
    body = {"success": False, "message": message}
    if error is not None:
        body["error"] = error
    return body


async def _app_error_handler(_request: Request, exc: AppError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=_envelope(exc.message),
        headers=headers,
    )


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_envelope(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def _validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=_envelope("Validation failed", jsonable_encoder(exc.errors())),
    )


async def _rate_limit_handler(_request: Request, _exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content=_envelope("Rate limit exceeded. Try again later."),
    )


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=409,
        content=_envelope("Database constraint violation"),
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content=_envelope("Internal database error"),
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content=_envelope("Server Error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(AppError, _app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
