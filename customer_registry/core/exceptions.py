"""
Application error taxonomy and global exception handlers.

Handlers translate every error into a JSON body and never leak stack traces
to clients.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


# ── Error taxonomy ──────────────────────────────────────────────────
class AppError(Exception):
    """Base class for errors that map to a client-facing response."""

    status_code: int = 400
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    """Input rejected before reaching any store."""

    default_message = "Invalid input"


class AlreadyExistsError(AppError):
    status_code = 409
    default_message = "This email is already registered"


class WeakPasswordError(ValidationError):
    default_message = "Password must be at least 6 characters long"


class AuthorizationError(AppError):
    status_code = 403
    default_message = "Admin privileges required"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class IdentityStoreError(AppError):
    """The identity store refused or failed an account operation."""

    default_message = "Could not complete the account operation"


class TransientStoreError(AppError):
    """Backend temporarily unavailable; the caller may retry."""

    status_code = 503
    default_message = "Service temporarily unavailable, please try again"


class UpstreamServiceError(AppError):
    status_code = 502
    default_message = "Upstream service unavailable"


class PartialProvisioningFailure(Exception):
    """An enrichment step failed after the account itself was created.

    Not raised to callers; collected as a warning on the provisioning result.
    """

    def __init__(self, step: str, message: str) -> None:
        self.step = step
        self.message = message
        super().__init__(f"{step}: {message}")


# ── Handlers ────────────────────────────────────────────────────────
async def _app_error_handler(_request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s: %s", type(exc).__name__, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "success": False},
    )


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "success": False},
        headers=getattr(exc, "headers", None),
    )


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=409,
        content={"detail": "Database constraint violation", "success": False},
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=503,
        content={"detail": TransientStoreError.default_message, "success": False},
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "success": False},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(AppError, _app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
