"""
Unified error handling.

Every Midnight error carries an HTTP status and a machine-readable
``error_type`` so the action envelope and the admin client agree on what
went wrong.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse

logger = structlog.stdlib.get_logger()


class MidnightError(Exception):
    """Base exception for all Midnight admin errors."""

    status_code: int = 500
    error_type: str = "internal_error"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> dict[str, Any]:
        return error_envelope(self.message, self.error_type, details=self.details)


class AuthenticationError(MidnightError):
    status_code = 401
    error_type = "authentication_error"


class AuthorizationError(MidnightError):
    status_code = 403
    error_type = "authorization_error"


class ValidationError(MidnightError):
    status_code = 400
    error_type = "validation_error"


class ParseError(MidnightError):
    """Pasted or uploaded JSON could not be decoded."""

    status_code = 400
    error_type = "parse_error"


class NotFoundError(MidnightError):
    status_code = 404
    error_type = "not_found"


class DuplicateNameError(MidnightError):
    status_code = 409
    error_type = "duplicate_name"


class OptimisticConflictError(MidnightError):
    """Two writers raced for the same version number."""

    status_code = 409
    error_type = "optimistic_conflict"


class ProviderError(MidnightError):
    status_code = 502
    error_type = "provider_error"


ERRORS_BY_TYPE: dict[str, type[MidnightError]] = {
    cls.error_type: cls
    for cls in (
        MidnightError,
        AuthenticationError,
        AuthorizationError,
        ValidationError,
        ParseError,
        NotFoundError,
        DuplicateNameError,
        OptimisticConflictError,
        ProviderError,
    )
}


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def error_envelope(
    message: str, error_type: str, *, details: dict[str, Any] | None = None
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "success": False,
        "error": message,
        "error_type": error_type,
        "timestamp": utc_timestamp(),
    }
    if details:
        body["details"] = details
    return body


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(MidnightError)
    async def midnight_error_handler(request: Request, exc: MidnightError) -> ORJSONResponse:
        await logger.awarning(
            "midnight.error",
            error_type=exc.error_type,
            message=exc.message,
            status_code=exc.status_code,
            path=request.url.path,
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content=exc.to_response(),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        problems = [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        await logger.awarning("midnight.invalid_request", path=request.url.path, errors=problems)
        return ORJSONResponse(
            status_code=400,
            content=error_envelope(
                "Invalid request body", ValidationError.error_type, details={"errors": problems}
            ),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> ORJSONResponse:
        await logger.aexception(
            "midnight.unhandled_error",
            path=request.url.path,
            error=str(exc),
        )
        return ORJSONResponse(
            status_code=500,
            content=error_envelope("An internal error occurred.", "internal_error"),
        )
