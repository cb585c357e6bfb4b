"""
Typed errors for the dashboard API and the handlers that render them.

Every AppError subclass pins an HTTP status and a stable ``code`` string
that the dashboard switches on. Anything else is rendered as a bare 500
and reported to Sentry; stack traces and credentials stay server-side.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shared.logging import get_logger

log = get_logger(__name__)

# Upstream bodies are echoed back for debugging; cap what we relay.
_UPSTREAM_BODY_LIMIT = 500


class AppError(Exception):
    """Rendered as ``{"error", "code"}`` plus optional ``field`` and ``details``."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message, "code": self.error_code}
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"


class UnauthorizedError(AuthenticationError):
    """Gateway rejection. The message never says which check failed."""

    error_code = "unauthorized"

    def __init__(self, message: str = "Invalid API credentials") -> None:
        super().__init__(message)


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


class ConflictError(AppError):
    status_code = 409
    error_code = "conflict"


class RevealExpiredError(AppError):
    status_code = 410
    error_code = "expired"


class RateLimitError(AppError):
    status_code = 429
    error_code = "rate_limit_exceeded"


class QuotaExceededError(RateLimitError):
    error_code = "quota_exceeded"


class UpstreamError(AppError):
    """Failure reported by the SecurePay API; carries its status and body."""

    status_code = 502
    error_code = "upstream_error"

    def __init__(
        self,
        message: str,
        *,
        upstream_status: Optional[int] = None,
        upstream_body: Optional[str] = None,
    ) -> None:
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body
        super().__init__(
            message,
            details={
                "upstream_status": upstream_status,
                "upstream_body": (upstream_body or "")[:_UPSTREAM_BODY_LIMIT],
            },
        )


class UpstreamAuthError(UpstreamError):
    error_code = "upstream_auth_error"


class UpstreamIssuanceError(UpstreamError):
    error_code = "upstream_issuance_error"


class MalformedUpstreamResponseError(AppError):
    status_code = 502
    error_code = "malformed_upstream_response"


class UpstreamUnavailableError(AppError):
    status_code = 500
    error_code = "internal_error"

    def __init__(self, message: str = "An internal server error occurred.") -> None:
        super().__init__(message)


class StorageError(AppError):
    status_code = 500
    error_code = "storage_error"


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        loc = [str(part) for part in first.get("loc", ()) if part != "body"]
        error = ValidationError(
            first.get("msg", "invalid request"),
            field=".".join(loc) or None,
        )
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Sentry integration: if sentry_sdk is initialized it will auto-capture
        # unhandled exceptions before this handler fires.
        log.error(
            "unhandled_exception",
            path=request.url.path,
            error_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=500,
            content={"error": "An internal server error occurred.", "code": "internal_error"},
        )
