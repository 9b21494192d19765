"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain-specific errors (like NotFoundError)
without importing HTTP concepts. register_exception_handlers() is the
single place where they are translated into HTTP responses, using the
API's response envelope:

    {"status": "fail", "message": "..."}    — 4xx, the client's fault
    {"status": "error", "message": "..."}   — 5xx, ours

Exception hierarchy:
    ToursAPIError (base)
    ├── ValidationError          — malformed or missing input (400)
    ├── AuthenticationError      — missing/invalid/expired/stale token (401)
    │   └── InvalidCredentialsError — wrong email or password (401)
    ├── AuthorizationError       — role not permitted (403)
    ├── NotFoundError            — no matching entity (404)
    ├── ConflictError            — uniqueness violation (409)
    └── DependencyError          — external collaborator failed (500)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tours_api.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class ToursAPIError(Exception):
    """Base exception for all Tours API domain errors."""

    status_code: int = 500

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class ValidationError(ToursAPIError):
    """Raised when input is malformed, missing, or breaks an entity rule."""

    status_code = 400


class AuthenticationError(ToursAPIError):
    """
    Raised when a request cannot be tied to a valid principal.

    Attributes:
        reason: Internal classification ("missing", "invalid", "expired",
                "no_such_user", "stale"). Logged, never sent to the client.
    """

    status_code = 401

    def __init__(self, detail: str, reason: str = "invalid"):
        self.reason = reason
        super().__init__(detail)


class InvalidCredentialsError(AuthenticationError):
    """Raised when login credentials are incorrect."""

    def __init__(self):
        super().__init__("Incorrect email or password", reason="bad_credentials")


class AuthorizationError(ToursAPIError):
    """Raised when an authenticated user is not allowed to do something."""

    status_code = 403

    def __init__(self, detail: str = "You do not have permission to perform this action"):
        super().__init__(detail)


class NotFoundError(ToursAPIError):
    """Raised when a requested entity does not exist."""

    status_code = 404

    def __init__(self, resource: str = "Document", detail: str | None = None):
        self.resource = resource
        super().__init__(detail or f"No {resource.lower()} found with that ID")


class ConflictError(ToursAPIError):
    """Raised when a write violates a uniqueness constraint."""

    status_code = 409


class DependencyError(ToursAPIError):
    """Raised when an external collaborator (e.g. email) fails."""

    status_code = 500


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def _envelope(status_code: int, message: str) -> JSONResponse:
    status = "fail" if 400 <= status_code < 500 else "error"
    return JSONResponse(
        status_code=status_code,
        content={"status": status, "message": message},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register the exception handlers with the FastAPI application.

    Every error, whether raised by the service layer, by request
    validation, or by the routing layer, leaves the API through one of
    these handlers so the response shape is always the same.

    This is called once during app startup in main.py.
    """

    @app.exception_handler(ToursAPIError)
    async def tours_api_error_handler(
        request: Request, exc: ToursAPIError
    ) -> JSONResponse:
        if isinstance(exc, AuthenticationError):
            logger.info(
                "Authentication rejected (%s) for %s %s",
                exc.reason, request.method, request.url.path,
            )
        elif isinstance(exc, DependencyError):
            logger.error("Dependency failure on %s: %s", request.url.path, exc.detail)
        return _envelope(exc.status_code, exc.detail)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        messages = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error["loc"] if part != "body")
            messages.append(f"{location}: {error['msg']}" if location else error["msg"])
        return _envelope(400, f"Invalid input data. {'. '.join(messages)}")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = f"No routes matched with {request.url.path} on the server!"
        else:
            message = str(exc.detail)
        response = _envelope(exc.status_code, message)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(Exception)
    async def unexpected_error_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.exception("Unexpected error on %s %s", request.method, request.url.path)
        if settings.is_production:
            return _envelope(500, "Something went very wrong!")
        return _envelope(500, f"Something went very wrong! {exc}")
