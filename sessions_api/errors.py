"""
Error Taxonomy
==============

Every failure the sessions API reports to a client is one of the exceptions
below. Each carries the HTTP status it maps to; the handlers registered by
``register_exception_handlers`` turn them into responses and make sure no
collaborator's internal error text reaches a response body.

    ValidationError      -> 400  (missing/blank field, unreadable body)
    AuthenticationError  -> 401  (bad credentials, no/invalid session)
    NotFoundError        -> 404  (record store: delete of unknown id)
    ConflictError        -> 409  (record store: duplicate unique field)
    anything else        -> 500  (details only in the log)
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================

class SessionsApiError(Exception):
    """Base exception for all sessions API errors"""

    code: str = "sessions_api_error"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.message = message or self.code.replace("_", " ")
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.context:
            payload["details"] = dict(self.context)
        return payload


class ValidationError(SessionsApiError):
    """A required field is missing or blank, or the body is unreadable."""

    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(SessionsApiError):
    """
    Credentials were rejected or no valid session was presented.

    Unknown usernames and wrong passwords both raise this with the same
    message, so clients cannot tell them apart.
    """

    code = "authentication_error"
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundError(SessionsApiError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(SessionsApiError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class ConfigurationError(SessionsApiError):
    """Raised at startup when the assembled configuration is unusable."""

    code = "configuration_error"


# =============================================================================
# FastAPI exception handlers
# =============================================================================

async def sessions_api_error_handler(request: Request, exc: SessionsApiError) -> Response:
    """
    Render a ``SessionsApiError`` as an HTTP response.

    Authentication failures get an empty body; everything else gets the
    standard ``{"error", "message"}`` JSON document.
    """
    logger.info(
        f"{request.method} {request.url.path} failed: {exc.code}",
        extra={"status_code": exc.status_code},
    )

    if isinstance(exc, AuthenticationError):
        return Response(status_code=exc.status_code)

    if exc.status_code >= 500:
        return _internal_error_response()

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Map FastAPI's body parsing failures onto our 400 ValidationError."""
    logger.info(f"{request.method} {request.url.path} sent an unreadable body")
    error = ValidationError("Request body must be a JSON object")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Last-resort handler for collaborator failures (store unreachable,
    signing failure, ...). Logs the full error, returns a generic 500.
    """
    logger.error(
        f"Unhandled exception: {exc}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "exception_type": type(exc).__name__,
        },
        exc_info=True,
    )
    return _internal_error_response()


def _internal_error_response() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred",
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the sessions API exception handlers on ``app``."""
    app.add_exception_handler(SessionsApiError, sessions_api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


__all__ = [
    "SessionsApiError",
    "ValidationError",
    "AuthenticationError",
    "NotFoundError",
    "ConflictError",
    "ConfigurationError",
    "register_exception_handlers",
]
