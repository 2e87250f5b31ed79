"""Error taxonomy and the JSON error handler.

Every error the service raises on purpose derives from PortalError, which
carries the HTTP status and the message shown to the caller. Upstream and
configuration failures keep their full detail in ``detail`` for server-side
logging only; the response body never includes it.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


class PortalError(Exception):
    """Base class for errors mapped to an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: str | None = None, *, detail: Any = None) -> None:
        if message is not None:
            self.message = message
        self.detail = detail
        super().__init__(self.message)


class AuthenticationRequired(PortalError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Authentication required"


class AccessDenied(PortalError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Access denied"


class UpstreamNotFound(PortalError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Resource not found"


class UpstreamFailure(PortalError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Upstream CRM request failed"


class ConfigurationMissing(PortalError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Server is missing required configuration"


class FieldConfigurationError(PortalError):
    """A pipeline's field definitions cannot be mapped unambiguously."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Pipeline field configuration is ambiguous"


async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    """Render a PortalError as ``{"message": ...}``, logging server errors."""
    if exc.status_code >= 500:
        logger.error(
            "portal_error",
            error=type(exc).__name__,
            message=exc.message,
            detail=exc.detail,
            method=request.method,
            path=request.url.path,
        )
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PortalError, portal_error_handler)  # type: ignore[arg-type]
