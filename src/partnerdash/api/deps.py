"""FastAPI dependency injection for the session gate and shared services.

These dependencies are used in endpoint function signatures to inject the
authenticated user and the PipelineService built at startup.
"""

from __future__ import annotations

from typing import Any

from fastapi import Depends, HTTPException, Request, status

from src.partnerdash.core.errors import AuthenticationRequired
from src.partnerdash.core.security import (
    SessionUser,
    check_allowed_domain,
    decode_session_token,
    read_session_token,
)
from src.partnerdash.pipelines.service import PipelineService


async def get_session_claims(request: Request) -> dict[str, Any]:
    """Return the claims of the request's session token.

    Raises:
        AuthenticationRequired(401): No token, or an invalid/expired one.
    """
    token = read_session_token(request)
    if not token:
        raise AuthenticationRequired()
    return decode_session_token(token)


async def get_current_user(claims: dict[str, Any] = Depends(get_session_claims)) -> SessionUser:
    """Authenticated user with an allow-listed email domain.

    Raises:
        AccessDenied(403): Missing email claim or disallowed domain.
    """
    return check_allowed_domain(claims)


def get_pipeline_service(request: Request) -> PipelineService:
    """Retrieve PipelineService from app.state, 503 if not available."""
    service = getattr(request.app.state, "pipeline_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Pipeline service not initialized",
        )
    return service

