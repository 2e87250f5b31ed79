"""Health check endpoints.

``/health`` is a liveness check with no upstream calls. ``/health/ready``
reports which tenant credentials are configured; a missing key only
degrades the requests that need it, so readiness stays 200 as long as at
least one tenant can be served.
"""

from __future__ import annotations

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from src.partnerdash.config import get_settings
from src.partnerdash.core.tenant import CREDENTIAL_ENV_VARS

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic liveness check."""
    settings = get_settings()
    return {"status": "ok", "environment": settings.ENVIRONMENT.value}


@router.get("/health/ready")
async def readiness_check():
    """Report which tenants have a Streak API key configured."""
    settings = get_settings()
    checks = {
        tenant.value: "ok" if getattr(settings, env_var) else "missing_credential"
        for tenant, env_var in CREDENTIAL_ENV_VARS.items()
    }
    ready = any(v == "ok" for v in checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "ready" if ready else "degraded", "checks": checks},
    )
