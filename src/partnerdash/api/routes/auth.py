"""Authentication API endpoints.

Session issuance lives in front of this service; here the signed-in user
can only read their own profile, which also tells the dashboard which
tenants they may browse.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from src.partnerdash.api.deps import get_current_user, get_pipeline_service
from src.partnerdash.core.security import SessionUser
from src.partnerdash.pipelines.service import PipelineService
from src.partnerdash.schemas.auth import UserResponse

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.get("/user", response_model=UserResponse)
async def get_user(
    user: SessionUser = Depends(get_current_user),
    service: PipelineService = Depends(get_pipeline_service),
):
    """Return the current session's user profile (allow-listed domains only)."""
    return UserResponse(
        id=user.sub,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        profile_image_url=user.profile_image_url,
        domain=user.domain,
        tenants=[t.value for t in service.visible_tenants(user)],
    )
