"""REST API endpoints for single boxes."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from src.partnerdash.api.deps import get_current_user, get_pipeline_service
from src.partnerdash.core.security import SessionUser
from src.partnerdash.pipelines.schemas import UpdateFieldRequest, UpdateFieldResponse
from src.partnerdash.pipelines.service import PipelineService

router = APIRouter(prefix="/api/boxes", tags=["boxes"])


@router.get("/{key}")
async def get_box(
    key: str,
    user: SessionUser = Depends(get_current_user),
    service: PipelineService = Depends(get_pipeline_service),
) -> dict[str, Any]:
    """One box, looked up in the BE account first and then in NL."""
    box = await service.get_box(user, key)
    return box.to_wire()


@router.post("/{key}/fields/{field_key}", response_model=UpdateFieldResponse)
async def update_box_field(
    key: str,
    field_key: str,
    body: UpdateFieldRequest,
    user: SessionUser = Depends(get_current_user),
    service: PipelineService = Depends(get_pipeline_service),
):
    """Set one field on a box.

    The tenant is taken from the box's pipeline as recorded upstream;
    ``pipelineKey`` in the body does not influence authorization.
    """
    await service.update_box_field(
        user,
        key,
        field_key,
        body.value,
        pipeline_hint=body.pipeline_key,
    )
    return UpdateFieldResponse(success=True)
