"""REST API endpoints for pipelines and their boxes.

Every endpoint requires a session with an allow-listed email domain, and
pipeline-level endpoints are further limited to the user's tenants.
Upstream payloads are returned in Streak's own camelCase shape.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from src.partnerdash.api.deps import get_current_user, get_pipeline_service
from src.partnerdash.core.security import SessionUser
from src.partnerdash.pipelines.schemas import PartnershipGroup
from src.partnerdash.pipelines.service import PipelineService

router = APIRouter(prefix="/api/pipelines", tags=["pipelines"])


@router.get("")
async def list_pipelines(
    user: SessionUser = Depends(get_current_user),
    service: PipelineService = Depends(get_pipeline_service),
) -> list[dict[str, Any]]:
    """All pipelines of the user's tenants (BE users see BE and NL)."""
    pipelines = await service.list_pipelines(user)
    return [p.to_wire() for p in pipelines]


@router.get("/{key}")
async def get_pipeline(
    key: str,
    user: SessionUser = Depends(get_current_user),
    service: PipelineService = Depends(get_pipeline_service),
) -> dict[str, Any]:
    """One pipeline with its stage map and field definitions."""
    pipeline = await service.get_pipeline(user, key)
    return pipeline.to_wire()


@router.get("/{key}/boxes")
async def list_boxes(
    key: str,
    search: str | None = Query(default=None, description="Filter on box name or notes"),
    user: SessionUser = Depends(get_current_user),
    service: PipelineService = Depends(get_pipeline_service),
) -> list[dict[str, Any]]:
    """Field-resolved boxes of a pipeline."""
    boxes = await service.list_boxes(user, key, search)
    return [b.to_wire() for b in boxes]


@router.get("/{key}/boxes/grouped", response_model=list[PartnershipGroup])
async def grouped_boxes(
    key: str,
    search: str | None = Query(default=None, description="Filter on box name or notes"),
    user: SessionUser = Depends(get_current_user),
    service: PipelineService = Depends(get_pipeline_service),
):
    """Field-resolved boxes grouped by partnership level, then stage."""
    return await service.grouped_boxes(user, key, search)
