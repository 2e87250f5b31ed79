"""API router -- aggregates all endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from src.partnerdash.api.routes import auth, boxes, health, pipelines

router = APIRouter()

router.include_router(health.router)
router.include_router(auth.router)
router.include_router(pipelines.router)
router.include_router(boxes.router)
