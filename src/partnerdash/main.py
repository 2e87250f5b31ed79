"""FastAPI application factory.

Creates the app with logging middleware, metrics middleware, CORS, the
PortalError handler, the tenant-aware PipelineService on app.state, and
the API routers.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import Response

from src.partnerdash.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.partnerdash.api.routes.router import router as api_router
from src.partnerdash.config import Settings, get_settings
from src.partnerdash.core.errors import register_error_handlers
from src.partnerdash.core.monitoring import MetricsMiddleware, get_metrics_response
from src.partnerdash.core.tenant import NLPipelineCache, Tenant, TenantRouter
from src.partnerdash.pipelines.resolution import FieldConfig
from src.partnerdash.pipelines.service import PipelineService
from src.partnerdash.streak.client import StreakGateway


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: configure logging on startup."""
    configure_structlog()
    log = structlog.get_logger(__name__)
    settings = get_settings()
    log.info(
        "app.started",
        environment=settings.ENVIRONMENT.value,
        be_credential=bool(settings.STREAK_API_KEY),
        nl_credential=bool(settings.STREAK_API_KEY_NL),
    )
    yield
    log.info("app.stopped")


def build_pipeline_service(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> PipelineService:
    """Wire the NL cache, tenant router, Streak gateway and field config."""
    cache = NLPipelineCache(ttl_seconds=settings.NL_CACHE_TTL_SECONDS or None)
    router = TenantRouter(
        cache,
        credentials={
            Tenant.BE: settings.STREAK_API_KEY,
            Tenant.NL: settings.STREAK_API_KEY_NL,
        },
        declared_nl_keys=settings.declared_nl_pipeline_keys(),
    )
    gateway = StreakGateway(
        router,
        base_url=settings.STREAK_API_BASE,
        timeout=settings.UPSTREAM_TIMEOUT,
        transport=transport,
    )
    return PipelineService(router, gateway, FieldConfig.from_settings(settings))


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Partnership Dashboard API",
        version="0.1.0",
        description="Tenant-scoped proxy over the BE and NL Streak CRM accounts",
        lifespan=lifespan,
    )

    app.state.pipeline_service = build_pipeline_service(settings)

    # Middleware is added in reverse order (last added = outermost)

    # CORS middleware
    if settings.CORS_ALLOWED_ORIGINS == "*":
        origins = ["*"]
    else:
        origins = [o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Logging middleware (logs every request with timing)
    app.add_middleware(LoggingMiddleware)

    # Metrics middleware (outermost -- records Prometheus metrics for all requests)
    app.add_middleware(MetricsMiddleware)

    register_error_handlers(app)
    app.include_router(api_router)

    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()
