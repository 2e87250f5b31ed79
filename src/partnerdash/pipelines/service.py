"""Pipeline and box operations scoped to the signed-in user's tenants.

PipelineService composes the TenantRouter (who may see which pipeline and
which API key serves it), the StreakGateway (tenant-bound upstream clients)
and field resolution. Every operation authorizes against the pipeline a
resource really belongs to; for boxes that pipeline is read from the
upstream box record, never from what the client claims.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import structlog

from src.partnerdash.core.errors import AccessDenied, PortalError, UpstreamNotFound
from src.partnerdash.core.security import SessionUser
from src.partnerdash.core.tenant import Tenant, TenantRouter
from src.partnerdash.pipelines.grouping import filter_boxes, group_boxes
from src.partnerdash.pipelines.resolution import FieldConfig, resolve_boxes
from src.partnerdash.pipelines.schemas import Box, PartnershipGroup, Pipeline

if TYPE_CHECKING:
    from src.partnerdash.streak.client import StreakGateway

logger = structlog.get_logger(__name__)

# Order in which upstream accounts are searched for a box
BOX_LOOKUP_ORDER: tuple[Tenant, ...] = (Tenant.BE, Tenant.NL)


class PipelineService:
    """Tenant-aware facade over the Streak API.

    Args:
        router: Tenant classification, credentials and access rule.
        gateway: Builds a StreakClient per tenant.
        field_config: Field keys used when resolving boxes.
    """

    def __init__(
        self,
        router: TenantRouter,
        gateway: StreakGateway,
        field_config: FieldConfig | None = None,
    ) -> None:
        self._router = router
        self._gateway = gateway
        self._field_config = field_config or FieldConfig()

    # ── Authorization ───────────────────────────────────────────────────────

    def visible_tenants(self, user: SessionUser) -> tuple[Tenant, ...]:
        return self._router.visible_tenants(user.domain)

    def _ensure_access(self, user: SessionUser, pipeline_key: str, action: str) -> None:
        if not self._router.can_access(user.domain, pipeline_key):
            logger.warning(
                "access.pipeline_denied",
                domain=user.domain,
                pipeline_key=pipeline_key,
                action=action,
            )
            raise AccessDenied(f"You do not have permission to {action}")

    # ── Pipelines ───────────────────────────────────────────────────────────

    async def _list_for(self, tenant: Tenant) -> list[Pipeline]:
        return await self._gateway.client_for(tenant).list_pipelines()

    async def list_pipelines(self, user: SessionUser) -> list[Pipeline]:
        """List pipelines of every tenant the user may see, BE first.

        Tenants are fetched in parallel. A tenant that fails is logged and
        left out; if all of them fail, the first error is raised.
        """
        tenants = self._router.visible_tenants(user.domain)
        results = await asyncio.gather(
            *(self._list_for(tenant) for tenant in tenants),
            return_exceptions=True,
        )

        merged: list[Pipeline] = []
        errors: list[PortalError] = []
        for tenant, result in zip(tenants, results):
            if isinstance(result, BaseException):
                if not isinstance(result, PortalError):
                    raise result
                logger.warning(
                    "pipelines.tenant_list_failed",
                    tenant=tenant.value,
                    error=type(result).__name__,
                    detail=result.detail,
                )
                errors.append(result)
                continue
            if tenant is Tenant.NL:
                self._router.remember_nl_pipelines(result)
            merged.extend(result)

        if errors and len(errors) == len(tenants):
            raise errors[0]
        return merged

    async def get_pipeline(self, user: SessionUser, pipeline_key: str) -> Pipeline:
        self._ensure_access(user, pipeline_key, "view this pipeline")
        tenant = self._router.classify_pipeline(pipeline_key)
        return await self._gateway.client_for(tenant).get_pipeline(pipeline_key)

    # ── Boxes ───────────────────────────────────────────────────────────────

    async def _resolved_boxes(self, user: SessionUser, pipeline_key: str) -> tuple[Pipeline, list[Box]]:
        self._ensure_access(user, pipeline_key, "view this pipeline")
        tenant = self._router.classify_pipeline(pipeline_key)
        client = self._gateway.client_for(tenant)

        # Metadata is fetched on every call; a failure fails the whole request
        boxes, pipeline = await asyncio.gather(
            client.list_boxes(pipeline_key),
            client.get_pipeline(pipeline_key),
        )
        return pipeline, resolve_boxes(pipeline, boxes, self._field_config)

    async def list_boxes(self, user: SessionUser, pipeline_key: str, search: str | None = None) -> list[Box]:
        """Field-resolved boxes of a pipeline, optionally filtered by search text."""
        _, boxes = await self._resolved_boxes(user, pipeline_key)
        return filter_boxes(boxes, search)

    async def grouped_boxes(
        self, user: SessionUser, pipeline_key: str, search: str | None = None
    ) -> list[PartnershipGroup]:
        """Resolved boxes grouped by partnership level, then stage."""
        pipeline, boxes = await self._resolved_boxes(user, pipeline_key)
        return group_boxes(
            pipeline,
            filter_boxes(boxes, search),
            self._field_config.partnership_source_key,
        )

    async def _locate_box(self, box_key: str) -> Box:
        """Fetch a box from the BE account, falling back to NL.

        Which account answered says nothing about the box's tenant; that is
        decided by classifying its pipeline key.

        Raises:
            UpstreamNotFound: Every account answered 404.
            PortalError: The first other error, when no account returned the box.
        """
        failures: list[PortalError] = []
        for tenant in BOX_LOOKUP_ORDER:
            try:
                return await self._gateway.client_for(tenant).get_box(box_key)
            except UpstreamNotFound:
                logger.info("boxes.lookup_missed", tenant=tenant.value, box_key=box_key)
            except PortalError as exc:
                logger.warning(
                    "boxes.lookup_failed",
                    tenant=tenant.value,
                    box_key=box_key,
                    error=type(exc).__name__,
                )
                failures.append(exc)
        if failures:
            raise failures[0]
        raise UpstreamNotFound("Box not found", detail={"box_key": box_key})

    async def get_box(self, user: SessionUser, box_key: str) -> Box:
        box = await self._locate_box(box_key)
        self._ensure_access(user, box.pipeline_key or "", "view this box")
        return box

    async def update_box_field(
        self,
        user: SessionUser,
        box_key: str,
        field_key: str,
        value: Any,
        pipeline_hint: str | None = None,
    ) -> None:
        """Write one field of a box using the key of the box's real tenant.

        ``pipeline_hint`` is what the client says the box's pipeline is. It
        is only compared against the upstream record for logging.
        """
        box = await self._locate_box(box_key)
        pipeline_key = box.pipeline_key or ""

        if pipeline_hint and pipeline_hint != pipeline_key:
            logger.warning(
                "boxes.pipeline_hint_mismatch",
                box_key=box_key,
                hinted=pipeline_hint,
                actual=pipeline_key,
                domain=user.domain,
            )

        self._ensure_access(user, pipeline_key, "modify this box")
        tenant = self._router.classify_pipeline(pipeline_key)
        await self._gateway.client_for(tenant).update_box_field(box_key, field_key, value)
