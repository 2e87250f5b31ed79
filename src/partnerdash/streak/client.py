"""Async HTTP client wrapper for the Streak CRM REST API.

Provides StreakClient, bound to one tenant's API key, and StreakGateway,
which hands out a client per tenant using the credentials held by the
TenantRouter. Calls are made once: there is no retry or backoff, and an
upstream failure surfaces to the caller immediately.

Streak authenticates with HTTP Basic auth, the API key as username and an
empty password.
"""

from __future__ import annotations

from typing import Any, TypeVar
from urllib.parse import quote

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from src.partnerdash.core.errors import UpstreamFailure, UpstreamNotFound
from src.partnerdash.core.monitoring import track_upstream_call
from src.partnerdash.core.tenant import Tenant, TenantRouter
from src.partnerdash.pipelines.schemas import Box, Pipeline

logger = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://www.streak.com/api/v1"

ModelT = TypeVar("ModelT", bound=BaseModel)


def _segment(value: str) -> str:
    return quote(value, safe="")


class StreakClient:
    """Async client for one tenant's Streak account.

    Args:
        api_key: Streak API key for the tenant.
        tenant: Tenant the key belongs to (used for logs and metrics).
        base_url: Streak API root.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        api_key: str,
        tenant: Tenant,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._tenant = tenant
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @property
    def tenant(self) -> Tenant:
        return self._tenant

    def _client(self) -> httpx.AsyncClient:
        """Create a new httpx client with Basic auth for this tenant."""
        return httpx.AsyncClient(
            auth=(self._api_key, ""),
            headers={"Content-Type": "application/json"},
            timeout=self._timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        json: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        async with track_upstream_call(operation, self._tenant.value):
            try:
                async with self._client() as client:
                    response = await client.request(method, url, json=json)
            except httpx.HTTPError as exc:
                logger.error(
                    "streak.transport_error",
                    operation=operation,
                    tenant=self._tenant.value,
                    path=path,
                    error=str(exc),
                )
                raise UpstreamFailure(detail=f"{operation}: {exc!r}") from exc

            if response.status_code == 404:
                logger.info(
                    "streak.not_found",
                    operation=operation,
                    tenant=self._tenant.value,
                    path=path,
                )
                raise UpstreamNotFound(detail=f"{operation}: {path}")

            if response.is_error:
                logger.error(
                    "streak.request_failed",
                    operation=operation,
                    tenant=self._tenant.value,
                    path=path,
                    status_code=response.status_code,
                    body=response.text,
                )
                raise UpstreamFailure(
                    detail=f"Streak API returned {response.status_code}: {response.text}"
                )

            try:
                return response.json()
            except ValueError as exc:
                raise UpstreamFailure(detail=f"{operation}: invalid JSON body") from exc

    def _parse(self, model: type[ModelT], data: Any, operation: str) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            logger.error(
                "streak.invalid_payload",
                operation=operation,
                tenant=self._tenant.value,
                errors=exc.errors(include_url=False),
            )
            raise UpstreamFailure(detail=f"{operation}: unexpected payload: {exc}") from exc

    def _parse_list(self, model: type[ModelT], data: Any, operation: str) -> list[ModelT]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise UpstreamFailure(detail=f"{operation}: expected a list, got {type(data).__name__}")
        return [self._parse(model, item, operation) for item in data]

    async def list_pipelines(self) -> list[Pipeline]:
        """GET /pipelines -- every pipeline visible to this key."""
        data = await self._request("GET", "/pipelines", "list_pipelines")
        return self._parse_list(Pipeline, data, "list_pipelines")

    async def get_pipeline(self, pipeline_key: str) -> Pipeline:
        """GET /pipelines/{key} -- pipeline with stages and field definitions."""
        data = await self._request("GET", f"/pipelines/{_segment(pipeline_key)}", "get_pipeline")
        return self._parse(Pipeline, data, "get_pipeline")

    async def list_boxes(self, pipeline_key: str) -> list[Box]:
        """GET /pipelines/{key}/boxes."""
        data = await self._request(
            "GET", f"/pipelines/{_segment(pipeline_key)}/boxes", "list_boxes"
        )
        return self._parse_list(Box, data, "list_boxes")

    async def get_box(self, box_key: str) -> Box:
        """GET /boxes/{key}."""
        data = await self._request("GET", f"/boxes/{_segment(box_key)}", "get_box")
        return self._parse(Box, data, "get_box")

    async def update_box_field(self, box_key: str, field_key: str, value: Any) -> Any:
        """POST /boxes/{key}/fields/{fieldKey} with ``{"value": value}``."""
        result = await self._request(
            "POST",
            f"/boxes/{_segment(box_key)}/fields/{_segment(field_key)}",
            "update_box_field",
            json={"value": value},
        )
        logger.info(
            "streak.box_field_updated",
            tenant=self._tenant.value,
            box_key=box_key,
            field_key=field_key,
        )
        return result


class StreakGateway:
    """Builds tenant-bound StreakClients from the router's credentials.

    ``client_for`` raises ConfigurationMissing when the tenant has no API
    key, so a missing key fails only the requests that need it.
    """

    def __init__(
        self,
        router: TenantRouter,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._router = router
        self._base_url = base_url
        self._timeout = timeout
        self._transport = transport

    def client_for(self, tenant: Tenant) -> StreakClient:
        return StreakClient(
            api_key=self._router.select_credential(tenant),
            tenant=tenant,
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )
