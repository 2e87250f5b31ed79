"""Tenant routing between the BE and NL Streak accounts.

Every pipeline belongs to exactly one of two tenants. Each tenant has its
own Streak API key, and the email domain of the signed-in user decides which
tenants they may see: BE-domain users see both, NL-domain users see only NL.

Classification never calls upstream. A key is NL when it has been observed
in an NL pipeline listing (NLPipelineCache), when it is declared NL in
configuration, or when it contains the base64 encoding of the NL domain.
"""

from __future__ import annotations

import base64
import time
from collections.abc import Callable, Iterable, Mapping
from enum import Enum
from typing import Any

import structlog

from src.partnerdash.core.errors import ConfigurationMissing

logger = structlog.get_logger(__name__)


class Tenant(str, Enum):
    BE = "BE"
    NL = "NL"


BE_DOMAIN = "techorama.be"
NL_DOMAIN = "techorama.nl"
ALLOWED_DOMAINS: tuple[str, ...] = (BE_DOMAIN, NL_DOMAIN)

# "dGVjaG9yYW1hLm5s"
NL_PIPELINE_MARKER = base64.b64encode(NL_DOMAIN.encode("ascii")).decode("ascii")

CREDENTIAL_ENV_VARS: dict[Tenant, str] = {
    Tenant.BE: "STREAK_API_KEY",
    Tenant.NL: "STREAK_API_KEY_NL",
}


# ── NL Pipeline Cache ───────────────────────────────────────────────────────


class NLPipelineCache:
    """Append-only set of pipeline keys seen in NL listings.

    Entries expire after ``ttl_seconds`` (None keeps them for the lifetime of
    the cache object). Re-adding a key refreshes its timestamp; concurrent
    writers adding the same key are a no-op.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._seen: dict[str, float] = {}

    def add(self, pipeline_key: str) -> None:
        self._seen[pipeline_key] = self._clock()

    def add_many(self, pipeline_keys: Iterable[str]) -> None:
        now = self._clock()
        for key in pipeline_keys:
            self._seen[key] = now

    def __contains__(self, pipeline_key: object) -> bool:
        seen_at = self._seen.get(pipeline_key)  # type: ignore[arg-type]
        if seen_at is None:
            return False
        if self._ttl is not None and self._clock() - seen_at > self._ttl:
            self._seen.pop(pipeline_key, None)  # type: ignore[arg-type]
            return False
        return True

    def __len__(self) -> int:
        return len(self._seen)

    def clear(self) -> None:
        self._seen.clear()


# ── Tenant Router ───────────────────────────────────────────────────────────


def email_domain(email: str) -> str:
    """Lower-cased part after the last '@', or '' when there is none."""
    _, at, domain = email.rpartition("@")
    return domain.strip().lower() if at else ""


class TenantRouter:
    """Decides which tenant a pipeline belongs to and who may access it.

    Args:
        cache: NL pipeline keys observed in listings.
        credentials: Streak API key per tenant; empty values are allowed and
            only fail the request that needs them.
        declared_nl_keys: Pipeline keys configured as NL explicitly.
    """

    def __init__(
        self,
        cache: NLPipelineCache,
        credentials: Mapping[Tenant, str] | None = None,
        declared_nl_keys: Iterable[str] = (),
    ) -> None:
        self._cache = cache
        self._credentials = dict(credentials or {})
        self._declared_nl = frozenset(declared_nl_keys)

    @property
    def cache(self) -> NLPipelineCache:
        return self._cache

    def classify_pipeline(self, pipeline_key: str) -> Tenant:
        if pipeline_key in self._cache:
            return Tenant.NL
        if pipeline_key in self._declared_nl:
            return Tenant.NL
        if NL_PIPELINE_MARKER in pipeline_key:
            return Tenant.NL
        return Tenant.BE

    def select_credential(self, tenant: Tenant) -> str:
        """Return the tenant's API key or raise ConfigurationMissing."""
        api_key = self._credentials.get(tenant, "")
        if not api_key:
            env_var = CREDENTIAL_ENV_VARS[tenant]
            raise ConfigurationMissing(detail=f"{env_var} environment variable is not set")
        return api_key

    def can_access(self, domain: str, pipeline_key: str) -> bool:
        if domain == BE_DOMAIN:
            return True
        return self.classify_pipeline(pipeline_key) is Tenant.NL

    def visible_tenants(self, domain: str) -> tuple[Tenant, ...]:
        if domain == BE_DOMAIN:
            return (Tenant.BE, Tenant.NL)
        if domain == NL_DOMAIN:
            return (Tenant.NL,)
        return ()

    def remember_nl_pipelines(self, pipelines: Iterable[Any]) -> None:
        """Record the keys of an NL pipeline listing in the cache."""
        keys = [p.key for p in pipelines]
        self._cache.add_many(keys)
        logger.debug("tenant.nl_pipelines_cached", count=len(keys), cache_size=len(self._cache))
