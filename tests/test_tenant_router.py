"""Unit tests for tenant classification, credentials and access rules."""

from __future__ import annotations

import pytest

from src.partnerdash.core.errors import ConfigurationMissing
from src.partnerdash.core.tenant import (
    BE_DOMAIN,
    NL_DOMAIN,
    NL_PIPELINE_MARKER,
    NLPipelineCache,
    Tenant,
    TenantRouter,
    email_domain,
)
from src.partnerdash.pipelines.schemas import Pipeline
from tests.streak_fakes import BE_PIPELINE_KEY, NL_PIPELINE_KEY, NL_PLAIN_PIPELINE_KEY


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def router() -> TenantRouter:
    return TenantRouter(
        NLPipelineCache(),
        credentials={Tenant.BE: "be-key", Tenant.NL: "nl-key"},
    )


# ── Marker ──────────────────────────────────────────────────────────────────


def test_nl_marker_is_base64_of_nl_domain():
    assert NL_PIPELINE_MARKER == "dGVjaG9yYW1hLm5s"


# ── classify_pipeline ───────────────────────────────────────────────────────


class TestClassifyPipeline:
    @pytest.mark.parametrize(
        "key",
        [NL_PIPELINE_KEY, NL_PIPELINE_MARKER, f"prefix{NL_PIPELINE_MARKER}", f"{NL_PIPELINE_MARKER}suffix"],
    )
    def test_marker_keys_are_nl_with_empty_cache(self, router, key):
        assert router.classify_pipeline(key) is Tenant.NL

    def test_marker_keys_are_nl_after_cache_cleared(self, router):
        router.cache.add(NL_PIPELINE_KEY)
        router.cache.clear()
        assert router.classify_pipeline(NL_PIPELINE_KEY) is Tenant.NL

    @pytest.mark.parametrize("key", [BE_PIPELINE_KEY, NL_PLAIN_PIPELINE_KEY, "", "dGVjaG9yYW1hLmJl"])
    def test_unmarked_unseen_keys_are_be(self, router, key):
        assert router.classify_pipeline(key) is Tenant.BE

    def test_cached_key_is_nl(self, router):
        router.remember_nl_pipelines([Pipeline(key=NL_PLAIN_PIPELINE_KEY, name="Community NL")])
        assert router.classify_pipeline(NL_PLAIN_PIPELINE_KEY) is Tenant.NL

    def test_declared_key_is_nl(self):
        router = TenantRouter(NLPipelineCache(), declared_nl_keys=[NL_PLAIN_PIPELINE_KEY])
        assert router.classify_pipeline(NL_PLAIN_PIPELINE_KEY) is Tenant.NL
        assert router.classify_pipeline(BE_PIPELINE_KEY) is Tenant.BE

    def test_routers_do_not_share_cache(self):
        first = TenantRouter(NLPipelineCache())
        second = TenantRouter(NLPipelineCache())
        first.cache.add(NL_PLAIN_PIPELINE_KEY)
        assert first.classify_pipeline(NL_PLAIN_PIPELINE_KEY) is Tenant.NL
        assert second.classify_pipeline(NL_PLAIN_PIPELINE_KEY) is Tenant.BE


# ── NLPipelineCache ─────────────────────────────────────────────────────────


class TestNLPipelineCache:
    def test_entries_expire_after_ttl(self):
        clock = FakeClock()
        cache = NLPipelineCache(ttl_seconds=60, clock=clock)
        cache.add("k")
        clock.now += 59
        assert "k" in cache
        clock.now += 2
        assert "k" not in cache
        assert len(cache) == 0

    def test_readding_refreshes_entry(self):
        clock = FakeClock()
        cache = NLPipelineCache(ttl_seconds=60, clock=clock)
        cache.add("k")
        clock.now += 50
        cache.add_many(["k", "k"])
        clock.now += 50
        assert "k" in cache
        assert len(cache) == 1

    def test_no_ttl_keeps_entries(self):
        clock = FakeClock()
        cache = NLPipelineCache(clock=clock)
        cache.add("k")
        clock.now += 10**9
        assert "k" in cache


# ── can_access / visible_tenants ────────────────────────────────────────────


class TestCanAccess:
    @pytest.mark.parametrize("key", [BE_PIPELINE_KEY, NL_PIPELINE_KEY, NL_PLAIN_PIPELINE_KEY, ""])
    def test_be_domain_sees_everything(self, router, key):
        assert router.can_access(BE_DOMAIN, key) is True

    @pytest.mark.parametrize("key", [BE_PIPELINE_KEY, NL_PIPELINE_KEY, NL_PLAIN_PIPELINE_KEY])
    def test_nl_domain_matches_classification(self, router, key):
        expected = router.classify_pipeline(key) is Tenant.NL
        assert router.can_access(NL_DOMAIN, key) is expected

    def test_nl_domain_gains_access_once_listed(self, router):
        assert router.can_access(NL_DOMAIN, NL_PLAIN_PIPELINE_KEY) is False
        router.remember_nl_pipelines([Pipeline(key=NL_PLAIN_PIPELINE_KEY, name="Community NL")])
        assert router.can_access(NL_DOMAIN, NL_PLAIN_PIPELINE_KEY) is True

    def test_visible_tenants(self, router):
        assert router.visible_tenants(BE_DOMAIN) == (Tenant.BE, Tenant.NL)
        assert router.visible_tenants(NL_DOMAIN) == (Tenant.NL,)
        assert router.visible_tenants("example.com") == ()


# ── select_credential ───────────────────────────────────────────────────────


class TestSelectCredential:
    def test_returns_tenant_key(self, router):
        assert router.select_credential(Tenant.BE) == "be-key"
        assert router.select_credential(Tenant.NL) == "nl-key"

    def test_missing_key_raises_configuration_missing(self):
        router = TenantRouter(NLPipelineCache(), credentials={Tenant.BE: "be-key", Tenant.NL: ""})
        with pytest.raises(ConfigurationMissing) as exc_info:
            router.select_credential(Tenant.NL)
        assert "STREAK_API_KEY_NL" in exc_info.value.detail
        assert "STREAK_API_KEY_NL" not in exc_info.value.message


@pytest.mark.parametrize(
    ("email", "expected"),
    [
        ("ann@techorama.be", "techorama.be"),
        ("Ann@TechoRama.NL", "techorama.nl"),
        ("weird@name@techorama.be", "techorama.be"),
        ("no-at-sign", ""),
        ("", ""),
    ],
)
def test_email_domain(email, expected):
    assert email_domain(email) == expected
