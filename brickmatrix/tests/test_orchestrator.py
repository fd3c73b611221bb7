from __future__ import annotations

import asyncio

import numpy as np
import pytest

from brickmatrix.recommendations.errors import SourceFetchFailure
from brickmatrix.recommendations.filters import coerce_filters
from brickmatrix.recommendations.models import (
    BuilderCredibility,
    LocationIntelligence,
    PriceTrends,
    UserPreferenceProfile,
)
from brickmatrix.recommendations.orchestrator import FetchOrchestrator
from brickmatrix.recommendations.sources import (
    BuilderCredibilitySource,
    LocationIntelligenceSource,
    PriceTrendsSource,
    SimulatedSource,
    UserPreferenceSource,
    build_default_sources,
)


class _BrokenSource:
    def __init__(self, name: str, exc: Exception) -> None:
        self.name = name
        self.exc = exc
        self.calls = 0

    async def fetch(self, filters):
        self.calls += 1
        raise self.exc


class _SlowSource:
    def __init__(self, name: str, delay: float) -> None:
        self.name = name
        self.delay = delay

    async def fetch(self, filters):
        await asyncio.sleep(self.delay)
        return None


def _fast_sources(seed: int = 0):
    return build_default_sources(rng=np.random.default_rng(seed), latency_scale=0)


def test_all_sources_succeed():
    orchestrator = FetchOrchestrator(_fast_sources())
    context = asyncio.run(orchestrator.gather(coerce_filters({"city": "Mumbai"})))
    assert isinstance(context.location, LocationIntelligence)
    assert isinstance(context.builder, BuilderCredibility)
    assert isinstance(context.price_trends, PriceTrends)
    assert isinstance(context.user_preferences, UserPreferenceProfile)
    assert context.failures == {}
    assert context.available == ["location", "builder", "price_trends", "user_preferences"]


def test_two_of_four_failing_keeps_the_other_two():
    rng = np.random.default_rng(0)
    fetchers = [
        LocationIntelligenceSource(rng=rng, latency_scale=0),
        _BrokenSource("builder", RuntimeError("builder API down")),
        PriceTrendsSource(rng=rng, latency_scale=0),
        _BrokenSource("user_preferences", SourceFetchFailure("user_preferences", "503")),
    ]
    context = asyncio.run(FetchOrchestrator(fetchers).gather(coerce_filters({})))
    assert context.location is not None
    assert context.price_trends is not None
    assert context.builder is None
    assert context.user_preferences is None
    assert context.failures == {"builder": "builder API down", "user_preferences": "503"}


def test_every_source_failing_still_returns_context():
    fetchers = [_BrokenSource(name, ValueError()) for name in ("location", "builder", "price_trends", "user_preferences")]
    context = asyncio.run(FetchOrchestrator(fetchers).gather(coerce_filters({})))
    assert context.available == []
    assert set(context.failures) == {"location", "builder", "price_trends", "user_preferences"}
    assert context.failures["location"] == "ValueError"


def test_slow_source_times_out_to_absent_field():
    rng = np.random.default_rng(0)
    fetchers = [
        _SlowSource("location", delay=5),
        BuilderCredibilitySource(rng=rng, latency_scale=0),
    ]
    context = asyncio.run(FetchOrchestrator(fetchers, timeout=0.05).gather(coerce_filters({})))
    assert context.location is None
    assert context.builder is not None
    assert "timed out" in context.failures["location"]


def test_fetchers_run_concurrently():
    sources = build_default_sources(rng=np.random.default_rng(0), latency_scale=0.1)
    loop_time = {}

    async def _run():
        loop = asyncio.get_running_loop()
        start = loop.time()
        await FetchOrchestrator(sources).gather(coerce_filters({}))
        loop_time["elapsed"] = loop.time() - start

    asyncio.run(_run())
    # Sequential would take 0.12 + 0.10 + 0.08 + 0.06 = 0.36s.
    assert loop_time["elapsed"] < 0.3


def test_unknown_source_name_rejected():
    with pytest.raises(ValueError):
        FetchOrchestrator([_BrokenSource("weather", RuntimeError())])


# ── Simulated sources ────────────────────────────────────────────────────


def test_simulated_failure_rate_one_always_fails():
    source = UserPreferenceSource(rng=np.random.default_rng(0), latency_scale=0, failure_rate=1.0)
    with pytest.raises(SourceFetchFailure):
        asyncio.run(source.fetch(coerce_filters({})))
    assert source.calls == 1


def test_user_preferences_echo_filters():
    source = UserPreferenceSource(rng=np.random.default_rng(0), latency_scale=0)
    filters = coerce_filters({"configurations": ["3BHK"], "amenities": ["Gym"], "priceRange": {"min": 1, "max": 2}})
    profile = asyncio.run(source.fetch(filters))
    assert profile.preferred_configurations == ["3BHK"]
    assert profile.amenities == ["Gym"]
    assert profile.budget.max == 2


def test_price_trend_deviation_type_matches_deviation():
    source = PriceTrendsSource(rng=np.random.default_rng(0), latency_scale=0)
    for _ in range(20):
        trends = asyncio.run(source.fetch(coerce_filters({})))
        if trends.deviation_pct < -3:
            assert trends.deviation_type == "undervalued"
        elif trends.deviation_pct > 3:
            assert trends.deviation_type == "overvalued"
        else:
            assert trends.deviation_type == "fair"


def test_simulated_source_base_cannot_be_instantiated():
    with pytest.raises(TypeError):
        SimulatedSource()
