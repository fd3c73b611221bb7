from __future__ import annotations

import asyncio
from unittest.mock import patch

import numpy as np

from brickmatrix.analytics.store import clear_events, get_events
from brickmatrix.recommendations.cache import TTLCache
from brickmatrix.recommendations.config import EngineConfig
from brickmatrix.recommendations.engine import RecommendationEngine, RequestState
from brickmatrix.recommendations.errors import GenerationFailure
from brickmatrix.recommendations.orchestrator import FetchOrchestrator
from brickmatrix.recommendations.sources import build_default_sources

MUMBAI_FILTERS = {
    "city": "Mumbai",
    "priceRange": {"min": 10_000_000, "max": 50_000_000},
    "configurations": ["2BHK", "3BHK"],
}


def _config(**overrides) -> EngineConfig:
    fields = dict(cache_ttl=900, latency_scale=0, source_failure_rate=0, random_seed=1)
    fields.update(overrides)
    return EngineConfig(**fields)


def _engine(clock=None, sources=None, **config) -> RecommendationEngine:
    cfg = _config(**config)
    rng = np.random.default_rng(cfg.random_seed)
    sources = sources or build_default_sources(rng=rng, latency_scale=0)
    return RecommendationEngine(
        config=cfg,
        cache=TTLCache(clock=clock) if clock else None,
        orchestrator=FetchOrchestrator(sources),
        rng=rng,
    )


def _fetch_calls(engine: RecommendationEngine) -> int:
    return sum(f.calls for f in engine.orchestrator.fetchers)


def test_fresh_request_returns_scored_recommendations():
    engine = _engine()
    response = asyncio.run(engine.recommend(MUMBAI_FILTERS))
    assert response.status == "ok"
    assert response.cache_hit is False
    assert 0 < len(response.recommendations) <= 30
    assert response.total_candidates == engine.config.pool_size
    assert response.sources_used == ["location", "builder", "price_trends", "user_preferences"]
    assert response.sources_failed == []
    assert response.trace == [
        RequestState.idle, RequestState.fetching, RequestState.composing, RequestState.returned,
    ]


def test_results_are_sorted_by_score_by_default():
    engine = _engine()
    recs = asyncio.run(engine.fetch_recommendations(MUMBAI_FILTERS))
    scores = [r.composite_score for r in recs]
    assert scores == sorted(scores, reverse=True)


def test_results_honour_hard_filters():
    engine = _engine()
    recs = asyncio.run(engine.fetch_recommendations(MUMBAI_FILTERS))
    for r in recs:
        assert r.candidate.city == "Mumbai"
        assert 10_000_000 <= r.candidate.price <= 50_000_000
        assert r.candidate.configuration in ("2BHK", "3BHK")
        assert r.sub_scores.price == 9.0


def test_identical_request_within_ttl_is_a_cache_hit(clock):
    engine = _engine(clock=clock)
    first = asyncio.run(engine.recommend(MUMBAI_FILTERS))
    calls = _fetch_calls(engine)
    clock.advance(899)
    second = asyncio.run(engine.recommend(MUMBAI_FILTERS))
    assert second.cache_hit is True
    assert _fetch_calls(engine) == calls
    assert second.recommendations == first.recommendations
    assert second.trace == [RequestState.idle, RequestState.cache_hit, RequestState.returned]
    assert first.state == RequestState.returned


def test_request_after_ttl_refetches(clock):
    engine = _engine(clock=clock)
    asyncio.run(engine.recommend(MUMBAI_FILTERS))
    calls = _fetch_calls(engine)
    clock.advance(900)
    response = asyncio.run(engine.recommend(MUMBAI_FILTERS))
    assert response.cache_hit is False
    assert _fetch_calls(engine) == calls + 4


def test_equivalent_spellings_share_a_cache_entry():
    engine = _engine()
    asyncio.run(engine.recommend({"city": "bengaluru", "configurations": ["3bhk"]}))
    response = asyncio.run(engine.recommend({"configurations": ["3BHK"], "city": "Bangalore"}))
    assert response.cache_hit is True


def test_sort_by_price_ascending():
    engine = _engine()
    recs = asyncio.run(engine.fetch_recommendations({**MUMBAI_FILTERS, "sortBy": "price_asc"}))
    prices = [r.candidate.price for r in recs]
    assert prices == sorted(prices)


def test_sort_by_area():
    engine = _engine()
    recs = asyncio.run(engine.fetch_recommendations({"sortBy": "area"}))
    areas = [r.candidate.area_sqft for r in recs]
    assert areas == sorted(areas, reverse=True)


def test_partial_source_failure_degrades_but_succeeds():
    engine = _engine(source_failure_rate=0)
    for fetcher in engine.orchestrator.fetchers:
        if fetcher.name in ("builder", "price_trends"):
            fetcher.failure_rate = 1.0
    response = asyncio.run(engine.recommend(MUMBAI_FILTERS))
    assert response.status == "ok"
    assert response.sources_failed == ["builder", "price_trends"]
    assert response.message
    for r in response.recommendations:
        assert r.sub_scores.builder == 7.0
        assert r.sub_scores.price == 6.0


def test_generation_failure_returns_failed_response_and_is_not_cached():
    engine = _engine()
    with patch.object(engine.generator, "generate", side_effect=GenerationFailure("no pool")):
        response = asyncio.run(engine.recommend(MUMBAI_FILTERS))
    assert response.status == "failed"
    assert response.recommendations == []
    assert response.message
    assert response.state == RequestState.failed
    assert RequestState.returned not in response.trace
    assert len(engine.cache) == 0

    # The next identical request is computed afresh.
    retry = asyncio.run(engine.recommend(MUMBAI_FILTERS))
    assert retry.status == "ok"
    assert retry.cache_hit is False


def test_malformed_filters_never_raise():
    engine = _engine()
    response = asyncio.run(engine.recommend({
        "city": 12, "priceRange": "lots", "configurations": {"x": 1}, "status": 5, "sortBy": [],
    }))
    assert response.status == "ok"
    assert response.recommendations


def test_each_request_is_recorded_for_analytics():
    clear_events()
    engine = _engine()
    asyncio.run(engine.recommend(MUMBAI_FILTERS))
    asyncio.run(engine.recommend(MUMBAI_FILTERS))
    events = get_events("search")
    assert len(events) == 2
    assert events[0]["city"] == "Mumbai"
    assert [e["cache_hit"] for e in events] == [False, True]


def test_diversity_caps_hold_end_to_end():
    engine = _engine(pool_size=120)
    recs = asyncio.run(engine.fetch_recommendations({}))
    builders: dict[str, int] = {}
    segments: dict[str, int] = {}
    for r in recs:
        builders[r.candidate.builder_name] = builders.get(r.candidate.builder_name, 0) + 1
        segments[r.candidate.segment] = segments.get(r.candidate.segment, 0) + 1
    assert max(builders.values()) <= 2
    assert max(segments.values()) <= 8


def test_infinite_price_bound_falls_back_to_no_constraint():
    engine = _engine()
    for raw_max in ("inf", 1e400, float("inf")):
        response = asyncio.run(engine.recommend({"priceRange": {"min": 0, "max": raw_max}}))
        assert response.status == "ok"
        assert response.recommendations


def test_concurrent_requests_keep_their_own_trace():
    engine = _engine()
    asyncio.run(engine.recommend(MUMBAI_FILTERS))

    async def run_both():
        return await asyncio.gather(engine.recommend(MUMBAI_FILTERS), engine.recommend({"city": "Pune"}))

    hit, miss = asyncio.run(run_both())
    assert hit.trace == [RequestState.idle, RequestState.cache_hit, RequestState.returned]
    assert miss.trace == [
        RequestState.idle, RequestState.fetching, RequestState.composing, RequestState.returned,
    ]
