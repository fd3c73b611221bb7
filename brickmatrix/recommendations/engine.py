from __future__ import annotations

import logging
import time
from collections.abc import Callable

import numpy as np

from ..analytics.store import record_event
from .cache import TTLCache, make_key
from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .diversify import DiversificationSelector
from .errors import GenerationFailure
from .filters import RecommendationFilters, SortOrder, coerce_filters
from .generator import CandidateGenerator
from .models import RecommendationResponse, RequestState, ScoredRecommendation, SourceContext
from .orchestrator import FetchOrchestrator
from .scoring import MultiFactorScorer
from .sources import build_default_sources

logger = logging.getLogger(__name__)

_CACHE_PREFIX = "recs:"
_FAILED_MESSAGE = "Recommendations are temporarily unavailable. Please try again shortly."


def apply_sort(recommendations: list[ScoredRecommendation], order: SortOrder) -> list[ScoredRecommendation]:
    """Re-order an already score-sorted list. Ties keep the score order."""
    if order == SortOrder.price_asc:
        return sorted(recommendations, key=lambda r: r.candidate.price)
    if order == SortOrder.price_desc:
        return sorted(recommendations, key=lambda r: r.candidate.price, reverse=True)
    if order == SortOrder.area:
        return sorted(recommendations, key=lambda r: r.candidate.area_sqft, reverse=True)
    return list(recommendations)


class RecommendationEngine:
    """Cache-first facade over fetch, generate, diversify and score."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        cache: TTLCache | None = None,
        orchestrator: FetchOrchestrator | None = None,
        generator: CandidateGenerator | None = None,
        selector: DiversificationSelector | None = None,
        scorer: MultiFactorScorer | None = None,
        rng: np.random.Generator | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or DEFAULT_ENGINE_CONFIG
        self._rng = rng if rng is not None else np.random.default_rng(self.config.random_seed)
        self._clock = clock
        self.cache = cache or TTLCache(default_ttl=self.config.cache_ttl)
        self.orchestrator = orchestrator or FetchOrchestrator(
            build_default_sources(
                rng=self._rng,
                latency_scale=self.config.latency_scale,
                failure_rate=self.config.source_failure_rate,
            ),
            timeout=self.config.source_timeout,
        )
        self.generator = generator or CandidateGenerator(rng=self._rng, pool_size=self.config.pool_size)
        self.selector = selector or DiversificationSelector(
            builder_cap=self.config.builder_cap, segment_cap=self.config.segment_cap,
        )
        self.scorer = scorer or MultiFactorScorer(rng=self._rng)

    def _elapsed_ms(self, start: float) -> float:
        return round((self._clock() - start) * 1000, 1)

    def _compose(self, filters: RecommendationFilters, context: SourceContext) -> tuple[list[ScoredRecommendation], int]:
        pool = self.generator.generate(filters)
        selected = self.selector.select(pool, self.config.target_size, rng=self._rng)
        scored = self.scorer.score_all(selected, filters, context)
        return apply_sort(scored, filters.sort_by), len(pool)

    async def recommend(self, raw_filters: RecommendationFilters | dict | None = None) -> RecommendationResponse:
        """Answer one request. The states it passed through are returned on ``response.trace``."""
        start = self._clock()
        trace = [RequestState.idle]
        filters = coerce_filters(raw_filters)
        key = make_key(filters.cache_payload(), prefix=_CACHE_PREFIX)

        cached = self.cache.get(key)
        if cached is not None:
            logger.info("Cache hit for %s", key)
            response = cached.model_copy(update={
                "cache_hit": True,
                "processing_time_ms": self._elapsed_ms(start),
                "trace": [*trace, RequestState.cache_hit, RequestState.returned],
            })
            self._record(filters, response)
            return response

        trace.append(RequestState.fetching)
        context = await self.orchestrator.gather(filters)

        trace.append(RequestState.composing)
        try:
            recommendations, total_candidates = self._compose(filters, context)
        except GenerationFailure as exc:
            logger.error("Recommendation request failed: %s", exc, exc_info=True)
            response = RecommendationResponse(
                recommendations=[],
                total_candidates=0,
                sources_used=context.available,
                sources_failed=sorted(context.failures),
                status="failed",
                message=_FAILED_MESSAGE,
                processing_time_ms=self._elapsed_ms(start),
                trace=[*trace, RequestState.failed],
            )
            self._record(filters, response)
            return response

        response = RecommendationResponse(
            recommendations=recommendations,
            total_candidates=total_candidates,
            sources_used=context.available,
            sources_failed=sorted(context.failures),
            message=None if not context.failures else "Some data sources were unavailable; scores use baselines for them.",
            processing_time_ms=self._elapsed_ms(start),
            trace=[*trace, RequestState.returned],
        )
        self.cache.set(key, response, ttl=self.config.cache_ttl)
        self._record(filters, response)
        logger.info(
            "Returned %d recommendations from %d candidates in %sms",
            len(recommendations), total_candidates, response.processing_time_ms,
        )
        return response

    async def fetch_recommendations(
        self, raw_filters: RecommendationFilters | dict | None = None,
    ) -> list[ScoredRecommendation]:
        response = await self.recommend(raw_filters)
        return response.recommendations

    def _record(self, filters: RecommendationFilters, response: RecommendationResponse) -> None:
        record_event("search", {
            "city": filters.city,
            "configurations": list(filters.configurations),
            "price_range": filters.price_range.model_dump() if filters.price_range else None,
            "status_filter": [s.value for s in filters.status],
            "amenities": list(filters.amenities),
            "sort_by": filters.sort_by.value,
            "total_candidates": response.total_candidates,
            "results_returned": len(response.recommendations),
            "response_time_ms": response.processing_time_ms,
            "cache_hit": response.cache_hit,
            "sources_failed": list(response.sources_failed),
            "status": response.status,
        })


def build_engine(config: EngineConfig | None = None) -> RecommendationEngine:
    config = config or EngineConfig()
    logger.info(
        "Building recommendation engine (ttl=%ss, target=%d, seed=%s)",
        config.cache_ttl, config.target_size, config.random_seed,
    )
    return RecommendationEngine(config=config)
