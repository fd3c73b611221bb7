"""
Multi-factor scoring of candidate listings.

Five sub-scores on a 0-10 scale are combined with fixed weights:

    composite = 0.30 * location + 0.25 * builder + 0.20 * price
              + 0.15 * alignment + 0.10 * prospect

Each sub-score needs one upstream source. When that source is missing from
the ``SourceContext`` the sub-score takes its neutral baseline (7.0, or 6.0
for price) so one unavailable provider lowers precision without failing the
request.
"""
from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np

from .catalog import PREMIUM_BUILDERS, is_tier1
from .filters import RecommendationFilters
from .lookups import contains_any, normalize_key
from .models import (
    Candidate,
    ListingStatus,
    RecommendationAction,
    ScoredRecommendation,
    SourceContext,
    SubScores,
)

logger = logging.getLogger(__name__)

BASELINE_SCORE = 7.0
PRICE_BASELINE_SCORE = 6.0
MAX_BADGES = 4


@dataclass(frozen=True)
class Weights:
    location: float = 0.30
    builder: float = 0.25
    price: float = 0.20
    alignment: float = 0.15
    prospect: float = 0.10

    def __post_init__(self) -> None:
        total = self.location + self.builder + self.price + self.alignment + self.prospect
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"Scoring weights must sum to 1.0, got {total}")

    def combine(self, scores: SubScores) -> float:
        return (
            self.location * scores.location
            + self.builder * scores.builder
            + self.price * scores.price
            + self.alignment * scores.alignment
            + self.prospect * scores.prospect
        )


@dataclass(frozen=True)
class ActionBand:
    threshold: float
    action: RecommendationAction
    confidence: tuple[int, int]
    reasoning: str


# Highest threshold first; the last band catches everything below 7.0.
ACTION_BANDS: tuple[ActionBand, ...] = (
    ActionBand(
        9.0, RecommendationAction.strong_buy, (90, 99),
        "Exceptional property with outstanding location, builder credibility, and investment potential",
    ),
    ActionBand(
        8.0, RecommendationAction.buy, (80, 94),
        "Strong investment opportunity with good fundamentals and growth potential",
    ),
    ActionBand(
        7.0, RecommendationAction.consider, (70, 84),
        "Decent option but consider waiting for better opportunities or price corrections",
    ),
    ActionBand(
        float("-inf"), RecommendationAction.wait, (50, 69),
        "Below average metrics suggest waiting for market improvements or alternative options",
    ),
)


def round_half_up(value: float, digits: int = 1) -> float:
    """Round .5 away from zero for non-negative values (Python's round() is banker's)."""
    factor = 10 ** digits
    # Nudge absorbs float error such as 8.25 stored as 8.2499999.
    return math.floor(value * factor + 0.5 + 1e-9) / factor


def clamp(value: float, low: float = 0.0, high: float = 10.0) -> float:
    return max(low, min(high, value))


def action_band(score: float) -> ActionBand:
    for band in ACTION_BANDS:
        if score >= band.threshold:
            return band
    return ACTION_BANDS[-1]


class MultiFactorScorer:
    def __init__(self, weights: Weights | None = None, rng: np.random.Generator | None = None) -> None:
        self.weights = weights or Weights()
        self._rng = rng

    # ── sub-scores ────────────────────────────────────────────────────────

    def location_score(self, candidate: Candidate, filters: RecommendationFilters, context: SourceContext) -> float:
        if context.location is None:
            return BASELINE_SCORE
        score = BASELINE_SCORE
        if filters.city and normalize_key(candidate.city) == normalize_key(filters.city):
            score += 1.0
        if is_tier1(candidate.city):
            score += 0.5
        return clamp(score)

    def builder_score(self, candidate: Candidate, context: SourceContext) -> float:
        if context.builder is None:
            return BASELINE_SCORE
        score = BASELINE_SCORE
        if contains_any(candidate.builder_name, PREMIUM_BUILDERS):
            score += 1.5
        return clamp(score)

    def price_score(self, candidate: Candidate, filters: RecommendationFilters, context: SourceContext) -> float:
        if context.price_trends is None or filters.price_range is None:
            return PRICE_BASELINE_SCORE
        return 9.0 if filters.price_range.contains(candidate.price) else 5.0

    def alignment_score(self, candidate: Candidate, filters: RecommendationFilters, context: SourceContext) -> float:
        if context.user_preferences is None:
            return BASELINE_SCORE
        score = BASELINE_SCORE
        if candidate.configuration in filters.configurations:
            score += 1.0
        return clamp(score)

    def prospect_score(self, candidate: Candidate, context: SourceContext) -> float:
        if context.location is None:
            return BASELINE_SCORE
        score = BASELINE_SCORE
        if is_tier1(candidate.city):
            score += 1.0
        if candidate.status == ListingStatus.new_launch:
            score += 0.5
        return clamp(score)

    def sub_scores(self, candidate: Candidate, filters: RecommendationFilters, context: SourceContext) -> SubScores:
        return SubScores(
            location=self.location_score(candidate, filters, context),
            builder=self.builder_score(candidate, context),
            price=self.price_score(candidate, filters, context),
            alignment=self.alignment_score(candidate, filters, context),
            prospect=self.prospect_score(candidate, context),
        )

    # ── composite ─────────────────────────────────────────────────────────

    def composite(self, scores: SubScores) -> float:
        return clamp(round_half_up(self.weights.combine(scores)))

    def confidence(self, band: ActionBand) -> int:
        low, high = band.confidence
        if self._rng is None:
            return (low + high) // 2
        return int(self._rng.integers(low, high + 1))

    def badges(self, candidate: Candidate, score: float, context: SourceContext) -> tuple[str, ...]:
        badges: list[str] = []
        if score >= 9.0:
            badges.append("Top Choice")
        if score >= 8.5:
            badges.append("Premium Selection")
        if context.builder is not None and context.builder.rera_verified and candidate.rera_id:
            badges.append("RERA Verified")
        if context.price_trends is not None and context.price_trends.deviation_type == "undervalued":
            badges.append("Great Value")
        if context.location is not None and context.location.future_projects and is_tier1(candidate.city):
            badges.append("Future Growth Hub")
        if candidate.status == ListingStatus.new_launch:
            badges.append("New Launch")
        return tuple(badges[:MAX_BADGES])

    def score(self, candidate: Candidate, filters: RecommendationFilters, context: SourceContext) -> ScoredRecommendation:
        scores = self.sub_scores(candidate, filters, context)
        composite = self.composite(scores)
        band = action_band(composite)
        return ScoredRecommendation(
            candidate=candidate,
            composite_score=composite,
            action=band.action,
            confidence=self.confidence(band),
            reasoning=band.reasoning,
            sub_scores=scores,
            badges=self.badges(candidate, composite, context),
        )

    def score_all(
        self,
        candidates: Iterable[Candidate],
        filters: RecommendationFilters,
        context: SourceContext,
    ) -> list[ScoredRecommendation]:
        scored = [self.score(c, filters, context) for c in candidates]
        # sorted() is stable, so equal scores keep pool order.
        scored = sorted(scored, key=lambda r: r.composite_score, reverse=True)
        missing = [name for name in ("location", "builder", "price_trends", "user_preferences")
                   if name not in context.available]
        if missing:
            logger.info("Scored %d candidates using baselines for: %s", len(scored), ", ".join(missing))
        return scored
