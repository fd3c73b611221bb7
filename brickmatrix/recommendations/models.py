from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ListingStatus(str, Enum):
    ready = "ready"
    under_construction = "under_construction"
    new_launch = "new_launch"
    resale = "resale"


class RequestState(str, Enum):
    idle = "idle"
    cache_hit = "cache_hit"
    fetching = "fetching"
    composing = "composing"
    returned = "returned"
    failed = "failed"


class RecommendationAction(str, Enum):
    strong_buy = "strong_buy"
    buy = "buy"
    consider = "consider"
    wait = "wait"


class PriceRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: float = Field(default=0.0, ge=0.0)
    max: float | None = Field(default=None, ge=0.0, description="None means open-ended")

    def contains(self, price: float | None) -> bool:
        if price is None:
            return False
        if price < self.min:
            return False
        return self.max is None or price <= self.max


# ── Candidates ───────────────────────────────────────────────────────────


class Candidate(BaseModel):
    """An unscored listing produced by the candidate generator."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    city: str
    locality: str
    price: float
    price_per_sqft: float
    area_sqft: int
    configuration: str
    builder_name: str
    builder_type: str
    project_name: str
    segment: str
    status: ListingStatus
    amenities: tuple[str, ...] = ()
    images: tuple[str, ...] = ()
    rera_id: str | None = None
    listed_at: datetime


# ── Source context ───────────────────────────────────────────────────────


class FutureProject(BaseModel):
    name: str
    category: Literal["metro", "expressway", "sez"]
    completion: str
    impact: Literal["High", "Medium", "Low"]


class LocationIntelligence(BaseModel):
    city: str | None = None
    location_score: float = Field(ge=0.0, le=100.0)
    connectivity_rating: float = Field(ge=0.0, le=100.0)
    pollution_index: float = Field(ge=0.0, le=100.0)
    safety_index: float = Field(ge=0.0, le=100.0)
    forecast_score: float = Field(ge=0.0, le=100.0)
    future_projects: list[FutureProject] = Field(default_factory=list)


class BuilderCredibility(BaseModel):
    completion_rate: float = Field(ge=0.0, le=100.0)
    on_time_delivery: float = Field(ge=0.0, le=100.0)
    avg_delay_months: float = Field(ge=0.0)
    review_score: float = Field(ge=0.0, le=5.0)
    rera_verified: bool
    crisil_rated: bool
    icra_rated: bool


class PriceTrends(BaseModel):
    portal_price_per_sqft: dict[str, float] = Field(default_factory=dict)
    fair_market_value: float
    deviation_pct: float
    deviation_type: Literal["undervalued", "fair", "overvalued"]
    market_trend: Literal["rising", "stable", "declining"]


class UserPreferenceProfile(BaseModel):
    budget: PriceRange | None = None
    preferred_configurations: list[str] = Field(default_factory=list)
    amenities: list[str] = Field(default_factory=list)
    learned_priorities: dict[str, float] = Field(default_factory=dict)


class SourceContext(BaseModel):
    """Whatever the source fetchers managed to return for one request."""

    location: LocationIntelligence | None = None
    builder: BuilderCredibility | None = None
    price_trends: PriceTrends | None = None
    user_preferences: UserPreferenceProfile | None = None
    failures: dict[str, str] = Field(default_factory=dict)

    @property
    def available(self) -> list[str]:
        return [
            name
            for name in ("location", "builder", "price_trends", "user_preferences")
            if getattr(self, name) is not None
        ]


# ── Scored output ────────────────────────────────────────────────────────


class SubScores(BaseModel):
    model_config = ConfigDict(frozen=True)

    location: float = Field(ge=0.0, le=10.0)
    builder: float = Field(ge=0.0, le=10.0)
    price: float = Field(ge=0.0, le=10.0)
    alignment: float = Field(ge=0.0, le=10.0)
    prospect: float = Field(ge=0.0, le=10.0)


class ScoredRecommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    candidate: Candidate
    composite_score: float = Field(ge=0.0, le=10.0)
    action: RecommendationAction
    confidence: int = Field(ge=0, le=100)
    reasoning: str
    sub_scores: SubScores
    badges: tuple[str, ...] = ()


class RecommendationResponse(BaseModel):
    recommendations: list[ScoredRecommendation]
    total_candidates: int
    cache_hit: bool = False
    sources_used: list[str] = Field(default_factory=list)
    sources_failed: list[str] = Field(default_factory=list)
    status: Literal["ok", "failed"] = "ok"
    message: str | None = None
    processing_time_ms: float = 0.0
    trace: list[RequestState] = Field(default_factory=list)

    @property
    def state(self) -> RequestState:
        return self.trace[-1] if self.trace else RequestState.idle
