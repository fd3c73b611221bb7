"""
Upstream sources consulted for every recommendation request.

Each source is a ``SourceFetcher``: a name plus one coroutine. The simulated
implementations below stand in for third-party listing and analytics APIs;
a real HTTP or database client can replace any of them as long as it keeps
the same ``name`` and return model.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Protocol

import numpy as np
from pydantic import BaseModel

from .catalog import is_tier1
from .errors import SourceFetchFailure
from .filters import RecommendationFilters
from .models import (
    BuilderCredibility,
    FutureProject,
    LocationIntelligence,
    PriceTrends,
    UserPreferenceProfile,
)

logger = logging.getLogger(__name__)


class SourceFetcher(Protocol):
    name: str

    async def fetch(self, filters: RecommendationFilters) -> BaseModel: ...


def _uniform(rng: np.random.Generator, low: float, high: float) -> float:
    return round(float(rng.uniform(low, high)), 1)


def _months_ahead(months: int) -> str:
    today = date.today()
    total = today.month - 1 + months
    return f"{today.year + total // 12}-{total % 12 + 1:02d}"


class SimulatedSource(ABC):
    """Shared behaviour for the mock providers: fixed latency, optional failures."""

    name = "simulated"
    base_latency = 0.0

    def __init__(
        self,
        rng: np.random.Generator | None = None,
        latency_scale: float = 1.0,
        failure_rate: float = 0.0,
    ) -> None:
        self._rng = rng if rng is not None else np.random.default_rng()
        self.latency_scale = latency_scale
        self.failure_rate = failure_rate
        self.calls = 0

    async def fetch(self, filters: RecommendationFilters) -> BaseModel:
        self.calls += 1
        logger.debug("Fetching %s data", self.name)
        await asyncio.sleep(self.base_latency * self.latency_scale)
        if self.failure_rate > 0 and self._rng.random() < self.failure_rate:
            raise SourceFetchFailure(self.name, "simulated upstream error")
        return self._build(filters)

    @abstractmethod
    def _build(self, filters: RecommendationFilters) -> BaseModel:
        """Produce this source's payload for *filters*."""


class LocationIntelligenceSource(SimulatedSource):
    name = "location"
    base_latency = 1.2

    def _build(self, filters: RecommendationFilters) -> LocationIntelligence:
        rng = self._rng
        projects: list[FutureProject] = []
        if filters.city is None or is_tier1(filters.city):
            projects.append(FutureProject(
                name="Metro Line Extension", category="metro",
                completion=_months_ahead(int(rng.integers(6, 30))), impact="High",
            ))
        if rng.random() > 0.4:
            projects.append(FutureProject(
                name="Outer Ring Road Extension", category="expressway",
                completion=_months_ahead(int(rng.integers(12, 42))), impact="Medium",
            ))
        if rng.random() > 0.6:
            projects.append(FutureProject(
                name="IT SEZ Phase 2", category="sez",
                completion=_months_ahead(int(rng.integers(12, 36))), impact="High",
            ))
        return LocationIntelligence(
            city=filters.city,
            location_score=_uniform(rng, 70, 100),
            connectivity_rating=_uniform(rng, 60, 100),
            pollution_index=_uniform(rng, 25, 75),
            safety_index=_uniform(rng, 60, 100),
            forecast_score=_uniform(rng, 75, 100),
            future_projects=projects,
        )


class BuilderCredibilitySource(SimulatedSource):
    name = "builder"
    base_latency = 1.0

    def _build(self, filters: RecommendationFilters) -> BuilderCredibility:
        rng = self._rng
        return BuilderCredibility(
            completion_rate=_uniform(rng, 80, 100),
            on_time_delivery=_uniform(rng, 75, 100),
            avg_delay_months=_uniform(rng, 2, 10),
            review_score=_uniform(rng, 3.5, 5.0),
            rera_verified=bool(rng.random() > 0.1),
            crisil_rated=bool(rng.random() > 0.3),
            icra_rated=bool(rng.random() > 0.4),
        )


class PriceTrendsSource(SimulatedSource):
    name = "price_trends"
    base_latency = 0.8

    def _build(self, filters: RecommendationFilters) -> PriceTrends:
        rng = self._rng
        base = float(rng.integers(15_000, 25_000))
        portals = {
            "magicbricks": base,
            "99acres": round(base * rng.uniform(0.95, 1.05)),
            "housing": round(base * rng.uniform(0.98, 1.02)),
            "nobroker": round(base * rng.uniform(0.92, 1.08)),
        }
        deviation = _uniform(rng, -10, 10)
        if deviation < -3:
            deviation_type = "undervalued"
        elif deviation > 3:
            deviation_type = "overvalued"
        else:
            deviation_type = "fair"
        trend = str(rng.choice(["rising", "stable", "declining"], p=[0.55, 0.35, 0.10]))
        return PriceTrends(
            portal_price_per_sqft=portals,
            fair_market_value=round(sum(portals.values()) / len(portals)),
            deviation_pct=deviation,
            deviation_type=deviation_type,
            market_trend=trend,
        )


class UserPreferenceSource(SimulatedSource):
    name = "user_preferences"
    base_latency = 0.6

    def _build(self, filters: RecommendationFilters) -> UserPreferenceProfile:
        rng = self._rng
        return UserPreferenceProfile(
            budget=filters.price_range,
            preferred_configurations=list(filters.configurations),
            amenities=list(filters.amenities),
            learned_priorities={
                "location": round(float(rng.uniform(0.3, 0.7)), 2),
                "price": round(float(rng.uniform(0.2, 0.5)), 2),
                "amenity": round(float(rng.uniform(0.1, 0.3)), 2),
                "builder": round(float(rng.uniform(0.2, 0.5)), 2),
            },
        )


def build_default_sources(
    rng: np.random.Generator | None = None,
    latency_scale: float = 1.0,
    failure_rate: float = 0.0,
) -> list[SimulatedSource]:
    kwargs = {"rng": rng, "latency_scale": latency_scale, "failure_rate": failure_rate}
    return [
        LocationIntelligenceSource(**kwargs),
        BuilderCredibilitySource(**kwargs),
        PriceTrendsSource(**kwargs),
        UserPreferenceSource(**kwargs),
    ]
