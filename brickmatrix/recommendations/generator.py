from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timedelta, timezone

import numpy as np

from .catalog import (
    BASE_AMENITIES,
    BUILDERS_BY_TYPE,
    CITY_LOCALITIES,
    CONFIGURATION_AREA,
    DEFAULT_CONFIGURATIONS,
    IMAGE_IDS,
    IMAGE_URL,
    PRICE_PER_SQFT,
    PROJECT_SUFFIXES,
    SEGMENT_AMENITIES,
    SEGMENT_BASE_PRICES,
    SEGMENTS,
    TIER1_CITIES,
    TITLE_ADJECTIVES,
)
from .errors import GenerationFailure
from .filters import RecommendationFilters
from .models import Candidate, ListingStatus, PriceRange

logger = logging.getLogger(__name__)

# Probability weights. These encode a tunable bias, not a contract.
DEFAULT_BUILDER_TYPE_WEIGHTS: dict[str, float] = {
    "National": 0.30,
    "Regional": 0.35,
    "Local": 0.25,
    "Boutique": 0.10,
}
DEFAULT_SEGMENT_WEIGHTS: dict[str, float] = {
    "Affordable": 0.40,
    "Mid-Range": 0.35,
    "Premium": 0.20,
    "Ultra-Premium": 0.05,
}
DEFAULT_STATUS_WEIGHTS: dict[str, float] = {
    "ready": 0.40,
    "under_construction": 0.30,
    "new_launch": 0.15,
    "resale": 0.15,
}

_REQUESTED_AMENITY_PROBABILITY = 0.6
_SEGMENT_AMENITY_PROBABILITY = 0.7


def weighted_choice(rng: np.random.Generator, weights: Mapping[str, float], allowed: Sequence[str] | None = None) -> str:
    """Pick a key from *weights*, optionally restricted to *allowed* keys.

    Allowed keys missing from *weights* get the mean weight so they can
    still be drawn.
    """
    options = list(allowed) if allowed else list(weights)
    if not options:
        raise ValueError("weighted_choice needs at least one option")
    fallback = sum(weights.values()) / len(weights) if weights else 1.0
    raw = np.array([max(weights.get(o, fallback), 0.0) for o in options], dtype=float)
    if raw.sum() <= 0:
        raw = np.ones(len(options))
    return str(rng.choice(options, p=raw / raw.sum()))


def segment_for_price(price: float, city: str) -> str:
    """Highest segment whose midpoint to the previous base price is below *price*."""
    bases = SEGMENT_BASE_PRICES[city]
    segment = SEGMENTS[0]
    for lower, upper in zip(SEGMENTS, SEGMENTS[1:]):
        threshold = (bases.get(lower, 0) + bases.get(upper, 0)) / 2
        if price >= threshold:
            segment = upper
    return segment


class CandidateGenerator:
    """Produces an unscored pool of listings that honours the hard filters."""

    def __init__(
        self,
        rng: np.random.Generator | None = None,
        pool_size: int = 48,
        builder_type_weights: Mapping[str, float] | None = None,
        segment_weights: Mapping[str, float] | None = None,
        status_weights: Mapping[str, float] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._rng = rng if rng is not None else np.random.default_rng()
        self.pool_size = pool_size
        self.builder_type_weights = dict(builder_type_weights or DEFAULT_BUILDER_TYPE_WEIGHTS)
        self.segment_weights = dict(segment_weights or DEFAULT_SEGMENT_WEIGHTS)
        self.status_weights = dict(status_weights or DEFAULT_STATUS_WEIGHTS)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def generate(self, filters: RecommendationFilters) -> list[Candidate]:
        if self.pool_size <= 0:
            raise GenerationFailure("candidate pool size must be positive")

        batch = self._clock().strftime("%Y%m%d%H%M%S")
        pool: list[Candidate] = []
        for i in range(self.pool_size):
            try:
                pool.append(self._make_candidate(filters, f"bm_{batch}_{i:03d}"))
            except (ValueError, KeyError, TypeError) as exc:
                logger.warning("Skipping candidate %d: %s", i, exc, exc_info=True)

        if not pool:
            raise GenerationFailure("no candidates could be generated for the given filters")
        logger.info("Generated %d candidates for city=%s", len(pool), filters.city or "any")
        return pool

    # ── per-candidate generation ──────────────────────────────────────────

    def _make_candidate(self, filters: RecommendationFilters, candidate_id: str) -> Candidate:
        rng = self._rng

        city = filters.city or str(rng.choice(TIER1_CITIES))
        localities = CITY_LOCALITIES[city] or CITY_LOCALITIES.default
        locality = str(rng.choice(localities))

        configuration = str(rng.choice(filters.configurations or DEFAULT_CONFIGURATIONS))
        area_low, area_high = CONFIGURATION_AREA[configuration]
        area = int(rng.integers(area_low, area_high + 1))

        if filters.price_range is not None:
            price = self._price_in_range(filters.price_range, city)
            segment = segment_for_price(price, city)
        else:
            segment = weighted_choice(rng, self.segment_weights)
            base = SEGMENT_BASE_PRICES[city].get(segment, SEGMENT_BASE_PRICES.default[segment])
            price = float(int(base * rng.uniform(0.8, 1.2)) // 100_000 * 100_000)

        sqft_rates = PRICE_PER_SQFT[city]
        sqft_rate = sqft_rates.get(segment, PRICE_PER_SQFT.default[segment])
        price_per_sqft = float(int(sqft_rate * rng.uniform(0.9, 1.1)))

        builder_type = weighted_choice(rng, self.builder_type_weights)
        builders = BUILDERS_BY_TYPE[builder_type] or BUILDERS_BY_TYPE.default
        builder = str(rng.choice(builders))

        allowed_statuses = [s.value for s in filters.status] or None
        status = ListingStatus(weighted_choice(rng, self.status_weights, allowed_statuses))

        adjectives = TITLE_ADJECTIVES[segment]
        title = f"{rng.choice(adjectives)} {configuration} in {locality}, {city}"
        project_name = f"{builder.split()[0]} {rng.choice(PROJECT_SUFFIXES)}"

        listed_at = self._clock() - timedelta(days=float(rng.uniform(0, 30)))

        return Candidate(
            id=candidate_id,
            title=title,
            city=city,
            locality=locality,
            price=price,
            price_per_sqft=price_per_sqft,
            area_sqft=area,
            configuration=configuration,
            builder_name=builder,
            builder_type=builder_type,
            project_name=project_name,
            segment=segment,
            status=status,
            amenities=tuple(self._amenities(segment, filters.amenities)),
            images=tuple(self._images()),
            rera_id=self._rera_id(city),
            listed_at=listed_at,
        )

    def _price_in_range(self, price_range: PriceRange, city: str) -> float:
        low = price_range.min
        high = price_range.max
        if high is None:
            high = max(low * 2, SEGMENT_BASE_PRICES[city]["Ultra-Premium"])
        if high <= low:
            return float(low)
        price = float(self._rng.uniform(low, high))
        # Round down to a lakh, but never below the requested minimum.
        rounded = float(int(price) // 100_000 * 100_000)
        return rounded if rounded >= low else price

    def _amenities(self, segment: str, requested: Sequence[str]) -> list[str]:
        amenities = list(BASE_AMENITIES)
        for amenity in SEGMENT_AMENITIES[segment]:
            if self._rng.random() < _SEGMENT_AMENITY_PROBABILITY:
                amenities.append(amenity)
        for amenity in requested:
            if amenity not in amenities and self._rng.random() < _REQUESTED_AMENITY_PROBABILITY:
                amenities.append(amenity)
        return amenities

    def _images(self) -> list[str]:
        count = int(self._rng.integers(2, 5))
        return [IMAGE_URL.format(image_id=image_id) for image_id in IMAGE_IDS[:count]]

    def _rera_id(self, city: str) -> str | None:
        if self._rng.random() < 0.15:
            return None
        prefix = "".join(ch for ch in city.upper() if ch.isalpha())[:3] or "GEN"
        return f"RERA-{prefix}-{int(self._rng.integers(100_000, 999_999))}"
