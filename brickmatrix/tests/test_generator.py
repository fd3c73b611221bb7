from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import patch

import numpy as np
import pytest

from brickmatrix.recommendations.catalog import DEFAULT_LOCALITY, TIER1_CITIES
from brickmatrix.recommendations.errors import GenerationFailure
from brickmatrix.recommendations.filters import coerce_filters
from brickmatrix.recommendations.generator import (
    CandidateGenerator,
    segment_for_price,
    weighted_choice,
)
from brickmatrix.recommendations.models import ListingStatus

_FIXED_NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def _generator(pool_size: int = 60, seed: int = 3, **kwargs) -> CandidateGenerator:
    return CandidateGenerator(
        rng=np.random.default_rng(seed), pool_size=pool_size, clock=lambda: _FIXED_NOW, **kwargs,
    )


def test_pool_size_is_honoured():
    pool = _generator(pool_size=25).generate(coerce_filters({}))
    assert len(pool) == 25


def test_ids_are_unique():
    pool = _generator().generate(coerce_filters({}))
    assert len({c.id for c in pool}) == len(pool)


def test_explicit_city_is_used_for_every_candidate():
    pool = _generator().generate(coerce_filters({"city": "Hyderabad"}))
    assert {c.city for c in pool} == {"Hyderabad"}


def test_without_city_candidates_come_from_tier1_cities():
    pool = _generator().generate(coerce_filters({}))
    assert {c.city for c in pool} <= set(TIER1_CITIES)


def test_unknown_city_uses_default_locality():
    pool = _generator(pool_size=10).generate(coerce_filters({"city": "Indore"}))
    assert all(c.city == "Indore" for c in pool)
    assert all(c.locality == DEFAULT_LOCALITY for c in pool)


def test_prices_stay_inside_requested_range():
    filters = coerce_filters({"priceRange": {"min": 10_000_000, "max": 50_000_000}})
    pool = _generator(pool_size=80).generate(filters)
    assert all(10_000_000 <= c.price <= 50_000_000 for c in pool)


def test_open_ended_range_respects_minimum():
    filters = coerce_filters({"priceRange": {"min": 25_000_000}})
    pool = _generator(pool_size=40).generate(filters)
    assert all(c.price >= 25_000_000 for c in pool)


def test_requested_configurations_are_honoured():
    filters = coerce_filters({"configurations": ["1BHK", "5BHK"]})
    pool = _generator().generate(filters)
    assert {c.configuration for c in pool} <= {"1BHK", "5BHK"}


def test_invalid_configurations_fall_back_to_defaults():
    filters = coerce_filters({"configurations": ["penthouse"]})
    pool = _generator().generate(filters)
    assert {c.configuration for c in pool} <= {"2BHK", "3BHK", "4BHK"}


def test_status_filter_restricts_status():
    filters = coerce_filters({"status": ["resale"]})
    pool = _generator().generate(filters)
    assert {c.status for c in pool} == {ListingStatus.resale}


def test_area_and_price_per_sqft_are_positive():
    pool = _generator().generate(coerce_filters({}))
    assert all(c.area_sqft > 0 and c.price_per_sqft > 0 for c in pool)


def test_listed_at_is_within_last_month():
    pool = _generator().generate(coerce_filters({}))
    for c in pool:
        age = _FIXED_NOW - c.listed_at
        assert 0 <= age.days <= 30


def test_requested_amenities_appear_in_some_candidates():
    filters = coerce_filters({"amenities": ["EV Charging"]})
    pool = _generator(pool_size=60).generate(filters)
    with_amenity = [c for c in pool if "EV Charging" in c.amenities]
    assert 0 < len(with_amenity) < len(pool)


def test_same_seed_same_pool():
    filters = coerce_filters({"city": "Pune"})
    a = _generator(seed=11).generate(filters)
    b = _generator(seed=11).generate(filters)
    assert a == b


def test_empty_pool_raises_generation_failure():
    with pytest.raises(GenerationFailure):
        _generator(pool_size=0).generate(coerce_filters({}))


def test_every_candidate_failing_raises_generation_failure():
    gen = _generator(pool_size=5)
    with patch.object(gen, "_make_candidate", side_effect=ValueError("boom")):
        with pytest.raises(GenerationFailure):
            gen.generate(coerce_filters({}))


# ── Helpers ──────────────────────────────────────────────────────────────


def test_weighted_choice_respects_allowed_subset():
    rng = np.random.default_rng(0)
    picks = {weighted_choice(rng, {"a": 0.9, "b": 0.1}, allowed=["b"]) for _ in range(20)}
    assert picks == {"b"}


def test_weighted_choice_zero_weight_never_drawn():
    rng = np.random.default_rng(0)
    picks = {weighted_choice(rng, {"a": 1.0, "b": 0.0}) for _ in range(50)}
    assert picks == {"a"}


def test_segment_for_price_orders_segments():
    assert segment_for_price(5_000_000, "Mumbai") == "Affordable"
    assert segment_for_price(30_000_000, "Mumbai") == "Premium"
    assert segment_for_price(200_000_000, "Mumbai") == "Ultra-Premium"
