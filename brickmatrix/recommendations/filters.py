"""
Request filter payload.

The presentation layer sends loosely-shaped JSON. Every recognised option is
parsed here; anything missing or malformed resolves to its documented default
instead of failing the request:

* ``city`` -> ``None`` (any tier-1 city)
* ``priceRange`` -> ``None`` (no price constraint)
* ``configurations`` -> ``[]`` (generator uses 2BHK/3BHK/4BHK)
* ``amenities`` -> ``[]``
* ``status`` -> ``[]`` (any status)
* ``sortBy`` -> ``"score"``
"""
from __future__ import annotations

import logging
import math
import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .catalog import STATUS_ALIASES, canonical_city
from .errors import InvalidFilterValue
from .models import ListingStatus, PriceRange

logger = logging.getLogger(__name__)

_BHK_PATTERN = re.compile(r"^([1-9])\s*BHK$", re.IGNORECASE)


class SortOrder(str, Enum):
    score = "score"
    price_asc = "price_asc"
    price_desc = "price_desc"
    area = "area"


_SORT_ALIASES: dict[str, SortOrder] = {
    "smart_score": SortOrder.score,
    "brickmatrix_score": SortOrder.score,
    "price": SortOrder.price_asc,
}


def _as_list(field: str, value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple, set)):
        return list(value)
    raise InvalidFilterValue(field, value)


def _as_number(field: str, value: Any) -> float:
    if isinstance(value, bool):
        raise InvalidFilterValue(field, value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidFilterValue(field, value) from None
    if not math.isfinite(number) or number < 0:
        raise InvalidFilterValue(field, value)
    return number


def parse_price_range(value: Any) -> PriceRange | None:
    if value is None:
        return None
    if isinstance(value, PriceRange):
        return value
    if not isinstance(value, dict):
        raise InvalidFilterValue("priceRange", value)
    raw_min = value.get("min")
    raw_max = value.get("max")
    if raw_min is None and raw_max is None:
        return None
    low = _as_number("priceRange.min", raw_min) if raw_min is not None else 0.0
    high = _as_number("priceRange.max", raw_max) if raw_max is not None else None
    if high is not None and low > high:
        raise InvalidFilterValue("priceRange", value)
    return PriceRange(min=low, max=high)


def parse_configurations(value: Any) -> list[str]:
    result: list[str] = []
    for item in _as_list("configurations", value):
        match = _BHK_PATTERN.match(item.strip()) if isinstance(item, str) else None
        if not match:
            logger.info("Dropping unrecognised configuration %r", item)
            continue
        bhk = f"{match.group(1)}BHK"
        if bhk not in result:
            result.append(bhk)
    return result


def parse_statuses(value: Any) -> list[str]:
    result: list[str] = []
    for item in _as_list("status", value):
        if isinstance(item, ListingStatus):
            status = item.value
        else:
            status = STATUS_ALIASES[item]
        if status is None:
            logger.info("Dropping unrecognised status %r", item)
            continue
        if status not in result:
            result.append(status)
    return result


def parse_amenities(value: Any) -> list[str]:
    result: list[str] = []
    for item in _as_list("amenities", value):
        if isinstance(item, str) and item.strip() and item.strip() not in result:
            result.append(item.strip())
    return result


def parse_sort_order(value: Any) -> SortOrder:
    if value is None:
        return SortOrder.score
    if isinstance(value, SortOrder):
        return value
    if not isinstance(value, str):
        raise InvalidFilterValue("sortBy", value)
    key = value.strip().lower()
    if key in _SORT_ALIASES:
        return _SORT_ALIASES[key]
    try:
        return SortOrder(key)
    except ValueError:
        raise InvalidFilterValue("sortBy", value) from None


class RecommendationFilters(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    city: str | None = None
    price_range: PriceRange | None = Field(default=None, alias="priceRange")
    configurations: list[str] = Field(default_factory=list)
    amenities: list[str] = Field(default_factory=list)
    status: list[ListingStatus] = Field(default_factory=list)
    sort_by: SortOrder = Field(default=SortOrder.score, alias="sortBy")

    @field_validator("city", mode="before")
    @classmethod
    def _city(cls, value: Any) -> str | None:
        if value is not None and not isinstance(value, str):
            logger.info("Ignoring invalid city filter %r", value)
            return None
        return canonical_city(value)

    @field_validator("price_range", mode="before")
    @classmethod
    def _price_range(cls, value: Any) -> PriceRange | None:
        try:
            return parse_price_range(value)
        except InvalidFilterValue as exc:
            logger.info("%s, using no price constraint", exc)
            return None

    @field_validator("configurations", mode="before")
    @classmethod
    def _configurations(cls, value: Any) -> list[str]:
        try:
            return parse_configurations(value)
        except InvalidFilterValue as exc:
            logger.info("%s, using default configurations", exc)
            return []

    @field_validator("amenities", mode="before")
    @classmethod
    def _amenities(cls, value: Any) -> list[str]:
        try:
            return parse_amenities(value)
        except InvalidFilterValue as exc:
            logger.info("%s, ignoring amenities", exc)
            return []

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, value: Any) -> list[str]:
        try:
            return parse_statuses(value)
        except InvalidFilterValue as exc:
            logger.info("%s, allowing any status", exc)
            return []

    @field_validator("sort_by", mode="before")
    @classmethod
    def _sort_by(cls, value: Any) -> SortOrder:
        try:
            return parse_sort_order(value)
        except InvalidFilterValue as exc:
            logger.info("%s, sorting by score", exc)
            return SortOrder.score

    def cache_payload(self) -> dict:
        return self.model_dump(mode="json")


def coerce_filters(raw: RecommendationFilters | dict | None) -> RecommendationFilters:
    """Build filters from any payload. Never raises for bad field values."""
    if isinstance(raw, RecommendationFilters):
        return raw
    if not isinstance(raw, dict):
        if raw is not None:
            logger.info("Ignoring non-object filter payload %r", raw)
        return RecommendationFilters()
    return RecommendationFilters.model_validate(raw)
