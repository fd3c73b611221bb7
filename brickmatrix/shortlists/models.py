from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ShortlistItem(BaseModel):
    """Common shape of anything stored in a bounded collection."""

    model_config = ConfigDict(populate_by_name=True)

    property_id: str = Field(alias="propertyId", min_length=1)
    title: str
    price: float = Field(ge=0.0)
    location: str
    added_date: datetime = Field(default_factory=_utcnow, alias="addedDate")

    @field_validator("added_date")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class WishlistItem(ShortlistItem):
    image: str = "/placeholder.svg"
    notes: str | None = None
    tags: list[str] = Field(default_factory=list)
    priority: Literal["High", "Medium", "Low"] = "Medium"


class WishlistUpdate(BaseModel):
    """Fields a user may change on an existing wishlist entry."""

    notes: str | None = None
    tags: list[str] | None = None
    priority: Literal["High", "Medium", "Low"] | None = None


class ComparisonItem(ShortlistItem):
    area: float = Field(ge=0.0)
    builder: str


class FailureReason(str, Enum):
    duplicate_item = "duplicate_item"
    capacity_exceeded = "capacity_exceeded"


class AddResult(BaseModel):
    success: bool
    message: str
    reason: FailureReason | None = None


class RemoveResult(BaseModel):
    success: bool = True
    changed: bool


class LocationCount(BaseModel):
    location: str
    count: int


class WishlistStats(BaseModel):
    total_items: int = 0
    average_price: float = 0.0
    price_range: dict[str, float] = Field(default_factory=lambda: {"min": 0.0, "max": 0.0})
    top_locations: list[LocationCount] = Field(default_factory=list)
    recent_activity: list[WishlistItem] = Field(default_factory=list)
