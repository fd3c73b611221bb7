from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from pydantic import ValidationError

from .models import (
    AddResult,
    ComparisonItem,
    FailureReason,
    LocationCount,
    RemoveResult,
    ShortlistItem,
    WishlistItem,
    WishlistStats,
)
from .store import KeyValueStore

logger = logging.getLogger(__name__)

MAX_COMPARISON_ITEMS = 4

ItemT = TypeVar("ItemT", bound=ShortlistItem)
ResultT = TypeVar("ResultT")


class BoundedCollection(Generic[ItemT]):
    """Ordered, duplicate-free list of items persisted under one namespace.

    With ``max_size`` set, inserts past the limit are rejected, never
    truncated. Failed adds leave the stored list untouched.
    """

    def __init__(
        self,
        store: KeyValueStore,
        namespace: str,
        item_model: type[ItemT],
        max_size: int | None = None,
        label: str = "collection",
    ) -> None:
        if max_size is not None and max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.store = store
        self.namespace = namespace
        self.item_model = item_model
        self.max_size = max_size
        self.label = label

    def _parse(self, raw_entries: list[dict[str, Any]]) -> list[ItemT]:
        items: list[ItemT] = []
        for raw in raw_entries:
            try:
                items.append(self.item_model.model_validate(raw))
            except ValidationError:
                logger.warning("Dropping unreadable %s entry in %s", self.label, self.namespace, exc_info=True)
        return items

    def _load(self) -> list[ItemT]:
        return self._parse(self.store.get(self.namespace))

    def _transact(self, change: Callable[[list[ItemT]], tuple[list[ItemT] | None, ResultT]]) -> ResultT:
        """Run ``change`` on the current items under the store's update lock.

        ``change`` returns the items to persist (``None`` to keep the stored
        list as is) together with the value handed back to the caller.
        """
        outcome: list[ResultT] = []

        def apply(raw_entries: list[dict[str, Any]]) -> list[dict[str, Any]] | None:
            items, result = change(self._parse(raw_entries))
            outcome.append(result)
            if items is None:
                return None
            return [item.model_dump(mode="json") for item in items]

        self.store.update(self.namespace, apply)
        return outcome[0]

    def items(self) -> list[ItemT]:
        return self._load()

    def contains(self, property_id: str) -> bool:
        return any(item.property_id == property_id for item in self._load())

    def count(self) -> int:
        return len(self._load())

    def _capacity_message(self) -> str:
        if self.label == "comparison":
            return f"Maximum {self.max_size} properties can be compared"
        return f"Maximum {self.max_size} properties allowed in {self.label}"

    def add(self, item: ItemT) -> AddResult:
        def change(items: list[ItemT]) -> tuple[list[ItemT] | None, AddResult]:
            if any(existing.property_id == item.property_id for existing in items):
                return None, AddResult(
                    success=False,
                    message=f"Property already in {self.label}",
                    reason=FailureReason.duplicate_item,
                )
            if self.max_size is not None and len(items) >= self.max_size:
                return None, AddResult(
                    success=False,
                    message=self._capacity_message(),
                    reason=FailureReason.capacity_exceeded,
                )
            logger.info("Added %s to %s (%d items)", item.property_id, self.namespace, len(items) + 1)
            return [*items, item], AddResult(success=True, message=f"Added to {self.label}")

        return self._transact(change)

    def remove(self, property_id: str) -> RemoveResult:
        def change(items: list[ItemT]) -> tuple[list[ItemT] | None, RemoveResult]:
            kept = [item for item in items if item.property_id != property_id]
            if len(kept) == len(items):
                return None, RemoveResult(changed=False)
            logger.info("Removed %s from %s", property_id, self.namespace)
            return kept, RemoveResult(changed=True)

        return self._transact(change)

    def update(self, property_id: str, **changes: Any) -> bool:
        """Merge *changes* into an existing entry. Returns ``False`` if absent or invalid."""
        changes = {k: v for k, v in changes.items() if v is not None and k not in ("property_id", "propertyId")}

        def change(items: list[ItemT]) -> tuple[list[ItemT] | None, bool]:
            for idx, item in enumerate(items):
                if item.property_id != property_id:
                    continue
                try:
                    items[idx] = self.item_model.model_validate({**item.model_dump(), **changes})
                except ValidationError:
                    logger.info("Rejected update for %s in %s", property_id, self.namespace, exc_info=True)
                    return None, False
                return items, True
            return None, False

        return self._transact(change)

    def clear(self) -> None:
        self.store.delete(self.namespace)


class ShortlistManager:
    """Wishlist and comparison shortlists for a single owner."""

    def __init__(self, store: KeyValueStore, owner: str) -> None:
        self.owner = owner
        self.wishlist: BoundedCollection[WishlistItem] = BoundedCollection(
            store, f"wishlist:{owner}", WishlistItem, label="wishlist",
        )
        self.comparison: BoundedCollection[ComparisonItem] = BoundedCollection(
            store, f"comparison:{owner}", ComparisonItem, max_size=MAX_COMPARISON_ITEMS, label="comparison",
        )

    # ── comparison ───────────────────────────────────────────────────────

    def add_to_comparison(self, item: ComparisonItem) -> AddResult:
        return self.comparison.add(item)

    def remove_from_comparison(self, property_id: str) -> bool:
        return self.comparison.remove(property_id).success

    def get_comparison(self) -> list[ComparisonItem]:
        return self.comparison.items()

    def is_in_comparison(self, property_id: str) -> bool:
        return self.comparison.contains(property_id)

    def comparison_count(self) -> int:
        return self.comparison.count()

    def clear_comparison(self) -> bool:
        self.comparison.clear()
        return True

    # ── wishlist ─────────────────────────────────────────────────────────

    def add_to_wishlist(self, item: WishlistItem) -> bool:
        return self.wishlist.add(item).success

    def remove_from_wishlist(self, property_id: str) -> bool:
        return self.wishlist.remove(property_id).success

    def get_wishlist(self) -> list[WishlistItem]:
        return self.wishlist.items()

    def is_in_wishlist(self, property_id: str) -> bool:
        return self.wishlist.contains(property_id)

    def update_wishlist_item(self, property_id: str, **changes: Any) -> bool:
        return self.wishlist.update(property_id, **changes)

    def wishlist_stats(self) -> WishlistStats:
        items = self.wishlist.items()
        if not items:
            return WishlistStats()

        prices = [item.price for item in items]
        locations = Counter(item.location for item in items)
        recent = sorted(items, key=lambda item: item.added_date, reverse=True)[:5]
        return WishlistStats(
            total_items=len(items),
            average_price=round(sum(prices) / len(prices)),
            price_range={"min": min(prices), "max": max(prices)},
            top_locations=[LocationCount(location=loc, count=n) for loc, n in locations.most_common(5)],
            recent_activity=recent,
        )
