from __future__ import annotations

import hashlib
import json
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

_DEFAULT_TTL = 900  # 15 minutes


def make_key(payload: dict, prefix: str = "") -> str:
    """Stable cache key for a request payload. Field order does not matter."""
    normalized = json.dumps(payload, sort_keys=True, default=str)
    digest = hashlib.sha256(normalized.encode()).hexdigest()[:16]
    return f"{prefix}{digest}"


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    stored_at: float
    ttl: float

    def is_valid(self, now: float) -> bool:
        return now - self.stored_at < self.ttl


class TTLCache:
    """In-memory key/value cache with per-entry expiry.

    Expired entries are dropped lazily, on the next ``get`` for that key.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, default_ttl: float = _DEFAULT_TTL) -> None:
        self._clock = clock
        self._default_ttl = default_ttl
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry and entry.is_valid(self._clock()):
                self._hits += 1
                return entry.value
            if entry:
                del self._entries[key]
            self._misses += 1
            return None

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        ttl = self._default_ttl if ttl is None else ttl
        with self._lock:
            self._entries[key] = CacheEntry(key=key, value=value, stored_at=self._clock(), ttl=ttl)

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "size": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
