from __future__ import annotations

from collections import Counter
from typing import Any


def _rate(count: int, total: int) -> float:
    return round(count / total * 100, 1) if total else 0.0


def compute_analytics(events: list[dict[str, Any]]) -> dict[str, Any]:
    searches = [e for e in events if e["type"] == "search"]
    total = len(searches)

    # Average response time
    times = [s["response_time_ms"] for s in searches if "response_time_ms" in s]
    avg_time = round(sum(times) / len(times), 1) if times else 0.0

    # Top cities
    city_counter: Counter[str] = Counter()
    for s in searches:
        city_counter[s.get("city") or "any"] += 1
    top_cities = [{"name": n, "count": c} for n, c in city_counter.most_common(10)]

    # Configuration usage
    config_counter: Counter[str] = Counter()
    for s in searches:
        for c in s.get("configurations", []) or []:
            config_counter[c] += 1
    configuration_usage = dict(config_counter)

    # Filter usage rates
    filter_counts = {"city": 0, "price_range": 0, "configurations": 0, "amenities": 0, "status": 0}
    for s in searches:
        if s.get("city"):
            filter_counts["city"] += 1
        if s.get("price_range"):
            filter_counts["price_range"] += 1
        if s.get("configurations"):
            filter_counts["configurations"] += 1
        if s.get("amenities"):
            filter_counts["amenities"] += 1
        if s.get("status_filter"):
            filter_counts["status"] += 1
    filter_usage = {k: _rate(v, total) for k, v in filter_counts.items()}

    sort_usage = dict(Counter(s.get("sort_by", "score") for s in searches))

    # Cache stats
    cache_hits = sum(1 for s in searches if s.get("cache_hit"))
    cache_misses = total - cache_hits

    # Degraded and failed requests
    failed = sum(1 for s in searches if s.get("status") == "failed")
    source_failures: Counter[str] = Counter()
    for s in searches:
        for name in s.get("sources_failed", []) or []:
            source_failures[name] += 1

    # Shortlist activity
    shortlist_counter: Counter[str] = Counter(
        e["type"] for e in events if e["type"] in ("wishlist_add", "comparison_add")
    )

    return {
        "total_searches": total,
        "avg_response_time_ms": avg_time,
        "top_cities": top_cities,
        "configuration_usage": configuration_usage,
        "filter_usage": filter_usage,
        "sort_usage": sort_usage,
        "cache_stats": {
            "hits": cache_hits,
            "misses": cache_misses,
            "hit_rate": _rate(cache_hits, total),
        },
        "failed_searches": failed,
        "source_failures": dict(source_failures),
        "shortlist_activity": {
            "wishlist_adds": shortlist_counter["wishlist_add"],
            "comparison_adds": shortlist_counter["comparison_add"],
        },
    }
