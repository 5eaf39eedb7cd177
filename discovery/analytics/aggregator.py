from __future__ import annotations

from collections import Counter
from typing import Any

SURFACES = ("curated", "featured")


def _rate(part: int, total: int) -> float:
    return round(part / total * 100, 1) if total else 0.0


def _surface_summary(requests: list[dict[str, Any]]) -> dict[str, Any]:
    total = len(requests)
    sources: Counter[str] = Counter(r.get("source_tag", "unknown") for r in requests)
    # Cache hits replay an earlier computation, so only misses say anything
    # about the health of the precomputed source right now.
    computed = [r for r in requests if not r.get("cache_hit")]
    computed_fallback = sum(1 for r in computed if r.get("source_tag") == "fallback")
    empty = sum(1 for r in requests if not r.get("total_count"))
    return {
        "requests": total,
        "sources": dict(sources),
        "fallback_rate": _rate(computed_fallback, len(computed)),
        "empty_results": empty,
    }


def compute_analytics(events: list[dict[str, Any]]) -> dict[str, Any]:
    requests = [e for e in events if e["type"] in SURFACES]
    total = len(requests)

    # Average response time
    times = [r["response_time_ms"] for r in requests if "response_time_ms" in r]
    avg_time = round(sum(times) / len(times), 1) if times else 0.0

    # Top categories
    category_counter: Counter[str] = Counter()
    for r in requests:
        category_counter[r.get("category") or "all"] += 1
    top_categories = [{"name": n, "count": c} for n, c in category_counter.most_common(10)]

    # Cache stats
    cache_hits = sum(1 for r in requests if r.get("cache_hit"))
    cache_misses = total - cache_hits

    geo_requests = sum(1 for r in requests if r.get("has_geo"))

    return {
        "total_requests": total,
        "avg_response_time_ms": avg_time,
        "surfaces": {
            s: _surface_summary([r for r in requests if r["type"] == s]) for s in SURFACES
        },
        "top_categories": top_categories,
        "geo_request_rate": _rate(geo_requests, total),
        "cache_stats": {
            "hits": cache_hits,
            "misses": cache_misses,
            "hit_rate": _rate(cache_hits, total),
        },
    }
