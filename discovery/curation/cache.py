from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from .config import DEFAULT_CURATION_CONFIG
from .errors import ConfigurationError
from .models import GeoPoint

logger = logging.getLogger(__name__)

T = TypeVar("T")

NO_GEO = "null"


def _bucket(value: float, precision: int) -> str:
    # + 0.0 folds -0.0 into 0.0 so both sides of the meridian share a bucket
    return f"{round(value, precision) + 0.0:.{precision}f}"


def make_cache_key(
    surface: str,
    category_filter: str | None,
    geo: GeoPoint | None = None,
    limit: int | None = None,
    precision: int = DEFAULT_CURATION_CONFIG.geo_precision,
) -> str:
    """``surface:category:lat:lng:limit`` with coordinates rounded into buckets."""
    category = category_filter or "all"
    if geo is None:
        lat = lng = NO_GEO
    else:
        lat, lng = _bucket(geo.lat, precision), _bucket(geo.lng, precision)
    return f"{surface}:{category}:{lat}:{lng}:{limit if limit is not None else 'default'}"


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    created_at: float


class CacheManager:
    """
    Process-local TTL cache for ranking results.

    Reads ignore stale entries; the store is swept for expired entries once it
    grows past ``sweep_threshold``. ``compute_fn`` runs outside the lock, so two
    concurrent misses on one key may both compute and the last write wins.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CURATION_CONFIG.cache_ttl_seconds,
        sweep_threshold: int = DEFAULT_CURATION_CONFIG.cache_sweep_threshold,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl_seconds < 0 or sweep_threshold < 0:
            raise ConfigurationError("ttl_seconds and sweep_threshold must be non-negative")
        self.ttl_seconds = ttl_seconds
        self.sweep_threshold = sweep_threshold
        self._clock = clock
        self._store: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def _is_fresh(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.created_at < self.ttl_seconds

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is not None and self._is_fresh(entry, self._clock()):
                self._hits += 1
                return entry.value
            self._misses += 1
            return None

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._store[key] = CacheEntry(value=value, created_at=self._clock())
            if len(self._store) > self.sweep_threshold:
                self._sweep_locked()

    def get_or_compute(
        self,
        key: str,
        compute_fn: Callable[[], T],
        cache_if: Callable[[T], bool] | None = None,
    ) -> T:
        cached = self.get(key)
        if cached is not None:
            logger.debug("cache hit %s", key)
            return cached

        logger.debug("cache miss %s", key)
        value = compute_fn()
        if cache_if is None or cache_if(value):
            self.set(key, value)
        return value

    def sweep(self) -> int:
        with self._lock:
            return self._sweep_locked()

    def _sweep_locked(self) -> int:
        now = self._clock()
        expired = [k for k, e in self._store.items() if not self._is_fresh(e, now)]
        for k in expired:
            del self._store[k]
        if expired:
            logger.debug("swept %d expired cache entries", len(expired))
        return len(expired)

    def get_stats(self) -> dict:
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._store),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
                "ttl_seconds": self.ttl_seconds,
            }

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
            self._hits = 0
            self._misses = 0
