from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from dataclasses import dataclass, field
from typing import Union

from ..sources.base import CandidateRepository, PrecomputedSource
from .config import DEFAULT_CURATION_CONFIG, CurationConfig
from .errors import UpstreamUnavailable
from .models import Candidate, GeoPoint, SourceTag

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Success:
    candidates: list[Candidate] = field(default_factory=list)
    source: SourceTag = SourceTag.precomputed


@dataclass(frozen=True)
class EmptyResult:
    source: SourceTag = SourceTag.fallback


RetrievalResult = Union[Success, EmptyResult]


class RetrievalStrategy:
    """
    Two-path candidate retrieval.

    1. Ask the precomputed source, bounded by ``precomputed_timeout``.
    2. On error, timeout, a missing source or zero rows, pull an oversampled
       pool from the repository instead.

    There is exactly one fallback hop and no retries.
    """

    def __init__(
        self,
        repository: CandidateRepository,
        precomputed: PrecomputedSource | None = None,
        config: CurationConfig = DEFAULT_CURATION_CONFIG,
        name: str = "curated",
        executor: ThreadPoolExecutor | None = None,
    ) -> None:
        self.repository = repository
        self.precomputed = precomputed
        self.config = config
        self.name = name
        self._executor = executor
        self._executor_lock = threading.Lock()

    def pool_size(self, limit: int) -> int:
        """Oversampled repository pool for ``limit`` results, capped."""
        oversampled = max(limit * self.config.oversample_factor, limit)
        return min(oversampled, max(self.config.max_pool_size, limit))

    def retrieve(
        self,
        category_filter: str | None,
        geo: GeoPoint | None,
        limit: int,
    ) -> RetrievalResult:
        try:
            rows = self._fetch_precomputed(category_filter, geo, limit)
        except UpstreamUnavailable:
            logger.warning(
                "[%s] precomputed source unavailable, using fallback", self.name, exc_info=True,
            )
        else:
            if rows:
                logger.info(
                    "[%s] served %d candidates source=%s", self.name, len(rows), SourceTag.precomputed.value,
                )
                return Success(candidates=rows, source=SourceTag.precomputed)
            logger.info("[%s] precomputed source returned no rows, using fallback", self.name)

        return self._fetch_fallback(category_filter, limit)

    def _fetch_precomputed(
        self,
        category_filter: str | None,
        geo: GeoPoint | None,
        limit: int,
    ) -> list[Candidate]:
        if self.precomputed is None:
            raise UpstreamUnavailable("no precomputed source configured")

        timeout = self.config.precomputed_timeout
        try:
            if timeout is None:
                return list(self.precomputed.fetch_precomputed(category_filter, geo, limit) or [])
            future = self._get_executor().submit(
                self.precomputed.fetch_precomputed, category_filter, geo, limit,
            )
            try:
                return list(future.result(timeout=timeout) or [])
            except FuturesTimeout as exc:
                future.cancel()
                raise UpstreamUnavailable(
                    f"precomputed source timed out after {timeout}s"
                ) from exc
        except UpstreamUnavailable:
            raise
        except Exception as exc:
            raise UpstreamUnavailable(f"precomputed source failed: {exc}") from exc

    def _fetch_fallback(self, category_filter: str | None, limit: int) -> RetrievalResult:
        pool_size = self.pool_size(limit)
        try:
            rows = list(self.repository.fetch_candidates(category_filter, pool_size) or [])
        except Exception:
            logger.error(
                "[%s] repository query failed source=%s", self.name, SourceTag.fallback.value, exc_info=True,
            )
            return EmptyResult(source=SourceTag.fallback)

        if not rows:
            logger.info("[%s] repository returned no candidates for %r", self.name, category_filter)
            return EmptyResult(source=SourceTag.fallback)

        logger.info(
            "[%s] served %d candidates source=%s (pool_size=%d)",
            self.name, len(rows), SourceTag.fallback.value, pool_size,
        )
        return Success(candidates=rows, source=SourceTag.fallback)

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=4, thread_name_prefix=f"{self.name}-precomputed",
                )
            return self._executor
