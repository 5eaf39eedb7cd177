from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from ..analytics.store import record_event
from .cache import CacheManager, make_cache_key
from .config import DEFAULT_CURATION_CONFIG, CurationConfig
from .errors import InvalidRequest
from .models import CuratedSelection, FeaturedSelection, GeoPoint, SourceTag
from .retrieval import EmptyResult, RetrievalStrategy
from .scoring import score_candidates
from .selection import rank_single_tier, select, select_diverse

logger = logging.getLogger(__name__)

S = TypeVar("S", CuratedSelection, FeaturedSelection)

CURATED = "curated"
FEATURED = "featured"


def normalize_limit(limit: int | None, default: int, maximum: int) -> int:
    """Missing -> default, too large -> clamped, negative -> InvalidRequest."""
    if limit is None:
        return default
    if limit < 0:
        raise InvalidRequest(f"limit must be non-negative, got {limit}")
    return min(limit, maximum)


def normalize_category(category_filter: str | None) -> str | None:
    if category_filter is None:
        return None
    cleaned = category_filter.strip()
    return cleaned or None


def _has_entries(selection: CuratedSelection | FeaturedSelection) -> bool:
    if isinstance(selection, FeaturedSelection):
        return bool(selection.entries)
    return selection.total_count > 0


class CurationService:
    """
    Outbound API of the curation engine.

    Each call checks the cache first. On a miss it retrieves candidates
    (precomputed, else fallback), scores them, and applies diversity
    selection. Empty results are returned but not cached, so the next request
    after an outage recomputes.
    """

    def __init__(
        self,
        curated_retrieval: RetrievalStrategy,
        featured_retrieval: RetrievalStrategy | None = None,
        cache: CacheManager | None = None,
        config: CurationConfig = DEFAULT_CURATION_CONFIG,
    ) -> None:
        self.curated_retrieval = curated_retrieval
        self.featured_retrieval = featured_retrieval or curated_retrieval
        self.config = config
        self.cache = cache or CacheManager(
            ttl_seconds=config.cache_ttl_seconds,
            sweep_threshold=config.cache_sweep_threshold,
        )

    def _serve(self, surface: str, key: str, compute: Callable[[], S], event: dict) -> S:
        start_time = time.time()
        computed = False

        def _compute() -> S:
            nonlocal computed
            computed = True
            return compute()

        selection = self.cache.get_or_compute(key, _compute, cache_if=_has_entries)

        elapsed_ms = round((time.time() - start_time) * 1000, 1)
        total = selection.total_count if isinstance(selection, CuratedSelection) else len(selection.entries)
        record_event(surface, {
            **event,
            "source_tag": selection.source_tag.value,
            "total_count": total,
            "response_time_ms": elapsed_ms,
            "cache_hit": not computed,
        })
        return selection

    # ── curated ──────────────────────────────────────────────────────────

    def get_curated_selection(
        self,
        category_filter: str | None = None,
        geo: GeoPoint | None = None,
        limit: int | None = None,
    ) -> CuratedSelection:
        category = normalize_category(category_filter)
        size = normalize_limit(limit, self.config.curated_default_limit, self.config.max_limit)
        if size == 0:
            return CuratedSelection(source_tag=SourceTag.fallback)

        key = make_cache_key(CURATED, category, geo, size, self.config.geo_precision)
        return self._serve(
            CURATED,
            key,
            lambda: self._compute_curated(category, geo, size),
            {"category": category, "has_geo": geo is not None, "limit": size},
        )

    def _compute_curated(
        self,
        category: str | None,
        geo: GeoPoint | None,
        size: int,
    ) -> CuratedSelection:
        outcome = self.curated_retrieval.retrieve(category, geo, size)
        if isinstance(outcome, EmptyResult):
            return CuratedSelection(source_tag=outcome.source)

        scored = score_candidates(
            outcome.candidates,
            self.config,
            prefer_precomputed=outcome.source is SourceTag.precomputed,
        )
        min_fill = self.config.curated_min_fill
        result = select(
            scored,
            leader_size=min(self.config.leader_size, size),
            total_size=size,
            min_fill=size if min_fill is None else min_fill,
        )
        logger.info(
            "curated selection category=%s leaders=%d followers=%d source=%s",
            category or "all", len(result.leaders), len(result.followers), outcome.source.value,
        )
        return CuratedSelection.from_ranked(result, outcome.source)

    # ── featured ─────────────────────────────────────────────────────────

    def get_featured_selection(
        self,
        category_filter: str | None = None,
        limit: int | None = None,
    ) -> FeaturedSelection:
        category = normalize_category(category_filter)
        size = normalize_limit(limit, self.config.featured_default_limit, self.config.max_limit)
        if size == 0:
            return FeaturedSelection(source_tag=SourceTag.fallback)

        key = make_cache_key(FEATURED, category, None, size, self.config.geo_precision)
        return self._serve(
            FEATURED,
            key,
            lambda: self._compute_featured(category, size),
            {"category": category, "has_geo": False, "limit": size},
        )

    def _compute_featured(self, category: str | None, size: int) -> FeaturedSelection:
        outcome = self.featured_retrieval.retrieve(category, None, size)
        if isinstance(outcome, EmptyResult):
            return FeaturedSelection(source_tag=outcome.source)

        scored = score_candidates(
            outcome.candidates,
            self.config,
            prefer_precomputed=outcome.source is SourceTag.precomputed,
        )
        selected = select_diverse(scored, size, self.config.featured_min_fill)
        logger.info(
            "featured selection category=%s pool=%d final=%d source=%s",
            category or "all", len(scored), len(selected), outcome.source.value,
        )
        return FeaturedSelection(entries=rank_single_tier(selected), source_tag=outcome.source)


def build_service(config: CurationConfig = DEFAULT_CURATION_CONFIG) -> CurationService:
    """Wire Supabase adapters when credentials are configured, local CSV data otherwise."""
    from ..sources.config import DEFAULT_SUPABASE_CONFIG

    if DEFAULT_SUPABASE_CONFIG.enabled:
        from ..sources.supabase_store import (
            SupabaseCandidateRepository,
            SupabaseCuratedSource,
            SupabaseFeaturedSource,
            create_supabase_client,
        )

        client = create_supabase_client(DEFAULT_SUPABASE_CONFIG)
        repository = SupabaseCandidateRepository(client, DEFAULT_SUPABASE_CONFIG)
        curated_source = SupabaseCuratedSource(client, DEFAULT_SUPABASE_CONFIG)
        featured_source = SupabaseFeaturedSource(client, DEFAULT_SUPABASE_CONFIG)
    else:
        from ..sources.data_store import CsvCandidateRepository, CsvPrecomputedSource

        logger.info("Supabase not configured, serving curation from local CSV data")
        repository = CsvCandidateRepository()
        curated_source = featured_source = CsvPrecomputedSource()

    return CurationService(
        curated_retrieval=RetrievalStrategy(repository, curated_source, config, name=CURATED),
        featured_retrieval=RetrievalStrategy(repository, featured_source, config, name=FEATURED),
        config=config,
    )


def build_image_lookup():
    """Image lookup matching the backend chosen by ``build_service``."""
    from ..sources.config import DEFAULT_SUPABASE_CONFIG

    if DEFAULT_SUPABASE_CONFIG.enabled:
        from ..sources.supabase_store import SupabaseImageLookup, create_supabase_client

        return SupabaseImageLookup(create_supabase_client(DEFAULT_SUPABASE_CONFIG), DEFAULT_SUPABASE_CONFIG)

    from ..sources.data_store import CsvImageLookup

    return CsvImageLookup()
