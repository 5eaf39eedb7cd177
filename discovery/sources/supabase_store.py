from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any

from supabase import Client, create_client

from ..curation.models import Candidate, GeoPoint
from .base import matches_category
from .config import DEFAULT_SUPABASE_CONFIG, SupabaseConfig

logger = logging.getLogger(__name__)

BUSINESS_COLUMNS = """
    id,
    name,
    image_url,
    category,
    sub_interest_id,
    interest_id,
    description,
    location,
    lat,
    lng,
    verified,
    owner_verified,
    slug,
    last_activity_at,
    created_at,
    business_stats (
        average_rating,
        total_reviews
    )
"""


@lru_cache(maxsize=4)
def create_supabase_client(config: SupabaseConfig = DEFAULT_SUPABASE_CONFIG) -> Client:
    return create_client(config.url, config.key)


def _quote_filter_value(value: str) -> str:
    # PostgREST reserves , . ( ) inside or=() filters; quoting keeps them literal
    cleaned = value.strip().replace("\\", "").replace('"', "")
    return f'"{cleaned}"'


class SupabaseCandidateRepository:
    """Active businesses joined with their review stats, newest first."""

    def __init__(self, client: Client, config: SupabaseConfig = DEFAULT_SUPABASE_CONFIG) -> None:
        self.client = client
        self.config = config

    def _query(self, category_filter: str | None, pool_size: int, active_only: bool) -> list[dict[str, Any]]:
        query = self.client.table(self.config.businesses_table).select(BUSINESS_COLUMNS)
        if active_only:
            query = query.eq("status", "active")
        if category_filter:
            v = _quote_filter_value(category_filter)
            query = query.or_(f"interest_id.eq.{v},sub_interest_id.eq.{v},category.eq.{v}")
        response = query.order("created_at", desc=True).limit(pool_size).execute()
        return response.data or []

    def fetch_candidates(self, category_filter: str | None, pool_size: int) -> list[Candidate]:
        try:
            rows = self._query(category_filter, pool_size, active_only=True)
        except Exception:
            # Older schemas have no status column; retry once without it
            logger.warning("Status-filtered business query failed, retrying without it", exc_info=True)
            rows = self._query(category_filter, pool_size, active_only=False)
        return [Candidate.from_row(row) for row in rows]


class SupabasePrecomputedSource(ABC):
    """Calls a ranking RPC; subclasses define its name and parameters."""

    rpc_attr = "curated_rpc"

    def __init__(self, client: Client, config: SupabaseConfig = DEFAULT_SUPABASE_CONFIG) -> None:
        self.client = client
        self.config = config

    @property
    def rpc_name(self) -> str:
        return getattr(self.config, self.rpc_attr)

    @abstractmethod
    def _params(self, category_filter: str | None, geo: GeoPoint | None, limit: int) -> dict[str, Any]:
        """RPC arguments for one call."""

    def _post_filter(self, candidates: list[Candidate], category_filter: str | None) -> list[Candidate]:
        return candidates

    def fetch_precomputed(
        self,
        category_filter: str | None,
        geo: GeoPoint | None,
        limit: int,
    ) -> list[Candidate]:
        response = self.client.rpc(self.rpc_name, self._params(category_filter, geo, limit)).execute()
        candidates = [Candidate.from_row(row) for row in response.data or []]
        return self._post_filter(candidates, category_filter)


class SupabaseCuratedSource(SupabasePrecomputedSource):
    rpc_attr = "curated_rpc"

    def _params(self, category_filter: str | None, geo: GeoPoint | None, limit: int) -> dict[str, Any]:
        return {
            "p_interest_id": category_filter,
            "p_limit": limit,
            "p_user_lat": geo.lat if geo else None,
            "p_user_lng": geo.lng if geo else None,
        }


class SupabaseFeaturedSource(SupabasePrecomputedSource):
    """The featured RPC is region-scoped only, so category filtering happens here."""

    rpc_attr = "featured_rpc"

    def _params(self, category_filter: str | None, geo: GeoPoint | None, limit: int) -> dict[str, Any]:
        return {"p_region": self.config.featured_region, "p_limit": limit}

    def _post_filter(self, candidates: list[Candidate], category_filter: str | None) -> list[Candidate]:
        return [c for c in candidates if matches_category(c, category_filter)]


class SupabaseImageLookup:
    def __init__(self, client: Client, config: SupabaseConfig = DEFAULT_SUPABASE_CONFIG) -> None:
        self.client = client
        self.config = config

    def fetch_primary_images(self, candidate_ids: list[str]) -> dict[str, str]:
        if not candidate_ids:
            return {}
        response = (
            self.client.table(self.config.images_table)
            .select("business_id, url, alt_text, is_primary")
            .in_("business_id", candidate_ids)
            .order("is_primary", desc=True)
            .order("created_at", desc=True)
            .execute()
        )
        images: dict[str, str] = {}
        for row in response.data or []:
            bid, url = str(row.get("business_id")), row.get("url")
            if url and bid not in images:
                images[bid] = url
        return images

    def fetch_primary_image(self, candidate_id: str) -> str | None:
        return self.fetch_primary_images([candidate_id]).get(candidate_id)
