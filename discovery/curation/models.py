from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field

MISCELLANEOUS = "miscellaneous"


def _clean(value: Any) -> Any:
    """Map NaN / empty strings coming out of CSVs and JSON to ``None``."""
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _to_optional_float(value: Any) -> float | None:
    """Finite float or ``None``; NaN and infinities count as missing."""
    value = _clean(value)
    if value is None:
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


def _to_float(value: Any, default: float = 0.0) -> float:
    result = _to_optional_float(value)
    return default if result is None else result


def _to_int(value: Any, default: int = 0) -> int:
    return int(_to_float(value, default))


def _to_datetime(value: Any) -> datetime | None:
    value = _clean(value)
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def _to_bool(value: Any) -> bool:
    value = _clean(value)
    if isinstance(value, str):
        return value.strip().lower() in ("true", "t", "1", "yes")
    return bool(value) if value is not None else False


class SourceTag(str, Enum):
    precomputed = "precomputed"
    fallback = "fallback"


class GeoPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float

    @classmethod
    def parse(cls, lat: Any, lng: Any) -> GeoPoint | None:
        """Build a point from loose values; anything unusable maps to ``None``."""
        lat, lng = _clean(lat), _clean(lng)
        if lat is None or lng is None:
            return None
        try:
            lat_f, lng_f = float(lat), float(lng)
        except (TypeError, ValueError):
            return None
        if math.isnan(lat_f) or math.isnan(lng_f):
            return None
        if not (-90.0 <= lat_f <= 90.0 and -180.0 <= lng_f <= 180.0):
            return None
        return cls(lat=lat_f, lng=lng_f)


class Candidate(BaseModel):
    """A business eligible for ranking, snapshotted from the repository."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    slug: str | None = None
    category: str | None = None
    subcategory: str | None = None
    interest_id: str | None = None
    description: str | None = None
    location: str | None = None
    image_url: str | None = None
    average_rating: float = 0.0
    review_count: int = 0
    last_activity_at: datetime | None = None
    geo: GeoPoint | None = None
    verified: bool = False
    precomputed_score: float | None = None

    @property
    def category_key(self) -> str:
        for value in (self.subcategory, self.category):
            if value and value.strip():
                return value.strip().lower()
        return MISCELLANEOUS

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Candidate:
        """Map a raw business row (Supabase, RPC or CSV) into a Candidate.

        Stats may be nested under ``business_stats`` (a list or an object, as
        returned by PostgREST embeds) or flattened onto the row.
        """
        stats: Any = row.get("business_stats")
        if isinstance(stats, list):
            stats = stats[0] if stats else {}
        if not isinstance(stats, Mapping):
            stats = {}

        rating = stats.get("average_rating", row.get("average_rating", row.get("avg_rating")))
        reviews = stats.get("total_reviews", row.get("total_reviews", row.get("review_count")))

        return cls(
            id=str(row["id"]),
            name=str(_clean(row.get("name")) or ""),
            slug=_clean(row.get("slug")),
            category=_clean(row.get("category")),
            subcategory=_clean(row.get("sub_interest_id")) or _clean(row.get("subcategory")),
            interest_id=_clean(row.get("interest_id")),
            description=_clean(row.get("description")),
            location=_clean(row.get("location")),
            image_url=_clean(row.get("image_url")),
            average_rating=_to_float(rating),
            review_count=_to_int(reviews),
            last_activity_at=_to_datetime(row.get("last_activity_at")),
            geo=GeoPoint.parse(row.get("lat"), row.get("lng")),
            verified=_to_bool(row.get("verified")) or _to_bool(row.get("owner_verified")),
            precomputed_score=_to_optional_float(row.get("curation_score")),
        )


class ScoredCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    candidate: Candidate
    score: float


class RankedEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    candidate: Candidate
    score: float
    rank: int = Field(..., ge=1)
    is_leader: bool = False


class RankedResult(BaseModel):
    leaders: list[RankedEntry] = Field(default_factory=list)
    followers: list[RankedEntry] = Field(default_factory=list)

    @property
    def total_count(self) -> int:
        return len(self.leaders) + len(self.followers)


class CuratedSelection(BaseModel):
    leaders: list[RankedEntry] = Field(default_factory=list)
    followers: list[RankedEntry] = Field(default_factory=list)
    source_tag: SourceTag
    total_count: int = 0

    @classmethod
    def from_ranked(cls, result: RankedResult, source_tag: SourceTag) -> CuratedSelection:
        return cls(
            leaders=result.leaders,
            followers=result.followers,
            source_tag=source_tag,
            total_count=result.total_count,
        )


class FeaturedSelection(BaseModel):
    entries: list[RankedEntry] = Field(default_factory=list)
    source_tag: SourceTag


# ── View models ──────────────────────────────────────────────────────────


class CuratedBusinessOut(BaseModel):
    id: str
    name: str
    image: str
    alt: str
    category: str
    subcategory: str
    description: str
    location: str
    average_rating: float
    review_count: int
    badge: str
    rank: int
    href: str
    month_achievement: str
    verified: bool
    is_leader: bool
    curation_score: float
    distance_km: float | None = None


class CuratedSelectionOut(BaseModel):
    leaders: list[CuratedBusinessOut]
    followers: list[CuratedBusinessOut]
    interest_id: str | None = None
    source_tag: SourceTag
    total_count: int


class FeaturedBusinessOut(BaseModel):
    id: str
    name: str
    image: str
    alt: str
    category: str
    subcategory: str
    interest_id: str
    description: str
    location: str
    average_rating: float
    review_count: int
    badge: str = "featured"
    rank: int
    href: str
    month_achievement: str
    verified: bool
