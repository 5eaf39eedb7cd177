from __future__ import annotations

import logging
import math
import random
from typing import Callable, Sequence, TypeVar

from ..sources.base import ImageLookup
from .config import DEFAULT_CURATION_CONFIG, CurationConfig
from .models import (
    CuratedBusinessOut,
    CuratedSelection,
    CuratedSelectionOut,
    FeaturedBusinessOut,
    FeaturedSelection,
    GeoPoint,
    RankedEntry,
)
from .taxonomy import (
    get_interest_for_subcategory,
    get_subcategory_label,
    get_subcategory_placeholder,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
Permutation = Callable[[list[T]], list[T]]

EARTH_RADIUS_KM = 6371.0


def random_permutation(items: list[T]) -> list[T]:
    return random.sample(items, len(items))


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    dlat = lat2 - lat1
    dlng = math.radians(b.lng - a.lng)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(min(1.0, h)))


class CurationPresenter:
    """Formats ranked entries into view models. Never alters score or rank."""

    def __init__(
        self,
        image_lookup: ImageLookup | None = None,
        config: CurationConfig = DEFAULT_CURATION_CONFIG,
        permute: Permutation | None = random_permutation,
    ) -> None:
        self.image_lookup = image_lookup
        self.config = config
        self.permute = permute

    def _display_order(self, items: list[T], enabled: bool) -> list[T]:
        if not enabled or self.permute is None or len(items) < 2:
            return items
        return self.permute(list(items))

    def _primary_images(self, entries: Sequence[RankedEntry]) -> dict[str, str]:
        if self.image_lookup is None or not entries:
            return {}
        try:
            return self.image_lookup.fetch_primary_images([e.candidate.id for e in entries]) or {}
        except Exception:
            logger.warning("Image lookup failed, using stored image or placeholder", exc_info=True)
            return {}

    def _image_for(self, entry: RankedEntry, images: dict[str, str]) -> str:
        c = entry.candidate
        return images.get(c.id) or c.image_url or get_subcategory_placeholder(c.category_key)

    def _curated_item(
        self,
        entry: RankedEntry,
        images: dict[str, str],
        geo: GeoPoint | None,
    ) -> CuratedBusinessOut:
        c = entry.candidate
        label = get_subcategory_label(c.category_key)
        distance = round(haversine_km(geo, c.geo), 2) if geo is not None and c.geo is not None else None
        return CuratedBusinessOut(
            id=c.id,
            name=c.name,
            image=self._image_for(entry, images),
            alt=c.name,
            category=label,
            subcategory=c.category_key,
            description=c.description or f"{'Top rated' if entry.is_leader else 'Featured'} in {label}",
            location=c.location or self.config.default_location,
            average_rating=c.average_rating,
            review_count=max(0, c.review_count),
            badge="top3" if entry.is_leader else "curated",
            rank=entry.rank,
            href=f"/business/{c.slug or c.id}",
            month_achievement=f"#{entry.rank} in {label}" if entry.is_leader else f"Featured {label}",
            verified=c.verified,
            is_leader=entry.is_leader,
            curation_score=round(entry.score, 6),
            distance_km=distance,
        )

    def present_curated(
        self,
        selection: CuratedSelection,
        category_filter: str | None = None,
        geo: GeoPoint | None = None,
    ) -> CuratedSelectionOut:
        images = self._primary_images([*selection.leaders, *selection.followers])
        leaders = [self._curated_item(e, images, geo) for e in selection.leaders]
        followers = [self._curated_item(e, images, geo) for e in selection.followers]
        shuffle = self.config.shuffle_curated
        return CuratedSelectionOut(
            leaders=self._display_order(leaders, shuffle),
            followers=self._display_order(followers, shuffle),
            interest_id=category_filter,
            source_tag=selection.source_tag,
            total_count=selection.total_count,
        )

    def present_featured(self, selection: FeaturedSelection) -> list[FeaturedBusinessOut]:
        images = self._primary_images(selection.entries)
        items: list[FeaturedBusinessOut] = []
        for entry in selection.entries:
            c = entry.candidate
            slug = c.category_key
            label = get_subcategory_label(slug)
            items.append(FeaturedBusinessOut(
                id=c.id,
                name=c.name,
                image=self._image_for(entry, images),
                alt=c.name,
                category=label,
                subcategory=slug,
                interest_id=c.interest_id or get_interest_for_subcategory(slug) or "miscellaneous",
                description=c.description or f"Featured in {label}",
                location=c.location or self.config.default_location,
                average_rating=c.average_rating,
                review_count=max(0, c.review_count),
                rank=entry.rank,
                href=f"/business/{c.slug or c.id}",
                month_achievement=f"Featured {label}",
                verified=c.verified,
            ))
        return self._display_order(items, self.config.shuffle_featured)
