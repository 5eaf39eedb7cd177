"""Ports the curation engine consumes. Adapters live next to this module."""
from __future__ import annotations

from typing import Protocol

from ..curation.models import Candidate, GeoPoint


class CandidateRepository(Protocol):
    """Read-only business candidate pool with raw aggregate stats."""

    def fetch_candidates(self, category_filter: str | None, pool_size: int) -> list[Candidate]:
        """``category_filter=None`` means all categories."""
        ...


class PrecomputedSource(Protocol):
    """Opaque precomputed ranking; may be slow, raise, or return nothing."""

    def fetch_precomputed(
        self,
        category_filter: str | None,
        geo: GeoPoint | None,
        limit: int,
    ) -> list[Candidate]:
        ...


class ImageLookup(Protocol):
    """Primary image URLs for businesses."""

    def fetch_primary_image(self, candidate_id: str) -> str | None:
        ...

    def fetch_primary_images(self, candidate_ids: list[str]) -> dict[str, str]:
        """Batched form of ``fetch_primary_image``; ids without an image are omitted."""
        ...


def matches_category(candidate: Candidate, category_filter: str | None) -> bool:
    """Filter semantics shared by adapters: interest, subcategory or category equality."""
    if not category_filter:
        return True
    wanted = category_filter.strip().lower()
    for value in (candidate.interest_id, candidate.subcategory, candidate.category):
        if value and value.strip().lower() == wanted:
            return True
    return False
