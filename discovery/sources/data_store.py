"""Local CSV-backed sources for development and tests."""
from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from ..curation.errors import UpstreamUnavailable
from ..curation.models import Candidate, GeoPoint

logger = logging.getLogger(__name__)

_PROCESSED_DIR = Path(__file__).resolve().parent.parent / "data" / "processed"
BUSINESSES_CSV = _PROCESSED_DIR / "businesses.csv"
PRECOMPUTED_CSV = _PROCESSED_DIR / "precomputed_rankings.csv"
IMAGES_CSV = _PROCESSED_DIR / "business_images.csv"


def load_businesses(path: Path = BUSINESSES_CSV) -> pd.DataFrame:
    df = pd.read_csv(path, dtype={"id": str})

    # Only active listings are eligible, newest first like the live query
    if "status" in df.columns:
        df = df[df["status"].fillna("active").str.lower() == "active"]
    if "created_at" in df.columns:
        df = df.sort_values("created_at", ascending=False, kind="stable")
    return df.reset_index(drop=True)


def _filter_frame(df: pd.DataFrame, category_filter: str | None) -> pd.DataFrame:
    if not category_filter:
        return df
    wanted = category_filter.strip().lower()
    mask = pd.Series(False, index=df.index)
    for col in ("interest_id", "sub_interest_id", "category"):
        if col in df.columns:
            mask = mask | (df[col].fillna("").astype(str).str.strip().str.lower() == wanted)
    return df.loc[mask]


def _to_candidates(df: pd.DataFrame) -> list[Candidate]:
    return [Candidate.from_row(row) for row in df.to_dict(orient="records")]


class CsvCandidateRepository:
    """Business repository over ``businesses.csv``; the frame loads on first use."""

    def __init__(self, path: Path = BUSINESSES_CSV) -> None:
        self.path = path
        self._df: pd.DataFrame | None = None

    def get_dataframe(self) -> pd.DataFrame:
        if self._df is None:
            self._df = load_businesses(self.path)
        return self._df

    def fetch_candidates(self, category_filter: str | None, pool_size: int) -> list[Candidate]:
        df = _filter_frame(self.get_dataframe(), category_filter)
        return _to_candidates(df.head(pool_size))


class CsvPrecomputedSource:
    """
    Serves the ranking written by ``discovery.curation.precompute``.

    The file is re-read on each call so a fresh precompute run is picked up
    without a restart. A missing file means the source is unavailable.
    """

    def __init__(self, path: Path = PRECOMPUTED_CSV) -> None:
        self.path = path

    def fetch_precomputed(
        self,
        category_filter: str | None,
        geo: GeoPoint | None,
        limit: int,
    ) -> list[Candidate]:
        if not self.path.exists():
            raise UpstreamUnavailable(f"precomputed rankings not found at {self.path}")
        df = pd.read_csv(self.path, dtype={"id": str})
        if "rank_position" in df.columns:
            df = df.sort_values("rank_position", kind="stable")
        df = _filter_frame(df, category_filter)
        return _to_candidates(df.head(limit))


class CsvImageLookup:
    """Primary images from ``business_images.csv`` (``is_primary`` first)."""

    def __init__(self, path: Path = IMAGES_CSV) -> None:
        self.path = path
        self._primary: dict[str, str] | None = None

    def _load(self) -> dict[str, str]:
        if self._primary is None:
            if not self.path.exists():
                logger.debug("No image file at %s", self.path)
                self._primary = {}
            else:
                df = pd.read_csv(self.path, dtype={"business_id": str})
                df = df.dropna(subset=["url"])
                df["is_primary"] = df["is_primary"].fillna(False).astype(bool)
                df = df.sort_values("is_primary", ascending=False, kind="stable")
                self._primary = (
                    df.drop_duplicates("business_id").set_index("business_id")["url"].to_dict()
                )
        return self._primary

    def fetch_primary_image(self, candidate_id: str) -> str | None:
        return self._load().get(candidate_id)

    def fetch_primary_images(self, candidate_ids: list[str]) -> dict[str, str]:
        images = self._load()
        return {cid: images[cid] for cid in candidate_ids if cid in images}
