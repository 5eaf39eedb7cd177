from __future__ import annotations

import pandas as pd
import pytest

from discovery.curation.errors import UpstreamUnavailable
from discovery.curation.models import SourceTag
from discovery.curation.precompute import build_rankings, run_precompute
from discovery.curation.retrieval import RetrievalStrategy
from discovery.sources.data_store import (
    CsvCandidateRepository,
    CsvImageLookup,
    CsvPrecomputedSource,
    load_businesses,
)


def test_load_businesses_keeps_active_rows_newest_first():
    df = load_businesses()
    assert "b-022" not in set(df["id"])
    assert len(df) == 23
    assert list(df["created_at"]) == sorted(df["created_at"], reverse=True)


def test_repository_filters_on_interest_subcategory_or_category():
    repo = CsvCandidateRepository()

    by_interest = repo.fetch_candidates("food-drink", 100)
    assert {c.id for c in by_interest} == {"b-001", "b-002", "b-003", "b-004", "b-005", "b-006", "b-023", "b-024"}

    by_sub = repo.fetch_candidates("CAFES", 100)
    assert {c.id for c in by_sub} == {"b-002", "b-005"}

    assert len(repo.fetch_candidates(None, 5)) == 5
    assert repo.fetch_candidates("no-such-thing", 10) == []


def test_csv_candidates_are_fully_mapped():
    repo = CsvCandidateRepository()
    by_id = {c.id: c for c in repo.fetch_candidates(None, 100)}

    kitchen = by_id["b-001"]
    assert kitchen.subcategory == "fine-dining"
    assert kitchen.review_count == 212
    assert kitchen.verified is True
    assert kitchen.image_url is None
    assert kitchen.geo is not None

    mystery = by_id["b-021"]
    assert mystery.category_key == "miscellaneous"
    assert mystery.geo is None


def test_build_rankings_orders_by_score():
    ranked = build_rankings(load_businesses())

    assert list(ranked["rank_position"]) == list(range(1, len(ranked) + 1))
    scores = list(ranked["curation_score"])
    assert scores == sorted(scores, reverse=True)
    # volume beats a single perfect review
    positions = dict(zip(ranked["id"], ranked["rank_position"]))
    assert positions["b-010"] < positions["b-003"]


def test_precompute_round_trip_through_source(tmp_path):
    out = run_precompute(out_path=tmp_path / "rankings.csv")
    source = CsvPrecomputedSource(out)

    top = source.fetch_precomputed(None, None, 3)
    assert len(top) == 3
    assert all(c.precomputed_score is not None for c in top)

    cafes = source.fetch_precomputed("cafes", None, 10)
    assert {c.id for c in cafes} == {"b-002", "b-005"}


def test_missing_precomputed_file_is_unavailable(tmp_path):
    source = CsvPrecomputedSource(tmp_path / "missing.csv")
    with pytest.raises(UpstreamUnavailable):
        source.fetch_precomputed(None, None, 5)


def test_missing_precomputed_file_falls_back_to_repository(tmp_path):
    strategy = RetrievalStrategy(CsvCandidateRepository(), CsvPrecomputedSource(tmp_path / "missing.csv"))
    result = strategy.retrieve("arts-culture", None, 3)
    assert result.source is SourceTag.fallback
    assert {c.id for c in result.candidates} == {"b-013", "b-014", "b-015"}


def test_image_lookup_prefers_primary_image():
    lookup = CsvImageLookup()
    images = lookup.fetch_primary_images(["b-001", "b-002", "b-003"])

    assert images["b-001"] == "https://images.example.com/b-001/main.jpg"
    assert images["b-002"] == "https://images.example.com/b-002/bar.jpg"
    assert "b-003" not in images
    assert lookup.fetch_primary_image("b-010") == "https://images.example.com/b-010/summit.jpg"


def test_image_lookup_without_file(tmp_path):
    assert CsvImageLookup(tmp_path / "none.csv").fetch_primary_images(["b-001"]) == {}


def test_custom_frame_ties_break_on_reviews_then_id():
    df = pd.DataFrame([
        {"id": "z", "name": "Z", "average_rating": 4.0, "total_reviews": 0},
        {"id": "a", "name": "A", "average_rating": 4.0, "total_reviews": 0},
    ])
    ranked = build_rankings(df)
    assert list(ranked["id"]) == ["a", "z"]
