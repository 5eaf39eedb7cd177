from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from discovery.curation.config import CurationConfig
from discovery.curation.models import (
    Candidate,
    CuratedSelection,
    FeaturedSelection,
    GeoPoint,
    RankedEntry,
    SourceTag,
)
from discovery.curation.presentation import CurationPresenter, haversine_km
from discovery.curation.taxonomy import DEFAULT_PLACEHOLDER, get_subcategory_placeholder


def _entry(cid, sub="cafes", rank=1, leader=False, **fields):
    return RankedEntry(
        candidate=Candidate(id=cid, name=f"Biz {cid}", subcategory=sub, **fields),
        score=4.123456789,
        rank=rank,
        is_leader=leader,
    )


def _reverse(items):
    return list(reversed(items))


def test_curated_view_fields():
    selection = CuratedSelection(
        leaders=[_entry("a", "cafes", 1, True, slug="a-slug", verified=True, review_count=12)],
        followers=[_entry("b", "spas", 1, False, description="Quiet spa", location="Gardens")],
        source_tag=SourceTag.precomputed,
        total_count=2,
    )
    out = CurationPresenter(permute=None).present_curated(selection, category_filter="food-drink")

    leader = out.leaders[0]
    assert leader.badge == "top3"
    assert leader.month_achievement == "#1 in Cafés & Coffee"
    assert leader.description == "Top rated in Cafés & Coffee"
    assert leader.href == "/business/a-slug"
    assert leader.location == "Cape Town"
    assert leader.verified is True
    assert leader.curation_score == 4.123457
    assert leader.distance_km is None

    follower = out.followers[0]
    assert follower.badge == "curated"
    assert follower.month_achievement == "Featured Spas"
    assert follower.description == "Quiet spa"
    assert follower.href == "/business/b"
    assert follower.is_leader is False

    assert out.interest_id == "food-drink"
    assert out.source_tag is SourceTag.precomputed
    assert out.total_count == 2


def test_image_resolution_order():
    lookup = MagicMock()
    lookup.fetch_primary_images.return_value = {"a": "https://img/a.jpg"}
    selection = CuratedSelection(
        leaders=[
            _entry("a", "cafes", 1, True, image_url="https://stored/a.jpg"),
            _entry("b", "hiking", 2, True, image_url="https://stored/b.jpg"),
            _entry("c", "hiking", 3, True),
            _entry("d", "unknown-slug", 4, True),
        ],
        source_tag=SourceTag.fallback,
        total_count=4,
    )
    out = CurationPresenter(image_lookup=lookup, permute=None).present_curated(selection)

    assert [item.image for item in out.leaders] == [
        "https://img/a.jpg",
        "https://stored/b.jpg",
        get_subcategory_placeholder("hiking"),
        DEFAULT_PLACEHOLDER,
    ]
    lookup.fetch_primary_images.assert_called_once_with(["a", "b", "c", "d"])


def test_failed_image_lookup_degrades_to_stored_image():
    lookup = MagicMock()
    lookup.fetch_primary_images.side_effect = RuntimeError("storage down")
    selection = FeaturedSelection(
        entries=[_entry("a", image_url="https://stored/a.jpg")],
        source_tag=SourceTag.fallback,
    )
    out = CurationPresenter(image_lookup=lookup, permute=None).present_featured(selection)
    assert out[0].image == "https://stored/a.jpg"


def test_distance_is_reported_when_both_points_known():
    here = GeoPoint(lat=-33.9249, lng=18.4241)
    selection = CuratedSelection(
        leaders=[
            _entry("a", rank=1, leader=True, geo=GeoPoint(lat=-33.9249, lng=18.4241)),
            _entry("b", "spas", rank=2, leader=True),
        ],
        source_tag=SourceTag.fallback,
        total_count=2,
    )
    out = CurationPresenter(permute=None).present_curated(selection, geo=here)
    assert out.leaders[0].distance_km == 0.0
    assert out.leaders[1].distance_km is None


def test_haversine_known_distance():
    cape_town = GeoPoint(lat=-33.9249, lng=18.4241)
    johannesburg = GeoPoint(lat=-26.2041, lng=28.0473)
    assert haversine_km(cape_town, johannesburg) == pytest.approx(1260, rel=0.02)


def test_featured_shuffle_keeps_ranks_and_membership():
    selection = FeaturedSelection(
        entries=[_entry("a", "cafes", 1), _entry("b", "spas", 2), _entry("c", "hiking", 3)],
        source_tag=SourceTag.precomputed,
    )
    out = CurationPresenter(permute=_reverse).present_featured(selection)

    assert [item.id for item in out] == ["c", "b", "a"]
    assert [item.rank for item in out] == [3, 2, 1]
    assert all(item.badge == "featured" for item in out)


def test_featured_interest_and_label_mapping():
    selection = FeaturedSelection(
        entries=[
            _entry("a", "cafes", 1),
            _entry("b", "cafes", 2, interest_id="custom-interest"),
            _entry("c", None, 3),
        ],
        source_tag=SourceTag.fallback,
    )
    out = CurationPresenter(permute=None).present_featured(selection)

    assert out[0].interest_id == "food-drink"
    assert out[0].category == "Cafés & Coffee"
    assert out[0].month_achievement == "Featured Cafés & Coffee"
    assert out[1].interest_id == "custom-interest"
    assert out[2].interest_id == "miscellaneous"
    assert out[2].category == "Miscellaneous"


def test_curated_shuffle_is_off_by_default_and_per_tier_when_enabled():
    selection = CuratedSelection(
        leaders=[_entry("a", rank=1, leader=True), _entry("b", "spas", rank=2, leader=True)],
        followers=[_entry("c", "hiking", rank=1), _entry("d", "gyms", rank=2)],
        source_tag=SourceTag.fallback,
        total_count=4,
    )
    default = CurationPresenter(permute=_reverse).present_curated(selection)
    assert [i.id for i in default.leaders] == ["a", "b"]

    shuffled = CurationPresenter(
        config=CurationConfig(shuffle_curated=True), permute=_reverse,
    ).present_curated(selection)
    assert [i.id for i in shuffled.leaders] == ["b", "a"]
    assert [i.id for i in shuffled.followers] == ["d", "c"]
    assert [i.rank for i in shuffled.leaders] == [2, 1]


def test_default_permutation_shuffles_featured_without_losing_entries():
    entries = [_entry(str(i), "cafes", i + 1) for i in range(6)]
    selection = FeaturedSelection(entries=entries, source_tag=SourceTag.fallback)

    out = CurationPresenter().present_featured(selection)

    assert sorted(item.id for item in out) == [str(i) for i in range(6)]
    assert {item.id: item.rank for item in out} == {str(i): i + 1 for i in range(6)}
