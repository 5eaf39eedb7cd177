from __future__ import annotations

from fastapi.testclient import TestClient

from discovery.analytics.store import clear_events
from discovery.app import app, get_presenter, get_service
from discovery.curation.cache import CacheManager
from discovery.curation.config import CurationConfig
from discovery.curation.presentation import CurationPresenter
from discovery.curation.retrieval import RetrievalStrategy
from discovery.curation.service import CurationService
from discovery.sources.data_store import CsvCandidateRepository, CsvImageLookup

CONFIG = CurationConfig()

# No precomputed source, so every request takes the fallback path
service = CurationService(
    curated_retrieval=RetrievalStrategy(CsvCandidateRepository(), None, CONFIG),
    cache=CacheManager(),
    config=CONFIG,
)
presenter = CurationPresenter(CsvImageLookup(), config=CONFIG, permute=None)

app.dependency_overrides[get_service] = lambda: service
app.dependency_overrides[get_presenter] = lambda: presenter

client = TestClient(app)


def _reset():
    clear_events()
    service.cache.clear()


def test_health():
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_metadata_lists_interests():
    body = client.get("/metadata").json()
    ids = [i["id"] for i in body["interests"]]
    assert "food-drink" in ids
    food = next(i for i in body["interests"] if i["id"] == "food-drink")
    assert {"id": "cafes", "label": "Cafés & Coffee"} in food["subcategories"]


def test_curated_endpoint():
    _reset()
    resp = client.get("/curated", params={"limit": 13})
    assert resp.status_code == 200
    assert resp.headers["X-Curation-Source"] == "fallback"

    body = resp.json()
    assert body["source_tag"] == "fallback"
    assert body["total_count"] == 13
    assert len(body["leaders"]) == 3
    assert len(body["followers"]) == 10
    assert len({b["subcategory"] for b in body["leaders"]}) == 3
    assert all(b["badge"] == "top3" for b in body["leaders"])
    assert [b["rank"] for b in body["followers"]] == list(range(1, 11))


def test_curated_endpoint_with_interest_and_geo():
    _reset()
    resp = client.get("/curated", params={"interest_id": "food-drink", "lat": -33.92, "lng": 18.42, "limit": 5})
    body = resp.json()

    assert body["interest_id"] == "food-drink"
    items = body["leaders"] + body["followers"]
    assert len(items) == 5
    assert all(item["distance_km"] is not None for item in items)


def test_curated_endpoint_ignores_partial_geo():
    _reset()
    body = client.get("/curated", params={"lat": -33.92, "limit": 3}).json()
    assert all(item["distance_km"] is None for item in body["leaders"])


def test_curated_endpoint_unknown_interest_is_empty():
    _reset()
    resp = client.get("/curated", params={"interest_id": "does-not-exist"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["total_count"] == 0
    assert body["leaders"] == [] and body["followers"] == []


def test_negative_limit_returns_400():
    resp = client.get("/curated", params={"limit": -1})
    assert resp.status_code == 400
    assert client.get("/featured", params={"limit": -1}).status_code == 400


def test_featured_endpoint():
    _reset()
    resp = client.get("/featured", params={"category": "food-drink", "limit": 12})
    assert resp.status_code == 200
    assert resp.headers["X-Curation-Source"] == "fallback"

    items = resp.json()
    # five food-drink subcategories in the sample data
    assert len(items) == 5
    assert len({i["subcategory"] for i in items}) == 5
    assert all(i["interest_id"] == "food-drink" for i in items)
    assert all(i["badge"] == "featured" for i in items)

    # La Colombe outranks The Test Kitchen and has no stored image
    fine_dining = next(i for i in items if i["subcategory"] == "fine-dining")
    assert fine_dining["id"] == "b-023"
    assert fine_dining["image"] == "/businessImagePlaceholders/food-drink/fine-dining.jpg"


def test_featured_image_comes_from_lookup():
    _reset()
    items = client.get("/featured", params={"category": "hiking"}).json()
    assert items[0]["id"] == "b-010"
    assert items[0]["image"] == "https://images.example.com/b-010/summit.jpg"


def test_analytics_and_cache_stats_track_requests():
    _reset()
    client.get("/curated", params={"interest_id": "arts-culture"})
    client.get("/curated", params={"interest_id": "arts-culture"})
    client.get("/featured")

    body = client.get("/analytics").json()
    assert body["total_requests"] == 3
    assert body["surfaces"]["curated"]["requests"] == 2
    assert body["cache_stats"]["hits"] == 1
    assert body["top_categories"][0] == {"name": "arts-culture", "count": 2}

    stats = client.get("/cache/stats").json()
    assert stats["size"] == 2
    assert stats["hits"] == 1
