from __future__ import annotations

from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse

from .analytics.aggregator import compute_analytics
from .analytics.store import get_events
from .curation.errors import InvalidRequest
from .curation.models import (
    CuratedSelectionOut,
    FeaturedBusinessOut,
    GeoPoint,
)
from .curation.presentation import CurationPresenter
from .curation.service import (
    CurationService,
    build_image_lookup,
    build_service,
    normalize_category,
)
from .curation.taxonomy import INTEREST_GROUPS, get_subcategory_label

app = FastAPI(title="Business Discovery Curation API", version="1.0.0")

SOURCE_HEADER = "X-Curation-Source"

_service: CurationService | None = None
_presenter: CurationPresenter | None = None


def get_service() -> CurationService:
    global _service
    if _service is None:
        _service = build_service()
    return _service


def get_presenter(service: CurationService = Depends(get_service)) -> CurationPresenter:
    global _presenter
    if _presenter is None:
        _presenter = CurationPresenter(build_image_lookup(), config=service.config)
    return _presenter


@app.exception_handler(InvalidRequest)
def invalid_request_handler(request: Request, exc: InvalidRequest) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/metadata")
def metadata() -> dict:
    interests = [
        {
            "id": interest,
            "subcategories": [{"id": s, "label": get_subcategory_label(s)} for s in slugs],
        }
        for interest, (_, slugs) in INTEREST_GROUPS.items()
    ]
    return {"interests": interests}


@app.get("/curated", response_model=CuratedSelectionOut)
def curated(
    response: Response,
    interest_id: str | None = None,
    limit: int | None = None,
    lat: float | None = None,
    lng: float | None = None,
    service: CurationService = Depends(get_service),
    presenter: CurationPresenter = Depends(get_presenter),
) -> CuratedSelectionOut:
    geo = GeoPoint.parse(lat, lng)
    selection = service.get_curated_selection(interest_id, geo, limit)
    response.headers[SOURCE_HEADER] = selection.source_tag.value
    return presenter.present_curated(selection, category_filter=normalize_category(interest_id), geo=geo)


@app.get("/featured", response_model=list[FeaturedBusinessOut])
def featured(
    response: Response,
    category: str | None = None,
    limit: int | None = None,
    service: CurationService = Depends(get_service),
    presenter: CurationPresenter = Depends(get_presenter),
) -> list[FeaturedBusinessOut]:
    selection = service.get_featured_selection(category, limit)
    response.headers[SOURCE_HEADER] = selection.source_tag.value
    return presenter.present_featured(selection)


# ── Ops endpoints ────────────────────────────────────────────────────────


@app.get("/analytics")
def analytics() -> dict:
    return compute_analytics(get_events())


@app.get("/cache/stats")
def cache_stats(service: CurationService = Depends(get_service)) -> dict:
    return service.cache.get_stats()
