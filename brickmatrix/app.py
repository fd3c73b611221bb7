from __future__ import annotations

import logging
import os

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from .analytics.aggregator import compute_analytics
from .analytics.store import get_events, record_event
from .auth.dependencies import require_admin, require_user
from .auth.models import LoginRequest
from .auth.users import authenticate
from .recommendations.catalog import (
    BASE_AMENITIES,
    CONFIGURATIONS,
    SEGMENT_AMENITIES,
    SEGMENTS,
    STATUSES,
    TIER1_CITIES,
)
from .recommendations.engine import RecommendationEngine, build_engine
from .recommendations.filters import SortOrder
from .recommendations.models import RecommendationResponse
from .shortlists.manager import MAX_COMPARISON_ITEMS, ShortlistManager
from .shortlists.models import (
    AddResult,
    ComparisonItem,
    RemoveResult,
    WishlistItem,
    WishlistStats,
    WishlistUpdate,
)
from .shortlists.store import InMemoryKeyValueStore

logger = logging.getLogger(__name__)

app = FastAPI(title="BrickMatrix Recommendation API", version="1.0.0")
app.add_middleware(
    SessionMiddleware,
    secret_key=os.environ.get("SESSION_SECRET", "brickmatrix-secret-change-in-production"),
)

app.state.engine = build_engine()
app.state.shortlist_store = InMemoryKeyValueStore()


def get_engine(request: Request) -> RecommendationEngine:
    return request.app.state.engine


def get_shortlists(request: Request, user: dict = Depends(require_user)) -> ShortlistManager:
    return ShortlistManager(request.app.state.shortlist_store, owner=user["username"])


def _add_response(result: AddResult) -> AddResult | JSONResponse:
    if result.success:
        return result
    return JSONResponse(status_code=409, content=result.model_dump(mode="json"))


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/metadata")
def metadata() -> dict:
    amenities: set[str] = set(BASE_AMENITIES)
    for segment in SEGMENTS:
        amenities.update(SEGMENT_AMENITIES[segment])
    return {
        "cities": sorted(TIER1_CITIES),
        "configurations": list(CONFIGURATIONS),
        "statuses": list(STATUSES),
        "amenities": sorted(amenities),
        "sort_options": [s.value for s in SortOrder],
        "max_comparison_items": MAX_COMPARISON_ITEMS,
    }


# ── Auth endpoints ───────────────────────────────────────────────────────


@app.post("/auth/login")
def login(body: LoginRequest, request: Request) -> dict:
    user = authenticate(body.username, body.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    request.session["user"] = user
    return {"status": "ok", "user": user}


@app.post("/auth/logout")
def logout(request: Request) -> dict:
    request.session.clear()
    return {"status": "logged_out"}


@app.get("/auth/me")
def auth_me(user: dict = Depends(require_user)) -> dict:
    return user


# ── Recommendations ──────────────────────────────────────────────────────


@app.post("/recommendations", response_model=RecommendationResponse)
async def recommendations(
    request: Request,
    user: dict = Depends(require_user),
    engine: RecommendationEngine = Depends(get_engine),
):
    # Body is parsed leniently: bad JSON or bad fields fall back to defaults.
    try:
        payload = await request.json()
    except ValueError:
        logger.info("Recommendation request without a JSON body, using default filters")
        payload = None

    response = await engine.recommend(payload)
    if response.status == "failed":
        return JSONResponse(status_code=503, content=response.model_dump(mode="json"))
    return response


# ── Comparison ───────────────────────────────────────────────────────────


@app.get("/comparison", response_model=list[ComparisonItem])
def get_comparison(shortlists: ShortlistManager = Depends(get_shortlists)) -> list[ComparisonItem]:
    return shortlists.get_comparison()


@app.post("/comparison", response_model=AddResult)
def add_comparison(body: ComparisonItem, shortlists: ShortlistManager = Depends(get_shortlists)):
    result = shortlists.add_to_comparison(body)
    if result.success:
        record_event("comparison_add", {"owner": shortlists.owner, "property_id": body.property_id})
    return _add_response(result)


@app.delete("/comparison/{property_id}", response_model=RemoveResult)
def remove_comparison(property_id: str, shortlists: ShortlistManager = Depends(get_shortlists)) -> RemoveResult:
    return shortlists.comparison.remove(property_id)


@app.delete("/comparison")
def clear_comparison(shortlists: ShortlistManager = Depends(get_shortlists)) -> dict:
    shortlists.clear_comparison()
    return {"status": "cleared"}


# ── Wishlist ─────────────────────────────────────────────────────────────


@app.get("/wishlist", response_model=list[WishlistItem])
def get_wishlist(shortlists: ShortlistManager = Depends(get_shortlists)) -> list[WishlistItem]:
    return shortlists.get_wishlist()


@app.get("/wishlist/stats", response_model=WishlistStats)
def wishlist_stats(shortlists: ShortlistManager = Depends(get_shortlists)) -> WishlistStats:
    return shortlists.wishlist_stats()


@app.post("/wishlist", response_model=AddResult)
def add_wishlist(body: WishlistItem, shortlists: ShortlistManager = Depends(get_shortlists)):
    result = shortlists.wishlist.add(body)
    if result.success:
        record_event("wishlist_add", {"owner": shortlists.owner, "property_id": body.property_id})
    return _add_response(result)


@app.patch("/wishlist/{property_id}", response_model=WishlistItem)
def update_wishlist(
    property_id: str,
    body: WishlistUpdate,
    shortlists: ShortlistManager = Depends(get_shortlists),
) -> WishlistItem:
    if not shortlists.update_wishlist_item(property_id, **body.model_dump(exclude_none=True)):
        raise HTTPException(status_code=404, detail="Property not in wishlist")
    return next(item for item in shortlists.get_wishlist() if item.property_id == property_id)


@app.delete("/wishlist/{property_id}", response_model=RemoveResult)
def remove_wishlist(property_id: str, shortlists: ShortlistManager = Depends(get_shortlists)) -> RemoveResult:
    return shortlists.wishlist.remove(property_id)


# ── Admin endpoints ──────────────────────────────────────────────────────


@app.get("/analytics")
def analytics(user: dict = Depends(require_admin)) -> dict:
    return compute_analytics(get_events())


@app.get("/cache/stats")
def cache_stats(
    user: dict = Depends(require_admin),
    engine: RecommendationEngine = Depends(get_engine),
) -> dict:
    return engine.cache.stats()
