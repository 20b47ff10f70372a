"""
FastAPI service over the fountain pipeline.

Endpoints:
    GET    /fountains              — Nearby fountains, filtered and sorted
    POST   /fountains              — Add a user-authored fountain
    PUT    /fountains/{id}         — Replace a fountain
    DELETE /fountains/{id}         — Delete a fountain (unknown ids are a no-op)
    GET    /cache                  — Cache diagnostics
    DELETE /cache                  — Invalidate the cache
    GET    /health                 — Health check
    GET    /metrics                — Prometheus metrics
"""

import logging
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.api.schemas import (
    CacheStatusResponse, FountainInput, FountainListResponse, FountainOut,
    HealthResponse,
)
from src.data.schema import Coordinate, FountainCategory, SortOption
from src.fountains.config import DEFAULT_RADIUS_M
from src.fountains.errors import (
    DuplicateFountainError, FountainError, FountainNotFoundError,
)
from src.fountains.repository import FountainRepository, build_repository
from src.fountains.view import build_view

logger = logging.getLogger(__name__)

# ---- App setup ----
app = FastAPI(
    title="AquaFinder API",
    description="Nearby drinking-water fountains from OpenStreetMap with local caching",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---- Prometheus metrics ----
FETCH_COUNT = Counter("fountain_fetch_requests_total", "Total fountain list requests")
FETCH_ERRORS = Counter(
    "fountain_fetch_errors_total", "Failed fountain fetches by error type",
    ["error"],
)
FETCH_LATENCY = Histogram(
    "fountain_fetch_latency_seconds", "Fountain list latency",
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 25.0],
)

# ---- Repository reference ----
repository: Optional[FountainRepository] = None
api_version: str = "1.0.0"


def get_repository() -> FountainRepository:
    """Build the repository from the environment on first use."""
    global repository
    if repository is None:
        repository = build_repository()
    return repository


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    repo = get_repository()
    return HealthResponse(
        status="healthy",
        cache_valid=repo.store.is_valid(),
        version=api_version,
    )


@app.get("/fountains", response_model=FountainListResponse)
def list_fountains(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    radius_m: float = Query(DEFAULT_RADIUS_M, gt=0),
    search: str = "",
    category: FountainCategory = FountainCategory.ALL,
    sort: SortOption = SortOption.DISTANCE,
    refresh: bool = False,
):
    """
    Fetch fountains around (lat, lon) through the cache, then filter and
    sort them with distances from the same point.
    """
    start_time = time.time()
    FETCH_COUNT.inc()
    repo = get_repository()
    center = Coordinate(latitude=lat, longitude=lon)

    try:
        if refresh:
            fountains = repo.refresh_fountains(center, radius_m)
        else:
            fountains = repo.fetch_fountains(center, radius_m)
    except FountainError as e:
        FETCH_ERRORS.labels(error=type(e).__name__).inc()
        logger.warning("Fountain fetch failed for (%.5f, %.5f): %s", lat, lon, e)
        raise HTTPException(status_code=502, detail=f"Fountain fetch failed: {e}")

    views = build_view(
        fountains,
        search_text=search,
        category=category,
        sort_option=sort,
        user_location=center,
    )
    FETCH_LATENCY.observe(time.time() - start_time)

    return FountainListResponse(
        fountains=[
            FountainOut.from_record(v.fountain, v.distance_m, v.formatted_distance)
            for v in views
        ],
        total=len(views),
        search=search,
        category=category,
        sort=sort,
    )


@app.post("/fountains", response_model=FountainOut, status_code=201)
def add_fountain(body: FountainInput):
    """Add a user-authored fountain to the cached collection."""
    record = body.to_record(created_at=datetime.now(timezone.utc))
    try:
        get_repository().add_fountain(record)
    except DuplicateFountainError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return FountainOut.from_record(record)


@app.put("/fountains/{fountain_id}", response_model=FountainOut)
def update_fountain(fountain_id: str, body: FountainInput):
    """Replace an existing fountain, keeping its id and creation time."""
    repo = get_repository()
    existing = repo.get_fountain(fountain_id)
    if existing is None:
        raise HTTPException(status_code=404, detail=f"Fountain '{fountain_id}' not found")

    record = body.to_record(fountain_id=fountain_id, created_at=existing.created_at)
    try:
        repo.update_fountain(record)
    except FountainNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return FountainOut.from_record(record)


@app.delete("/fountains/{fountain_id}", status_code=204)
def delete_fountain(fountain_id: str):
    """Delete a fountain; succeeds whether or not the id exists."""
    get_repository().delete_fountain(fountain_id)
    return Response(status_code=204)


@app.get("/cache", response_model=CacheStatusResponse)
def cache_status():
    store = get_repository().store
    return CacheStatusResponse(valid=store.is_valid(), path=str(store.path))


@app.delete("/cache", status_code=204)
def invalidate_cache():
    get_repository().invalidate()
    return Response(status_code=204)


@app.get("/metrics")
async def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
