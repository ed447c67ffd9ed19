# file: ward_aqi/main.py

import logging
import uvicorn
from functools import partial
from fastapi import FastAPI, Query, HTTPException, Request, Response
from contextlib import asynccontextmanager
from pydantic import BaseModel
from typing import List, Optional, Dict, Any

from ward_aqi import config
from ward_aqi.aqi import aqi_color, aqi_status, filtered_aqi
from ward_aqi.boundaries import load_regions
from ward_aqi.cities import get_city
from ward_aqi.models import POLLUTANTS, RegionEstimate, Station
from ward_aqi.overrides import load_overrides
from ward_aqi.providers import StationFetchError, fetch_history, fetch_stations
from ward_aqi.scheduler import run_schedule
from ward_aqi.store import AirQualityStore, RefreshError

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')


class StatusResponse(BaseModel):
    has_data: bool
    is_stale: bool
    error: Optional[str] = None
    refreshed_at: Optional[str] = None
    region_count: int = 0
    estimated_count: int = 0
    station_count: int = 0
    unresolved: List[str] = []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load boundaries, start the scheduler and compute the first table on startup."""
    city = get_city(config.CITY_ID)
    if not config.BOUNDARY_FILE:
        raise ValueError("AQI_BOUNDARY_FILE is not set")
    store = AirQualityStore(load_regions(config.BOUNDARY_FILE, city), load_overrides(config.OVERRIDES_FILE),
                            config.mapping_settings())
    fetcher = partial(fetch_stations, city, config.WAQI_TOKEN)
    app.state.store = store
    app.state.fetcher = fetcher
    run_schedule(store, fetcher, config.REFRESH_INTERVAL_MINUTES)
    try:
        await store.refresh(fetcher)
    except RefreshError as e:
        logging.error(f"Initial refresh failed: {e}")
    yield


app = FastAPI(
    title="Ward Air Quality Map",
    description="Per-ward air quality estimates interpolated from live monitoring stations.",
    version="0.1",
    lifespan=lifespan
)


def _store(request: Request) -> AirQualityStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Region boundaries not loaded")
    return store


def _snapshot(request: Request, response: Response):
    snapshot = _store(request).snapshot
    if snapshot is None:
        raise HTTPException(status_code=503, detail="No air quality data available yet")
    response.headers["X-Data-Stale"] = "true" if snapshot.is_stale else "false"
    return snapshot


def _status(store: AirQualityStore) -> StatusResponse:
    snapshot = store.snapshot
    if snapshot is None:
        return StatusResponse(has_data=False, is_stale=False)
    table = snapshot.result.table
    return StatusResponse(
        has_data=True,
        is_stale=snapshot.is_stale,
        error=snapshot.error,
        refreshed_at=snapshot.refreshed_at.isoformat(),
        region_count=len(table),
        estimated_count=sum(1 for e in table.values() if e.is_estimated),
        station_count=len(snapshot.stations),
        unresolved=snapshot.result.unresolved,
    )


@app.get("/regions", response_model=List[RegionEstimate])
async def regions(request: Request, response: Response,
                  pollutant: Optional[List[str]] = Query(None, description="Recompute the index over these pollutants only")):
    """Current estimate for every region."""
    snapshot = _snapshot(request, response)
    estimates = list(snapshot.result.table.values())
    if not pollutant:
        return estimates

    unknown = [p for p in pollutant if p not in POLLUTANTS]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown pollutant(s): {', '.join(unknown)}")
    filtered = []
    for estimate in estimates:
        if estimate.index_source == "provider":
            # published index is not split per pollutant
            filtered.append(estimate)
            continue
        aqi = filtered_aqi(estimate.pollutants, pollutant)
        filtered.append(estimate.model_copy(update={"aqi": aqi, "status": aqi_status(aqi),
                                                    "status_color": aqi_color(aqi)}))
    return filtered


@app.get("/regions/{region_id}", response_model=RegionEstimate)
async def region(region_id: str, request: Request, response: Response):
    """Estimate for one region, addressed by its identifier."""
    _snapshot(request, response)
    estimate = _store(request).get_region(region_id)
    if estimate is None:
        raise HTTPException(status_code=404, detail=f"No estimate for region {region_id}")
    return estimate


@app.get("/stations", response_model=List[Station])
async def stations(request: Request, response: Response):
    """Station readings behind the current table."""
    return _snapshot(request, response).stations


@app.get("/status", response_model=StatusResponse)
async def status(request: Request):
    """Freshness of the published table."""
    return _status(_store(request))


@app.post("/refresh", response_model=StatusResponse)
async def refresh(request: Request):
    """Recompute the table now; a failed refresh keeps the previous table."""
    store = _store(request)
    try:
        await store.refresh(request.app.state.fetcher)
    except RefreshError as e:
        logging.error(f"Manual refresh failed: {e}")
        if store.snapshot is None:
            raise HTTPException(status_code=503, detail=f"Refresh failed: {e}")
    return _status(store)


@app.get("/history", response_model=List[Dict[str, Any]])
async def history(lat: float = Query(..., ge=-90, le=90), lon: float = Query(..., ge=-180, le=180)):
    """Hourly PM2.5 over the last day at a point."""
    try:
        return await fetch_history(lat, lon)
    except StationFetchError as e:
        raise HTTPException(status_code=502, detail=str(e))


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
