"""
Tests for the FastAPI service.

The lifespan (boundary loading, scheduler, network) is not started: the store
and fetcher are placed on app.state directly.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient
from ward_aqi import main
from ward_aqi.aqi import sub_index
from ward_aqi.store import AirQualityStore

LAT = 28.6


@pytest.fixture
def regions(make_region):
    return [
        make_region(1, LAT, 77.0, name="Alpha"),
        make_region(2, LAT, 77.5, name="Bravo"),
        make_region(None, LAT, 78.0, label="YAMUNA_RIVER"),
    ]


@pytest.fixture
def stations(make_station):
    return [make_station("s1", LAT, 77.5, name="Bravo", pm25=80, pm10=60)]


@pytest.fixture
def client():
    yield TestClient(main.app)
    for attr in ("store", "fetcher"):
        if hasattr(main.app.state, attr):
            delattr(main.app.state, attr)


@pytest.fixture
def loaded(client, regions, stations):
    async def fetch():
        return stations

    store = AirQualityStore(regions)
    asyncio.run(store.refresh(fetch))
    main.app.state.store = store
    main.app.state.fetcher = fetch
    return store


class TestRegions:
    """Region endpoints."""

    def test_no_store(self, client):
        assert client.get("/regions").status_code == 503

    def test_store_without_data(self, client, regions):
        main.app.state.store = AirQualityStore(regions)
        assert client.get("/regions").status_code == 503
        assert client.get("/status").json()["has_data"] is False

    def test_all_regions(self, client, loaded):
        response = client.get("/regions")
        assert response.status_code == 200
        assert response.headers["X-Data-Stale"] == "false"
        body = response.json()
        assert len(body) == 3
        by_id = {str(e["region_id"]["value"] or e["region_id"]["label"]): e for e in body}
        assert by_id["2"]["is_estimated"] is False
        assert by_id["YAMUNA_RIVER"]["is_estimated"] is True

    def test_pollutant_filter(self, client, loaded):
        body = client.get("/regions", params={"pollutant": ["pm10"]}).json()
        assert {e["aqi"] for e in body} == {sub_index("pm10", 60)}

    def test_pollutant_filter_keeps_provider_index(self, client, regions, make_station):
        async def fetch():
            return [make_station("w1", LAT, 77.5, name="Bravo", aqi=250, pm25=80, pm10=60)]

        store = AirQualityStore(regions)
        asyncio.run(store.refresh(fetch))
        main.app.state.store = store
        body = client.get("/regions", params={"pollutant": ["pm10"]}).json()
        assert {e["aqi"] for e in body} == {250}
        assert {e["index_source"] for e in body} == {"provider"}

    def test_unknown_pollutant(self, client, loaded):
        assert client.get("/regions", params={"pollutant": ["xyz"]}).status_code == 400

    def test_single_region(self, client, loaded):
        body = client.get("/regions/2").json()
        assert body["aqi"] == sub_index("pm25", 80)
        assert body["nearest_station"] == "Bravo"
        assert client.get("/regions/YAMUNA_RIVER").json()["estimated_from"] == ["2"]

    def test_missing_region(self, client, loaded):
        assert client.get("/regions/404").status_code == 404

    def test_stations(self, client, loaded):
        body = client.get("/stations").json()
        assert [s["id"] for s in body] == ["s1"]


class TestRefresh:
    """Status and manual refresh."""

    def test_status(self, client, loaded):
        body = client.get("/status").json()
        assert body["has_data"] is True
        assert body["is_stale"] is False
        assert body["region_count"] == 3
        assert body["estimated_count"] == 2
        assert body["station_count"] == 1

    def test_failed_refresh_serves_stale_table(self, client, loaded):
        async def broken():
            raise ConnectionError("provider down")

        main.app.state.fetcher = broken
        response = client.post("/refresh")
        assert response.status_code == 200
        assert response.json()["is_stale"] is True
        assert response.json()["error"] == "provider down"

        regions = client.get("/regions")
        assert regions.headers["X-Data-Stale"] == "true"
        assert len(regions.json()) == 3

    def test_failed_refresh_without_data(self, client, regions):
        async def broken():
            raise ConnectionError("provider down")

        main.app.state.store = AirQualityStore(regions)
        main.app.state.fetcher = broken
        assert client.post("/refresh").status_code == 503
