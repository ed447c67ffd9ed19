"""
Pytest configuration for the ward air quality tests.

Registers custom markers and provides shared fixtures for building
stations and square ward polygons.
"""

import pytest

from ward_aqi.models import RegionBoundary, RegionKey, Station


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers", "scenario: end-to-end mapping scenarios"
    )


def square(lat, lon, half=0.01):
    """GeoJSON polygon of a small square centred on (lat, lon)."""
    return {
        "type": "Polygon",
        "coordinates": [[
            [lon - half, lat - half],
            [lon + half, lat - half],
            [lon + half, lat + half],
            [lon - half, lat + half],
            [lon - half, lat - half],
        ]],
    }


@pytest.fixture
def make_station():
    """Factory fixture for Station readings."""
    def _make(station_id, lat, lon, name=None, aqi=None, **measurements):
        return Station(
            id=station_id,
            name=name,
            lat=lat,
            lon=lon,
            measurements=measurements,
            last_updated="2025-01-01T10:00:00+00:00",
            aqi=aqi,
        )
    return _make


@pytest.fixture
def make_region():
    """Factory fixture for square region boundaries."""
    def _make(region_id, lat, lon, name=None, label=None, half=0.01):
        key = RegionKey(value=region_id) if region_id is not None else RegionKey(label=label)
        return RegionBoundary(key=key, name=name, geometry=square(lat, lon, half))
    return _make
