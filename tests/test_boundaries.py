"""
Tests for boundary loading, the city table and the override table.

Tests cover:
- Region keys from configured properties, fallback id property, unassigned labels
- GeoJSON files on disk
- Override file loading and validation errors
"""

import json

import pytest
from ward_aqi.boundaries import load_regions, parse_regions
from ward_aqi.cities import CITIES, get_city
from ward_aqi.config import DATA_DIR
from ward_aqi.models import RegionKey
from ward_aqi.overrides import OverrideTable, load_overrides

POLYGON = {"type": "Polygon", "coordinates": [[[77.0, 28.0], [77.1, 28.0], [77.1, 28.1], [77.0, 28.0]]]}


def feature(properties):
    return {"type": "Feature", "properties": properties, "geometry": POLYGON}


class TestParseRegions:
    """Test suite for parse_regions."""

    @pytest.fixture
    def delhi(self):
        return get_city("delhi")

    def test_configured_properties(self, delhi):
        collection = {"type": "FeatureCollection", "features": [
            feature({"Ward_No": 154, "Ward_Name": "Mayur Vihar Phase-I"}),
            feature({"Ward_No": "77", "Ward_Name": "Civil Lines"}),
        ]}
        regions = parse_regions(collection, delhi)
        assert [r.key for r in regions] == [RegionKey(value=154), RegionKey(value="77")]
        assert regions[0].name == "Mayur Vihar Phase-I"
        assert regions[0].geometry == POLYGON

    def test_fallback_id_and_float_ids(self, delhi):
        collection = {"features": [feature({"FID": 12.0}), feature({"Ward_No": "", "FID": 3})]}
        regions = parse_regions(collection, delhi)
        assert [str(r.key) for r in regions] == ["12", "3"]
        assert regions[0].name is None

    def test_unassigned_features_are_labelled(self, delhi):
        collection = {"features": [
            {"type": "Feature", "properties": None, "geometry": POLYGON},
            feature({"Ward_Name": "Sandbank"}),
            feature({"Ward_No": 1}),
        ]}
        regions = parse_regions(collection, delhi)
        assert [str(r.key) for r in regions] == ["YAMUNA_RIVER", "YAMUNA_RIVER-2", "1"]
        assert regions[0].key.is_unassigned
        assert not regions[2].key.is_unassigned

    def test_duplicate_ids_keep_first_feature(self, delhi, caplog):
        collection = {"features": [
            feature({"Ward_No": 7, "Ward_Name": "First"}),
            feature({"Ward_No": "7", "Ward_Name": "Second"}),
        ]}
        regions = parse_regions(collection, delhi)
        assert [r.name for r in regions] == ["First"]
        assert "duplicate id 7" in caplog.text

    def test_other_city_keys(self):
        lucknow = get_city("Lucknow")
        regions = parse_regions({"features": [feature({"Ward Num": 5, "Ward Name": "Aminabad"})]}, lucknow)
        assert regions[0].key == RegionKey(value=5)
        assert regions[0].name == "Aminabad"

    def test_empty_collection(self, delhi):
        assert parse_regions({}, delhi) == []

    def test_load_from_file(self, tmp_path, delhi):
        path = tmp_path / "wards.geojson"
        path.write_text(json.dumps({"type": "FeatureCollection", "features": [feature({"Ward_No": 9})]}))
        regions = load_regions(str(path), delhi)
        assert len(regions) == 1
        assert str(regions[0].key) == "9"


class TestCities:
    """City table."""

    def test_unknown_city(self):
        with pytest.raises(ValueError):
            get_city("atlantis")

    def test_delhi_grid_points(self):
        assert len(get_city("delhi").sampling_points()) == 13

    def test_generated_grid_covers_bounds(self):
        jaipur = CITIES["jaipur"]
        points = jaipur.sampling_points()
        assert len(points) == 9
        min_lat, min_lon, max_lat, max_lon = jaipur.bounds
        assert all(min_lat <= p.lat <= max_lat and min_lon <= p.lon <= max_lon for p in points)


class TestOverrides:
    """Override table loading."""

    def test_no_path(self):
        assert load_overrides(None).regions == {}

    def test_bundled_delhi_file(self):
        table = load_overrides(str(DATA_DIR / "delhi_overrides.json"))
        river = table.get("YAMUNA_RIVER")
        assert river.neighbor_ids == ["154", "153", "80", "77", "272"]
        assert not table.is_deferred("YAMUNA_RIVER")

    def test_lookup_by_text(self):
        table = OverrideTable.model_validate({"regions": {"42": {"neighbors": [1, "2"], "defer_direct": True}}})
        assert table.is_deferred(42)
        assert table.get("42").neighbor_ids == ["1", "2"]
        assert table.get("43") is None
        assert not table.is_deferred("43")

    def test_invalid_file(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text('{"regions": {"1": {"neighbors": "not-a-list"}}}')
        with pytest.raises(ValueError):
            load_overrides(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValueError):
            load_overrides(str(tmp_path / "missing.json"))

    def test_not_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{regions")
        with pytest.raises(ValueError):
            load_overrides(str(path))
