# file: ward_aqi/boundaries.py

import json
import logging
from typing import Any, Dict, List

from ward_aqi.cities import CityConfig
from ward_aqi.models import RegionBoundary, RegionKey


def _region_value(properties: Dict[str, Any], city: CityConfig):
    for prop in (city.ward_id_prop, city.fallback_id_prop):
        if not prop:
            continue
        value = properties.get(prop)
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return value
    return None


def parse_regions(collection: Dict[str, Any], city: CityConfig) -> List[RegionBoundary]:
    """Turn a GeoJSON FeatureCollection into region boundaries keyed per the city config."""
    features = collection.get("features") or []
    regions = []
    unassigned = 0
    seen = set()
    for feature in features:
        if not isinstance(feature, dict):
            logging.warning("Skipping boundary entry that is not a feature")
            continue
        properties = feature.get("properties") or {}
        value = _region_value(properties, city)
        if value is None:
            unassigned += 1
            label = city.unassigned_label if unassigned == 1 else f"{city.unassigned_label}-{unassigned}"
            key = RegionKey(label=label)
        else:
            key = RegionKey(value=value)
        if str(key) in seen:
            logging.warning(f"Skipping boundary feature with duplicate id {key}")
            continue
        seen.add(str(key))
        name = properties.get(city.ward_name_prop)
        regions.append(RegionBoundary(key=key, name=str(name) if name is not None else None,
                                      geometry=feature.get("geometry")))

    if unassigned:
        logging.info(f"{unassigned} boundary feature(s) without identifier labelled '{city.unassigned_label}'")
    return regions


def load_regions(path: str, city: CityConfig) -> List[RegionBoundary]:
    """Load region boundaries from a GeoJSON file."""
    with open(path, "r", encoding="utf-8") as f:
        collection = json.load(f)
    regions = parse_regions(collection, city)
    logging.info(f"Loaded {len(regions)} regions for {city.name} from {path}")
    return regions
