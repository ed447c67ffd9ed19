# file: ward_aqi/geo.py

import math
from typing import Optional, Tuple, Dict, Any
from shapely.errors import ShapelyError
from shapely.geometry import shape

EARTH_RADIUS_KM = 6371.0


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points (haversine)."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2)
    # rounding can push a a hair above 1 for antipodal points
    a = min(1.0, max(0.0, a))
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def centroid(geometry: Optional[Dict[str, Any]]) -> Optional[Tuple[float, float]]:
    """Return the (lat, lon) centroid of a GeoJSON geometry, or None when it cannot be placed."""
    if not geometry:
        return None
    try:
        geom = shape(geometry)
        if geom.is_empty or geom.area == 0:
            return None
        point = geom.centroid
    except (ShapelyError, KeyError, TypeError, ValueError, IndexError, AttributeError):
        return None
    if point.is_empty or not (math.isfinite(point.y) and math.isfinite(point.x)):
        return None
    return point.y, point.x
