# file: ward_aqi/stations.py

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from ward_aqi.geo import distance_km
from ward_aqi.models import Station


@dataclass(frozen=True)
class NameMatchBias:
    """Tie-break rule: a station named after the region ranks as if it were closer.

    Station naming in the upstream feeds is sparse and noisy, and the geometrically
    nearest station often sits across a boundary. When the station name and the region
    name contain one another (case-insensitive), the station's distance is multiplied
    by ``factor`` for ranking purposes only.
    """
    enabled: bool = True
    factor: float = 0.5
    min_length: int = 3

    def matches(self, station_name: Optional[str], region_name: Optional[str]) -> bool:
        if not self.enabled or not station_name or not region_name:
            return False
        station = station_name.strip().lower()
        region = region_name.strip().lower()
        if len(station) < self.min_length or len(region) < self.min_length:
            return False
        return region in station or station in region

    def effective_distance(self, distance: float, station_name: Optional[str], region_name: Optional[str]) -> float:
        if self.matches(station_name, region_name):
            return distance * self.factor
        return distance


@dataclass(frozen=True)
class RankedStation:
    station: Station
    distance: float
    effective_distance: float


def find_nearby(point: Tuple[float, float], stations: Sequence[Station], max_radius_km: float = 25.0,
                region_name: Optional[str] = None, bias: Optional[NameMatchBias] = None) -> List[RankedStation]:
    """Stations within max_radius_km of point, closest (by effective distance) first."""
    bias = bias or NameMatchBias()
    lat, lon = point
    nearby = []
    for station in stations:
        distance = distance_km(lat, lon, station.lat, station.lon)
        if distance <= max_radius_km:
            effective = bias.effective_distance(distance, station.name, region_name)
            nearby.append(RankedStation(station, distance, effective))

    nearby.sort(key=lambda ranked: (ranked.effective_distance, ranked.distance))
    return nearby
