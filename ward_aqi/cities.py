# file: ward_aqi/cities.py

from pydantic import BaseModel, Field
from typing import Dict, List, Optional, Tuple


class GridPoint(BaseModel):
    name: str
    lat: float
    lon: float


class CityConfig(BaseModel):
    id: str
    name: str
    bounds: Tuple[float, float, float, float] = Field(..., description="(min_lat, min_lon, max_lat, max_lon)")
    center: Tuple[float, float]
    ward_id_prop: str = Field(..., description="Feature property holding the ward identifier")
    ward_name_prop: str = Field(..., description="Feature property holding the ward display name")
    fallback_id_prop: Optional[str] = Field(None, description="Identifier property used when the main one is empty")
    unassigned_label: str = Field("UNASSIGNED", description="Key text for a feature without identifier")
    grid_points: List[GridPoint] = Field(default_factory=list, description="Model sampling points")

    def sampling_points(self) -> List[GridPoint]:
        """Configured grid points, or a 3x3 grid over the city bounds."""
        if self.grid_points:
            return list(self.grid_points)
        min_lat, min_lon, max_lat, max_lon = self.bounds
        points = []
        for i, lat in enumerate((min_lat, (min_lat + max_lat) / 2, max_lat)):
            for j, lon in enumerate((min_lon, (min_lon + max_lon) / 2, max_lon)):
                points.append(GridPoint(name=f"{self.name} grid {i * 3 + j + 1}", lat=round(lat, 4), lon=round(lon, 4)))
        return points


CITIES: Dict[str, CityConfig] = {
    "delhi": CityConfig(
        id="delhi", name="Delhi NCR", bounds=(28.4, 76.8, 29.0, 77.4), center=(28.6139, 77.2090),
        ward_id_prop="Ward_No", ward_name_prop="Ward_Name", fallback_id_prop="FID",
        unassigned_label="YAMUNA_RIVER",
        grid_points=[
            GridPoint(name="Central Delhi", lat=28.61, lon=77.21),
            GridPoint(name="North Delhi", lat=28.70, lon=77.13),
            GridPoint(name="South Delhi", lat=28.52, lon=77.22),
            GridPoint(name="West Delhi", lat=28.63, lon=77.08),
            GridPoint(name="East Delhi", lat=28.63, lon=77.30),
            GridPoint(name="Dwarka", lat=28.58, lon=77.05),
            GridPoint(name="Rohini", lat=28.74, lon=77.11),
            GridPoint(name="Noida Sector 62", lat=28.62, lon=77.36),
            GridPoint(name="Gurugram", lat=28.45, lon=77.02),
            GridPoint(name="Aya Nagar", lat=28.4717, lon=77.1095),
            GridPoint(name="Bhati", lat=28.43, lon=77.226),
            GridPoint(name="Fatehpur Beri", lat=28.45, lon=77.28),
            GridPoint(name="Asola", lat=28.47, lon=77.24),
        ],
    ),
    "indore": CityConfig(
        id="indore", name="Indore", bounds=(22.5, 75.6, 23.0, 76.2), center=(22.7196, 75.8577),
        ward_id_prop="sourcewardcode", ward_name_prop="ward_lgd_name",
    ),
    "jaipur": CityConfig(
        id="jaipur", name="Jaipur", bounds=(26.7, 75.6, 27.2, 76.0), center=(26.9124, 75.7873),
        ward_id_prop="wardcode", ward_name_prop="ward_lgd_name",
    ),
    "gurgaon": CityConfig(
        id="gurgaon", name="Gurgaon", bounds=(28.3, 76.8, 28.6, 77.3), center=(28.4595, 77.0266),
        ward_id_prop="sourcewardcode", ward_name_prop="ward_lgd_name",
    ),
    "lucknow": CityConfig(
        id="lucknow", name="Lucknow", bounds=(26.7, 80.8, 27.0, 81.1), center=(26.8467, 80.9462),
        ward_id_prop="Ward Num", ward_name_prop="Ward Name",
    ),
    "kolkata": CityConfig(
        id="kolkata", name="Kolkata", bounds=(22.4, 88.2, 22.7, 88.6), center=(22.5726, 88.3639),
        ward_id_prop="Ward Num", ward_name_prop="Ward Name",
    ),
}


def get_city(city_id: str) -> CityConfig:
    try:
        return CITIES[city_id.lower()]
    except KeyError:
        raise ValueError(f"Unknown city '{city_id}', expected one of {sorted(CITIES)}")
