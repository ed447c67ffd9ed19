# file: ward_aqi/models.py

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, Dict, List, Union, Any

POLLUTANTS = ("pm25", "pm10", "no2", "o3", "so2", "co")


class Station(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Union[int, str] = Field(..., description="Unique identifier of the station")
    name: Optional[str] = Field(None, description="Human readable station name")
    lat: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    lon: float = Field(..., ge=-180, le=180, description="Longitude in degrees")
    measurements: Dict[str, float] = Field(default_factory=dict, description="Pollutant code -> concentration")
    last_updated: str = Field(..., description="Timestamp of the latest reading in ISO format")
    aqi: Optional[float] = Field(None, description="Pre-computed index from the upstream provider")
    provider: Optional[str] = Field(None, description="Upstream provider name")
    attribution: Optional[str] = Field(None, description="Attribution text required by the provider")

    @field_validator("measurements", mode="before")
    @classmethod
    def drop_missing(cls, value: Any) -> Dict[str, float]:
        """Not every station measures every pollutant: None means no data, 0 is a reading."""
        if value is None:
            return {}
        return {code: conc for code, conc in dict(value).items() if conc is not None}


class RegionKey(BaseModel):
    """Region identifier from the boundary dataset, or a label for a feature that has none."""
    model_config = ConfigDict(frozen=True)

    value: Optional[Union[int, str]] = Field(None, description="Identifier property of the feature")
    label: Optional[str] = Field(None, description="Stand-in name for a feature without identifier")

    @property
    def is_unassigned(self) -> bool:
        return self.value is None

    def __str__(self) -> str:
        if self.value is None:
            return self.label or "UNASSIGNED"
        return str(self.value)


class RegionBoundary(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: RegionKey
    name: Optional[str] = None
    geometry: Optional[Dict[str, Any]] = Field(None, description="GeoJSON geometry of the region")


class AQIResult(BaseModel):
    aqi: int = Field(..., ge=0)
    status: str
    status_color: str
    dominant_pollutant: Optional[str] = None
    sub_indices: Dict[str, int] = Field(default_factory=dict)


class RegionEstimate(BaseModel):
    region_id: RegionKey
    region_name: Optional[str] = None
    aqi: int = Field(..., ge=0, description="Composite index value")
    status: str = Field(..., description="Category label of the index")
    status_color: str = Field(..., description="Display color of the category")
    dominant_pollutant: Optional[str] = None
    pollutants: Dict[str, float] = Field(default_factory=dict, description="Aggregated concentrations")
    sub_indices: Dict[str, int] = Field(default_factory=dict)
    station_count: int = Field(0, ge=0)
    nearest_station: Optional[str] = None
    nearest_station_id: Optional[Union[int, str]] = None
    last_updated: str
    is_estimated: bool = False
    index_source: str = Field("computed", description="computed, provider or neighbors")
    estimated_from: List[str] = Field(default_factory=list, description="Region ids averaged by the fallback pass")
    attribution: Optional[str] = None
    is_carried_forward: bool = Field(False, description="Value kept from a previous refresh cycle")


class MappingResult(BaseModel):
    table: Dict[RegionKey, RegionEstimate] = Field(default_factory=dict)
    unresolved: List[str] = Field(default_factory=list)
    computed_at: datetime


class MappingSettings(BaseModel):
    """Tunable constants of the mapping run. The defaults are field-tuned, not derived."""
    search_radius_km: float = Field(25.0, gt=0, description="Station search radius around a region centroid")
    idw_epsilon: float = Field(0.1, gt=0, description="Added to distances before inverting them")
    name_match_enabled: bool = True
    name_match_factor: float = Field(0.5, gt=0, le=1, description="Distance multiplier for a name match")
    fallback_neighbors: int = Field(3, ge=1, description="Resolved regions averaged for an uncovered one")
    provider_index_priority: bool = True
