# file: ward_aqi/store.py

import logging
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import Awaitable, Callable, List, Optional, Sequence

from ward_aqi.models import MappingResult, MappingSettings, RegionBoundary, RegionEstimate, Station
from ward_aqi.overrides import OverrideTable
from ward_aqi.region_mapper import carry_forward, map_regions
from ward_aqi.utils import utc_now

StationFetcher = Callable[[], Awaitable[List[Station]]]


class RefreshError(Exception):
    """A refresh could not obtain fresh station data; the previous table is still served."""


class Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    result: MappingResult
    stations: List[Station] = Field(default_factory=list)
    refreshed_at: datetime
    is_stale: bool = False
    error: Optional[str] = None


class AirQualityStore:
    """Holds the published region table and replaces it wholesale on every refresh."""

    def __init__(self, regions: Sequence[RegionBoundary], overrides: Optional[OverrideTable] = None,
                 settings: Optional[MappingSettings] = None):
        self.regions = list(regions)
        self.overrides = overrides or OverrideTable()
        self.settings = settings or MappingSettings()
        self._snapshot: Optional[Snapshot] = None

    @property
    def snapshot(self) -> Optional[Snapshot]:
        return self._snapshot

    def get_region(self, region_id: str) -> Optional[RegionEstimate]:
        snapshot = self._snapshot
        if snapshot is None:
            return None
        for key, estimate in snapshot.result.table.items():
            if str(key) == str(region_id):
                return estimate
        return None

    def publish(self, stations: Sequence[Station]) -> Snapshot:
        """Map the stations and swap the new table in."""
        previous = self._snapshot.result if self._snapshot else None
        result = map_regions(self.regions, stations, self.overrides, self.settings)
        result = carry_forward(previous, result)
        snapshot = Snapshot(result=result, stations=list(stations), refreshed_at=utc_now())
        self._snapshot = snapshot
        return snapshot

    async def refresh(self, fetcher: StationFetcher) -> Snapshot:
        """Fetch stations and publish a new table; on failure keep serving the last one."""
        try:
            stations = await fetcher()
            if not stations:
                raise RefreshError("No station readings returned")
        except Exception as e:
            message = str(e) or e.__class__.__name__
            previous = self._snapshot
            if previous is not None:
                logging.warning(f"Refresh failed, serving data from {previous.refreshed_at.isoformat()}: {message}")
                self._snapshot = previous.model_copy(update={"is_stale": True, "error": message})
            else:
                logging.error(f"Refresh failed with no data to fall back on: {message}")
            raise RefreshError(message) from e

        snapshot = self.publish(stations)
        logging.info(f"Published {len(snapshot.result.table)} region estimates "
                     f"({len(snapshot.result.unresolved)} unresolved)")
        return snapshot
