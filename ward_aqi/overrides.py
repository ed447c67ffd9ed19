# file: ward_aqi/overrides.py

import json
import logging
from pydantic import BaseModel, Field, ValidationError
from typing import Dict, List, Optional, Union


class RegionOverride(BaseModel):
    neighbors: List[Union[int, str]] = Field(default_factory=list,
                                             description="Regions averaged when this one needs an estimate")
    defer_direct: bool = Field(False, description="Skip the direct pass even if a station is in range")
    note: Optional[str] = None

    @property
    def neighbor_ids(self) -> List[str]:
        return [str(n) for n in self.neighbors]


class OverrideTable(BaseModel):
    """Deployment-specific region quirks, keyed by region id as text."""
    regions: Dict[str, RegionOverride] = Field(default_factory=dict)

    def get(self, region_id: str) -> Optional[RegionOverride]:
        return self.regions.get(str(region_id))

    def is_deferred(self, region_id: str) -> bool:
        override = self.get(region_id)
        return bool(override and override.defer_direct)


def load_overrides(path: Optional[str]) -> OverrideTable:
    """Load the override table from a JSON file; no path means no overrides."""
    if not path:
        return OverrideTable()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        table = OverrideTable.model_validate(data)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logging.error(f"Error loading region overrides from {path}: {e}")
        raise ValueError(f"Invalid region override file: {path}") from e
    logging.info(f"Loaded {len(table.regions)} region overrides from {path}")
    return table
