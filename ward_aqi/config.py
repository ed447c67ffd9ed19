# file: ward_aqi/config.py

import os
from pathlib import Path
from dotenv import load_dotenv
from pydantic import ValidationError

from ward_aqi.models import MappingSettings

load_dotenv()

DATA_DIR = Path(__file__).resolve().parent.parent / "data"

CITY_ID = os.getenv("AQI_CITY", "delhi")
BOUNDARY_FILE = os.getenv("AQI_BOUNDARY_FILE")
OVERRIDES_FILE = os.getenv("AQI_OVERRIDES_FILE", str(DATA_DIR / "delhi_overrides.json"))
WAQI_TOKEN = os.getenv("WAQI_TOKEN")
REFRESH_INTERVAL_MINUTES = int(os.getenv("AQI_REFRESH_MINUTES", "15"))

if REFRESH_INTERVAL_MINUTES < 1:
    raise ValueError("AQI_REFRESH_MINUTES must be at least 1")


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def mapping_settings() -> MappingSettings:
    """Mapping parameters from the environment, validated."""
    try:
        return MappingSettings(
            search_radius_km=os.getenv("AQI_SEARCH_RADIUS_KM", "25"),
            idw_epsilon=os.getenv("AQI_IDW_EPSILON", "0.1"),
            name_match_enabled=_flag("AQI_NAME_MATCH_ENABLED", "true"),
            name_match_factor=os.getenv("AQI_NAME_MATCH_FACTOR", "0.5"),
            fallback_neighbors=os.getenv("AQI_FALLBACK_NEIGHBORS", "3"),
            provider_index_priority=_flag("AQI_PROVIDER_INDEX_PRIORITY", "true"),
        )
    except ValidationError as e:
        raise ValueError(f"Invalid mapping settings in environment: {e}") from e
