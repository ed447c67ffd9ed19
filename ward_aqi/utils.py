# file: ward_aqi/utils.py

import math
from datetime import datetime
import pytz


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(pytz.utc)


def get_current_time() -> str:
    """Get current UTC time as a formatted string."""
    return utc_now().isoformat()


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
