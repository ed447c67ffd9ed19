# file: ward_aqi/aqi.py

import math
from typing import Dict, Iterable, Optional, Tuple, List

from ward_aqi.models import AQIResult, POLLUTANTS
from ward_aqi.utils import round_half_up

# CPCB National AQI breakpoints: (c_low, c_high, i_low, i_high)
# PM, NO2, O3, SO2 in µg/m³, CO in mg/m³
BREAKPOINTS: Dict[str, List[Tuple[float, float, int, int]]] = {
    "pm25": [(0, 30, 0, 50), (31, 60, 51, 100), (61, 90, 101, 200),
             (91, 120, 201, 300), (121, 250, 301, 400), (251, 500, 401, 500)],
    "pm10": [(0, 50, 0, 50), (51, 100, 51, 100), (101, 250, 101, 200),
             (251, 350, 201, 300), (351, 430, 301, 400), (431, 600, 401, 500)],
    "no2": [(0, 40, 0, 50), (41, 80, 51, 100), (81, 180, 101, 200),
            (181, 280, 201, 300), (281, 400, 301, 400), (401, 800, 401, 500)],
    "o3": [(0, 50, 0, 50), (51, 100, 51, 100), (101, 168, 101, 200),
           (169, 208, 201, 300), (209, 748, 301, 400), (749, 1000, 401, 500)],
    "so2": [(0, 40, 0, 50), (41, 80, 51, 100), (81, 380, 101, 200),
            (381, 800, 201, 300), (801, 1600, 301, 400), (1601, 2400, 401, 500)],
    "co": [(0, 1, 0, 50), (1.1, 2, 51, 100), (2.1, 10, 101, 200),
           (10.1, 17, 201, 300), (17.1, 34, 301, 400), (34.1, 50, 401, 500)],
}

# (upper bound of the band, label, color)
CATEGORIES = [
    (50, "Good", "#2ED3A3"),
    (100, "Satisfactory", "#B8F500"),
    (200, "Moderate", "#FFD23F"),
    (300, "Poor", "#FF8C42"),
    (400, "Very Poor", "#FF4D6D"),
    (math.inf, "Severe", "#6A00F4"),
]

DISPLAY_NAMES = {"pm25": "PM2.5", "pm10": "PM10", "no2": "NO₂", "o3": "O₃", "so2": "SO₂", "co": "CO"}


def sub_index(pollutant: str, concentration: float) -> int:
    """Linear interpolation inside the breakpoint bracket holding the concentration."""
    table = BREAKPOINTS[pollutant]
    c_low, c_high, i_low, i_high = table[-1]
    for bracket in table:
        if concentration <= bracket[1]:
            c_low, c_high, i_low, i_high = bracket
            break
    # values below the bracket (negatives, gaps between brackets) or above the table are clamped
    clamped = min(max(concentration, c_low), c_high)
    return round_half_up(i_low + (clamped - c_low) * (i_high - i_low) / (c_high - c_low))


def _category(aqi: float) -> Tuple[str, str]:
    for upper, label, color in CATEGORIES:
        if aqi <= upper:
            return label, color
    return CATEGORIES[-1][1], CATEGORIES[-1][2]


def aqi_status(aqi: float) -> str:
    """Category label for an index value."""
    return _category(aqi)[0]


def aqi_color(aqi: float) -> str:
    """Display color for an index value."""
    return _category(aqi)[1]


def calculate_aqi(pollutants: Dict[str, Optional[float]]) -> AQIResult:
    """Overall index is the worst sub-index; the pollutant producing it dominates."""
    sub_indices: Dict[str, int] = {}
    max_index = 0
    dominant = None

    for code in POLLUTANTS:
        value = pollutants.get(code)
        if value is None or not math.isfinite(value):
            continue
        index = sub_index(code, value)
        sub_indices[code] = index
        if dominant is None or index > max_index:
            max_index = index
            dominant = code

    return AQIResult(
        aqi=max_index,
        status=aqi_status(max_index),
        status_color=aqi_color(max_index),
        dominant_pollutant=dominant,
        sub_indices=sub_indices,
    )


def filtered_aqi(pollutants: Dict[str, float], active: Iterable[str]) -> int:
    """Index recomputed from the selected pollutants only."""
    selected = set(active)
    return calculate_aqi({code: value for code, value in pollutants.items() if code in selected}).aqi


def pollutant_display_name(pollutant: str) -> str:
    return DISPLAY_NAMES.get(pollutant, pollutant.upper())


def pollutant_unit(pollutant: str) -> str:
    return "mg/m³" if pollutant == "co" else "µg/m³"
