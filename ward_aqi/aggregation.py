# file: ward_aqi/aggregation.py

from typing import Dict, Iterable, Sequence

from ward_aqi.models import POLLUTANTS, RegionEstimate
from ward_aqi.stations import RankedStation

DEFAULT_EPSILON = 0.1


def aggregate(ranked: Sequence[RankedStation], epsilon: float = DEFAULT_EPSILON) -> Dict[str, float]:
    """Inverse-distance-weighted concentrations of the given stations."""
    if not ranked:
        return {}
    if len(ranked) == 1:
        return {p: v for p, v in ranked[0].station.measurements.items() if p in POLLUTANTS}

    result = {}
    for pollutant in POLLUTANTS:
        weighted_sum = 0.0
        weight_sum = 0.0
        for entry in ranked:
            value = entry.station.measurements.get(pollutant)
            if value is None:
                continue
            # the name-match bias only ranks stations, weights use the true distance
            weight = 1 / (entry.distance + epsilon)
            weighted_sum += value * weight
            weight_sum += weight
        if weight_sum > 0:
            result[pollutant] = weighted_sum / weight_sum
    return result


def average_estimates(estimates: Iterable[RegionEstimate]) -> Dict[str, float]:
    """Per-pollutant mean over the estimates that report each pollutant."""
    estimates = list(estimates)
    result = {}
    for pollutant in POLLUTANTS:
        values = [e.pollutants[pollutant] for e in estimates if e.pollutants.get(pollutant) is not None]
        if values:
            result[pollutant] = sum(values) / len(values)
    return result
