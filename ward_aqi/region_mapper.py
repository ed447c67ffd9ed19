# file: ward_aqi/region_mapper.py

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ward_aqi.aggregation import aggregate, average_estimates
from ward_aqi.aqi import aqi_color, aqi_status, calculate_aqi
from ward_aqi.geo import centroid, distance_km
from ward_aqi.models import MappingResult, MappingSettings, RegionBoundary, RegionEstimate, RegionKey, Station
from ward_aqi.overrides import OverrideTable
from ward_aqi.stations import NameMatchBias, RankedStation, find_nearby
from ward_aqi.utils import get_current_time, round_half_up, utc_now

Point = Tuple[float, float]


@dataclass(frozen=True)
class ProviderIndexPriority:
    """Prefer an index published by the upstream provider over one recomputed from raw concentrations.

    Provider feeds such as WAQI publish the official index but few raw values, while the
    concentrations come from a model. Applied to every region alike, so neighbouring regions
    never mix index sources; fallback estimates average neighbour indices whenever one of
    them is provider-sourced.
    """
    enabled: bool = True

    def pick(self, ranked: Sequence[RankedStation]) -> Optional[RankedStation]:
        """Best-ranked station carrying a positive provider index."""
        if not self.enabled:
            return None
        for entry in ranked:
            value = entry.station.aqi
            if value is not None and math.isfinite(value) and value > 0:
                return entry
        return None

    def neighbor_index(self, neighbors: Sequence[RegionEstimate]) -> Optional[int]:
        if not self.enabled or not any(n.index_source == "provider" for n in neighbors):
            return None
        return max(0, round_half_up(sum(n.aqi for n in neighbors) / len(neighbors)))


def _attribution(ranked: Sequence[RankedStation]) -> Optional[str]:
    texts = []
    for entry in ranked:
        text = entry.station.attribution
        if text and text not in texts:
            texts.append(text)
    return "; ".join(texts) or None


def _direct_estimate(region: RegionBoundary, point: Point, stations: Sequence[Station], settings: MappingSettings,
                     bias: NameMatchBias, priority: ProviderIndexPriority) -> Optional[RegionEstimate]:
    ranked = find_nearby(point, stations, settings.search_radius_km, region.name, bias)
    # stations with neither readings nor a usable index carry no data for this region
    ranked = [entry for entry in ranked if entry.station.measurements or priority.pick([entry]) is not None]
    if not ranked:
        return None

    pollutants = aggregate(ranked, settings.idw_epsilon)
    result = calculate_aqi(pollutants)
    aqi, source = result.aqi, "computed"
    provider = priority.pick(ranked)
    if provider is not None:
        aqi, source = max(0, round_half_up(provider.station.aqi)), "provider"

    nearest = ranked[0].station
    return RegionEstimate(
        region_id=region.key,
        region_name=region.name,
        aqi=aqi,
        status=aqi_status(aqi),
        status_color=aqi_color(aqi),
        dominant_pollutant=result.dominant_pollutant,
        pollutants=pollutants,
        sub_indices=result.sub_indices,
        station_count=len(ranked),
        nearest_station=nearest.name,
        nearest_station_id=nearest.id,
        last_updated=nearest.last_updated or get_current_time(),
        is_estimated=False,
        index_source=source,
        attribution=_attribution(ranked),
    )


def _neighbors(region: RegionBoundary, point: Optional[Point], direct: Dict[RegionKey, RegionEstimate],
               centroids: Dict[RegionKey, Optional[Point]], overrides: OverrideTable,
               settings: MappingSettings) -> List[RegionEstimate]:
    override = overrides.get(str(region.key))
    if override and override.neighbors:
        by_id = {str(key): estimate for key, estimate in direct.items()}
        neighbors = [by_id[n] for n in override.neighbor_ids if n in by_id]
        if neighbors:
            return neighbors
        logging.info(f"No listed neighbor of region {region.key} is resolved, using nearest regions")

    if point is None:
        return []
    candidates = [(distance_km(point[0], point[1], c[0], c[1]), str(key), key)
                  for key, c in ((key, centroids.get(key)) for key in direct) if c is not None]
    candidates.sort(key=lambda item: (item[0], item[1]))
    return [direct[key] for _, _, key in candidates[:settings.fallback_neighbors]]


def _fallback_estimate(region: RegionBoundary, point: Optional[Point], direct: Dict[RegionKey, RegionEstimate],
                       centroids: Dict[RegionKey, Optional[Point]], overrides: OverrideTable,
                       settings: MappingSettings, priority: ProviderIndexPriority) -> Optional[RegionEstimate]:
    neighbors = _neighbors(region, point, direct, centroids, overrides, settings)
    if not neighbors:
        return None

    pollutants = average_estimates(neighbors)
    result = calculate_aqi(pollutants)
    aqi, source = result.aqi, "neighbors"
    provider_index = priority.neighbor_index(neighbors)
    if provider_index is not None:
        aqi, source = provider_index, "provider"

    first = neighbors[0]
    return RegionEstimate(
        region_id=region.key,
        region_name=region.name,
        aqi=aqi,
        status=aqi_status(aqi),
        status_color=aqi_color(aqi),
        dominant_pollutant=result.dominant_pollutant,
        pollutants=pollutants,
        sub_indices=result.sub_indices,
        station_count=0,
        nearest_station=f"Estimated from neighbors ({first.region_id})",
        nearest_station_id=first.nearest_station_id,
        last_updated=first.last_updated,
        is_estimated=True,
        index_source=source,
        estimated_from=[str(n.region_id) for n in neighbors],
        attribution=first.attribution,
    )


def map_regions(regions: Sequence[RegionBoundary], stations: Sequence[Station],
                overrides: Optional[OverrideTable] = None,
                settings: Optional[MappingSettings] = None) -> MappingResult:
    """Estimate the air quality of every region from the current station readings.

    Direct pass first: regions with stations in range get an inverse-distance-weighted
    estimate. Then every remaining region borrows from direct results only, through its
    override neighbor list or the nearest resolved regions. Whatever is still missing is
    reported in ``unresolved``. Inputs are never mutated and a new table is returned.
    """
    settings = settings or MappingSettings()
    overrides = overrides or OverrideTable()
    bias = NameMatchBias(enabled=settings.name_match_enabled, factor=settings.name_match_factor)
    priority = ProviderIndexPriority(enabled=settings.provider_index_priority)
    computed_at = utc_now()

    if not stations:
        logging.warning(f"No stations available, {len(regions)} regions left unresolved")
        return MappingResult(unresolved=[str(r.key) for r in regions], computed_at=computed_at)

    table: Dict[RegionKey, RegionEstimate] = {}
    centroids: Dict[RegionKey, Optional[Point]] = {}
    pending: List[RegionBoundary] = []
    seen = set()

    for region in regions:
        if str(region.key) in seen:
            logging.warning(f"Duplicate region id {region.key}, only the first boundary is mapped")
            continue
        seen.add(str(region.key))
        try:
            point = centroid(region.geometry)
            centroids[region.key] = point
            if point is None:
                logging.warning(f"Region {region.key} has no usable geometry, deferring to neighbors")
                pending.append(region)
                continue
            # features without identifier (rivers and the like) are always estimated from neighbors
            if region.key.is_unassigned or overrides.is_deferred(str(region.key)):
                pending.append(region)
                continue
            estimate = _direct_estimate(region, point, stations, settings, bias, priority)
        except Exception as e:
            logging.error(f"Error computing direct estimate for region {region.key}: {e}")
            estimate = None
        if estimate is None:
            pending.append(region)
        else:
            table[region.key] = estimate

    direct = dict(table)
    unresolved = []
    for region in pending:
        try:
            estimate = _fallback_estimate(region, centroids.get(region.key), direct, centroids,
                                          overrides, settings, priority)
        except Exception as e:
            logging.error(f"Error estimating region {region.key} from neighbors: {e}")
            estimate = None
        if estimate is None:
            unresolved.append(str(region.key))
        else:
            table[region.key] = estimate

    logging.info(f"Mapped {len(direct)} regions directly and {len(table) - len(direct)} from neighbors "
                 f"using {len(stations)} stations")
    if unresolved:
        logging.warning(f"{len(unresolved)} region(s) left without estimate: {', '.join(unresolved)}")
    return MappingResult(table=table, unresolved=unresolved, computed_at=computed_at)


def carry_forward(previous: Optional[MappingResult], current: MappingResult) -> MappingResult:
    """Keep last cycle's direct values for regions the current cycle could not resolve."""
    if previous is None or not current.unresolved:
        return current

    table = dict(current.table)
    unresolved = list(current.unresolved)
    for key, estimate in previous.table.items():
        region_id = str(key)
        if key.is_unassigned or estimate.is_estimated or region_id not in unresolved:
            continue
        table[key] = estimate.model_copy(update={"is_carried_forward": True})
        unresolved.remove(region_id)
        logging.info(f"Region {region_id} keeps its value from {estimate.last_updated}")
    return MappingResult(table=table, unresolved=unresolved, computed_at=current.computed_at)
