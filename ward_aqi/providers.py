# file: ward_aqi/providers.py

import aiohttp
import asyncio
from typing import List, Dict, Any, Optional
import logging
from tqdm.asyncio import tqdm
import certifi
import ssl

from ward_aqi.cities import CityConfig, GridPoint
from ward_aqi.models import Station
from ward_aqi.utils import get_current_time

WAQI_URL = "https://api.waqi.info"
OPEN_METEO_URL = "https://air-quality-api.open-meteo.com/v1/air-quality"

WAQI_ATTRIBUTION = "Data provided by World Air Quality Index Project and originating EPA"
OPEN_METEO_ATTRIBUTION = "Air quality data by Open-Meteo.com (Model-based)"

# Open-Meteo variable -> pollutant code
PARAM_MAPPING = {
    "pm2_5": "pm25",
    "pm10": "pm10",
    "nitrogen_dioxide": "no2",
    "ozone": "o3",
    "sulphur_dioxide": "so2",
    "carbon_monoxide": "co",
}


class StationFetchError(Exception):
    """No provider returned usable station readings."""


def _session() -> aiohttp.ClientSession:
    ssl_context = ssl.create_default_context(cafile=certifi.where())
    return aiohttp.ClientSession(connector=aiohttp.TCPConnector(ssl=ssl_context),
                                 timeout=aiohttp.ClientTimeout(total=30))


def parse_waqi_stations(payload: Dict[str, Any]) -> List[Station]:
    """Stations from a WAQI map/bounds response. The bounds API only carries the index."""
    if payload.get("status") != "ok":
        raise StationFetchError(f"WAQI API error: {payload.get('data') or 'Unknown error'}")

    stations = []
    for entry in payload.get("data") or []:
        try:
            aqi = float(entry.get("aqi"))
        except (TypeError, ValueError):
            aqi = None  # "-" for stations without a current reading
        info = entry.get("station") or {}
        try:
            stations.append(Station(
                id=entry["uid"],
                name=info.get("name"),
                lat=entry["lat"],
                lon=entry["lon"],
                aqi=aqi if aqi and aqi > 0 else None,
                last_updated=info.get("time") or get_current_time(),
                provider="WAQI",
                attribution=WAQI_ATTRIBUTION,
            ))
        except (KeyError, ValueError) as e:
            logging.warning(f"Skipping malformed WAQI station {entry.get('uid')}: {e}")
    return stations


def parse_open_meteo_point(point: GridPoint, payload: Dict[str, Any]) -> Optional[Station]:
    """Station for one Open-Meteo grid point; CO is converted from µg/m³ to mg/m³."""
    current = payload.get("current") or {}
    measurements = {}
    for variable, code in PARAM_MAPPING.items():
        value = current.get(variable)
        if value is None:
            continue
        measurements[code] = value / 1000 if code == "co" else value
    if not measurements:
        return None
    slug = "-".join(point.name.lower().split())
    return Station(
        id=f"om-{slug}",
        name=f"{point.name} (Open-Meteo)",
        lat=point.lat,
        lon=point.lon,
        measurements=measurements,
        last_updated=current.get("time") or get_current_time(),
        provider="Open-Meteo",
        attribution=OPEN_METEO_ATTRIBUTION,
    )


def merge_providers(waqi: List[Station], meteo: List[Station]) -> List[Station]:
    """Official WAQI stations enriched with the breakdown of the nearest model point."""
    if not waqi:
        return list(meteo)
    if not meteo:
        return list(waqi)

    merged = []
    for station in waqi:
        nearest = min(meteo, key=lambda m: (station.lat - m.lat) ** 2 + (station.lon - m.lon) ** 2)
        # the station's own readings (and its index) win over the model values
        measurements = {**nearest.measurements, **station.measurements}
        merged.append(station.model_copy(update={"measurements": measurements}))
    return merged


async def fetch_waqi(session: aiohttp.ClientSession, city: CityConfig, token: Optional[str]) -> List[Station]:
    if not token:
        logging.info("WAQI_TOKEN not set, skipping WAQI")
        return []
    min_lat, min_lon, max_lat, max_lon = city.bounds
    params = {"latlng": f"{min_lat},{min_lon},{max_lat},{max_lon}", "token": token}
    try:
        async with session.get(f"{WAQI_URL}/map/bounds", params=params) as response:
            if response.status != 200:
                logging.warning(f"WAQI returned HTTP {response.status}")
                return []
            return parse_waqi_stations(await response.json())
    except (aiohttp.ClientError, asyncio.TimeoutError, StationFetchError) as e:
        logging.error(f"Error fetching WAQI stations: {e}")
        return []


async def fetch_open_meteo_point(session: aiohttp.ClientSession, point: GridPoint) -> Optional[Station]:
    params = {"latitude": point.lat, "longitude": point.lon, "current": ",".join(PARAM_MAPPING)}
    try:
        async with session.get(OPEN_METEO_URL, params=params) as response:
            if response.status != 200:
                logging.warning(f"Skipping Open-Meteo point {point.name}: HTTP {response.status}")
                return None
            return parse_open_meteo_point(point, await response.json())
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logging.error(f"Error fetching Open-Meteo for {point.name}: {e}")
        return None


async def fetch_open_meteo(session: aiohttp.ClientSession, city: CityConfig) -> List[Station]:
    tasks = [fetch_open_meteo_point(session, point) for point in city.sampling_points()]
    stations = []
    with tqdm(total=len(tasks), desc="Fetching Open-Meteo points") as pbar:
        for future in asyncio.as_completed(tasks):
            result = await future
            if result is not None:
                stations.append(result)
            pbar.update(1)
    return stations


async def fetch_stations(city: CityConfig, token: Optional[str] = None) -> List[Station]:
    """Fetch the current station list for a city from all providers."""
    async with _session() as session:
        waqi, meteo = await asyncio.gather(fetch_waqi(session, city, token), fetch_open_meteo(session, city))

    stations = merge_providers(waqi, meteo)
    if not stations:
        raise StationFetchError(f"All providers failed for {city.name}")
    logging.info(f"Fetched {len(stations)} stations for {city.name} (WAQI: {len(waqi)}, Open-Meteo: {len(meteo)})")
    return stations


async def fetch_history(lat: float, lon: float) -> List[Dict[str, Any]]:
    """Hourly PM2.5 for the past day at a point."""
    params = {"latitude": lat, "longitude": lon, "hourly": "pm2_5", "past_days": 1}
    async with _session() as session:
        try:
            async with session.get(OPEN_METEO_URL, params=params) as response:
                response.raise_for_status()
                payload = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logging.error(f"Error fetching history for ({lat}, {lon}): {e}")
            raise StationFetchError(f"History unavailable for ({lat}, {lon})") from e

    hourly = payload.get("hourly") or {}
    return [
        {"timestamp": timestamp, "value": value}
        for timestamp, value in zip(hourly.get("time", []), hourly.get("pm2_5", []))
        if value is not None
    ]


if __name__ == "__main__":
    from ward_aqi.cities import get_city
    logging.basicConfig(level=logging.INFO)
    print(asyncio.run(fetch_stations(get_city("delhi"))))
