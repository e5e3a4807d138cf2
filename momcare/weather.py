# momcare/weather.py
"""
City weather for the notification feed.

Open-Meteo is used for both geocoding and the forecast; neither needs a key.
Everything after the fetch is pure so advisories can be derived from a
canned forecast.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple

import httpx
from pydantic import BaseModel

from .config import FORECAST_URL, GEOCODE_COUNTRY, GEOCODING_URL
from .errors import InvalidArgument, NotFound
from .fetch import fetch_json
from .schemas import WeatherSummary
from .utils import round_half_up, utcnow

logger = logging.getLogger(__name__)

WEATHER_CODES = {
    0: "Clear",
    1: "Clouds", 2: "Clouds", 3: "Clouds",
    45: "Fog", 48: "Fog",
    51: "Drizzle", 53: "Drizzle", 55: "Drizzle", 56: "Drizzle", 57: "Drizzle",
    61: "Rain", 63: "Rain", 65: "Rain", 66: "Rain", 67: "Rain",
    80: "Rain", 81: "Rain", 82: "Rain",
    71: "Snow", 73: "Snow", 75: "Snow", 77: "Snow", 85: "Snow", 86: "Snow",
    95: "Thunderstorm", 96: "Thunderstorm", 99: "Thunderstorm",
}

WET_CONDITIONS = ("Rain", "Drizzle", "Thunderstorm")


class GeoLocation(BaseModel):
    name: str
    lat: float
    lon: float


class Advisory(BaseModel):
    type: str
    title: str
    message: str
    severity: str


# =========================================================================
# 1. FETCH
# =========================================================================
async def geocode(client: httpx.AsyncClient, city: str) -> GeoLocation:
    """Country-constrained lookup first, then a global one."""
    clean_city = str(city or "").strip()
    if not clean_city:
        raise InvalidArgument("City required")

    params = {"name": clean_city, "count": 1, "language": "en", "format": "json"}
    for extra in ({"country": GEOCODE_COUNTRY}, {}):
        data = await fetch_json(client, GEOCODING_URL, params={**params, **extra})
        results = (data or {}).get("results") or []
        if results:
            top = results[0]
            return GeoLocation(name=top["name"], lat=top["latitude"], lon=top["longitude"])

    raise NotFound(f"City not found: {clean_city}")


async def fetch_weather(client: httpx.AsyncClient, lat: float, lon: float) -> dict:
    params = {
        "latitude": lat,
        "longitude": lon,
        "current": "temperature_2m,relative_humidity_2m,weather_code",
        "hourly": "precipitation_probability,temperature_2m",
        "forecast_days": 1,
        "timezone": "auto",
        "temperature_unit": "celsius",
    }
    return await fetch_json(client, FORECAST_URL, params=params) or {}


# =========================================================================
# 2. CLASSIFY
# =========================================================================
def classify_condition(code) -> str:
    return WEATHER_CODES.get(code, "Clear")


def best_temperature(weather: dict, now: Optional[datetime] = None) -> float:
    """Current reading if present, else the hourly sample nearest to now, else 0."""
    current = weather.get("current") or {}
    if current.get("temperature_2m") is not None:
        return current["temperature_2m"]

    hourly = weather.get("hourly") or {}
    times = hourly.get("time") or []
    temps = hourly.get("temperature_2m") or []
    if not times or not temps:
        return 0

    now = now or utcnow()
    best_idx, best_diff = 0, None
    for i, raw in enumerate(times):
        try:
            stamp = datetime.fromisoformat(raw)
        except (TypeError, ValueError):
            continue
        diff = abs((now - stamp.replace(tzinfo=None)).total_seconds())
        if best_diff is None or diff < best_diff:
            best_idx, best_diff = i, diff
    value = temps[best_idx] if best_idx < len(temps) else None
    return value if value is not None else 0


def max_precipitation_chance(weather: dict) -> float:
    """Highest hourly precipitation probability today, as a 0..1 fraction."""
    probs = [p for p in ((weather.get("hourly") or {}).get("precipitation_probability") or []) if p is not None]
    return max(probs or [0]) / 100


# =========================================================================
# 3. ADVISORIES
# =========================================================================
def derive_advisories(weather: dict, city: str) -> Tuple[List[Advisory], WeatherSummary]:
    temp = round_half_up(best_temperature(weather))
    current = weather.get("current") or {}
    humidity = current.get("relative_humidity_2m") or 0
    code = current.get("weather_code")
    condition = classify_condition(code if code is not None else 0)
    pop = max_precipitation_chance(weather)

    items = []
    if condition == "Clear" and temp >= 30:
        items.append(Advisory(
            type="sunny",
            title=f"Sunny in {city}",
            message=f"It is sunny and {temp} C in {city}. Use sunscreen, hydrate, and wear a hat.",
            severity="info",
        ))

    if condition in WET_CONDITIONS or pop >= 0.6:
        items.append(Advisory(
            type="rain",
            title=f"Rain expected in {city}",
            message=f"Rain is likely today ({round_half_up(pop * 100)}% chance). Carry an umbrella and wear non-slip shoes.",
            severity="warning",
        ))

    if temp <= 15:
        items.append(Advisory(
            type="winter",
            title=f"Cool weather in {city}",
            message=f"Temperature is {temp} C. Stay warm and avoid long exposure to cold.",
            severity="info",
        ))

    if temp >= 35 or (temp >= 32 and humidity >= 70):
        items.append(Advisory(
            type="heat",
            title=f"Heat caution in {city}",
            message=f"It is hot ({temp} C). Rest often, drink fluids, and avoid peak sun hours.",
            severity="warning",
        ))

    summary = WeatherSummary(temp=temp, condition=condition, desc=condition.lower(), humidity=humidity)
    return items, summary
