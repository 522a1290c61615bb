"""
Weather Adapter

Current conditions and a 14-day forecast from Open-Meteo (no API key).
The location is pulled out of the question text and geocoded through
the Open-Meteo geocoding API.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from core.schemas import (
    Category,
    Coordinates,
    DataSourceException,
    DataSourceInvalidResponseException,
    ForecastDay,
    Payload,
    SourceData,
    WeatherPayload,
)

from .base import BaseAdapter, ResolutionQuery, mentions_any
from .confidence import WEATHER_RUBRIC

logger = logging.getLogger(__name__)

GEOCODING_API = "https://geocoding-api.open-meteo.com/v1/search"
FORECAST_API = "https://api.open-meteo.com/v1/forecast"
FORECAST_DAYS = 14

FALLBACK_SUGGESTION = (
    "Check weather.com, Open-Meteo, or local meteorological services for accurate data."
)
FALLBACK_SOURCES = ["weather.com", "open-meteo.com"]

_LOCATION_PATTERNS = [
    re.compile(r"in\s+([A-Z][a-zA-Z\s]+?)(?:\s+(?:will|be|reach|exceed|drop))", re.IGNORECASE),
    re.compile(r"(?:temperature|weather|rain|snow|cold|hot|warm)\s+in\s+([A-Z][a-zA-Z\s,]+)", re.IGNORECASE),
    re.compile(r"([A-Z][a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+)?)\s+(?:temperature|weather)", re.IGNORECASE),
]

MAJOR_CITIES = (
    "New York", "Los Angeles", "Chicago", "Houston", "Phoenix", "Miami", "Seattle",
    "London", "Paris", "Tokyo", "Sydney", "Dubai", "Singapore", "Hong Kong",
    "Berlin", "Madrid", "Rome", "Amsterdam", "Toronto", "Vancouver",
)

WEATHER_CODES = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Foggy",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    71: "Slight snow",
    73: "Moderate snow",
    75: "Heavy snow",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}

_TARGET_TEMPERATURE = re.compile(r"(\d+)\s*(?:°?[CF]|degrees?|celsius|fahrenheit)", re.IGNORECASE)
RAINY_DAY_THRESHOLD = 50


# =============================================================================
# Question mapping and parsing
# =============================================================================

def extract_location(text: str) -> Optional[str]:
    for pattern in _LOCATION_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1).strip():
            return match.group(1).strip()

    lowered = text.lower()
    for city in MAJOR_CITIES:
        if city.lower() in lowered:
            return city
    return None


def condition_for(code: Any) -> str:
    try:
        return WEATHER_CODES.get(int(code), "Unknown")
    except (TypeError, ValueError):
        return "Unknown"


def _malformed(what: str, e: Exception) -> DataSourceInvalidResponseException:
    return DataSourceInvalidResponseException(
        f"Malformed Open-Meteo {what}: {e}",
        source=WeatherAdapter._name,
        details={"endpoint": what},
    )


def parse_geocode(body: dict[str, Any]) -> Optional[Coordinates]:
    results = (body or {}).get("results") or []
    if not results:
        return None
    first = results[0]
    if first.get("latitude") is None or first.get("longitude") is None:
        return None
    try:
        return Coordinates(lat=first["latitude"], lon=first["longitude"])
    except (KeyError, TypeError, ValueError) as e:
        raise _malformed("geocoding", e) from e


def _at(values: Optional[list[Any]], index: int) -> Any:
    if not values or index >= len(values):
        return None
    return values[index]


def parse_forecast(body: dict[str, Any], location: str, coordinates: Coordinates) -> WeatherPayload:
    current = (body or {}).get("current") or {}
    daily = (body or {}).get("daily") or {}

    try:
        forecast = []
        for i, day in enumerate((daily.get("time") or [])[:FORECAST_DAYS]):
            forecast.append(ForecastDay(
                date=day,
                temp_high=_at(daily.get("temperature_2m_max"), i),
                temp_low=_at(daily.get("temperature_2m_min"), i),
                conditions=condition_for(_at(daily.get("weather_code"), i)),
                precipitation=_at(daily.get("precipitation_probability_max"), i),
            ))

        return WeatherPayload(
            location=location,
            coordinates=coordinates,
            temperature=current.get("temperature_2m"),
            conditions=condition_for(current.get("weather_code")),
            humidity=current.get("relative_humidity_2m"),
            wind_speed=current.get("wind_speed_10m"),
            forecast=forecast,
        )
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise _malformed("forecast", e) from e


def analyze_weather(weather: WeatherPayload, question: str) -> dict[str, Any]:
    """
    Summarize the forecast against what the question asks.

    Temperature questions: "above"/"exceed"/"reach" look for a daily
    high at or over the target, anything else for a low at or under it.
    Precipitation questions count days above a 50% chance.
    """
    lowered = question.lower()
    lines = [
        f"Location: {weather.location}",
        f"Current: {weather.temperature}{weather.temperature_unit}, {weather.conditions}",
        f"Humidity: {weather.humidity}%",
        f"Wind: {weather.wind_speed} km/h",
    ]
    analysis: dict[str, Any] = {}

    if mentions_any(lowered, ("temperature", "degree", "cold", "hot")):
        match = _TARGET_TEMPERATURE.search(question)
        if match:
            target = int(match.group(1))
            upward = mentions_any(lowered, ("above", "exceed", "reach"))
            if upward:
                likely = any(d.temp_high is not None and d.temp_high >= target for d in weather.forecast)
            else:
                likely = any(d.temp_low is not None and d.temp_low <= target for d in weather.forecast)
            analysis["target_temperature"] = target
            analysis["target_likely"] = likely
            lines.append(f"Target: {target}° vs Current: {weather.temperature}{weather.temperature_unit}")
            lines.append(f"Forecast suggests: {'LIKELY' if likely else 'UNLIKELY'} to reach target")

    if mentions_any(lowered, ("rain", "snow", "precipitation")):
        rainy = sum(
            1 for d in weather.forecast
            if d.precipitation is not None and d.precipitation > RAINY_DAY_THRESHOLD
        )
        analysis["rainy_days"] = rainy
        lines.append(f"Days with >{RAINY_DAY_THRESHOLD}% precipitation chance: {rainy}/{len(weather.forecast)}")

    if len(weather.forecast) >= 3:
        outlook = [
            f"{d.date}: {d.temp_low}°-{d.temp_high}°C, {d.conditions}"
            for d in weather.forecast[:3]
        ]
        analysis["outlook"] = outlook
        lines.append("3-Day Outlook:")
        lines.extend(f"  {line}" for line in outlook)

    analysis["summary"] = "\n".join(lines)
    return analysis


# =============================================================================
# Adapter
# =============================================================================

class WeatherAdapter(BaseAdapter):
    """Weather adapter backed by Open-Meteo."""

    _name = "Weather Data"
    _version = "v1"

    categories = (Category.WEATHER,)
    priority = 1
    health_endpoint = f"{GEOCODING_API}?name=London&count=1"
    bearer_auth = False

    def _fetch(self, query: ResolutionQuery) -> SourceData:
        text = f"{query.question} {query.market.description}"
        location = extract_location(text)
        if not location:
            return self._fallback(
                query,
                "No location detected in question",
                suggestion=FALLBACK_SUGGESTION,
                suggested_sources=FALLBACK_SOURCES,
            )

        try:
            coordinates = self.geocode(location)
            if coordinates is None:
                return self._fallback(
                    query,
                    f"Could not geocode location: {location}",
                    suggestion=FALLBACK_SUGGESTION,
                    suggested_sources=FALLBACK_SOURCES,
                    location=location,
                )
            weather = self.fetch_forecast(location, coordinates)
        except DataSourceException as e:
            logger.warning("%s: Open-Meteo failed for %s (%s)", self.name, location, e.code)
            return self._fallback(
                query,
                e.message,
                suggestion=FALLBACK_SUGGESTION,
                suggested_sources=FALLBACK_SOURCES,
                location=location,
                error_code=e.code,
            )

        weather = weather.model_copy(update={"analysis": analyze_weather(weather, query.question)})
        return self._source(
            query,
            weather,
            WEATHER_RUBRIC.score(),
            location=location,
            forecast_days=len(weather.forecast),
        )

    def _validate_payload(self, payload: Payload) -> bool:
        return isinstance(payload, WeatherPayload) and bool(payload.location)

    def geocode(self, location: str) -> Optional[Coordinates]:
        body = self.fetcher.request(
            GEOCODING_API,
            params={"name": location, "count": 1, "language": "en", "format": "json"},
            cache_key=f"geocode_{location.lower()}",
        )
        return parse_geocode(body)

    def fetch_forecast(self, location: str, coordinates: Coordinates) -> WeatherPayload:
        body = self.fetcher.request(
            FORECAST_API,
            params={
                "latitude": coordinates.lat,
                "longitude": coordinates.lon,
                "current": "temperature_2m,relative_humidity_2m,weather_code,wind_speed_10m",
                "daily": "temperature_2m_max,temperature_2m_min,weather_code,precipitation_probability_max",
                "timezone": "auto",
                "forecast_days": FORECAST_DAYS,
            },
            cache_key=f"forecast_{coordinates.lat}_{coordinates.lon}",
        )
        return parse_forecast(body, location, coordinates)
