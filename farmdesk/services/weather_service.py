"""Current weather for a farmer's district, via WeatherAPI."""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Optional

import httpx

from farmdesk.core.clock import Clock, utcnow
from farmdesk.domain.errors import ValidationError
from farmdesk.services.providers import ProviderResult, TTLCache

logger = logging.getLogger(__name__)

DEFAULT_WEATHER_URL = "http://api.weatherapi.com/v1/current.json"


class WeatherService:
    """Proxies WeatherAPI's current conditions with a time-based cache."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: Optional[str],
        api_url: str = DEFAULT_WEATHER_URL,
        cache_seconds: int = 1800,
        clock: Clock = utcnow,
    ) -> None:
        self._client = client
        self._api_key = api_key
        self._api_url = api_url
        self._cache: TTLCache[Dict[str, Any]] = TTLCache(cache_seconds)
        self._clock = clock

    async def current(self, district: str, state: str = "", refresh: bool = False) -> ProviderResult:
        """
        Look up current conditions for a district.

        Args:
            district: District name (required)
            state: State name, narrows the lookup when given
            refresh: Skip the cache and fetch from upstream

        Returns:
            ProviderResult; failures are reported in the payload's ``error``
            field rather than raised

        Raises:
            ValidationError: If district is empty
        """
        if not self._api_key:
            return ProviderResult({"error": "Weather API key not configured"}, status_code=503)

        district = (district or "").strip()
        state = (state or "").strip()
        if not district:
            raise ValidationError("District is required")

        location = f"{district} {state} India" if state else f"{district} India"
        cache_key = location.lower()
        if not refresh:
            cached = self._cache.get(cache_key)
            if cached is not None:
                return ProviderResult(cached, from_cache=True)

        try:
            response = await self._client.get(
                self._api_url,
                params={"key": self._api_key, "q": location, "aqi": "no"},
            )
        except httpx.HTTPError as exc:
            logger.warning("Weather lookup for %s failed: %s", location, exc)
            return ProviderResult(
                {"error": "Failed to fetch weather", "location": location}, status_code=503
            )

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.is_error:
            message = (data.get("error") or {}).get("message")
            logger.warning("WeatherAPI returned %s for %s: %s", response.status_code, location, message)
            return ProviderResult(
                {"error": message or "Failed to fetch weather", "location": location},
                status_code=502,
            )

        payload = self._shape(data)
        self._cache.set(cache_key, payload)
        return ProviderResult(payload)

    def _shape(self, data: Dict[str, Any]) -> Dict[str, Any]:
        place = data.get("location") or {}
        current = data.get("current") or {}
        condition = current.get("condition") or {}
        icon = condition.get("icon")
        wind_kph = current.get("wind_kph") or 0
        return {
            "location": place.get("name"),
            "region": place.get("region"),
            "country": place.get("country"),
            "temperature": _round(current.get("temp_c")),
            "feelsLike": _round(current.get("feelslike_c")),
            "humidity": current.get("humidity"),
            "windSpeed": _round(wind_kph * 1000 / 3600),
            "weather": {
                "main": condition.get("text"),
                "description": condition.get("text"),
                # WeatherAPI returns protocol-relative icon URLs
                "icon": f"https:{icon}" if icon else None,
            },
            "isDay": current.get("is_day") == 1,
            "lastUpdated": current.get("last_updated"),
            "cachedAt": self._clock().isoformat(),
        }


def _round(value: Optional[float]) -> Optional[int]:
    if value is None:
        return None
    return int(math.floor(value + 0.5))
