# weather service: openweather one call 3.0 over httpx, with a short-lived cache
# plus a deterministic month-keyed simulation used whenever live data is unavailable

import logging
from datetime import date, datetime, timezone
from typing import Any, Optional

import httpx
from cachetools import TTLCache

from moodcast.config import settings
from moodcast.models.context import WeatherCondition, WeatherData

logger = logging.getLogger(__name__)


class WeatherServiceError(Exception):
    """base class for weather lookup failures"""


class NoAPIKeyError(WeatherServiceError):
    pass


class InvalidAPIKeyError(WeatherServiceError):
    pass


class RateLimitExceededError(WeatherServiceError):
    pass


class WeatherHTTPError(WeatherServiceError):
    def __init__(self, status_code: int):
        super().__init__(f"weather api returned HTTP {status_code}")
        self.status_code = status_code


class WeatherResponseError(WeatherServiceError):
    """the response body could not be understood"""


def map_condition(weather_id: int, main: str = "") -> WeatherCondition:
    """openweather condition id -> our condition"""
    if 200 <= weather_id <= 232:
        return WeatherCondition.STORMY
    if 300 <= weather_id <= 321 or 500 <= weather_id <= 531:
        return WeatherCondition.RAINY
    if 600 <= weather_id <= 622:
        return WeatherCondition.SNOWY
    if 701 <= weather_id <= 781:
        return WeatherCondition.FOGGY
    if weather_id == 800:
        return WeatherCondition.SUNNY
    if weather_id == 801:
        return WeatherCondition.PARTLY_CLOUDY
    if 802 <= weather_id <= 804:
        return WeatherCondition.CLOUDY

    main = (main or "").lower()
    if "cloud" in main:
        return WeatherCondition.CLOUDY
    if "rain" in main:
        return WeatherCondition.RAINY
    if "snow" in main:
        return WeatherCondition.SNOWY
    return WeatherCondition.SUNNY


# typical northern-hemisphere month: (condition, temperature c, humidity %, uv index)
SEASONAL_WEATHER = {
    1: (WeatherCondition.SNOWY, -2.0, 75.0, 1.0),
    2: (WeatherCondition.CLOUDY, 1.0, 70.0, 2.0),
    3: (WeatherCondition.RAINY, 7.0, 68.0, 3.0),
    4: (WeatherCondition.PARTLY_CLOUDY, 12.0, 62.0, 5.0),
    5: (WeatherCondition.SUNNY, 17.0, 58.0, 6.0),
    6: (WeatherCondition.SUNNY, 22.0, 55.0, 8.0),
    7: (WeatherCondition.SUNNY, 25.0, 55.0, 9.0),
    8: (WeatherCondition.SUNNY, 24.0, 58.0, 8.0),
    9: (WeatherCondition.PARTLY_CLOUDY, 19.0, 62.0, 6.0),
    10: (WeatherCondition.CLOUDY, 13.0, 68.0, 4.0),
    11: (WeatherCondition.RAINY, 7.0, 72.0, 2.0),
    12: (WeatherCondition.SNOWY, 1.0, 76.0, 1.0),
}


def simulate_weather(target_date: date) -> WeatherData:
    """deterministic seasonal estimate. depends only on the month."""
    condition, temperature, humidity, uv_index = SEASONAL_WEATHER[target_date.month]
    return WeatherData(
        temperature=temperature,
        condition=condition,
        humidity=humidity,
        uv_index=uv_index,
        is_simulated=True,
    )


class OpenWeatherService:
    """async openweather client with a bounded, coordinate-keyed ttl cache"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        cache_seconds: Optional[int] = None,
        cache_size: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.OPENWEATHER_API_KEY
        self.base_url = base_url or settings.OPENWEATHER_BASE_URL
        self.cache_seconds = cache_seconds if cache_seconds is not None else settings.WEATHER_CACHE_SECONDS
        self._client = client
        self.cache_size = cache_size or settings.WEATHER_CACHE_MAX_ENTRIES
        self._cache: TTLCache = TTLCache(maxsize=self.cache_size, ttl=self.cache_seconds)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=10.0)
        return self._client

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def clear_cache(self):
        self._cache.clear()

    async def fetch_forecast(self, latitude: float, longitude: float) -> dict:
        """raw one call response, served from cache for cache_seconds"""
        if not self.api_key:
            raise NoAPIKeyError("OPENWEATHER_API_KEY is not configured")

        cache_key = f"{latitude:.4f},{longitude:.4f}"
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        client = await self._get_client()
        try:
            response = await client.get(
                self.base_url,
                params={
                    "lat": latitude,
                    "lon": longitude,
                    "appid": self.api_key,
                    "units": "metric",
                    "exclude": "minutely,alerts",
                },
            )
        except httpx.HTTPError as e:
            raise WeatherServiceError(f"weather request failed: {e}") from e

        if response.status_code == 401:
            raise InvalidAPIKeyError("openweather rejected the api key")
        if response.status_code == 429:
            raise RateLimitExceededError("openweather rate limit exceeded")
        if response.status_code != 200:
            raise WeatherHTTPError(response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise WeatherResponseError(f"weather response is not json: {e}") from e
        if not isinstance(payload, dict):
            raise WeatherResponseError("weather response is not an object")

        self._cache[cache_key] = payload
        return payload

    async def fetch_weather(self, latitude: float, longitude: float, target_date: Optional[date] = None) -> WeatherData:
        payload = await self.fetch_forecast(latitude, longitude)
        return self.to_weather_data(payload, target_date)

    @staticmethod
    def to_weather_data(payload: dict, target_date: Optional[date] = None) -> WeatherData:
        """pick current conditions for today, the matching daily forecast otherwise"""
        today = datetime.now(timezone.utc).date()
        target_date = target_date or today

        block: Optional[dict[str, Any]] = None
        temperature = None
        if target_date != today:
            for day in payload.get("daily") or []:
                try:
                    day_date = datetime.fromtimestamp(day["dt"], tz=timezone.utc).date()
                except (KeyError, TypeError, ValueError, OverflowError):
                    continue
                if day_date == target_date:
                    block = day
                    temp = day.get("temp")
                    temperature = temp.get("day") if isinstance(temp, dict) else temp
                    break
        if block is None and isinstance(payload.get("current"), dict):
            block = payload["current"]
            temperature = block.get("temp")
        if block is None:
            raise WeatherResponseError("weather response has no usable conditions")

        conditions = block.get("weather") or []
        if not conditions or not isinstance(conditions[0], dict):
            raise WeatherResponseError("weather response has no condition")

        try:
            condition = map_condition(int(conditions[0].get("id", 0)), conditions[0].get("main", ""))
            return WeatherData(
                temperature=float(temperature if temperature is not None else 20.0),
                condition=condition,
                humidity=block.get("humidity"),
                uv_index=block.get("uvi"),
                is_simulated=False,
            )
        except (TypeError, ValueError) as e:
            raise WeatherResponseError(f"weather response is malformed: {e}") from e
