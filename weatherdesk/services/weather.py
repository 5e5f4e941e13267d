"""OpenWeatherMap client with per-city TTL caching and request coalescing."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httpx
from prometheus_client import Counter
from pydantic import ValidationError

from weatherdesk.core.config import settings
from weatherdesk.core.logging import get_logger
from weatherdesk.models.weather import ForecastSnapshot, WeatherSnapshot
from weatherdesk.services.cache import TTLCache

logger = get_logger(__name__)

T = TypeVar("T")

CACHE_HITS = Counter("weather_desk_cache_hits_total", "Weather cache hits", ["kind"])
CACHE_MISSES = Counter("weather_desk_cache_misses_total", "Weather cache misses", ["kind"])
PROVIDER_REQUESTS = Counter(
    "weather_desk_provider_requests_total",
    "Requests sent to the weather provider",
    ["endpoint", "status"],
)


class WeatherServiceError(Exception):
    """Weather service error."""

    pass


class CityNotFoundError(WeatherServiceError):
    """Provider does not know the city."""

    pass


class ProviderAuthError(WeatherServiceError):
    """Provider rejected the API key."""

    pass


class FetchError(WeatherServiceError):
    """Network failure, unexpected status or unreadable body."""

    pass


class LocationUnavailableError(WeatherServiceError):
    """No usable location was supplied."""

    pass


class WeatherClient:
    """Current-weather and forecast lookups with in-memory caching."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        current_cache: TTLCache[WeatherSnapshot] | None = None,
        forecast_cache: TTLCache[ForecastSnapshot] | None = None,
    ):
        """Initialize the client.

        Args:
            http_client: Preconfigured HTTP client; a pooled one is created if omitted
            current_cache: Cache for current conditions
            forecast_cache: Cache for 5-day forecasts
        """
        self.client = http_client or httpx.AsyncClient(
            timeout=settings.request_timeout,
            limits=httpx.Limits(
                max_keepalive_connections=20,
                max_connections=100,
                keepalive_expiry=30.0,
            ),
        )
        self.current_cache = current_cache or TTLCache(
            "current",
            ttl_seconds=settings.weather_cache_ttl,
            max_entries=settings.weather_cache_max_entries,
        )
        self.forecast_cache = forecast_cache or TTLCache(
            "forecast",
            ttl_seconds=settings.weather_cache_ttl,
            max_entries=settings.weather_cache_max_entries,
        )
        self._inflight: dict[tuple[str, str], asyncio.Task] = {}

    async def close(self) -> None:
        """Close HTTP client."""
        await self.client.aclose()

    async def _request(self, endpoint: str, params: dict[str, Any], subject: str) -> dict[str, Any]:
        """GET a provider endpoint and decode the JSON body.

        Raises:
            CityNotFoundError: On HTTP 404
            ProviderAuthError: On HTTP 401
            FetchError: On any other failure
        """
        query = {**params, "appid": settings.openweather_api_key, "units": "metric"}
        url = f"{settings.openweather_base_url}/{endpoint}"

        try:
            response = await self.client.get(url, params=query)
        except httpx.HTTPError as e:
            logger.error("provider_request_failed", endpoint=endpoint, subject=subject, error=str(e))
            PROVIDER_REQUESTS.labels(endpoint=endpoint, status="error").inc()
            raise FetchError(f"Failed to fetch {subject}. Please try again.") from e

        PROVIDER_REQUESTS.labels(endpoint=endpoint, status=response.status_code).inc()

        if response.status_code == 404:
            logger.warning("provider_city_not_found", endpoint=endpoint, subject=subject)
            raise CityNotFoundError("City not found. Please check the spelling and try again.")
        if response.status_code == 401:
            logger.error("provider_auth_failed", endpoint=endpoint)
            raise ProviderAuthError("API key error. Please contact support.")
        if not response.is_success:
            logger.error(
                "provider_bad_status",
                endpoint=endpoint,
                subject=subject,
                status=response.status_code,
            )
            raise FetchError(f"Failed to fetch {subject}. Please try again.")

        try:
            return response.json()
        except ValueError as e:
            logger.error("provider_invalid_json", endpoint=endpoint, error=str(e))
            raise FetchError(f"Failed to fetch {subject}. Please try again.") from e

    async def _single_flight(self, key: tuple[str, str], fetch: Callable[[], Awaitable[T]]) -> T:
        """Run ``fetch`` once per key; concurrent callers await the same task."""
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(fetch())
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._finish(key, done))
        else:
            logger.info("weather_request_coalesced", kind=key[0], city=key[1])
        return await asyncio.shield(task)

    def _finish(self, key: tuple[str, str], task: asyncio.Task) -> None:
        self._inflight.pop(key, None)
        # Mark the failure as retrieved when every waiter was cancelled
        if not task.cancelled():
            task.exception()

    async def get_current_weather(self, city: str) -> WeatherSnapshot:
        """Get current conditions for ``city``, served from cache while fresh.

        Args:
            city: City name, used as the cache key exactly as typed

        Returns:
            Snapshot with temperatures in Celsius

        Raises:
            WeatherServiceError: If weather data cannot be retrieved
        """
        logger.info("weather_request", kind="current", city=city)

        cached = self.current_cache.get(city)
        if cached is not None:
            CACHE_HITS.labels(kind="current").inc()
            logger.info("weather_cache_hit", kind="current", city=city)
            return cached

        CACHE_MISSES.labels(kind="current").inc()
        logger.info("weather_cache_miss", kind="current", city=city)

        async def fetch() -> WeatherSnapshot:
            data = await self._request("weather", {"q": city}, "weather data")
            snapshot = self._parse(WeatherSnapshot, data)
            self.current_cache.set(city, snapshot)
            logger.info("weather_fetched", city=city, temperature=snapshot.temp)
            return snapshot

        return await self._single_flight(("current", city), fetch)

    async def get_forecast(self, city: str) -> ForecastSnapshot:
        """Get the 5-day / 3-hour forecast for ``city``, served from cache while fresh.

        Raises:
            WeatherServiceError: If forecast data cannot be retrieved
        """
        logger.info("weather_request", kind="forecast", city=city)

        cached = self.forecast_cache.get(city)
        if cached is not None:
            CACHE_HITS.labels(kind="forecast").inc()
            logger.info("weather_cache_hit", kind="forecast", city=city)
            return cached

        CACHE_MISSES.labels(kind="forecast").inc()
        logger.info("weather_cache_miss", kind="forecast", city=city)

        async def fetch() -> ForecastSnapshot:
            data = await self._request("forecast", {"q": city}, "forecast data")
            snapshot = self._parse(ForecastSnapshot, data)
            self.forecast_cache.set(city, snapshot)
            logger.info("forecast_fetched", city=city, intervals=len(snapshot.intervals))
            return snapshot

        return await self._single_flight(("forecast", city), fetch)

    async def get_weather_by_coordinates(self, lat: float | None, lon: float | None) -> WeatherSnapshot:
        """Get current conditions at a coordinate pair. Results are not cached.

        Raises:
            LocationUnavailableError: If a coordinate is missing or out of range
            WeatherServiceError: If weather data cannot be retrieved
        """
        if lat is None or lon is None:
            raise LocationUnavailableError("Unable to retrieve your location")
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            raise LocationUnavailableError("Unable to retrieve your location")

        logger.info("weather_request", kind="coordinates", lat=lat, lon=lon)
        data = await self._request("weather", {"lat": lat, "lon": lon}, "weather by location")
        return self._parse(WeatherSnapshot, data)

    @staticmethod
    def _parse(model: type[T], data: dict[str, Any]) -> T:
        try:
            return model.from_provider(data)
        except (KeyError, IndexError, TypeError, ValidationError) as e:
            logger.error("provider_payload_invalid", model=model.__name__, error=str(e))
            raise FetchError("Weather provider returned an unexpected response.") from e


# Global weather client instance
weather_client = WeatherClient()
