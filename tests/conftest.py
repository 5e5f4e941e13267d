"""Test configuration and fixtures."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest
from fakeredis import FakeAsyncRedis

from weatherdesk.middleware.rate_limit import limiter
from weatherdesk.services.cache import TTLCache
from weatherdesk.services.storage import storage
from weatherdesk.services.weather import WeatherClient, weather_client


class FakeClock:
    """Manually advanced clock for cache expiry tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ProviderStub:
    """Routes provider requests to canned responses and records them."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.routes: dict[str, tuple[int, object]] = {}

    def add(self, endpoint: str, status_code: int = 200, json=None) -> None:
        self.routes[endpoint] = (status_code, json)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        endpoint = request.url.path.rsplit("/", 1)[-1]
        if endpoint not in self.routes:
            return httpx.Response(500, json={"message": "no stub"})
        status_code, body = self.routes[endpoint]
        return httpx.Response(status_code, json=body)

    def calls(self, endpoint: str) -> int:
        return sum(1 for r in self.requests if r.url.path.endswith(f"/{endpoint}"))


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    limiter.reset()
    yield


@pytest.fixture
async def mock_redis(monkeypatch):
    """Mock Redis with fakeredis."""
    fake_redis = FakeAsyncRedis(decode_responses=True)
    await fake_redis.flushall()
    monkeypatch.setattr(storage, "redis", fake_redis)
    return fake_redis


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def provider():
    return ProviderStub()


@pytest.fixture
def client_factory(provider, clock):
    """Build a WeatherClient wired to the provider stub and fake clock."""

    def build(ttl: float = 600, max_entries: int = 256) -> WeatherClient:
        return WeatherClient(
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(provider.handler)),
            current_cache=TTLCache("current", ttl_seconds=ttl, max_entries=max_entries, clock=clock),
            forecast_cache=TTLCache("forecast", ttl_seconds=ttl, max_entries=max_entries, clock=clock),
        )

    return build


@pytest.fixture
def stub_weather_client(monkeypatch, provider, clock):
    """Point the global weather client at the provider stub with empty caches."""
    monkeypatch.setattr(
        weather_client,
        "client",
        httpx.AsyncClient(transport=httpx.MockTransport(provider.handler)),
    )
    monkeypatch.setattr(weather_client, "current_cache", TTLCache("current", clock=clock))
    monkeypatch.setattr(weather_client, "forecast_cache", TTLCache("forecast", clock=clock))
    return weather_client


def make_current_payload(
    city: str = "Paris",
    temp: float = 15.5,
    wind_speed: float = 3.6,
    humidity: int = 60,
    visibility: int = 10000,
    main: str = "Clear",
) -> dict:
    """OpenWeatherMap /weather response body."""
    return {
        "coord": {"lon": 2.3488, "lat": 48.8534},
        "weather": [{"id": 800, "main": main, "description": main.lower(), "icon": "01d"}],
        "main": {
            "temp": temp,
            "feels_like": temp - 1,
            "temp_min": temp - 2,
            "temp_max": temp + 2,
            "pressure": 1015,
            "humidity": humidity,
        },
        "visibility": visibility,
        "wind": {"speed": wind_speed, "deg": 220},
        "clouds": {"all": 0},
        "dt": 1705147200,
        "sys": {"country": "FR", "sunrise": 1705131000, "sunset": 1705162800},
        "timezone": 3600,
        "name": city,
    }


def make_forecast_payload(
    city: str = "Paris",
    start: datetime = datetime(2024, 1, 13, 0, 0, tzinfo=timezone.utc),
    count: int = 40,
) -> dict:
    """OpenWeatherMap /forecast response body with 3-hour records."""
    records = []
    for i in range(count):
        moment = start + timedelta(hours=3 * i)
        records.append(
            {
                "dt": int(moment.timestamp()),
                "main": {"temp": 10 + (i % 8), "humidity": 70 + (i % 3)},
                "weather": [{"main": "Clouds" if i % 8 < 5 else "Rain", "icon": f"{i:02d}d"}],
                "wind": {"speed": 4.0 + (i % 2) * 0.5},
                "pop": 0.25,
                "dt_txt": moment.strftime("%Y-%m-%d %H:%M:%S"),
            }
        )
    return {"cod": "200", "cnt": count, "list": records, "city": {"name": city, "country": "FR"}}


@pytest.fixture
def current_payload():
    return make_current_payload()


@pytest.fixture
def forecast_payload():
    return make_forecast_payload()


@pytest.fixture
def make_current():
    return make_current_payload


@pytest.fixture
def make_forecast():
    return make_forecast_payload
