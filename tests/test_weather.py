"""Integration tests for weather API endpoints."""

import pytest
from httpx import ASGITransport, AsyncClient

from weatherdesk.core.config import settings
from weatherdesk.main import app
from weatherdesk.services.accounts import accounts


async def login_alice(client: AsyncClient) -> None:
    await accounts.register("Alice", "alice@example.com", "secret1")
    response = await client.post(
        "/auth/login", json={"email": "alice@example.com", "password": "secret1"}
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_weather_endpoint_success(mock_redis, stub_weather_client, provider, current_payload):
    """Test successful weather retrieval."""
    provider.add("weather", json=current_payload)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/weather?city=Paris")

    assert response.status_code == 200
    data = response.json()
    assert data["weather"]["city"] == "Paris"
    assert data["weather"]["temperature"] == 16
    assert data["weather"]["unit_symbol"] == "°C"
    assert data["alerts"] == []


@pytest.mark.asyncio
async def test_weather_endpoint_cached(mock_redis, stub_weather_client, provider, current_payload):
    """Second lookup within the cache window does not reach the provider."""
    provider.add("weather", json=current_payload)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await client.get("/weather?city=London")
        response = await client.get("/weather?city=London")

    assert response.status_code == 200
    assert provider.calls("weather") == 1


@pytest.mark.asyncio
async def test_weather_uses_preferences_and_records_history(
    mock_redis, stub_weather_client, provider, make_current
):
    provider.add("weather", json=make_current(temp=36))

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await login_alice(client)
        await client.patch("/settings", json={"temperature_unit": "fahrenheit"})
        response = await client.get("/weather?city=Paris")
        history_response = await client.get("/history")

    data = response.json()
    assert data["weather"]["temperature"] == 97
    assert data["weather"]["unit_symbol"] == "°F"
    assert [a["type"] for a in data["alerts"]] == ["heat"]

    entries = history_response.json()
    assert [e["city"] for e in entries] == ["Paris"]
    assert entries[0]["temperature"] == 97
    assert entries[0]["time_ago"] == "Just now"


@pytest.mark.asyncio
async def test_weather_alerts_disabled(mock_redis, stub_weather_client, provider, make_current):
    provider.add("weather", json=make_current(temp=36))

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await login_alice(client)
        await client.patch("/settings", json={"enable_alerts": False})
        response = await client.get("/weather?city=Paris")

    assert response.json()["alerts"] == []


@pytest.mark.asyncio
async def test_weather_defaults_to_preferred_city(
    mock_redis, stub_weather_client, provider, current_payload
):
    provider.add("weather", json=current_payload)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await login_alice(client)
        await client.patch("/settings", json={"default_city": "Lyon"})
        response = await client.get("/weather")

    assert response.status_code == 200
    assert provider.requests[0].url.params["q"] == "Lyon"


@pytest.mark.asyncio
async def test_weather_blank_preferred_city_uses_configured_default(
    mock_redis, stub_weather_client, provider, current_payload
):
    provider.add("weather", json=current_payload)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await login_alice(client)
        user = await accounts.find_by_email("alice@example.com")
        user.preferences.default_city = ""
        await accounts.update(user)
        response = await client.get("/weather")
        recent = await client.get("/history")

    assert response.status_code == 200
    assert provider.requests[0].url.params["q"] == settings.default_city
    assert recent.json()[0]["city"] == settings.default_city


@pytest.mark.asyncio
async def test_weather_endpoint_city_not_found(mock_redis, stub_weather_client, provider):
    provider.add("weather", status_code=404, json={"message": "city not found"})

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/weather?city=InvalidCity123")

    assert response.status_code == 404
    assert "not found" in response.json()["detail"].lower()


@pytest.mark.asyncio
async def test_weather_endpoint_bad_api_key(mock_redis, stub_weather_client, provider):
    provider.add("weather", status_code=401, json={"message": "Invalid API key"})

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/weather?city=Paris")

    assert response.status_code == 502
    assert "API key" in response.json()["detail"]


@pytest.mark.asyncio
async def test_weather_endpoint_api_failure(mock_redis, stub_weather_client, provider):
    """Test weather endpoint when external API fails."""
    provider.add("weather", status_code=500, json={})

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/weather?city=Paris")

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_weather_endpoint_missing_city(mock_redis):
    """Test weather endpoint with an empty city parameter."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/weather?city=")

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_forecast_endpoint(mock_redis, stub_weather_client, provider, forecast_payload):
    provider.add("forecast", json=forecast_payload)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/weather/forecast?city=Paris")

    assert response.status_code == 200
    data = response.json()
    assert data["city"] == "Paris"
    assert len(data["daily"]) == 5
    assert len(data["hourly"]) == 8
    assert data["hourly"][0]["pop"] == 25


@pytest.mark.asyncio
async def test_coordinates_endpoint(mock_redis, stub_weather_client, provider, current_payload):
    provider.add("weather", json=current_payload)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/weather/coordinates?lat=48.85&lon=2.35")

    assert response.status_code == 200
    assert response.json()["weather"]["city"] == "Paris"


@pytest.mark.asyncio
async def test_coordinates_endpoint_without_location(mock_redis, stub_weather_client, provider):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/weather/coordinates?lat=48.85")

    assert response.status_code == 422
    assert response.json()["error"] == "LocationUnavailableError"
    assert provider.requests == []


@pytest.mark.asyncio
async def test_metrics_endpoint(mock_redis):
    """Test Prometheus metrics endpoint."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await client.get("/health")
        response = await client.get("/metrics")

    assert response.status_code == 200
    assert "weather_desk_requests_total" in response.text


@pytest.mark.asyncio
async def test_correlation_id_header(mock_redis):
    """Test that correlation ID is added to responses."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/health")

    assert "X-Correlation-ID" in response.headers
