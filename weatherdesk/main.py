"""FastAPI application exposing accounts, weather, history and settings."""

import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import Counter, Histogram, generate_latest
from slowapi.errors import RateLimitExceeded

from weatherdesk.core.config import settings
from weatherdesk.core.logging import configure_logging, get_logger
from weatherdesk.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from weatherdesk.models.account import (
    AdminToggleResponse,
    LoginRequest,
    MessageResponse,
    Preferences,
    PreferencesUpdate,
    RegisterRequest,
    Session,
    UserSummary,
)
from weatherdesk.models.history import CityCount, FormattedHistoryEntry
from weatherdesk.models.weather import (
    ErrorResponse,
    ForecastResponse,
    HealthResponse,
    WeatherResponse,
)
from weatherdesk.services.accounts import (
    AccountError,
    AccountNotFoundError,
    AccountValidationError,
    DuplicateAccountError,
    InvalidCredentialsError,
    NotAuthenticatedError,
    PermissionDeniedError,
    accounts,
)
from weatherdesk.services.admin import admin_service
from weatherdesk.services.alerts import derive_alerts
from weatherdesk.services.formatting import (
    format_weather,
    process_daily_forecast,
    process_hourly_forecast,
)
from weatherdesk.services.history import history
from weatherdesk.services.preferences import preferences
from weatherdesk.services.session import sessions
from weatherdesk.services.storage import StorageUnavailableError, storage
from weatherdesk.services.weather import (
    CityNotFoundError,
    FetchError,
    LocationUnavailableError,
    ProviderAuthError,
    WeatherServiceError,
    weather_client,
)

# Configure logging
configure_logging()
logger = get_logger(__name__)

# Prometheus metrics
REQUEST_COUNT = Counter(
    "weather_desk_requests_total",
    "Total number of requests",
    ["method", "endpoint", "status"],
)
REQUEST_DURATION = Histogram(
    "weather_desk_request_duration_seconds",
    "Request duration in seconds",
    ["method", "endpoint"],
)

ERROR_STATUS: dict[type[Exception], int] = {
    CityNotFoundError: 404,
    ProviderAuthError: 502,
    FetchError: 503,
    LocationUnavailableError: 422,
    AccountValidationError: 400,
    DuplicateAccountError: 409,
    InvalidCredentialsError: 401,
    NotAuthenticatedError: 401,
    PermissionDeniedError: 403,
    AccountNotFoundError: 404,
    StorageUnavailableError: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown."""
    # Startup
    logger.info("application_starting", version=settings.app_version)

    try:
        await storage.connect()
        await accounts.initialize_default_admin()
    except Exception as e:
        logger.error("startup_failed", error=str(e))
        raise

    logger.info("application_started")

    yield

    # Shutdown
    logger.info("application_shutting_down")
    await storage.disconnect()
    await weather_client.close()
    logger.info("application_stopped")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Weather lookup with accounts, cached provider data, alerts and search history",
    lifespan=lifespan,
)

# Add rate limiter state and exception handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.middleware("http")
async def add_correlation_id(request: Request, call_next):
    """Add correlation ID to each request for tracing."""
    correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))

    # Bind correlation ID to structlog context
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)

    response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id

    return response


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Track request metrics."""
    method = request.method
    path = request.url.path

    with REQUEST_DURATION.labels(method=method, endpoint=path).time():
        response = await call_next(request)

    REQUEST_COUNT.labels(method=method, endpoint=path, status=response.status_code).inc()

    return response


def _status_for(exc: Exception) -> int:
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS:
            return ERROR_STATUS[error_type]
    return 500


@app.exception_handler(WeatherServiceError)
@app.exception_handler(AccountError)
@app.exception_handler(StorageUnavailableError)
async def domain_exception_handler(request: Request, exc: Exception):
    """Map service errors to status codes with a user-readable detail."""
    status_code = _status_for(exc)
    logger.warning(
        "request_failed",
        path=request.url.path,
        error_type=type(exc).__name__,
        status=status_code,
        error=str(exc),
    )
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


# Health


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Combined health check",
    tags=["Health"],
)
async def health_check():
    """Combined health check endpoint.

    Returns service health status and key-value store connection state.
    """
    storage_connected = await storage.is_connected()

    logger.info("health_check", storage_connected=storage_connected)

    return HealthResponse(
        status="healthy" if storage_connected else "degraded",
        version=settings.app_version,
        storage_connected=storage_connected,
    )


@app.get("/health/live", summary="Liveness check", tags=["Health"], status_code=200)
async def liveness():
    """Liveness check; always 200 while the process is serving."""
    return {"status": "alive"}


@app.get(
    "/health/ready",
    response_model=HealthResponse,
    summary="Readiness check",
    tags=["Health"],
    responses={503: {"description": "Service is not ready"}},
)
async def readiness():
    """Readiness check.

    Raises:
        HTTPException: 503 if the key-value store is unreachable
    """
    storage_connected = await storage.is_connected()

    if not storage_connected:
        logger.warning("readiness_check_failed", storage_connected=False)
        raise HTTPException(
            status_code=503,
            detail="Service not ready: storage not connected",
        )

    return HealthResponse(
        status="ready",
        version=settings.app_version,
        storage_connected=storage_connected,
    )


# Accounts and sessions


@app.post("/auth/register", response_model=UserSummary, status_code=201, tags=["Auth"])
async def register(body: RegisterRequest):
    """Register a regular account. Does not log the user in."""
    user = await accounts.register(body.name, body.email, body.password)
    return user.summary()


@app.post("/auth/login", response_model=Session, tags=["Auth"])
async def login(body: LoginRequest):
    """Authenticate and replace the active session."""
    return await sessions.login(body.email, body.password)


@app.post("/auth/logout", response_model=MessageResponse, tags=["Auth"])
async def logout():
    await sessions.logout()
    return MessageResponse(message="Logged out successfully")


@app.get(
    "/auth/session",
    response_model=Session,
    tags=["Auth"],
    responses={401: {"model": ErrorResponse}},
)
async def current_session():
    session = await sessions.current_session()
    if session is None:
        raise NotAuthenticatedError("Please log in to continue")
    return session


# Admin


@app.get("/admin/users", response_model=list[UserSummary], tags=["Admin"])
async def list_users():
    return [user.summary() for user in await admin_service.list_users()]


@app.delete("/admin/users/{user_id}", response_model=MessageResponse, tags=["Admin"])
async def delete_user(user_id: str):
    deleted = await admin_service.delete_user(user_id)
    return MessageResponse(message=f"User {deleted.name} deleted successfully")


@app.post("/admin/users/{user_id}/toggle-admin", response_model=AdminToggleResponse, tags=["Admin"])
async def toggle_admin(user_id: str):
    user = await admin_service.toggle_admin(user_id)
    verb = "granted" if user.is_admin else "revoked"
    return AdminToggleResponse(message=f"{user.name} {verb} admin privileges", is_admin=user.is_admin)


# Settings


@app.get("/settings", response_model=Preferences, tags=["Settings"])
async def get_settings():
    """Current user's preferences, or defaults when logged out."""
    return await preferences.get_settings()


@app.patch("/settings", response_model=Preferences, tags=["Settings"])
async def update_settings(body: PreferencesUpdate):
    await sessions.require_user()
    await preferences.save_settings(body)
    return await preferences.get_settings()


@app.post("/settings/reset", response_model=Preferences, tags=["Settings"])
async def reset_settings():
    await sessions.require_user()
    await preferences.reset_settings()
    return await preferences.get_settings()


@app.post("/settings/toggle-unit", response_model=Preferences, tags=["Settings"])
async def toggle_unit():
    await sessions.require_user()
    await preferences.toggle_temperature_unit()
    return await preferences.get_settings()


@app.post("/settings/toggle-dark-mode", response_model=Preferences, tags=["Settings"])
async def toggle_dark_mode():
    await sessions.require_user()
    await preferences.toggle_dark_mode()
    return await preferences.get_settings()


# Weather


def _resolve_city(city: str | None, default_city: str) -> str:
    if city is None:
        return default_city
    if not city.strip():
        raise HTTPException(status_code=400, detail="City parameter is required")
    return city.strip()


@app.get(
    "/weather",
    response_model=WeatherResponse,
    summary="Get current weather for a city",
    description="""Current conditions in the user's preferred unit.

    Provider results are cached per city for 10 minutes. Alerts are included
    when enabled in settings, and the lookup is added to the search history
    of the logged-in user.
    """,
    tags=["Weather"],
    responses={
        400: {"model": ErrorResponse, "description": "Empty city parameter"},
        404: {"model": ErrorResponse, "description": "City not found"},
        502: {"model": ErrorResponse, "description": "Provider credential error"},
        503: {"model": ErrorResponse, "description": "Weather service unavailable"},
    },
)
@limiter.limit(settings.rate_limit)
async def get_weather(request: Request, city: str | None = None):
    """Get weather data for a city.

    Args:
        request: FastAPI request object (for rate limiting)
        city: City name; the preferred default city if omitted
    """
    prefs = await preferences.get_settings()
    city = _resolve_city(city, await preferences.get_default_city())

    snapshot = await weather_client.get_current_weather(city)
    report = format_weather(snapshot, prefs.temperature_unit)
    alerts = derive_alerts(report) if prefs.enable_alerts else []

    await history.add(city, report)

    return WeatherResponse(weather=report, alerts=alerts)


@app.get("/weather/forecast", response_model=ForecastResponse, tags=["Weather"])
@limiter.limit(settings.rate_limit)
async def get_forecast(request: Request, city: str | None = None):
    """Daily (5-day) and hourly (next 24 h) forecast views for a city."""
    prefs = await preferences.get_settings()
    city = _resolve_city(city, await preferences.get_default_city())

    forecast = await weather_client.get_forecast(city)
    return ForecastResponse(
        city=forecast.city or city,
        daily=process_daily_forecast(forecast, prefs.temperature_unit),
        hourly=process_hourly_forecast(forecast, prefs.temperature_unit),
    )


@app.get("/weather/coordinates", response_model=WeatherResponse, tags=["Weather"])
@limiter.limit(settings.rate_limit)
async def get_weather_by_coordinates(
    request: Request,
    lat: float | None = Query(None),
    lon: float | None = Query(None),
):
    """Current conditions at a coordinate pair; not cached or recorded."""
    prefs = await preferences.get_settings()

    snapshot = await weather_client.get_weather_by_coordinates(lat, lon)
    report = format_weather(snapshot, prefs.temperature_unit)
    alerts = derive_alerts(report) if prefs.enable_alerts else []

    return WeatherResponse(weather=report, alerts=alerts)


# History


@app.get("/history", response_model=list[FormattedHistoryEntry], tags=["History"])
async def get_history():
    """Logged-in user's searches, newest first; empty when logged out."""
    return await history.formatted_history()


@app.get("/history/top", response_model=list[CityCount], tags=["History"])
async def most_searched(limit: int = Query(5, ge=1, le=50)):
    return await history.most_searched(limit)


@app.delete("/history", response_model=MessageResponse, tags=["History"])
async def clear_history():
    await sessions.require_user()
    await history.clear()
    return MessageResponse(message="Search history cleared")


@app.delete("/history/{index}", response_model=MessageResponse, tags=["History"])
async def remove_history_entry(index: int):
    await sessions.require_user()
    removed = await history.remove_entry(index)
    if not removed:
        raise HTTPException(status_code=404, detail="History entry not found")
    return MessageResponse(message="History entry removed")


@app.get(
    "/metrics",
    response_class=PlainTextResponse,
    summary="Prometheus metrics",
    tags=["Monitoring"],
)
async def metrics():
    """Prometheus metrics endpoint.

    Includes request counts and durations, weather cache hits and misses,
    and provider request counts.
    """
    return generate_latest()


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    logger.error("unhandled_exception", error=str(exc), path=request.url.path)

    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "detail": str(exc)},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "weatherdesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
