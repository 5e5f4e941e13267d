"""Pydantic models for weather data, display records and API responses."""

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

TemperatureUnit = Literal["celsius", "fahrenheit"]
AlertType = Literal["heat", "cold", "wind", "rain", "storm", "visibility", "humidity"]
AlertSeverity = Literal["high", "medium", "low"]


def _utc(epoch_seconds: int | float) -> datetime:
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)


class WeatherSnapshot(BaseModel):
    """Current conditions for one city as returned by the provider.

    Temperatures are always Celsius; conversion happens at display time.
    """

    model_config = ConfigDict(frozen=True)

    city: str
    country: str = ""
    temp: float
    feels_like: float
    temp_min: float
    temp_max: float
    condition_id: int = 0
    main: str
    description: str = ""
    icon: str = ""
    humidity: int
    pressure: int = 0
    wind_speed: float = 0.0
    wind_deg: int = 0
    clouds: int = 0
    visibility: int = Field(10000, description="Visibility in meters")
    sunrise: datetime | None = None
    sunset: datetime | None = None
    timezone_offset: int = 0
    captured_at: datetime

    @classmethod
    def from_provider(cls, data: dict[str, Any]) -> "WeatherSnapshot":
        """Build a snapshot from an OpenWeatherMap ``/weather`` body."""
        main = data["main"]
        weather = data["weather"][0]
        wind = data.get("wind", {})
        sys_info = data.get("sys", {})

        return cls(
            city=data["name"],
            country=sys_info.get("country", ""),
            temp=main["temp"],
            feels_like=main.get("feels_like", main["temp"]),
            temp_min=main.get("temp_min", main["temp"]),
            temp_max=main.get("temp_max", main["temp"]),
            condition_id=weather.get("id", 0),
            main=weather["main"],
            description=weather.get("description", ""),
            icon=weather.get("icon", ""),
            humidity=main["humidity"],
            pressure=main.get("pressure", 0),
            wind_speed=wind.get("speed", 0.0),
            wind_deg=wind.get("deg", 0),
            clouds=data.get("clouds", {}).get("all", 0),
            visibility=data.get("visibility", 10000),
            sunrise=_utc(sys_info["sunrise"]) if "sunrise" in sys_info else None,
            sunset=_utc(sys_info["sunset"]) if "sunset" in sys_info else None,
            timezone_offset=data.get("timezone", 0),
            captured_at=_utc(data["dt"]),
        )


class ForecastInterval(BaseModel):
    """One 3-hour record of the 5-day forecast."""

    model_config = ConfigDict(frozen=True)

    dt: datetime
    date: str = Field(..., description="Provider date string, YYYY-MM-DD")
    temp: float
    humidity: int
    wind_speed: float
    main: str
    icon: str
    pop: float = 0.0

    @classmethod
    def from_provider(cls, item: dict[str, Any]) -> "ForecastInterval":
        dt = _utc(item["dt"])
        dt_txt = item.get("dt_txt")
        weather = item["weather"][0]
        return cls(
            dt=dt,
            date=dt_txt[:10] if dt_txt else dt.date().isoformat(),
            temp=item["main"]["temp"],
            humidity=item["main"]["humidity"],
            wind_speed=item.get("wind", {}).get("speed", 0.0),
            main=weather["main"],
            icon=weather.get("icon", ""),
            pop=item.get("pop", 0.0),
        )


class ForecastSnapshot(BaseModel):
    """Ordered 3-hour forecast records for a city."""

    model_config = ConfigDict(frozen=True)

    city: str
    country: str = ""
    intervals: tuple[ForecastInterval, ...]

    @classmethod
    def from_provider(cls, data: dict[str, Any]) -> "ForecastSnapshot":
        """Build a snapshot from an OpenWeatherMap ``/forecast`` body."""
        city = data.get("city", {})
        return cls(
            city=city.get("name", ""),
            country=city.get("country", ""),
            intervals=tuple(ForecastInterval.from_provider(item) for item in data["list"]),
        )


class WeatherReport(BaseModel):
    """Current conditions converted to the user's unit for display."""

    city: str
    country: str
    temperature: int
    feels_like: int
    temp_min: int
    temp_max: int
    description: str
    main: str
    icon: str
    icon_url: str
    humidity: int
    pressure: int
    wind_speed: float = Field(..., description="Wind speed in m/s")
    wind_deg: int
    clouds: int
    visibility: int = Field(..., description="Visibility in km")
    sunrise: datetime | None
    sunset: datetime | None
    timezone: int
    unit_symbol: str
    timestamp: datetime


class DailyForecast(BaseModel):
    """Aggregated forecast for one calendar day."""

    date: str
    date_string: str
    min_temp: int
    max_temp: int
    condition: str
    icon: str
    icon_url: str
    avg_humidity: int
    avg_wind: float
    unit_symbol: str


class HourlyForecast(BaseModel):
    """One 3-hour slot of the next-24-hours view."""

    time: str
    temp: int
    condition: str
    icon: str
    icon_url: str
    pop: int = Field(..., description="Probability of precipitation, percent")
    unit_symbol: str


class Alert(BaseModel):
    """Advisory derived from current conditions."""

    type: AlertType
    severity: AlertSeverity
    title: str
    message: str
    icon: str


class WeatherResponse(BaseModel):
    """Current weather response model."""

    weather: WeatherReport
    alerts: list[Alert] = Field(default_factory=list)


class ForecastResponse(BaseModel):
    """Forecast response model."""

    city: str
    daily: list[DailyForecast]
    hourly: list[HourlyForecast]


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    storage_connected: bool = Field(..., description="Key-value store connection status")


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Error message")
    detail: str | None = Field(None, description="Additional error details")
