"""Unit conversion and display formatting for weather snapshots."""

import math
from collections import Counter, OrderedDict
from datetime import date, datetime

from weatherdesk.core.config import settings
from weatherdesk.models.weather import (
    DailyForecast,
    ForecastInterval,
    ForecastSnapshot,
    HourlyForecast,
    TemperatureUnit,
    WeatherReport,
    WeatherSnapshot,
)

DAILY_FORECAST_DAYS = 5
HOURLY_FORECAST_SLOTS = 8  # 24 hours at 3-hour resolution


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves towards positive infinity (2.5 -> 3, -2.5 -> -2)."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def round_int(value: float) -> int:
    return int(round_half_up(value))


def convert_temperature(celsius: float, unit: TemperatureUnit) -> float:
    """Convert a Celsius reading to ``unit``.

    Raises:
        ValueError: If ``unit`` is not celsius or fahrenheit
    """
    if unit == "celsius":
        return celsius
    if unit == "fahrenheit":
        return celsius * 9 / 5 + 32
    raise ValueError(f"Unsupported temperature unit: {unit}")


def unit_symbol(unit: TemperatureUnit) -> str:
    return "°C" if unit == "celsius" else "°F"


def icon_url(icon: str) -> str:
    return f"{settings.openweather_icon_url}/{icon}@2x.png"


def format_weather(snapshot: WeatherSnapshot, unit: TemperatureUnit = "celsius") -> WeatherReport:
    """Build the display report for ``snapshot`` in ``unit``."""
    return WeatherReport(
        city=snapshot.city,
        country=snapshot.country,
        temperature=round_int(convert_temperature(snapshot.temp, unit)),
        feels_like=round_int(convert_temperature(snapshot.feels_like, unit)),
        temp_min=round_int(convert_temperature(snapshot.temp_min, unit)),
        temp_max=round_int(convert_temperature(snapshot.temp_max, unit)),
        description=snapshot.description,
        main=snapshot.main,
        icon=snapshot.icon,
        icon_url=icon_url(snapshot.icon),
        humidity=snapshot.humidity,
        pressure=snapshot.pressure,
        wind_speed=snapshot.wind_speed,
        wind_deg=snapshot.wind_deg,
        clouds=snapshot.clouds,
        visibility=round_int(snapshot.visibility / 1000),
        sunrise=snapshot.sunrise,
        sunset=snapshot.sunset,
        timezone=snapshot.timezone_offset,
        unit_symbol=unit_symbol(unit),
        timestamp=snapshot.captured_at,
    )


def _dominant_condition(conditions: list[str]) -> str:
    # most_common keeps first-seen order among equal counts
    return Counter(conditions).most_common(1)[0][0]


def _summarize_day(day: str, records: list[ForecastInterval], unit: TemperatureUnit) -> DailyForecast:
    temps = [record.temp for record in records]
    icon = records[len(records) // 2].icon
    parsed = date.fromisoformat(day)

    return DailyForecast(
        date=day,
        date_string=f"{parsed:%a}, {parsed:%b} {parsed.day}",
        min_temp=round_int(convert_temperature(min(temps), unit)),
        max_temp=round_int(convert_temperature(max(temps), unit)),
        condition=_dominant_condition([record.main for record in records]),
        icon=icon,
        icon_url=icon_url(icon),
        avg_humidity=round_int(sum(r.humidity for r in records) / len(records)),
        avg_wind=round_half_up(sum(r.wind_speed for r in records) / len(records), 1),
        unit_symbol=unit_symbol(unit),
    )


def process_daily_forecast(
    forecast: ForecastSnapshot, unit: TemperatureUnit = "celsius"
) -> list[DailyForecast]:
    """Collapse 3-hour records into at most five per-day summaries.

    Records are grouped by the provider's own date string, in input order.
    """
    days: OrderedDict[str, list[ForecastInterval]] = OrderedDict()
    for record in forecast.intervals:
        days.setdefault(record.date, []).append(record)

    summaries = [_summarize_day(day, records, unit) for day, records in days.items()]
    return summaries[:DAILY_FORECAST_DAYS]


def _hour_label(moment: datetime) -> str:
    hour = moment.hour % 12 or 12
    return f"{hour} {'AM' if moment.hour < 12 else 'PM'}"


def process_hourly_forecast(
    forecast: ForecastSnapshot, unit: TemperatureUnit = "celsius"
) -> list[HourlyForecast]:
    """Map the next eight 3-hour records to display slots."""
    return [
        HourlyForecast(
            time=_hour_label(record.dt),
            temp=round_int(convert_temperature(record.temp, unit)),
            condition=record.main,
            icon=record.icon,
            icon_url=icon_url(record.icon),
            pop=round_int(record.pop * 100),
            unit_symbol=unit_symbol(unit),
        )
        for record in forecast.intervals[:HOURLY_FORECAST_SLOTS]
    ]
