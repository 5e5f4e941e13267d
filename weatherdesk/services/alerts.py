"""Advisory alerts derived from current conditions.

Thresholds compare against the report's display temperature, so the
heat and cold boundaries move with the user's selected unit.
"""

from weatherdesk.models.weather import Alert, WeatherReport

EXTREME_HEAT = 35
HEAT = 30
COLD = 10
STRONG_WIND = 15  # m/s
WINDY = 10  # m/s
POOR_VISIBILITY_KM = 2
HIGH_HUMIDITY = 85
RAIN_CONDITIONS = frozenset({"Rain", "Drizzle"})


def _heat(report: WeatherReport) -> Alert | None:
    reading = f"{report.temperature}{report.unit_symbol}"
    if report.temperature > EXTREME_HEAT:
        return Alert(
            type="heat",
            severity="high",
            title="Extreme Heat Warning",
            message=f"Temperature is {reading}. Stay hydrated and avoid prolonged sun exposure.",
            icon="🌡️",
        )
    if report.temperature > HEAT:
        return Alert(
            type="heat",
            severity="medium",
            title="Heat Advisory",
            message=f"Temperature is {reading}. Take precautions in the heat.",
            icon="☀️",
        )
    return None


def _cold(report: WeatherReport) -> Alert | None:
    if report.temperature < COLD:
        return Alert(
            type="cold",
            severity="medium",
            title="Cold Weather Alert",
            message=f"Temperature is {report.temperature}{report.unit_symbol}. Dress warmly.",
            icon="❄️",
        )
    return None


def _wind(report: WeatherReport) -> Alert | None:
    if report.wind_speed > STRONG_WIND:
        return Alert(
            type="wind",
            severity="high",
            title="Strong Wind Warning",
            message=(
                f"Wind speed is {report.wind_speed} m/s. "
                "Secure loose objects and avoid outdoor activities."
            ),
            icon="💨",
        )
    if report.wind_speed > WINDY:
        return Alert(
            type="wind",
            severity="medium",
            title="Windy Conditions",
            message=f"Wind speed is {report.wind_speed} m/s. Be cautious outdoors.",
            icon="🌬️",
        )
    return None


def _rain(report: WeatherReport) -> Alert | None:
    if report.main in RAIN_CONDITIONS:
        return Alert(
            type="rain",
            severity="medium",
            title="Rain Alert",
            message="Rain expected. Carry an umbrella and drive carefully.",
            icon="🌧️",
        )
    return None


def _storm(report: WeatherReport) -> Alert | None:
    if report.main == "Thunderstorm":
        return Alert(
            type="storm",
            severity="high",
            title="Thunderstorm Warning",
            message="Thunderstorm in the area. Stay indoors and avoid electrical equipment.",
            icon="⛈️",
        )
    return None


def _visibility(report: WeatherReport) -> Alert | None:
    if report.visibility < POOR_VISIBILITY_KM:
        return Alert(
            type="visibility",
            severity="medium",
            title="Poor Visibility",
            message=f"Visibility is {report.visibility} km. Drive with caution.",
            icon="🌫️",
        )
    return None


def _humidity(report: WeatherReport) -> Alert | None:
    if report.humidity > HIGH_HUMIDITY:
        return Alert(
            type="humidity",
            severity="low",
            title="High Humidity",
            message=f"Humidity is {report.humidity}%. It may feel uncomfortable.",
            icon="💧",
        )
    return None


RULES = (_heat, _cold, _wind, _rain, _storm, _visibility, _humidity)


def derive_alerts(report: WeatherReport) -> list[Alert]:
    """Evaluate every rule in order; each contributes at most one alert."""
    alerts = []
    for rule in RULES:
        alert = rule(report)
        if alert is not None:
            alerts.append(alert)
    return alerts
