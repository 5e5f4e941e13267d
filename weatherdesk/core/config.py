"""Application configuration using Pydantic settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    app_name: str = "Weather Desk"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # Key-value store (Redis)
    redis_host: str = "redis"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: str | None = None

    # OpenWeatherMap
    openweather_api_key: str = ""
    openweather_base_url: str = "https://api.openweathermap.org/data/2.5"
    openweather_icon_url: str = "https://openweathermap.org/img/wn"
    request_timeout: int = 10

    # In-memory weather cache
    weather_cache_ttl: int = 600  # 10 minutes
    weather_cache_max_entries: int = 256

    # Rate limiting
    rate_limit: str = "100/minute"

    # Accounts and sessions
    users_key: str = "weather_app_users"
    session_key: str = "weather_app_session"
    min_password_length: int = 6
    default_admin_name: str = "Admin"
    default_admin_email: str = "admin@weather.com"
    default_admin_password: str = "admin@123"

    # Preferences
    default_city: str = "Thiruvananthapuram"

    # Search history
    history_key_prefix: str = "weather_history_"
    history_max_items: int = 20

    # Logging
    log_level: str = "INFO"
    log_json: bool = True


settings = Settings()
