"""Pydantic models for accounts, sessions and preferences."""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, Field, StringConstraints

from weatherdesk.core.config import settings
from weatherdesk.models.weather import TemperatureUnit


class Preferences(BaseModel):
    """Per-user display and alert settings."""

    temperature_unit: TemperatureUnit = "celsius"
    default_city: str = Field(default_factory=lambda: settings.default_city)
    enable_alerts: bool = True
    dark_mode: bool = True


class PreferencesUpdate(BaseModel):
    """Partial preferences; only fields that were set are applied."""

    temperature_unit: TemperatureUnit | None = None
    default_city: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)] | None = None
    enable_alerts: bool | None = None
    dark_mode: bool | None = None


class User(BaseModel):
    """Stored user record."""

    id: str
    name: str
    email: str
    password: str
    created_at: datetime
    is_admin: bool = False
    preferences: Preferences = Field(default_factory=Preferences)

    def summary(self) -> "UserSummary":
        return UserSummary(id=self.id, name=self.name, email=self.email, is_admin=self.is_admin)


class UserSummary(BaseModel):
    """User record without credentials or preferences."""

    id: str
    name: str
    email: str
    is_admin: bool


class Session(BaseModel):
    """The single active login."""

    user_id: str
    name: str
    email: str
    login_time: datetime


class RegisterRequest(BaseModel):
    """Registration request body."""

    name: str
    email: str
    password: str


class LoginRequest(BaseModel):
    """Login request body."""

    email: str = ""
    password: str = ""


class MessageResponse(BaseModel):
    """Plain confirmation message."""

    message: str


class AdminToggleResponse(BaseModel):
    """Result of flipping a user's admin flag."""

    message: str
    is_admin: bool
