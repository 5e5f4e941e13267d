"""Per-user preferences stored inside the user record."""

from typing import Any

from weatherdesk.core.config import settings
from weatherdesk.core.logging import get_logger
from weatherdesk.models.account import Preferences, PreferencesUpdate
from weatherdesk.models.weather import TemperatureUnit
from weatherdesk.services.accounts import AccountStore, accounts
from weatherdesk.services.session import SessionTracker, sessions

logger = get_logger(__name__)


class PreferenceStore:
    """Typed settings for the logged-in user, with defaults for guests."""

    def __init__(self, account_store: AccountStore, session_tracker: SessionTracker):
        self.accounts = account_store
        self.sessions = session_tracker

    async def get_settings(self) -> Preferences:
        user = await self.sessions.current_user()
        if user is None:
            return Preferences()
        return user.preferences

    async def save_settings(self, update: PreferencesUpdate) -> bool:
        """Apply the fields set on ``update`` to the current user's preferences.

        Returns:
            False when nobody is logged in or the session's user no longer exists
        """
        user = await self.sessions.current_user()
        if user is None:
            return False

        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        user.preferences = user.preferences.model_copy(update=changes)
        saved = await self.accounts.update(user)
        if saved:
            logger.info("preferences_saved", user_id=user.id, fields=sorted(changes))
        return saved

    async def update_setting(self, name: str, value: Any) -> bool:
        """Set a single preference by field name.

        Raises:
            ValueError: If ``name`` is not a preference field
            pydantic.ValidationError: If ``value`` has the wrong type
        """
        if name not in Preferences.model_fields:
            raise ValueError(f"Unknown setting: {name}")
        return await self.save_settings(PreferencesUpdate.model_validate({name: value}))

    async def get_temperature_unit(self) -> TemperatureUnit:
        return (await self.get_settings()).temperature_unit

    async def get_default_city(self) -> str:
        """Stored default city, or the configured fallback when it is blank."""
        city = (await self.get_settings()).default_city.strip()
        return city or settings.default_city

    async def alerts_enabled(self) -> bool:
        return (await self.get_settings()).enable_alerts

    async def dark_mode_enabled(self) -> bool:
        return (await self.get_settings()).dark_mode

    async def toggle_temperature_unit(self) -> TemperatureUnit:
        current = await self.get_temperature_unit()
        new_unit: TemperatureUnit = "fahrenheit" if current == "celsius" else "celsius"
        await self.update_setting("temperature_unit", new_unit)
        return new_unit

    async def toggle_dark_mode(self) -> bool:
        new_mode = not await self.dark_mode_enabled()
        await self.update_setting("dark_mode", new_mode)
        return new_mode

    async def reset_settings(self) -> bool:
        defaults = Preferences()
        return await self.save_settings(PreferencesUpdate(**defaults.model_dump()))


# Global preference store instance
preferences = PreferenceStore(accounts, sessions)
