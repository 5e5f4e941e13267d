"""Per-user search history: capped, deduplicated, newest first."""

from collections import Counter
from datetime import datetime, timezone

from pydantic import ValidationError

from weatherdesk.core.config import settings
from weatherdesk.core.logging import get_logger
from weatherdesk.models.history import CityCount, FormattedHistoryEntry, HistoryEntry
from weatherdesk.models.weather import WeatherReport
from weatherdesk.services.session import SessionTracker, sessions
from weatherdesk.services.storage import KeyValueStore, storage

logger = get_logger(__name__)


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'s' if count > 1 else ''} ago"


def time_ago(timestamp: datetime, now: datetime) -> str:
    """Describe ``timestamp`` relative to ``now`` (e.g. ``3 hours ago``)."""
    diff_seconds = (now - timestamp).total_seconds()
    minutes = int(diff_seconds // 60)
    hours = int(diff_seconds // 3600)
    days = int(diff_seconds // 86400)

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return _plural(minutes, "minute")
    if hours < 24:
        return _plural(hours, "hour")
    if days < 7:
        return _plural(days, "day")

    label = f"{timestamp:%b} {timestamp.day}"
    if timestamp.year != now.year:
        label += f", {timestamp.year}"
    return label


def full_date(timestamp: datetime) -> str:
    """Format as ``Jan 13, 2024, 3:05 PM``."""
    hour = timestamp.hour % 12 or 12
    meridiem = "AM" if timestamp.hour < 12 else "PM"
    return (
        f"{timestamp:%b} {timestamp.day}, {timestamp.year}, "
        f"{hour}:{timestamp:%M} {meridiem}"
    )


class HistoryTracker:
    """Search history scoped to the logged-in user."""

    def __init__(self, store: KeyValueStore, session_tracker: SessionTracker):
        self.store = store
        self.sessions = session_tracker

    async def _key(self) -> str | None:
        session = await self.sessions.current_session()
        if session is None:
            return None
        return f"{settings.history_key_prefix}{session.user_id}"

    async def get_history(self) -> list[HistoryEntry]:
        key = await self._key()
        if key is None:
            return []

        entries = []
        for raw in await self.store.get_json(key) or []:
            try:
                entries.append(HistoryEntry.model_validate(raw))
            except ValidationError as e:
                logger.warning("history_entry_invalid", key=key, error=str(e))
        return entries

    async def _save(self, key: str, entries: list[HistoryEntry]) -> None:
        capped = entries[: settings.history_max_items]
        await self.store.set_json(key, [entry.model_dump(mode="json") for entry in capped])

    async def add(self, city: str, report: WeatherReport | None = None) -> None:
        """Record a lookup at the front, replacing any earlier entry for the city."""
        key = await self._key()
        if key is None:
            return

        entry = HistoryEntry(
            city=city,
            timestamp=datetime.now(timezone.utc),
            temperature=report.temperature if report else None,
            condition=report.main if report else None,
            icon=report.icon if report else None,
        )
        history = [item for item in await self.get_history() if item.city.lower() != city.lower()]
        history.insert(0, entry)
        await self._save(key, history)
        logger.info("history_added", city=city, size=min(len(history), settings.history_max_items))

    async def clear(self) -> None:
        key = await self._key()
        if key is None:
            return
        await self.store.remove(key)

    async def remove_entry(self, index: int) -> bool:
        """Remove the entry at ``index``; out-of-range indexes are ignored."""
        key = await self._key()
        if key is None:
            return False

        history = await self.get_history()
        if not 0 <= index < len(history):
            return False
        del history[index]
        await self._save(key, history)
        return True

    async def is_in_history(self, city: str) -> bool:
        return any(item.city.lower() == city.lower() for item in await self.get_history())

    async def most_searched(self, limit: int = 5) -> list[CityCount]:
        history = await self.get_history()
        counts = Counter(item.city.lower() for item in history)
        display_names: dict[str, str] = {}
        for item in history:
            display_names.setdefault(item.city.lower(), item.city)

        return [
            CityCount(city=display_names[city], count=count)
            for city, count in counts.most_common(limit)
        ]

    async def formatted_history(self, now: datetime | None = None) -> list[FormattedHistoryEntry]:
        now = now or datetime.now(timezone.utc)
        return [
            FormattedHistoryEntry(
                **entry.model_dump(),
                index=index,
                time_ago=time_ago(entry.timestamp, now),
                full_date=full_date(entry.timestamp),
            )
            for index, entry in enumerate(await self.get_history())
        ]


# Global history tracker instance
history = HistoryTracker(storage, sessions)
