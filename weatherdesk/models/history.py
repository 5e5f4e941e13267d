"""Pydantic models for search history."""

from datetime import datetime

from pydantic import BaseModel


class HistoryEntry(BaseModel):
    """One past city lookup."""

    city: str
    timestamp: datetime
    temperature: int | None = None
    condition: str | None = None
    icon: str | None = None


class FormattedHistoryEntry(HistoryEntry):
    """History entry with relative and absolute display times."""

    index: int
    time_ago: str
    full_date: str


class CityCount(BaseModel):
    """How often a city appears in the history."""

    city: str
    count: int
