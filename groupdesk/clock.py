"""Injectable time source so services never read the wall clock directly."""

from __future__ import annotations

from datetime import UTC, datetime


class Clock:
    """Production clock returning timezone-aware UTC datetimes."""

    def now(self) -> datetime:
        return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def get_clock() -> Clock:
    """FastAPI dependency; tests override it with a pinned clock."""
    return Clock()
