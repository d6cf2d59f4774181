"""Time utilities."""
from datetime import UTC, datetime, timezone


def utcnow() -> datetime:
    """Return current UTC time with timezone awareness."""

    return datetime.now(tz=UTC)


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime.

    SQLite hands back naive datetimes for ``DateTime(timezone=True)`` columns;
    every stored timestamp is UTC so a naive value is tagged, not shifted.
    """

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_iso_utc(value: str) -> datetime:
    """Parse an ISO 8601 string and normalize it to UTC."""

    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return ensure_utc(dt)


def humanize_elapsed(since: datetime, *, now: datetime | None = None) -> str:
    """Return a compact "time ago" label (``5 min ago``, ``3h ago``, ``2d ago``)."""

    reference = now or utcnow()
    minutes = max(0, int((reference - ensure_utc(since)).total_seconds() // 60))
    if minutes < 60:
        return f"{minutes} min ago"
    if minutes < 1440:
        return f"{minutes // 60}h ago"
    return f"{minutes // 1440}d ago"


def minutes_until(moment: datetime, *, now: datetime | None = None) -> int:
    """Whole minutes left until ``moment``, floored at zero."""

    reference = now or utcnow()
    return max(0, int((ensure_utc(moment) - reference).total_seconds() // 60))


__all__ = ["utcnow", "ensure_utc", "parse_iso_utc", "humanize_elapsed", "minutes_until"]
