"""Time utilities for timezone-aware UTC datetimes and lead schedule fields."""

from datetime import UTC, date, datetime, time


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime for defaults and onupdate hooks."""
    return datetime.now(UTC)


def parse_schedule(date_value: str | None, time_value: str | None) -> datetime | None:
    """Combine a lead's ``YYYY-MM-DD`` date and ``HH:MM`` time into a UTC datetime.

    A missing time means the end of that day. Returns None when the date is
    missing or either part cannot be parsed.
    """
    if not date_value or not date_value.strip():
        return None
    try:
        day = date.fromisoformat(date_value.strip()[:10])
    except ValueError:
        return None
    if time_value and time_value.strip():
        try:
            clock = time.fromisoformat(time_value.strip())
        except ValueError:
            return None
    else:
        clock = time(23, 59, 59)
    return datetime.combine(day, clock.replace(tzinfo=None), tzinfo=UTC)


def format_schedule(date_value: str | None, time_value: str | None = None) -> str:
    """Render a schedule as ``"05 Mar 2025 at 04:30 PM"`` for history entries."""
    if not date_value:
        return "Not set"
    try:
        day = date.fromisoformat(date_value.strip()[:10])
    except ValueError:
        return date_value
    rendered = day.strftime("%d %b %Y")
    if time_value:
        try:
            clock = time.fromisoformat(time_value.strip())
        except ValueError:
            return f"{rendered} at {time_value}"
        rendered = f"{rendered} at {clock.strftime('%I:%M %p')}"
    return rendered
