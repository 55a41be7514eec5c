"""Timestamp and date utilities."""

from datetime import date, datetime, timedelta, timezone


def now() -> datetime:
    """Current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


def iso_date(value: date | datetime) -> str:
    """
    Format a date or datetime as YYYY-MM-DD.

    Examples:
        iso_date(date(2026, 10, 17))
        # "2026-10-17"
    """
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def relative_date(reference: datetime, hours: int = 0, days: int = 0) -> str:
    """
    ISO date for a moment before ``reference``.

    Used to give worked examples of relative posting dates
    ("6 hours ago", "2 days ago") in extraction instructions.
    """
    return iso_date(reference - timedelta(hours=hours, days=days))
