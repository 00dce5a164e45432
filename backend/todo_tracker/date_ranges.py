"""[start, end) UTC boundaries for report periods."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

PERIODS = ("daily", "weekly", "monthly")


def parse_period(value: str | None) -> str | None:
    return value if value in PERIODS else None


def _as_utc(moment: datetime) -> datetime:
    # naive datetimes are taken to already be UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def start_of_day_utc(moment: datetime) -> datetime:
    m = _as_utc(moment)
    return datetime(m.year, m.month, m.day, tzinfo=timezone.utc)


def start_of_week_utc(moment: datetime) -> datetime:
    """Monday 00:00 UTC of the ISO week containing moment."""
    day_start = start_of_day_utc(moment)
    return day_start - timedelta(days=day_start.isoweekday() - 1)


def start_of_month_utc(moment: datetime) -> datetime:
    m = _as_utc(moment)
    return datetime(m.year, m.month, 1, tzinfo=timezone.utc)


def start_of_next_month_utc(moment: datetime) -> datetime:
    m = _as_utc(moment)
    if m.month == 12:
        return datetime(m.year + 1, 1, 1, tzinfo=timezone.utc)
    return datetime(m.year, m.month + 1, 1, tzinfo=timezone.utc)


def get_range_for_period(period: str, reference: datetime | None = None) -> tuple[datetime, datetime]:
    """Return aware-UTC (start, end) for period around reference (default: now)."""
    if reference is None:
        reference = datetime.now(timezone.utc)

    if period == "daily":
        start = start_of_day_utc(reference)
        return start, start + timedelta(days=1)
    if period == "weekly":
        start = start_of_week_utc(reference)
        return start, start + timedelta(days=7)
    if period == "monthly":
        return start_of_month_utc(reference), start_of_next_month_utc(reference)

    raise ValueError(f"unknown report period: {period!r}")
