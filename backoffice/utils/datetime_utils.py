"""Date and time helpers bound to the business timezone."""

from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_TIMEZONE = "Asia/Tokyo"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes (SQLite round-trips) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def business_timezone() -> ZoneInfo:
    from backoffice.core.config import settings

    try:
        return ZoneInfo(settings.TIMEZONE)
    except ZoneInfoNotFoundError:
        return ZoneInfo(DEFAULT_TIMEZONE)


def local_now() -> datetime:
    return datetime.now(business_timezone())


def local_today() -> date:
    """Today's date in the business timezone (not UTC)."""
    return local_now().date()


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, rounded half-up like the UI shows."""
    seconds = (as_utc(end) - as_utc(start)).total_seconds()
    return int(seconds / 60 + 0.5) if seconds >= 0 else 0


def fiscal_year_start(value: date) -> int:
    """Japanese fiscal year (April to March) containing value."""
    return value.year if value.month >= 4 else value.year - 1


def fiscal_year_months(value: date) -> list[str]:
    """The 12 YYYY-MM keys of the fiscal year containing value, April first."""
    start_year = fiscal_year_start(value)
    months: list[str] = []
    for offset in range(12):
        month = 4 + offset
        year = start_year
        if month > 12:
            month -= 12
            year += 1
        months.append(f"{year:04d}-{month:02d}")
    return months


def parse_month(value: str) -> tuple[int, int]:
    """Parse 'YYYY-MM'. Raises ValueError on bad input."""
    try:
        parsed = datetime.strptime(value, "%Y-%m")
    except (TypeError, ValueError):
        raise ValueError(f"月の形式が正しくありません: {value}")
    return parsed.year, parsed.month
