"""Datetime utilities for timezone-aware UTC timestamps.

Usage:
    from libs.common.datetime_utils import utc_now

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
"""

from datetime import date, datetime, time, timedelta, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime.

    Always use this for timestamps in the database.
    """
    return datetime.now(timezone.utc)


def day_bounds(start: date | None, end: date | None) -> tuple[datetime | None, datetime | None]:
    """Turn an inclusive day range into a half-open UTC datetime range.

    ``(2024-01-01, 2024-01-31)`` becomes ``[2024-01-01T00:00Z, 2024-02-01T00:00Z)``
    so a timestamp anywhere on the end day still matches.
    """
    lower = datetime.combine(start, time.min, tzinfo=timezone.utc) if start else None
    upper = (
        datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)
        if end
        else None
    )
    return lower, upper
