"""Day windows for the daily batch workflows."""

from __future__ import annotations

from datetime import datetime, time, timedelta, tzinfo


def local_now(tz: tzinfo | None = None) -> datetime:
    if tz is None:
        return datetime.now().astimezone()
    return datetime.now(tz=tz)


def day_window(reference: datetime, offset_days: int) -> tuple[datetime, datetime]:
    """Return [00:00:00.000, 23:59:59.999] of the day ``offset_days`` from ``reference``.

    The window keeps the timezone of ``reference``.
    """
    day = (reference + timedelta(days=offset_days)).date()
    start = datetime.combine(day, time.min, tzinfo=reference.tzinfo)
    end = datetime.combine(day, time(23, 59, 59, 999000), tzinfo=reference.tzinfo)
    return start, end
