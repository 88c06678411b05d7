"""
Timezone utilities for the scheduling engine.

All instants handled by the core are timezone-aware UTC datetimes. Storage
backends such as SQLite drop tzinfo, so values read back are normalized here.
"""

from datetime import date, datetime
from typing import Optional

import pytz

from .config import settings


def get_timezone(name: Optional[str] = None) -> pytz.BaseTzInfo:
    """Return the pytz timezone for ``name`` (defaults to the display timezone)."""
    return pytz.timezone(name or settings.display_timezone)


def ensure_utc(dt: datetime) -> datetime:
    """
    Return ``dt`` as an aware UTC datetime.

    Naive datetimes are assumed to already be UTC.
    """
    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(pytz.UTC)


def local_date(dt: datetime, tz: Optional[pytz.BaseTzInfo] = None) -> date:
    """
    Calendar date of ``dt`` as seen in ``tz``.

    A slot starting 23:30 local time belongs to that local day even though
    its UTC date is the next one.
    """
    target_tz = tz or get_timezone()
    return ensure_utc(dt).astimezone(target_tz).date()


def local_day_bounds(day: date, tz: Optional[pytz.BaseTzInfo] = None) -> tuple[datetime, datetime]:
    """UTC instants bounding ``day`` in ``tz`` as a ``[start, end)`` pair."""
    target_tz = tz or get_timezone()
    start = target_tz.localize(datetime.combine(day, datetime.min.time()))
    next_day = date.fromordinal(day.toordinal() + 1)
    end = target_tz.localize(datetime.combine(next_day, datetime.min.time()))
    return start.astimezone(pytz.UTC), end.astimezone(pytz.UTC)
