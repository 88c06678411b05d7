"""Derive the bookable (future, unbooked) view of reconciled slots."""

from __future__ import annotations

from datetime import date, datetime
import logging
from typing import Dict, Iterable, List, Optional

import pytz

from ..core.timezone_utils import ensure_utc, get_timezone, local_date
from .types import BookingState, Slot

logger = logging.getLogger(__name__)


def is_available(slot: Slot, now: datetime) -> bool:
    """A slot is available iff it starts after ``now`` and nobody holds it."""
    return slot.booking_state == BookingState.FREE and ensure_utc(slot.start) > ensure_utc(now)


def available_slots(slots: Iterable[Slot], now: datetime) -> List[Slot]:
    """Filter to available slots, preserving input order."""
    slots = list(slots)
    available = [slot for slot in slots if is_available(slot, now)]
    logger.debug("Filtered %d available slots from %d total slots", len(available), len(slots))
    return available


def group_by_date(
    slots: Iterable[Slot],
    tz: Optional[pytz.BaseTzInfo] = None,
) -> Dict[date, List[Slot]]:
    """
    Bucket slots by the local calendar date of their start.

    Buckets come out in ascending date order and each bucket is sorted by
    start time.
    """
    target_tz = tz or get_timezone()
    grouped: Dict[date, List[Slot]] = {}
    for slot in slots:
        grouped.setdefault(local_date(slot.start, target_tz), []).append(slot)

    return {
        day: sorted(grouped[day], key=lambda s: (s.start, s.window_id, s.ordinal))
        for day in sorted(grouped)
    }
