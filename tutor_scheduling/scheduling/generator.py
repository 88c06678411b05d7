# tutor_scheduling/scheduling/generator.py
"""
Slot generation.

A window ``[start, end)`` is cut into ``ceil((end - start) / 1h)`` slots. The
last one is trimmed to the window end, so a 09:00-10:30 window offers a full
09:00-10:00 slot and a half-hour 10:00-10:30 remainder slot.
"""

import logging
from typing import Iterable, List

from ..core.constants import SLOT_DURATION
from .types import Slot, TimeWindow, slot_id_for

logger = logging.getLogger(__name__)


def slot_count(window: TimeWindow) -> int:
    """Number of slots ``window`` decomposes into (0 for a malformed window)."""
    if not window.is_valid:
        return 0
    whole, remainder = divmod(window.end - window.start, SLOT_DURATION)
    return whole + (1 if remainder else 0)


def generate(window: TimeWindow) -> List[Slot]:
    """
    Decompose one availability window into ordered one-hour slots.

    A window that does not end after it starts offers nothing; it is logged
    and yields an empty list so a batch query is never aborted by it.
    """
    if not window.is_valid:
        logger.warning(
            "Skipping invalid availability window",
            extra={
                "window_id": window.id,
                "start": window.start.isoformat(),
                "end": window.end.isoformat(),
                "error_kind": "INVALID_WINDOW",
            },
        )
        return []

    slots: List[Slot] = []
    for ordinal in range(slot_count(window)):
        start = window.start + ordinal * SLOT_DURATION
        end = min(start + SLOT_DURATION, window.end)
        slots.append(
            Slot(
                id=slot_id_for(window.id, ordinal),
                window_id=window.id,
                ordinal=ordinal,
                start=start,
                end=end,
                owner_id=window.owner_id,
                owner_contact=window.owner_contact,
                subject=window.subject,
            )
        )
    return slots


def generate_many(windows: Iterable[TimeWindow]) -> List[Slot]:
    """Concatenate slots of every window; no ordering across windows."""
    slots: List[Slot] = []
    for window in windows:
        slots.extend(generate(window))
    return slots
