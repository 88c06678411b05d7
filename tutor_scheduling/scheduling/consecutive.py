# tutor_scheduling/scheduling/consecutive.py
"""
Consecutive slot runs for sessions longer than one hour.

Input is expected to be available slots only (see availability_filter);
the finder checks contiguity, it does not re-check booking state.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Iterable, List

from ..core.constants import DEFAULT_CONTIGUITY_TOLERANCE
from ..core.exceptions import ValidationException
from .types import Slot


def is_contiguous(
    previous: Slot,
    following: Slot,
    tolerance: timedelta = DEFAULT_CONTIGUITY_TOLERANCE,
) -> bool:
    """True when ``following`` starts where ``previous`` ends, give or take ``tolerance``."""
    return abs(following.start - previous.end) <= tolerance


def find_runs(
    slots: Iterable[Slot],
    count: int,
    tolerance: timedelta = DEFAULT_CONTIGUITY_TOLERANCE,
) -> List[List[Slot]]:
    """
    Every run of ``count`` back-to-back slots, sliding one slot at a time.

    Overlapping runs are all reported; choosing among them is up to the
    caller. Runs may span windows as long as the slots touch.

    Raises:
        ValidationException: If count is less than 1
    """
    if count < 1:
        raise ValidationException(
            "count must be at least 1",
            code="INVALID_RUN_LENGTH",
            details={"count": count},
        )

    ordered = sorted(slots, key=lambda s: (s.start, s.window_id, s.ordinal))
    runs: List[List[Slot]] = []

    for i in range(len(ordered) - count + 1):
        candidate = ordered[i : i + count]
        if all(
            is_contiguous(candidate[j - 1], candidate[j], tolerance) for j in range(1, count)
        ):
            runs.append(candidate)

    return runs
