"""
Booking-eligibility rules for a single slot.

Rules are all evaluated so a caller can show every problem at once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from ..core.constants import DEFAULT_MIN_LEAD_TIME
from ..core.timezone_utils import ensure_utc
from .types import Slot, SlotErrorKind


def _format_lead_time(lead_time: timedelta) -> str:
    minutes = int(lead_time.total_seconds() // 60)
    if minutes % 60 == 0:
        hours = minutes // 60
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    return f"{minutes} minutes"


@dataclass(frozen=True)
class ValidationResult:
    errors: List[SlotErrorKind] = field(default_factory=list)
    messages: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return len(self.errors) == 0


def validate(
    slot: Optional[Slot],
    now: datetime,
    min_lead_time: timedelta = DEFAULT_MIN_LEAD_TIME,
) -> ValidationResult:
    """
    Check whether ``slot`` may be reserved at ``now``.

    Args:
        slot: Reconciled slot, or None when the reference did not resolve
        now: Current instant
        min_lead_time: Minimum gap between now and the slot start

    Returns:
        ValidationResult with every failed rule
    """
    if slot is None:
        return ValidationResult(
            errors=[SlotErrorKind.SLOT_NOT_FOUND],
            messages=["Slot not found"],
        )

    errors: List[SlotErrorKind] = []
    messages: List[str] = []
    start = ensure_utc(slot.start)
    now_utc = ensure_utc(now)

    if slot.is_booked:
        errors.append(SlotErrorKind.ALREADY_BOOKED)
        messages.append(
            f"This time slot is already booked by {slot.booked_by or 'another student'}"
        )

    if start <= now_utc:
        errors.append(SlotErrorKind.SLOT_IN_PAST)
        messages.append("Cannot book a time slot that has already started")

    if start < now_utc + min_lead_time:
        errors.append(SlotErrorKind.INSUFFICIENT_LEAD_TIME)
        messages.append(
            f"Bookings must be made at least {_format_lead_time(min_lead_time)} in advance"
        )

    return ValidationResult(errors=errors, messages=messages)
