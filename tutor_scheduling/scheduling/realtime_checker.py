# tutor_scheduling/scheduling/realtime_checker.py
"""
Pre-commit re-check of a single slot against the booking store.

Narrows the gap between a possibly stale "available" view and the
reservation write. It is a fail-fast optimization only: a second writer can
still commit between this read and the write, which the atomic reserve
handles.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional

from ..core.exceptions import RepositoryException
from .ports import BookingLookupPort
from .types import Booking, Slot, SlotRef
from .validator import ValidationResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailabilityCheck:
    available: bool
    reason: str
    conflicting_booking: Optional[Booking] = None
    lookup_failed: bool = False


@dataclass(frozen=True)
class SlotStatus:
    """Validation and real-time state of one slot."""

    slot_id: str
    slot: Optional[Slot]
    validation: ValidationResult
    realtime: Optional[AvailabilityCheck]

    @property
    def bookable(self) -> bool:
        return self.validation.valid and (self.realtime is None or self.realtime.available)


def check_and_report(slot_ref: SlotRef, booking_lookup: BookingLookupPort) -> AvailabilityCheck:
    """
    Re-read the authoritative booking for ``slot_ref``.

    A failed lookup is reported as unavailable so a reservation never
    proceeds on an unknown state.
    """
    window_id, ordinal = slot_ref
    try:
        booking = booking_lookup.find_booking(window_id, ordinal)
    except RepositoryException as exc:
        logger.error(
            "Real-time availability lookup failed for slot %s: %s",
            slot_ref.slot_id,
            exc,
            extra={"window_id": window_id, "ordinal": ordinal},
        )
        return AvailabilityCheck(
            available=False,
            reason="Could not verify availability",
            lookup_failed=True,
        )

    if booking is not None and booking.is_active:
        logger.info(
            "Slot %s already booked in real time by %s",
            slot_ref.slot_id,
            booking.reserved_by,
        )
        return AvailabilityCheck(
            available=False,
            reason="This time slot was just booked by another student",
            conflicting_booking=booking,
        )

    logger.debug("Slot %s available in real time", slot_ref.slot_id)
    return AvailabilityCheck(available=True, reason="Slot available")
