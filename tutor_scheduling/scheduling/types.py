# tutor_scheduling/scheduling/types.py
"""
Value types of the scheduling engine.

TimeWindow and Booking come from external collaborators; Slot is derived
from a TimeWindow on every read and is never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import NamedTuple, Optional, Tuple

from ..core.constants import SLOT_DURATION, SLOT_ID_SEPARATOR


class WindowStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


class BookingStatus(str, Enum):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class BookingState(str, Enum):
    """Computed booking state of a slot."""

    FREE = "free"
    BOOKED = "booked"


class SlotErrorKind(str, Enum):
    """Reasons a slot cannot be booked (or a window cannot offer slots)."""

    INVALID_WINDOW = "INVALID_WINDOW"
    SLOT_NOT_FOUND = "SLOT_NOT_FOUND"
    ALREADY_BOOKED = "ALREADY_BOOKED"
    SLOT_IN_PAST = "SLOT_IN_PAST"
    INSUFFICIENT_LEAD_TIME = "INSUFFICIENT_LEAD_TIME"
    DATA_INTEGRITY_CONFLICT = "DATA_INTEGRITY_CONFLICT"


class SlotRef(NamedTuple):
    """Correlation key between a virtual slot and its bookings."""

    window_id: str
    ordinal: int

    @property
    def slot_id(self) -> str:
        return slot_id_for(self.window_id, self.ordinal)


def slot_id_for(window_id: str, ordinal: int) -> str:
    return f"{window_id}{SLOT_ID_SEPARATOR}{ordinal}"


def parse_slot_id(slot_id: str) -> Optional[SlotRef]:
    """
    Split a slot id back into its window id and ordinal.

    Returns None for anything that was not produced by ``slot_id_for``.
    """
    window_id, sep, raw_ordinal = slot_id.rpartition(SLOT_ID_SEPARATOR)
    if not sep or not window_id or not (raw_ordinal.isascii() and raw_ordinal.isdigit()):
        return None
    return SlotRef(window_id, int(raw_ordinal))


@dataclass(frozen=True)
class TimeWindow:
    """A tutor's declared, contiguous ``[start, end)`` availability."""

    id: str
    owner_id: str
    start: datetime
    end: datetime
    owner_contact: Optional[str] = None
    subject: Optional[str] = None
    recurrence_rule: Optional[str] = None
    status: WindowStatus = WindowStatus.ACTIVE

    @property
    def is_valid(self) -> bool:
        return self.end > self.start

    @property
    def is_active(self) -> bool:
        return self.status == WindowStatus.ACTIVE


@dataclass(frozen=True)
class Booking:
    """A reservation of one slot, correlated by ``(window_id, ordinal)``."""

    id: str
    window_id: str
    ordinal: int
    reserved_by: str
    reserved_at: datetime
    session_ref: Optional[str] = None
    status: BookingStatus = BookingStatus.CONFIRMED
    cancelled_at: Optional[datetime] = None

    @property
    def ref(self) -> SlotRef:
        return SlotRef(self.window_id, self.ordinal)

    @property
    def is_active(self) -> bool:
        return self.status != BookingStatus.CANCELLED


@dataclass(frozen=True)
class Slot:
    """
    One bookable unit of a window.

    ``booking_state`` and the booking fields are filled in by the reconciler;
    a freshly generated slot is always free.
    """

    id: str
    window_id: str
    ordinal: int
    start: datetime
    end: datetime
    owner_id: str
    owner_contact: Optional[str] = None
    subject: Optional[str] = None
    booking_state: BookingState = BookingState.FREE
    booked_by: Optional[str] = None
    session_ref: Optional[str] = None
    booking_id: Optional[str] = None
    # Ids of every active booking when more than one claims this slot
    conflicting_booking_ids: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def ref(self) -> SlotRef:
        return SlotRef(self.window_id, self.ordinal)

    @property
    def duration_hours(self) -> float:
        return (self.end - self.start) / SLOT_DURATION

    @property
    def is_booked(self) -> bool:
        return self.booking_state == BookingState.BOOKED

    @property
    def is_remainder(self) -> bool:
        return self.end - self.start < SLOT_DURATION

    @property
    def has_integrity_conflict(self) -> bool:
        return len(self.conflicting_booking_ids) > 1


@dataclass(frozen=True)
class DataIntegrityConflict:
    """More than one active booking for the same slot."""

    window_id: str
    ordinal: int
    booking_ids: Tuple[str, ...]

    @property
    def ref(self) -> SlotRef:
        return SlotRef(self.window_id, self.ordinal)
