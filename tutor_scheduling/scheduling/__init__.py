"""
Pure scheduling core.

Windows are decomposed into slots, bookings are overlaid on them, and the
read queries (available, grouped by day, consecutive runs, joint) and the
write-path checks (validation, real-time re-check) run over the result.
Nothing here performs I/O except through the ports it is handed.
"""

from .availability_filter import available_slots, group_by_date, is_available
from .consecutive import find_runs, is_contiguous
from .generator import generate, generate_many, slot_count
from .joint import JointAvailability, availability_stats, build_joint_slots
from .realtime_checker import AvailabilityCheck, SlotStatus, check_and_report
from .reconciler import find_integrity_conflicts, reconcile
from .slot_index import SlotIndex
from .types import (
    Booking,
    BookingState,
    BookingStatus,
    Slot,
    SlotErrorKind,
    SlotRef,
    TimeWindow,
    WindowStatus,
    parse_slot_id,
    slot_id_for,
)
from .validator import ValidationResult, validate

__all__ = [
    "AvailabilityCheck",
    "Booking",
    "BookingState",
    "BookingStatus",
    "JointAvailability",
    "Slot",
    "SlotErrorKind",
    "SlotIndex",
    "SlotRef",
    "SlotStatus",
    "TimeWindow",
    "ValidationResult",
    "WindowStatus",
    "availability_stats",
    "available_slots",
    "build_joint_slots",
    "check_and_report",
    "find_integrity_conflicts",
    "find_runs",
    "generate",
    "generate_many",
    "group_by_date",
    "is_available",
    "is_contiguous",
    "parse_slot_id",
    "reconcile",
    "slot_count",
    "slot_id_for",
    "validate",
]
