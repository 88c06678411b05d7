# tutor_scheduling/scheduling/reconciler.py
"""
Booking reconciliation.

Overlays booking records onto freshly generated slots to produce the
authoritative "is this slot taken" view. Pure: inputs are never mutated.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import replace
import logging
from typing import Dict, Iterable, List, Sequence

from ..core.exceptions import DataIntegrityConflictException
from ..monitoring.prometheus_metrics import prometheus_metrics
from .types import Booking, BookingState, DataIntegrityConflict, Slot, SlotRef

logger = logging.getLogger(__name__)


def _active_bookings_by_slot(bookings: Iterable[Booking]) -> Dict[SlotRef, List[Booking]]:
    grouped: Dict[SlotRef, List[Booking]] = defaultdict(list)
    for booking in bookings:
        if booking.is_active:
            grouped[booking.ref].append(booking)
    return grouped


def find_integrity_conflicts(bookings: Iterable[Booking]) -> List[DataIntegrityConflict]:
    """Every slot claimed by more than one active booking."""
    return [
        DataIntegrityConflict(
            window_id=ref.window_id,
            ordinal=ref.ordinal,
            booking_ids=tuple(sorted(b.id for b in claims)),
        )
        for ref, claims in sorted(_active_bookings_by_slot(bookings).items())
        if len(claims) > 1
    ]


def _report_conflict(conflict: DataIntegrityConflict) -> None:
    logger.error(
        "Data integrity conflict: slot %s of window %s has %d active bookings",
        conflict.ordinal,
        conflict.window_id,
        len(conflict.booking_ids),
        extra={
            "window_id": conflict.window_id,
            "ordinal": conflict.ordinal,
            "booking_ids": list(conflict.booking_ids),
            "error_kind": "DATA_INTEGRITY_CONFLICT",
        },
    )
    prometheus_metrics.record_integrity_conflict()


def reconcile(
    slots: Sequence[Slot],
    bookings: Iterable[Booking],
    *,
    strict: bool = False,
) -> List[Slot]:
    """
    Mark each slot booked or free from the active bookings matching it.

    A slot with exactly one active booking copies that booking's party and
    session. A slot with several active bookings is still booked, but no
    owner is picked: the competing booking ids are attached, the fault is
    logged and counted, and with ``strict=True`` it is raised instead.

    Raises:
        DataIntegrityConflictException: In strict mode, on the first slot
            with more than one active booking
    """
    claims_by_slot = _active_bookings_by_slot(bookings)

    reconciled: List[Slot] = []
    for slot in slots:
        claims = claims_by_slot.get(slot.ref, [])
        if not claims:
            reconciled.append(
                replace(
                    slot,
                    booking_state=BookingState.FREE,
                    booked_by=None,
                    session_ref=None,
                    booking_id=None,
                    conflicting_booking_ids=(),
                )
            )
            continue

        if len(claims) == 1:
            booking = claims[0]
            reconciled.append(
                replace(
                    slot,
                    booking_state=BookingState.BOOKED,
                    booked_by=booking.reserved_by,
                    session_ref=booking.session_ref,
                    booking_id=booking.id,
                    conflicting_booking_ids=(),
                )
            )
            continue

        conflict = DataIntegrityConflict(
            window_id=slot.window_id,
            ordinal=slot.ordinal,
            booking_ids=tuple(sorted(b.id for b in claims)),
        )
        _report_conflict(conflict)
        if strict:
            raise DataIntegrityConflictException(
                conflict.window_id, conflict.ordinal, conflict.booking_ids
            )
        reconciled.append(
            replace(
                slot,
                booking_state=BookingState.BOOKED,
                booked_by=None,
                session_ref=None,
                booking_id=None,
                conflicting_booking_ids=conflict.booking_ids,
            )
        )

    return reconciled
