"""Unit tests for overlaying bookings onto generated slots."""

import logging

import pytest
from scheduling_factories import at, make_booking, make_window

from tutor_scheduling.core.exceptions import DataIntegrityConflictException
from tutor_scheduling.monitoring.prometheus_metrics import REGISTRY
from tutor_scheduling.scheduling.generator import generate
from tutor_scheduling.scheduling.reconciler import find_integrity_conflicts, reconcile
from tutor_scheduling.scheduling.types import BookingState, BookingStatus


def _conflict_count() -> float:
    return REGISTRY.get_sample_value("tutor_scheduling_data_integrity_conflicts_total") or 0.0


@pytest.fixture
def slots():
    return generate(make_window(at(9), at(12)))


class TestReconcile:
    def test_booking_marks_only_its_slot(self, slots):
        result = reconcile(slots, [make_booking(ordinal=1, session_ref="S-1")])

        assert [s.booking_state for s in result] == [
            BookingState.FREE,
            BookingState.BOOKED,
            BookingState.FREE,
        ]
        booked = result[1]
        assert (booked.start, booked.end) == (at(10), at(11))
        assert booked.booked_by == "student-1"
        assert booked.session_ref == "S-1"
        assert booked.booking_id == "B-W1-1-student-1"

    def test_cancelled_booking_is_ignored(self, slots):
        result = reconcile(slots, [make_booking(ordinal=0, status=BookingStatus.CANCELLED)])

        assert all(s.booking_state == BookingState.FREE for s in result)

    def test_bookings_of_other_windows_are_ignored(self, slots):
        result = reconcile(slots, [make_booking(window_id="OTHER", ordinal=0)])

        assert not any(s.is_booked for s in result)

    def test_inputs_are_not_mutated(self, slots):
        reconcile(slots, [make_booking(ordinal=0)])

        assert all(s.booking_state == BookingState.FREE for s in slots)

    def test_stale_booked_state_is_recomputed(self, slots):
        booked = reconcile(slots, [make_booking(ordinal=2)])

        freed = reconcile(booked, [])

        assert not any(s.is_booked for s in freed)
        assert freed[2].booked_by is None

    def test_reconcile_is_idempotent(self, slots):
        bookings = [make_booking(ordinal=0), make_booking(ordinal=2, reserved_by="student-2")]

        once = reconcile(slots, bookings)

        assert reconcile(slots, bookings) == once
        assert reconcile(once, bookings) == once


class TestIntegrityConflicts:
    def test_conflicting_bookings_mark_slot_booked_without_owner(self, slots, caplog):
        bookings = [
            make_booking(ordinal=1, booking_id="B-2", reserved_by="student-2"),
            make_booking(ordinal=1, booking_id="B-1", reserved_by="student-1"),
        ]
        before = _conflict_count()

        with caplog.at_level(logging.ERROR):
            result = reconcile(slots, bookings)

        conflicted = result[1]
        assert conflicted.is_booked
        assert conflicted.booked_by is None
        assert conflicted.booking_id is None
        assert conflicted.conflicting_booking_ids == ("B-1", "B-2")
        assert conflicted.has_integrity_conflict
        assert "data integrity conflict" in caplog.text.lower()
        assert _conflict_count() == before + 1

    def test_strict_mode_raises(self, slots):
        bookings = [
            make_booking(ordinal=0, booking_id="B-1"),
            make_booking(ordinal=0, booking_id="B-2"),
        ]

        with pytest.raises(DataIntegrityConflictException) as exc_info:
            reconcile(slots, bookings, strict=True)

        assert exc_info.value.code == "DATA_INTEGRITY_CONFLICT"
        assert exc_info.value.details["booking_ids"] == ["B-1", "B-2"]

    def test_cancelled_duplicate_is_not_a_conflict(self, slots):
        bookings = [
            make_booking(ordinal=0, booking_id="B-1"),
            make_booking(ordinal=0, booking_id="B-2", status=BookingStatus.CANCELLED),
        ]

        result = reconcile(slots, bookings, strict=True)

        assert result[0].booking_id == "B-1"

    def test_find_integrity_conflicts(self):
        bookings = [
            make_booking(ordinal=0, booking_id="B-1"),
            make_booking(ordinal=0, booking_id="B-2"),
            make_booking(ordinal=1, booking_id="B-3"),
        ]

        conflicts = find_integrity_conflicts(bookings)

        assert len(conflicts) == 1
        assert conflicts[0].ref == ("W1", 0)
        assert conflicts[0].booking_ids == ("B-1", "B-2")
