"""Unit tests for the real-time pre-flight availability check."""

from unittest.mock import Mock

from scheduling_factories import make_booking

from tutor_scheduling.core.exceptions import RepositoryException
from tutor_scheduling.scheduling.realtime_checker import (
    AvailabilityCheck,
    SlotStatus,
    check_and_report,
)
from tutor_scheduling.scheduling.types import BookingStatus, SlotErrorKind, SlotRef
from tutor_scheduling.scheduling.validator import ValidationResult


class TestCheckAndReport:
    def test_free_slot(self):
        lookup = Mock()
        lookup.find_booking.return_value = None

        check = check_and_report(SlotRef("W1", 0), lookup)

        assert check.available
        assert check.conflicting_booking is None
        lookup.find_booking.assert_called_once_with("W1", 0)

    def test_booked_slot(self):
        booking = make_booking(ordinal=2, reserved_by="student-3")
        lookup = Mock()
        lookup.find_booking.return_value = booking

        check = check_and_report(SlotRef("W1", 2), lookup)

        assert not check.available
        assert check.conflicting_booking == booking
        assert "just booked" in check.reason
        assert not check.lookup_failed

    def test_cancelled_booking_does_not_block(self):
        lookup = Mock()
        lookup.find_booking.return_value = make_booking(status=BookingStatus.CANCELLED)

        assert check_and_report(SlotRef("W1", 0), lookup).available

    def test_lookup_failure_fails_closed(self, caplog):
        lookup = Mock()
        lookup.find_booking.side_effect = RepositoryException("connection reset")

        check = check_and_report(SlotRef("W1", 0), lookup)

        assert not check.available
        assert check.lookup_failed
        assert "lookup failed" in caplog.text.lower()


class TestSlotStatus:
    def test_bookable_needs_valid_and_available(self):
        free = AvailabilityCheck(available=True, reason="free")
        taken = AvailabilityCheck(available=False, reason="booked")

        assert SlotStatus("W1_slot_0", None, ValidationResult(), free).bookable
        assert not SlotStatus("W1_slot_0", None, ValidationResult(), taken).bookable
        assert not SlotStatus(
            "W1_slot_0",
            None,
            ValidationResult(errors=[SlotErrorKind.SLOT_IN_PAST], messages=["past"]),
            free,
        ).bookable

    def test_missing_realtime_check_defers_to_validation(self):
        assert SlotStatus("W1_slot_0", None, ValidationResult(), None).bookable
