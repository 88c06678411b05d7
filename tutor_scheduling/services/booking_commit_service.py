# tutor_scheduling/services/booking_commit_service.py
"""
Booking Commit Service

Write side of the scheduling engine. Reserving a slot goes through:
1. Resolve the slot from its window (SlotNotFound otherwise)
2. Reconcile and validate it at ``now`` (booked, past, lead time)
3. Re-check the booking store in real time
4. Take the Redis slot mutex, if enabled
5. Insert the booking; the partial unique index makes this step atomic

Steps 2-4 only fail fast. Two requests that both pass them still cannot
both commit.
"""

from datetime import datetime
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.config import Settings, settings as default_settings
from ..core.exceptions import (
    AlreadyBookedException,
    ServiceException,
    SlotNotBookableException,
    SlotNotFoundException,
)
from ..core.slot_lock import slot_lock
from ..core.timezone_utils import ensure_utc, utc_now
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.slot_booking_repository import SlotBookingRepository
from ..scheduling.realtime_checker import check_and_report
from ..scheduling.types import Booking, SlotErrorKind, SlotRef, parse_slot_id
from ..scheduling.validator import validate
from .base import BaseService
from .scheduling_service import SchedulingService

logger = logging.getLogger(__name__)


class BookingCommitService(BaseService):
    """Reserves and cancels slots."""

    def __init__(
        self,
        db: Session,
        booking_repository: Optional[SlotBookingRepository] = None,
        scheduling_service: Optional[SchedulingService] = None,
        config: Optional[Settings] = None,
    ):
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.settings = config or default_settings
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_slot_booking_repository(db)
        )
        self.scheduling_service = scheduling_service or SchedulingService(
            db, booking_repository=self.booking_repository, config=self.settings
        )

    @BaseService.measure_operation("reserve_slot")
    def reserve_slot(
        self,
        slot_id: str,
        reserved_by: str,
        session_ref: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Booking:
        """
        Reserve one slot for a student.

        Args:
            slot_id: Slot id as returned by the slot queries
            reserved_by: Booking party (student) id
            session_ref: Optional reference to the external session record
            now: Current instant (defaults to the wall clock)

        Returns:
            The created booking

        Raises:
            SlotNotFoundException: If the slot does not resolve
            AlreadyBookedException: If the slot is taken, or being taken
            SlotNotBookableException: If the slot is in the past or too soon
            DataIntegrityConflictException: If the slot already has several bookings
            ServiceException: If availability could not be verified
        """
        now = ensure_utc(now or utc_now())
        ref = parse_slot_id(slot_id)
        if ref is None:
            prometheus_metrics.record_reservation("not_found")
            raise SlotNotFoundException(slot_id=slot_id)

        slot = self.scheduling_service.resolve_slot(ref, strict=True)
        if slot is None:
            prometheus_metrics.record_reservation("not_found")
            raise SlotNotFoundException(ref.window_id, ref.ordinal)

        result = validate(slot, now, self.settings.min_lead_time)
        if not result.valid:
            if SlotErrorKind.ALREADY_BOOKED in result.errors:
                prometheus_metrics.record_reservation("already_booked")
                raise AlreadyBookedException(
                    ref.window_id, ref.ordinal, booking_id=slot.booking_id
                )
            prometheus_metrics.record_reservation("not_bookable")
            raise SlotNotBookableException(
                ref.window_id, ref.ordinal, result.errors, result.messages
            )

        check = check_and_report(ref, self.booking_repository)
        if not check.available:
            if check.lookup_failed:
                raise ServiceException(
                    "Could not verify slot availability",
                    code="AVAILABILITY_CHECK_FAILED",
                    details={"slot_id": slot_id},
                )
            prometheus_metrics.record_reservation("already_booked")
            raise AlreadyBookedException(
                ref.window_id,
                ref.ordinal,
                check.reason,
                booking_id=check.conflicting_booking.id if check.conflicting_booking else None,
            )

        if not self.settings.slot_lock_enabled:
            return self._commit(ref, reserved_by, session_ref, now)

        with slot_lock(ref.window_id, ref.ordinal, self.settings.slot_lock_ttl_seconds) as acquired:
            if not acquired:
                prometheus_metrics.record_reservation("already_booked")
                raise AlreadyBookedException(
                    ref.window_id,
                    ref.ordinal,
                    "This time slot is being booked by another request",
                )
            return self._commit(ref, reserved_by, session_ref, now)

    def _commit(
        self, ref: SlotRef, reserved_by: str, session_ref: Optional[str], now: datetime
    ) -> Booking:
        try:
            with self.transaction():
                booking = self.booking_repository.reserve(
                    ref.window_id,
                    ref.ordinal,
                    reserved_by,
                    session_ref=session_ref,
                    reserved_at=now,
                )
        except AlreadyBookedException:
            prometheus_metrics.record_reservation("already_booked")
            raise

        prometheus_metrics.record_reservation("reserved")
        self.logger.info(
            "Slot reserved",
            extra={
                "booking_id": booking.id,
                "slot_id": ref.slot_id,
                "reserved_by": reserved_by,
            },
        )
        return booking

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(
        self, booking_id: str, now: Optional[datetime] = None
    ) -> Optional[Booking]:
        """
        Cancel a booking, freeing its slot.

        Cancelling an already-cancelled booking returns it unchanged; an
        unknown booking id is a no-op and returns None.
        """
        with self.transaction():
            booking = self.booking_repository.cancel(booking_id, cancelled_at=now)

        if booking is None:
            self.logger.debug("Cancel of unknown booking ignored", extra={"booking_id": booking_id})
            return None
        self.logger.info(
            "Booking cancelled",
            extra={"booking_id": booking.id, "slot_id": booking.ref.slot_id},
        )
        return booking
