# tutor_scheduling/repositories/slot_booking_repository.py
"""
Slot booking repository.

Implements both booking ports: lookups used by reconciliation and the
real-time check, and the atomic reserve / idempotent cancel used by the
commit path.
"""

from datetime import datetime
import logging
from typing import List, Optional, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.constants import MAX_BOOKING_LIMIT
from ..core.exceptions import AlreadyBookedException, RepositoryException
from ..core.timezone_utils import ensure_utc, utc_now
from ..core.ulid_helper import generate_ulid
from ..models.slot_booking import SlotBooking
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..scheduling.types import Booking, BookingStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class SlotBookingRepository(BaseRepository[SlotBooking]):
    """Booking lookup and commit over the slot_bookings table."""

    def __init__(self, db: Session):
        super().__init__(db, SlotBooking)
        self.logger = logging.getLogger(__name__)

    # Lookup port

    def list_bookings(
        self, window_ids: Sequence[str], include_cancelled: bool = False
    ) -> List[Booking]:
        """All bookings of the given windows, oldest reservation first."""
        if not window_ids:
            return []
        try:
            query = self.db.query(SlotBooking).filter(SlotBooking.window_id.in_(list(window_ids)))
            if not include_cancelled:
                query = query.filter(SlotBooking.status != BookingStatus.CANCELLED.value)
            rows = query.order_by(SlotBooking.reserved_at, SlotBooking.id).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing slot bookings: {str(e)}")
            raise RepositoryException(f"Failed to list slot bookings: {str(e)}")
        return [row.to_domain() for row in rows]

    def find_booking(self, window_id: str, ordinal: int) -> Optional[Booking]:
        """The active booking holding a slot, or None when the slot is free."""
        try:
            rows = (
                self.db.query(SlotBooking)
                .filter(
                    SlotBooking.window_id == window_id,
                    SlotBooking.ordinal == ordinal,
                    SlotBooking.status != BookingStatus.CANCELLED.value,
                )
                .order_by(SlotBooking.reserved_at, SlotBooking.id)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding slot booking: {str(e)}")
            raise RepositoryException(f"Failed to find slot booking: {str(e)}")

        if not rows:
            return None
        if len(rows) > 1:
            self.logger.error(
                "Data integrity conflict: %d active bookings for slot %s of window %s",
                len(rows),
                ordinal,
                window_id,
                extra={"booking_ids": [row.id for row in rows]},
            )
            prometheus_metrics.record_integrity_conflict()
        return rows[0].to_domain()

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        row = self.get_by_id(booking_id)
        return row.to_domain() if row else None

    def list_by_reserved_by(
        self,
        reserved_by: str,
        include_cancelled: bool = False,
        limit: int = MAX_BOOKING_LIMIT,
    ) -> List[Booking]:
        """A student's bookings, most recent reservation first."""
        try:
            query = self.db.query(SlotBooking).filter(SlotBooking.reserved_by == reserved_by)
            if not include_cancelled:
                query = query.filter(SlotBooking.status != BookingStatus.CANCELLED.value)
            rows = (
                query.order_by(SlotBooking.reserved_at.desc(), SlotBooking.id.desc())
                .limit(min(limit, MAX_BOOKING_LIMIT))
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing bookings for {reserved_by}: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}")
        return [row.to_domain() for row in rows]

    def list_by_session_ref(
        self, session_ref: str, include_cancelled: bool = False
    ) -> List[Booking]:
        """Bookings attached to one external session record."""
        try:
            query = self.db.query(SlotBooking).filter(SlotBooking.session_ref == session_ref)
            if not include_cancelled:
                query = query.filter(SlotBooking.status != BookingStatus.CANCELLED.value)
            rows = query.order_by(SlotBooking.reserved_at, SlotBooking.id).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing bookings for session {session_ref}: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}")
        return [row.to_domain() for row in rows]

    # Commit port

    def reserve(
        self,
        window_id: str,
        ordinal: int,
        reserved_by: str,
        session_ref: Optional[str] = None,
        reserved_at: Optional[datetime] = None,
    ) -> Booking:
        """
        Insert an active booking for the slot if none exists.

        The partial unique index on (window_id, ordinal) rejects a second
        active booking, so two concurrent callers cannot both succeed.
        Does NOT commit - the caller owns the transaction.

        Raises:
            AlreadyBookedException: If the slot already holds an active booking
            RepositoryException: On any other database failure
        """
        entity = SlotBooking(
            id=generate_ulid(),
            window_id=window_id,
            ordinal=ordinal,
            reserved_by=reserved_by,
            session_ref=session_ref,
            reserved_at=ensure_utc(reserved_at or utc_now()),
            status=BookingStatus.CONFIRMED.value,
        )
        try:
            self.db.add(entity)
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            existing = self.find_booking(window_id, ordinal)
            if existing is None:
                self.logger.error(
                    "Integrity error reserving slot %s of window %s: %s", ordinal, window_id, exc
                )
                raise RepositoryException(f"Integrity constraint violated: {exc}") from exc
            self.logger.info(
                "Reservation lost race for slot %s of window %s (held by booking %s)",
                ordinal,
                window_id,
                existing.id,
            )
            raise AlreadyBookedException(window_id, ordinal, booking_id=existing.id) from exc
        except SQLAlchemyError as e:
            self.logger.error(f"Error reserving slot: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to reserve slot: {str(e)}")

        return entity.to_domain()

    def cancel(self, booking_id: str, cancelled_at: Optional[datetime] = None) -> Optional[Booking]:
        """
        Cancel a booking.

        Unknown or already-cancelled bookings are left untouched.
        Does NOT commit - the caller owns the transaction.
        """
        entity = self.get_by_id(booking_id)
        if entity is None:
            self.logger.debug("Cancel requested for unknown booking %s", booking_id)
            return None
        if not entity.is_active:
            return entity.to_domain()

        try:
            entity.cancel(ensure_utc(cancelled_at or utc_now()))
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error cancelling slot booking {booking_id}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to cancel slot booking: {str(e)}")
        return entity.to_domain()
