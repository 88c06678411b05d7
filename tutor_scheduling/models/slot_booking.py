# tutor_scheduling/models/slot_booking.py
"""
Slot booking model.

A booking references a virtual slot by (window_id, ordinal). The partial
unique index below allows at most one non-cancelled booking per slot, which
makes the insert itself the atomic reserve-if-free step.
"""

from datetime import datetime, timezone
import logging
from typing import Optional

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.sql import func

from ..core.timezone_utils import ensure_utc
from ..core.ulid_helper import generate_ulid
from ..database import Base
from ..scheduling.types import Booking, BookingStatus

logger = logging.getLogger(__name__)

ACTIVE_BOOKING_PREDICATE = text("status <> 'CANCELLED'")


class SlotBooking(Base):
    """Reservation of one slot of an availability window."""

    __tablename__ = "slot_bookings"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    window_id = Column(
        String(26),
        ForeignKey("availability_windows.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    ordinal = Column(Integer, nullable=False)
    reserved_by = Column(String(255), nullable=False, index=True)
    session_ref = Column(String(255), nullable=True, index=True)
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)
    reserved_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("ordinal >= 0", name="ck_slot_bookings_ordinal_non_negative"),
        CheckConstraint("status IN ('CONFIRMED', 'CANCELLED')", name="ck_slot_bookings_status"),
        Index(
            "uq_slot_bookings_active_slot",
            "window_id",
            "ordinal",
            unique=True,
            postgresql_where=ACTIVE_BOOKING_PREDICATE,
            sqlite_where=ACTIVE_BOOKING_PREDICATE,
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<SlotBooking {self.id}: window={self.window_id}, ordinal={self.ordinal}, "
            f"by={self.reserved_by}, status={self.status}>"
        )

    @property
    def is_active(self) -> bool:
        return self.status != BookingStatus.CANCELLED.value

    def cancel(self, when: Optional[datetime] = None) -> None:
        """Cancel this booking."""
        self.status = BookingStatus.CANCELLED.value
        self.cancelled_at = when or datetime.now(timezone.utc)
        logger.info(f"Slot booking {self.id} cancelled")

    def to_domain(self) -> Booking:
        return Booking(
            id=self.id,
            window_id=self.window_id,
            ordinal=self.ordinal,
            reserved_by=self.reserved_by,
            session_ref=self.session_ref,
            reserved_at=ensure_utc(self.reserved_at),
            status=BookingStatus(self.status),
            cancelled_at=ensure_utc(self.cancelled_at) if self.cancelled_at else None,
        )
