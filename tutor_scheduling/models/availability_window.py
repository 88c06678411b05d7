# tutor_scheduling/models/availability_window.py
"""
Availability window model.

Windows are written by the tutor-facing availability feature (including
calendar sync); the scheduling engine only reads them. Deleting or
cancelling a window implicitly removes its slots, since slots are derived.
"""

import logging

from sqlalchemy import CheckConstraint, Column, DateTime, Index, String, Text
from sqlalchemy.sql import func

from ..core.timezone_utils import ensure_utc
from ..core.ulid_helper import generate_ulid
from ..database import Base
from ..scheduling.types import TimeWindow, WindowStatus

logger = logging.getLogger(__name__)


class AvailabilityWindow(Base):
    """A tutor's declared availability range."""

    __tablename__ = "availability_windows"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    owner_id = Column(String(64), nullable=False, index=True)
    owner_contact = Column(String(255), nullable=True)
    subject = Column(String(255), nullable=True, index=True)
    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=False)
    # Opaque; expansion into instances is not done here
    recurrence_rule = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=WindowStatus.ACTIVE.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("status IN ('active', 'cancelled')", name="ck_availability_windows_status"),
        Index("idx_availability_windows_owner_start", "owner_id", "start_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<AvailabilityWindow {self.id}: owner={self.owner_id}, "
            f"{self.start_at}-{self.end_at}, status={self.status}>"
        )

    def to_domain(self) -> TimeWindow:
        return TimeWindow(
            id=self.id,
            owner_id=self.owner_id,
            owner_contact=self.owner_contact,
            subject=self.subject,
            start=ensure_utc(self.start_at),
            end=ensure_utc(self.end_at),
            recurrence_rule=self.recurrence_rule,
            status=WindowStatus(self.status),
        )
