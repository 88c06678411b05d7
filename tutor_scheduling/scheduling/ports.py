"""
Narrow contracts between the scheduling core and its collaborators.

The core never cares how windows are persisted or how bookings are stored;
it only needs these reads, and callers need the atomic commit.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol, Sequence

from .types import Booking, TimeWindow


@dataclass(frozen=True)
class WindowFilter:
    """Filter dimensions used when listing availability windows."""

    owner_ids: Optional[Sequence[str]] = None
    window_ids: Optional[Sequence[str]] = None
    subject: Optional[str] = None
    # Windows that end after this instant
    starts_after: Optional[datetime] = None
    # Windows that start before this instant
    ends_before: Optional[datetime] = None
    include_cancelled: bool = False
    limit: Optional[int] = None


class AvailabilityWindowSource(Protocol):
    def list_windows(self, window_filter: WindowFilter) -> list[TimeWindow]:
        ...


class BookingLookupPort(Protocol):
    def list_bookings(self, window_ids: Sequence[str]) -> list[Booking]:
        ...

    def find_booking(self, window_id: str, ordinal: int) -> Optional[Booking]:
        """Return the active booking for the slot, if any."""
        ...


class BookingCommitPort(Protocol):
    def reserve(
        self,
        window_id: str,
        ordinal: int,
        reserved_by: str,
        session_ref: Optional[str] = None,
        reserved_at: Optional[datetime] = None,
    ) -> Booking:
        """
        Atomically create a booking if the slot is free.

        Raises:
            AlreadyBookedException: If an active booking already exists
        """
        ...

    def cancel(self, booking_id: str) -> Optional[Booking]:
        """Cancel a booking; cancelling twice or an unknown id is a no-op."""
        ...
