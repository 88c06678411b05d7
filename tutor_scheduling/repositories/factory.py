# tutor_scheduling/repositories/factory.py
"""
Repository Factory.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from sqlalchemy.orm import Session

from .availability_window_repository import AvailabilityWindowRepository
from .slot_booking_repository import SlotBookingRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_availability_window_repository(db: Session) -> AvailabilityWindowRepository:
        """Create repository for availability window reads."""
        return AvailabilityWindowRepository(db)

    @staticmethod
    def create_slot_booking_repository(db: Session) -> SlotBookingRepository:
        """Create repository for slot booking lookups and commits."""
        return SlotBookingRepository(db)
