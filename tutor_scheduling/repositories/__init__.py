from .availability_window_repository import AvailabilityWindowRepository
from .base_repository import BaseRepository
from .factory import RepositoryFactory
from .slot_booking_repository import SlotBookingRepository

__all__ = [
    "AvailabilityWindowRepository",
    "BaseRepository",
    "RepositoryFactory",
    "SlotBookingRepository",
]
