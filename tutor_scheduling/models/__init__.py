from .availability_window import AvailabilityWindow
from .slot_booking import SlotBooking

__all__ = ["AvailabilityWindow", "SlotBooking"]
