from .base import BaseService
from .booking_commit_service import BookingCommitService
from .scheduling_service import SchedulingService

__all__ = [
    "BaseService",
    "BookingCommitService",
    "SchedulingService",
]
