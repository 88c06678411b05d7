# tutor_scheduling/services/scheduling_service.py
"""
Scheduling Service

Read side of the scheduling engine:
- Slots of one window, reconciled with its bookings
- Available slots grouped by local date
- Consecutive multi-hour runs
- Per-slot validation and real-time status
- Joint availability across several tutors
- Bookings of one student or external session

Slots are derived on every call from the current windows and bookings;
nothing derived is cached between requests.
"""

from datetime import date, datetime, timedelta
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.config import Settings, settings as default_settings
from ..core.constants import MAX_JOINT_TUTORS
from ..core.exceptions import NotFoundException, ValidationException
from ..core.timezone_utils import ensure_utc, get_timezone, local_day_bounds
from ..repositories import RepositoryFactory
from ..repositories.availability_window_repository import AvailabilityWindowRepository
from ..repositories.slot_booking_repository import SlotBookingRepository
from ..scheduling.availability_filter import available_slots, group_by_date
from ..scheduling.consecutive import find_runs
from ..scheduling.generator import generate, generate_many
from ..scheduling.joint import (
    JointAvailability,
    availability_stats,
    build_joint_slots,
    group_joint_slots_by_date,
)
from ..scheduling.ports import WindowFilter
from ..scheduling.realtime_checker import SlotStatus, check_and_report
from ..scheduling.reconciler import reconcile
from ..scheduling.slot_index import SlotIndex
from ..scheduling.types import Booking, Slot, SlotRef, TimeWindow, parse_slot_id
from ..scheduling.validator import validate
from .base import BaseService

logger = logging.getLogger(__name__)


class SchedulingService(BaseService):
    """
    Service answering slot queries for students and tutors.

    Windows come from the availability window repository and bookings from
    the slot booking repository; everything in between is the pure
    scheduling core.
    """

    def __init__(
        self,
        db: Session,
        window_repository: Optional[AvailabilityWindowRepository] = None,
        booking_repository: Optional[SlotBookingRepository] = None,
        config: Optional[Settings] = None,
    ):
        """
        Initialize scheduling service.

        Args:
            db: Database session
            window_repository: Optional AvailabilityWindowRepository instance
            booking_repository: Optional SlotBookingRepository instance
            config: Optional settings override
        """
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.window_repository = (
            window_repository or RepositoryFactory.create_availability_window_repository(db)
        )
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_slot_booking_repository(db)
        )
        self.settings = config or default_settings

    # Shared helpers

    def _reconciled_slots(self, windows: Sequence[TimeWindow], strict: bool = False) -> List[Slot]:
        slots = generate_many(windows)
        if not slots:
            return []
        bookings = self.booking_repository.list_bookings([w.id for w in windows])
        return reconcile(slots, bookings, strict=strict)

    def _date_range(
        self, start_date: Optional[date], end_date: Optional[date]
    ) -> Tuple[Optional[datetime], Optional[datetime]]:
        if start_date and end_date and end_date < start_date:
            raise ValidationException(
                "end_date must not be before start_date",
                code="INVALID_DATE_RANGE",
                details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )
        tz = get_timezone(self.settings.display_timezone)
        range_start = local_day_bounds(start_date, tz)[0] if start_date else None
        range_end = local_day_bounds(end_date, tz)[1] if end_date else None
        return range_start, range_end

    def _load_slots(
        self,
        now: datetime,
        owner_ids: Optional[Sequence[str]] = None,
        window_ids: Optional[Sequence[str]] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        subject: Optional[str] = None,
    ) -> List[Slot]:
        """Reconciled slots of matching windows, clipped to the local date range."""
        range_start, range_end = self._date_range(start_date, end_date)
        now_utc = ensure_utc(now)
        starts_after = max(range_start, now_utc) if range_start else now_utc

        windows = self.window_repository.list_windows(
            WindowFilter(
                owner_ids=owner_ids,
                window_ids=window_ids,
                subject=subject,
                starts_after=starts_after,
                ends_before=range_end,
            )
        )
        slots = self._reconciled_slots(windows)
        return [
            slot
            for slot in slots
            if (range_start is None or slot.start >= range_start)
            and (range_end is None or slot.start < range_end)
        ]

    def resolve_slot(self, ref: SlotRef, strict: bool = False) -> Optional[Slot]:
        """
        Rebuild one slot from its window and overlay its bookings.

        Returns None when the window is gone, cancelled, malformed, or does
        not have that many slots.
        """
        windows = self.window_repository.list_windows(WindowFilter(window_ids=[ref.window_id]))
        slot = SlotIndex.from_windows(windows).resolve(ref)
        if slot is None:
            return None
        bookings = self.booking_repository.list_bookings([ref.window_id])
        return reconcile([slot], bookings, strict=strict)[0]

    # Queries

    @BaseService.measure_operation("get_window_slots")
    def get_window_slots(self, window_id: str) -> List[Slot]:
        """
        All slots of one window with their booking state, past ones included.

        Raises:
            NotFoundException: If the window does not exist or is cancelled
        """
        window = self.window_repository.get_window(window_id)
        if window is None:
            raise NotFoundException(
                f"Availability window {window_id} not found",
                code="WINDOW_NOT_FOUND",
                details={"window_id": window_id},
            )
        slots = generate(window)
        if not slots:
            return []
        return reconcile(slots, self.booking_repository.list_bookings([window_id]))

    @BaseService.measure_operation("available_slots_by_date")
    def available_slots_by_date(
        self,
        now: datetime,
        owner_ids: Optional[Sequence[str]] = None,
        window_ids: Optional[Sequence[str]] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        subject: Optional[str] = None,
    ) -> Dict[date, List[Slot]]:
        """
        Free, future slots grouped by their local calendar date.

        Args:
            now: Current instant
            owner_ids: Restrict to these tutors
            window_ids: Restrict to these windows
            start_date: First local date to include
            end_date: Last local date to include
            subject: Restrict to windows offering this subject

        Returns:
            Ordered mapping of local date to slots of that day
        """
        slots = self._load_slots(now, owner_ids, window_ids, start_date, end_date, subject)
        grouped = group_by_date(
            available_slots(slots, now), get_timezone(self.settings.display_timezone)
        )
        self.logger.debug(
            "Available slots computed",
            extra={"days": len(grouped), "slots": sum(len(v) for v in grouped.values())},
        )
        return grouped

    @BaseService.measure_operation("consecutive_runs")
    def consecutive_runs(
        self,
        count: int,
        now: datetime,
        owner_ids: Optional[Sequence[str]] = None,
        window_ids: Optional[Sequence[str]] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        subject: Optional[str] = None,
        min_lead_time: Optional[timedelta] = None,
    ) -> List[List[Slot]]:
        """
        Runs of ``count`` back-to-back available slots of the same tutor.

        Only slots starting after the lead horizon (``now + min_lead_time``)
        are considered.

        Raises:
            ValidationException: If count is outside 1..max_consecutive_count
        """
        if not 1 <= count <= self.settings.max_consecutive_count:
            raise ValidationException(
                f"count must be between 1 and {self.settings.max_consecutive_count}",
                code="INVALID_RUN_LENGTH",
                details={"count": count},
            )
        lead_time = self.settings.min_lead_time if min_lead_time is None else min_lead_time
        horizon = ensure_utc(now) + lead_time

        slots = self._load_slots(now, owner_ids, window_ids, start_date, end_date, subject)
        by_owner: Dict[str, List[Slot]] = {}
        for slot in available_slots(slots, horizon):
            by_owner.setdefault(slot.owner_id, []).append(slot)

        runs: List[List[Slot]] = []
        for owner_id in sorted(by_owner):
            runs.extend(find_runs(by_owner[owner_id], count, self.settings.contiguity_tolerance))
        runs.sort(key=lambda run: (run[0].start, run[0].owner_id))
        return runs

    @BaseService.measure_operation("slot_status")
    def slot_status(self, slot_id: str, now: datetime) -> SlotStatus:
        """
        Validate a slot for booking at ``now`` and re-check it in real time.

        An id that does not resolve is reported as SLOT_NOT_FOUND rather
        than raised.
        """
        ref = parse_slot_id(slot_id)
        slot = self.resolve_slot(ref) if ref is not None else None
        validation = validate(slot, now, self.settings.min_lead_time)
        realtime = check_and_report(ref, self.booking_repository) if slot is not None else None
        return SlotStatus(slot_id=slot_id, slot=slot, validation=validation, realtime=realtime)

    @BaseService.measure_operation("joint_availability")
    def joint_availability(
        self,
        owner_ids: Sequence[str],
        now: datetime,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        subject: Optional[str] = None,
        min_tutors: int = 1,
    ) -> JointAvailability:
        """
        Available slots of several tutors lined up by start instant.

        Raises:
            ValidationException: On an empty or oversized tutor list
        """
        unique_owner_ids = list(dict.fromkeys(owner_ids))
        if not unique_owner_ids:
            raise ValidationException("At least one tutor is required", code="NO_TUTORS")
        if len(unique_owner_ids) > MAX_JOINT_TUTORS:
            raise ValidationException(
                f"At most {MAX_JOINT_TUTORS} tutors can be compared at once",
                code="TOO_MANY_TUTORS",
                details={"count": len(unique_owner_ids)},
            )
        if min_tutors < 1:
            raise ValidationException("min_tutors must be at least 1", code="INVALID_MIN_TUTORS")

        slots = available_slots(
            self._load_slots(
                now,
                owner_ids=unique_owner_ids,
                start_date=start_date,
                end_date=end_date,
                subject=subject,
            ),
            now,
        )
        slots_by_owner: Dict[str, List[Slot]] = {owner_id: [] for owner_id in unique_owner_ids}
        for slot in slots:
            slots_by_owner[slot.owner_id].append(slot)

        joint_slots = build_joint_slots(slots, min_tutors=min_tutors)
        return JointAvailability(
            slots_by_date=group_joint_slots_by_date(
                joint_slots, get_timezone(self.settings.display_timezone)
            ),
            stats=availability_stats(slots_by_owner),
        )

    @BaseService.measure_operation("list_bookings")
    def list_bookings(
        self,
        reserved_by: Optional[str] = None,
        session_ref: Optional[str] = None,
        include_cancelled: bool = False,
    ) -> List[Booking]:
        """
        Bookings of one student and/or one external session.

        Raises:
            ValidationException: When neither filter is given
        """
        if not reserved_by and not session_ref:
            raise ValidationException(
                "Filter bookings by reserved_by or session_ref",
                code="MISSING_BOOKING_FILTER",
            )
        if session_ref:
            bookings = self.booking_repository.list_by_session_ref(
                session_ref, include_cancelled=include_cancelled
            )
            if reserved_by:
                bookings = [b for b in bookings if b.reserved_by == reserved_by]
            return bookings
        return self.booking_repository.list_by_reserved_by(
            reserved_by, include_cancelled=include_cancelled
        )
