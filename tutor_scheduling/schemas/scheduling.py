# tutor_scheduling/schemas/scheduling.py
"""
Scheduling API schemas.

Slots are exposed with their deterministic id ("{window_id}_slot_{ordinal}"),
which is what clients send back to reserve them. Dates used as grouping keys
are local calendar dates in YYYY-MM-DD format.
"""

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import ConfigDict, Field, model_validator

from ..scheduling.joint import AvailabilityStats, JointAvailability, JointSlot, JointSlotTutor
from ..scheduling.realtime_checker import SlotStatus
from ..scheduling.types import Booking, Slot
from ._strict_base import StrictModel, StrictRequestModel


class SlotResponse(StrictModel):
    """One generated slot with its booking state."""

    id: str = Field(description="Deterministic slot id")
    window_id: str
    ordinal: int = Field(description="0-based position of the slot in its window")
    start: datetime
    end: datetime
    duration_hours: float = Field(description="1.0 for full slots, less for the trailing remainder")
    owner_id: str
    owner_contact: Optional[str] = None
    subject: Optional[str] = None
    booking_state: str = Field(description="free or booked")
    booked_by: Optional[str] = None
    session_ref: Optional[str] = None
    booking_id: Optional[str] = None
    conflicting_booking_ids: List[str] = Field(
        default_factory=list,
        description="Set only when several active bookings claim this slot",
    )

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "id": "01HZX3J4K5M6N7P8Q9R0S1T2V3_slot_0",
                "window_id": "01HZX3J4K5M6N7P8Q9R0S1T2V3",
                "ordinal": 0,
                "start": "2025-01-01T14:00:00Z",
                "end": "2025-01-01T15:00:00Z",
                "duration_hours": 1.0,
                "owner_id": "tutor-42",
                "booking_state": "free",
                "conflicting_booking_ids": [],
            }
        },
    )

    @classmethod
    def from_domain(cls, slot: Slot) -> "SlotResponse":
        return cls(
            id=slot.id,
            window_id=slot.window_id,
            ordinal=slot.ordinal,
            start=slot.start,
            end=slot.end,
            duration_hours=slot.duration_hours,
            owner_id=slot.owner_id,
            owner_contact=slot.owner_contact,
            subject=slot.subject,
            booking_state=slot.booking_state.value,
            booked_by=slot.booked_by,
            session_ref=slot.session_ref,
            booking_id=slot.booking_id,
            conflicting_booking_ids=list(slot.conflicting_booking_ids),
        )


class WindowSlotsResponse(StrictModel):
    window_id: str
    slots: List[SlotResponse]
    total_slots: int
    free_slots: int


class SlotQueryRequest(StrictRequestModel):
    """Which windows to decompose: by tutor, by window, or both."""

    owner_ids: Optional[List[str]] = Field(None, description="Tutor ids")
    window_ids: Optional[List[str]] = Field(None, description="Availability window ids")
    start_date: Optional[date] = Field(None, description="First local date to include")
    end_date: Optional[date] = Field(None, description="Last local date to include")
    subject: Optional[str] = None

    @model_validator(mode="after")
    def _require_target(self) -> "SlotQueryRequest":
        if not self.owner_ids and not self.window_ids:
            raise ValueError("owner_ids or window_ids is required")
        return self


class AvailableSlotsResponse(StrictModel):
    availability_by_date: Dict[str, List[SlotResponse]] = Field(
        description="Available slots keyed by local date (YYYY-MM-DD), ascending"
    )
    total_slots: int

    @classmethod
    def from_grouped(cls, grouped: Dict[date, List[Slot]]) -> "AvailableSlotsResponse":
        return cls(
            availability_by_date={
                day.isoformat(): [SlotResponse.from_domain(s) for s in slots]
                for day, slots in grouped.items()
            },
            total_slots=sum(len(slots) for slots in grouped.values()),
        )


class ConsecutiveSlotsRequest(SlotQueryRequest):
    count: int = Field(description="Number of back-to-back slots wanted")
    min_lead_minutes: Optional[int] = Field(
        None, ge=0, description="Override of the configured minimum lead time"
    )


class ConsecutiveRunResponse(StrictModel):
    owner_id: str
    start: datetime
    end: datetime
    slot_ids: List[str]
    slots: List[SlotResponse]

    @classmethod
    def from_domain(cls, run: List[Slot]) -> "ConsecutiveRunResponse":
        return cls(
            owner_id=run[0].owner_id,
            start=run[0].start,
            end=run[-1].end,
            slot_ids=[s.id for s in run],
            slots=[SlotResponse.from_domain(s) for s in run],
        )


class ConsecutiveSlotsResponse(StrictModel):
    count: int
    runs: List[ConsecutiveRunResponse]
    total_runs: int


class SlotStatusResponse(StrictModel):
    slot_id: str
    bookable: bool
    errors: List[str] = Field(default_factory=list, description="Failed booking rules")
    messages: List[str] = Field(default_factory=list)
    slot: Optional[SlotResponse] = None
    realtime_available: Optional[bool] = None
    realtime_reason: Optional[str] = None

    @classmethod
    def from_domain(cls, status: SlotStatus) -> "SlotStatusResponse":
        return cls(
            slot_id=status.slot_id,
            bookable=status.bookable,
            errors=[error.value for error in status.validation.errors],
            messages=list(status.validation.messages),
            slot=SlotResponse.from_domain(status.slot) if status.slot else None,
            realtime_available=status.realtime.available if status.realtime else None,
            realtime_reason=status.realtime.reason if status.realtime else None,
        )


class ReserveSlotRequest(StrictRequestModel):
    reserved_by: str = Field(min_length=1, max_length=255, description="Student id")
    session_ref: Optional[str] = Field(
        None, max_length=255, description="Reference to the session record, if any"
    )


class BookingResponse(StrictModel):
    id: str
    slot_id: str
    window_id: str
    ordinal: int
    reserved_by: str
    session_ref: Optional[str] = None
    status: str
    reserved_at: datetime
    cancelled_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, booking: Booking) -> "BookingResponse":
        return cls(
            id=booking.id,
            slot_id=booking.ref.slot_id,
            window_id=booking.window_id,
            ordinal=booking.ordinal,
            reserved_by=booking.reserved_by,
            session_ref=booking.session_ref,
            status=booking.status.value,
            reserved_at=booking.reserved_at,
            cancelled_at=booking.cancelled_at,
        )


class BookingListResponse(StrictModel):
    bookings: List[BookingResponse]
    total: int


class JointAvailabilityRequest(StrictRequestModel):
    owner_ids: List[str] = Field(min_length=1, description="Tutors to compare")
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    subject: Optional[str] = None
    min_tutors: int = Field(1, description="Only instants offered by at least this many tutors")


class JointSlotTutorResponse(StrictModel):
    owner_id: str
    slot_id: str
    end: datetime
    owner_contact: Optional[str] = None
    subject: Optional[str] = None

    @classmethod
    def from_domain(cls, tutor: JointSlotTutor) -> "JointSlotTutorResponse":
        return cls(
            owner_id=tutor.owner_id,
            slot_id=tutor.slot_id,
            end=tutor.end,
            owner_contact=tutor.owner_contact,
            subject=tutor.subject,
        )


class JointSlotResponse(StrictModel):
    start: datetime
    tutor_count: int
    tutors: List[JointSlotTutorResponse]

    @classmethod
    def from_domain(cls, joint_slot: JointSlot) -> "JointSlotResponse":
        return cls(
            start=joint_slot.start,
            tutor_count=joint_slot.tutor_count,
            tutors=[JointSlotTutorResponse.from_domain(t) for t in joint_slot.tutors],
        )


class AvailabilityStatsResponse(StrictModel):
    total_tutors: int
    tutors_with_slots: int
    total_slots: int
    average_slots_per_tutor: int

    @classmethod
    def from_domain(cls, stats: AvailabilityStats) -> "AvailabilityStatsResponse":
        return cls(
            total_tutors=stats.total_tutors,
            tutors_with_slots=stats.tutors_with_slots,
            total_slots=stats.total_slots,
            average_slots_per_tutor=stats.average_slots_per_tutor,
        )


class JointAvailabilityResponse(StrictModel):
    availability_by_date: Dict[str, List[JointSlotResponse]]
    stats: AvailabilityStatsResponse

    @classmethod
    def from_domain(cls, joint: JointAvailability) -> "JointAvailabilityResponse":
        return cls(
            availability_by_date={
                day.isoformat(): [JointSlotResponse.from_domain(j) for j in joint_slots]
                for day, joint_slots in joint.slots_by_date.items()
            },
            stats=AvailabilityStatsResponse.from_domain(joint.stats),
        )
