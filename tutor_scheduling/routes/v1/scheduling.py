"""
Scheduling routes - API v1

Slot query and reservation endpoints under /api/v1/scheduling.
All business logic delegated to SchedulingService and BookingCommitService.

Endpoints:
    GET  /windows/{window_id}/slots      → Slots of one window with booking state
    POST /slots/available                → Available slots grouped by local date
    POST /slots/consecutive              → Runs of back-to-back available slots
    GET  /slots/{slot_id}/status         → Validation + real-time availability of a slot
    POST /slots/{slot_id}/reserve        → Reserve a slot (atomic)
    GET  /bookings                       → Bookings of a student or session
    POST /bookings/{booking_id}/cancel   → Cancel a booking (idempotent)
    POST /availability/joint             → Joint availability across tutors
"""

import asyncio
from datetime import datetime, timedelta
import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.params import Path
from sqlalchemy.orm import Session

from ...core.exceptions import DomainException
from ...core.timezone_utils import utc_now
from ...database import get_db
from ...schemas.scheduling import (
    AvailableSlotsResponse,
    BookingListResponse,
    BookingResponse,
    ConsecutiveRunResponse,
    ConsecutiveSlotsRequest,
    ConsecutiveSlotsResponse,
    JointAvailabilityRequest,
    JointAvailabilityResponse,
    ReserveSlotRequest,
    SlotQueryRequest,
    SlotResponse,
    SlotStatusResponse,
    WindowSlotsResponse,
)
from ...services.booking_commit_service import BookingCommitService
from ...services.scheduling_service import SchedulingService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["scheduling-v1"])

ULID_PATH_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"


def get_now() -> datetime:
    """Request clock; overridden in tests."""
    return utc_now()


def get_scheduling_service(db: Session = Depends(get_db)) -> SchedulingService:
    return SchedulingService(db)


def get_booking_commit_service(db: Session = Depends(get_db)) -> BookingCommitService:
    return BookingCommitService(db)


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _unexpected(operation: str, exc: Exception) -> HTTPException:
    logger.error("Unexpected error in %s: %s", operation, exc, exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An error occurred processing your request",
    )


@router.get("/windows/{window_id}/slots", response_model=WindowSlotsResponse)
async def get_window_slots(
    window_id: str = Path(
        ...,
        description="Availability window ULID",
        pattern=ULID_PATH_PATTERN,
        examples=["01HF4G12ABCDEF3456789XYZAB"],
    ),
    service: SchedulingService = Depends(get_scheduling_service),
) -> WindowSlotsResponse:
    """List every slot of a window, past and booked ones included."""
    try:
        slots = await asyncio.to_thread(service.get_window_slots, window_id)
    except DomainException as exc:
        handle_domain_exception(exc)
    except HTTPException:
        raise
    except Exception as e:
        raise _unexpected("get_window_slots", e)

    return WindowSlotsResponse(
        window_id=window_id,
        slots=[SlotResponse.from_domain(slot) for slot in slots],
        total_slots=len(slots),
        free_slots=sum(1 for slot in slots if not slot.is_booked),
    )


@router.post("/slots/available", response_model=AvailableSlotsResponse)
async def get_available_slots(
    payload: SlotQueryRequest,
    now: datetime = Depends(get_now),
    service: SchedulingService = Depends(get_scheduling_service),
) -> AvailableSlotsResponse:
    """Free, future slots of the requested tutors or windows, grouped by local date."""
    try:
        grouped = await asyncio.to_thread(
            service.available_slots_by_date,
            now,
            owner_ids=payload.owner_ids,
            window_ids=payload.window_ids,
            start_date=payload.start_date,
            end_date=payload.end_date,
            subject=payload.subject,
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    except HTTPException:
        raise
    except Exception as e:
        raise _unexpected("get_available_slots", e)

    return AvailableSlotsResponse.from_grouped(grouped)


@router.post("/slots/consecutive", response_model=ConsecutiveSlotsResponse)
async def get_consecutive_slots(
    payload: ConsecutiveSlotsRequest,
    now: datetime = Depends(get_now),
    service: SchedulingService = Depends(get_scheduling_service),
) -> ConsecutiveSlotsResponse:
    """Runs of ``count`` back-to-back available slots, per tutor."""
    min_lead_time = (
        timedelta(minutes=payload.min_lead_minutes)
        if payload.min_lead_minutes is not None
        else None
    )
    try:
        runs = await asyncio.to_thread(
            service.consecutive_runs,
            payload.count,
            now,
            owner_ids=payload.owner_ids,
            window_ids=payload.window_ids,
            start_date=payload.start_date,
            end_date=payload.end_date,
            subject=payload.subject,
            min_lead_time=min_lead_time,
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    except HTTPException:
        raise
    except Exception as e:
        raise _unexpected("get_consecutive_slots", e)

    return ConsecutiveSlotsResponse(
        count=payload.count,
        runs=[ConsecutiveRunResponse.from_domain(run) for run in runs],
        total_runs=len(runs),
    )


@router.get("/slots/{slot_id}/status", response_model=SlotStatusResponse)
async def get_slot_status(
    slot_id: str = Path(..., description="Slot id", max_length=64),
    now: datetime = Depends(get_now),
    service: SchedulingService = Depends(get_scheduling_service),
) -> SlotStatusResponse:
    """Whether a slot can be booked right now, and why not."""
    try:
        slot_status = await asyncio.to_thread(service.slot_status, slot_id, now)
    except DomainException as exc:
        handle_domain_exception(exc)
    except HTTPException:
        raise
    except Exception as e:
        raise _unexpected("get_slot_status", e)

    return SlotStatusResponse.from_domain(slot_status)


@router.post(
    "/slots/{slot_id}/reserve",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"description": "Slot not found"},
        409: {"description": "Slot already booked"},
        422: {"description": "Slot in the past or inside the lead time"},
    },
)
async def reserve_slot(
    payload: ReserveSlotRequest,
    slot_id: str = Path(..., description="Slot id", max_length=64),
    now: datetime = Depends(get_now),
    service: BookingCommitService = Depends(get_booking_commit_service),
) -> BookingResponse:
    """Reserve a slot for a student. Exactly one of two racing requests succeeds."""
    try:
        booking = await asyncio.to_thread(
            service.reserve_slot,
            slot_id,
            payload.reserved_by,
            session_ref=payload.session_ref,
            now=now,
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    except HTTPException:
        raise
    except Exception as e:
        raise _unexpected("reserve_slot", e)

    return BookingResponse.from_domain(booking)


@router.get("/bookings", response_model=BookingListResponse)
async def list_bookings(
    reserved_by: Optional[str] = Query(None, description="Student who reserved the slots"),
    session_ref: Optional[str] = Query(None, description="External session record"),
    include_cancelled: bool = Query(False),
    service: SchedulingService = Depends(get_scheduling_service),
) -> BookingListResponse:
    """Bookings of one student or one external session."""
    try:
        bookings = await asyncio.to_thread(
            service.list_bookings, reserved_by, session_ref, include_cancelled
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    except HTTPException:
        raise
    except Exception as e:
        raise _unexpected("list_bookings", e)

    return BookingListResponse(
        bookings=[BookingResponse.from_domain(booking) for booking in bookings],
        total=len(bookings),
    )


@router.post("/bookings/{booking_id}/cancel", response_model=Optional[BookingResponse])
async def cancel_booking(
    booking_id: str = Path(
        ...,
        description="Booking ULID",
        pattern=ULID_PATH_PATTERN,
        examples=["01HF4G12ABCDEF3456789XYZAB"],
    ),
    now: datetime = Depends(get_now),
    service: BookingCommitService = Depends(get_booking_commit_service),
) -> Optional[BookingResponse]:
    """
    Cancel a booking and free its slot.

    Cancelling twice, or cancelling an unknown booking, is a no-op; the latter
    answers with a null body.
    """
    try:
        booking = await asyncio.to_thread(service.cancel_booking, booking_id, now)
    except DomainException as exc:
        handle_domain_exception(exc)
    except HTTPException:
        raise
    except Exception as e:
        raise _unexpected("cancel_booking", e)

    if booking is None:
        return None
    return BookingResponse.from_domain(booking)


@router.post("/availability/joint", response_model=JointAvailabilityResponse)
async def get_joint_availability(
    payload: JointAvailabilityRequest,
    now: datetime = Depends(get_now),
    service: SchedulingService = Depends(get_scheduling_service),
) -> JointAvailabilityResponse:
    """Available slots of several tutors lined up by start time."""
    try:
        joint = await asyncio.to_thread(
            service.joint_availability,
            payload.owner_ids,
            now,
            start_date=payload.start_date,
            end_date=payload.end_date,
            subject=payload.subject,
            min_tutors=payload.min_tutors,
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    except HTTPException:
        raise
    except Exception as e:
        raise _unexpected("get_joint_availability", e)

    return JointAvailabilityResponse.from_domain(joint)
