# tutor_scheduling/core/exceptions.py
"""
Domain-specific exceptions for the scheduling engine.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, Iterable, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        """Convert to an HTTPException using the class status code."""
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific scheduling exceptions


class SlotNotFoundException(NotFoundException):
    """Raised when a slot reference does not resolve against current windows."""

    def __init__(
        self,
        window_id: Optional[str] = None,
        ordinal: Optional[int] = None,
        *,
        slot_id: Optional[str] = None,
    ):
        details: Dict[str, Any]
        if window_id is not None and ordinal is not None:
            message = f"Slot {ordinal} of availability window {window_id} does not exist"
            details = {"window_id": window_id, "ordinal": ordinal}
        else:
            # Slot id that does not even parse
            message = f"Slot {slot_id} does not exist"
            details = {"slot_id": slot_id}
        super().__init__(message=message, code="SLOT_NOT_FOUND", details=details)


class AlreadyBookedException(ConflictException):
    """Raised when a slot already holds a non-cancelled booking."""

    def __init__(
        self,
        window_id: str,
        ordinal: int,
        message: Optional[str] = None,
        *,
        booking_id: Optional[str] = None,
    ):
        details: Dict[str, Any] = {"window_id": window_id, "ordinal": ordinal}
        if booking_id:
            details["booking_id"] = booking_id
        super().__init__(
            message=message or "This time slot has already been booked",
            code="ALREADY_BOOKED",
            details=details,
        )


class SlotNotBookableException(BusinessRuleException):
    """Raised when a slot fails one or more booking-eligibility rules."""

    def __init__(self, window_id: str, ordinal: int, errors: Iterable[Any], messages: Iterable[str]):
        error_codes = [getattr(error, "value", str(error)) for error in errors]
        message_list = list(messages)
        super().__init__(
            message="; ".join(message_list) or "This time slot cannot be booked",
            code=error_codes[0] if len(error_codes) == 1 else "SLOT_NOT_BOOKABLE",
            details={"window_id": window_id, "ordinal": ordinal, "errors": error_codes},
        )


class DataIntegrityConflictException(DomainException):
    """
    Raised when more than one active booking exists for the same slot.

    This means the atomic reservation guarantee was violated upstream and
    must escalate to an operational alert.
    """

    def __init__(self, window_id: str, ordinal: int, booking_ids: Iterable[str]):
        ids = sorted(booking_ids)
        super().__init__(
            message=(
                f"Slot {ordinal} of availability window {window_id} has "
                f"{len(ids)} active bookings"
            ),
            code="DATA_INTEGRITY_CONFLICT",
            details={"window_id": window_id, "ordinal": ordinal, "booking_ids": ids},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
