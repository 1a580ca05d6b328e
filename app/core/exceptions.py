"""
Booking engine exceptions.

Raised by the services in app/services and rendered as JSON by the handlers
registered in app/main.py. Each carries the HTTP status it maps to and a short
machine-readable ``error`` kind so clients can branch on the failed rule.
"""

from fastapi import status


class BookingEngineError(Exception):
    """Base exception for all booking engine errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    error: str = "booking_error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFound(BookingEngineError):
    """Raised when a facility, booking or notification does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    error = "not_found"


class FacilityUnavailable(BookingEngineError):
    """Raised when the facility is flagged as not accepting bookings."""

    error = "facility_unavailable"


class DailyLimitExceeded(BookingEngineError):
    """Raised when the user already holds a booking on the requested date."""

    error = "daily_limit_exceeded"


class SlotConflict(BookingEngineError):
    """Raised when a primary booking already occupies the requested slot."""

    status_code = status.HTTP_409_CONFLICT
    error = "slot_conflict"


class InvalidTimeFormat(BookingEngineError):
    """Raised when a time string is not a valid HH:MM value."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error = "invalid_time_format"


class ValidationFailed(BookingEngineError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error = "validation_failed"


class InvalidStatusTransition(BookingEngineError):
    """Raised in strict mode when a status change is not in the transition table."""

    status_code = status.HTTP_409_CONFLICT
    error = "invalid_status_transition"


class StoreUnavailable(BookingEngineError):
    """Transient store failure. Safe for the caller to retry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error = "store_unavailable"
