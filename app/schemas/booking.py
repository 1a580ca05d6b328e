
from typing import List, Literal, Optional
from pydantic import BaseModel, UUID4, field_serializer
from datetime import date, datetime, time

from app.schemas.facility import FacilitySummary
from app.schemas.user import UserSummary
from app.utils.timeslots import format_hhmm


# Booking — Create (POST /bookings)
class BookingCreate(BaseModel):
    facility_id: UUID4
    date: date
    start_time: str  # HH:MM
    end_time: str    # HH:MM
    join_waitlist: bool = False


# Booking — Full response (POST /bookings, GET /bookings/{id})
class Booking(BaseModel):
    id: UUID4
    user_id: UUID4
    facility_id: UUID4
    booking_date: date
    start_time: time
    end_time: time
    status: str
    waitlist_position: Optional[int] = None
    remarks: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    facility: Optional[FacilitySummary] = None

    class Config:
        from_attributes = True

    @field_serializer("start_time", "end_time")
    def serialize_time(self, value: time) -> str:
        return format_hhmm(value)


# Booking — Admin view (GET /admin/bookings, includes user info)
class AdminBooking(Booking):
    user: Optional[UserSummary] = None

    class Config:
        from_attributes = True


# Response for POST /bookings when the slot is taken and join_waitlist is false (HTTP 409)
class WaitlistOfferResponse(BaseModel):
    conflict: bool = True
    waitlist_available: bool = True
    message: str
    facility_id: UUID4
    date: date
    start_time: str
    end_time: str


# Booking — Status change (PUT /admin/bookings/status)
class BookingStatusUpdate(BaseModel):
    booking_id: UUID4
    status: Literal["approved", "rejected", "canceled"]
    remarks: Optional[str] = None


# Availability (GET /facilities/{id}/availability)
class SlotAvailability(BaseModel):
    start_time: str
    end_time: str
    is_available: bool
    waitlist_count: int


class AvailabilityResponse(BaseModel):
    facility_id: UUID4
    date: date
    slots: List[SlotAvailability]
