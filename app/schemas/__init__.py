
from app.schemas.common import PaginatedResponse, ErrorResponse
from app.schemas.user import User, UserCreate, AdminCreate, UserSummary, Token, TokenPayload
from app.schemas.facility import Facility, FacilityCreate, FacilityUpdate, FacilitySummary
from app.schemas.booking import (
    Booking, BookingCreate, AdminBooking, BookingStatusUpdate,
    WaitlistOfferResponse, SlotAvailability, AvailabilityResponse,
)
from app.schemas.notification import Notification, NotificationReadUpdate, NotificationCreate, RelatedBooking
