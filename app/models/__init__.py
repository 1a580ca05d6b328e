
from app.models.user import User
from app.models.facility import Facility
from app.models.booking import FacilityBooking, BookingStatus
from app.models.notification import Notification, NotificationType, BookingKind, BookingRef
