
from app.db.session import Base
from app.models.user import User
from app.models.facility import Facility
from app.models.booking import FacilityBooking
from app.models.notification import Notification
