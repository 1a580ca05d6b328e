
import uuid
import enum
from typing import NamedTuple, Optional
from sqlalchemy import Column, String, Boolean, DateTime, func, ForeignKey, Text, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.db.session import Base


class NotificationType(str, enum.Enum):
    booking_status = "booking_status"
    reminder = "reminder"
    waitlist = "waitlist"
    penalty = "penalty"
    general = "general"


class BookingKind(str, enum.Enum):
    facility_booking = "facility_booking"
    equipment_booking = "equipment_booking"


class BookingRef(NamedTuple):
    """Tagged reference to a booking in one of the booking collections."""
    kind: BookingKind
    id: uuid.UUID


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(30), nullable=False, index=True)  # NotificationType
    is_read = Column(Boolean, default=False, nullable=False)
    related_booking_kind = Column(String(30), nullable=True)  # BookingKind
    related_booking_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    scheduled_for = Column(DateTime, nullable=True, index=True)  # local wall-clock, reminders only
    is_sent = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User")

    __table_args__ = (
        CheckConstraint(
            "(related_booking_kind IS NULL) = (related_booking_id IS NULL)",
            name="ck_notification_related_booking_tagged",
        ),
    )

    @property
    def related_booking(self) -> Optional[BookingRef]:
        if self.related_booking_id is None:
            return None
        return BookingRef(BookingKind(self.related_booking_kind), self.related_booking_id)

    @related_booking.setter
    def related_booking(self, ref: Optional[BookingRef]) -> None:
        if ref is None:
            self.related_booking_kind = None
            self.related_booking_id = None
        else:
            self.related_booking_kind = BookingKind(ref.kind).value
            self.related_booking_id = ref.id
