
import uuid
import enum
from sqlalchemy import (
    Column, String, DateTime, func, Integer, ForeignKey, Text, Date, Time,
    Index, UniqueConstraint, CheckConstraint, text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.db.session import Base


class BookingStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    canceled = "canceled"


# Statuses that hold a slot (or a place in its waitlist)
ACTIVE_STATUSES = (BookingStatus.pending.value, BookingStatus.approved.value)

_PRIMARY_SLOT_HOLDER = text(
    "waitlist_position IS NULL AND status IN ('pending', 'approved')"
)


class FacilityBooking(Base):
    __tablename__ = "facility_bookings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    facility_id = Column(UUID(as_uuid=True), ForeignKey("facilities.id"), nullable=False, index=True)
    booking_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(String(20), nullable=False, default=BookingStatus.pending.value, index=True)
    waitlist_position = Column(Integer, nullable=True)  # NULL = primary booking
    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    # Relationships
    user = relationship("User")
    facility = relationship("Facility", back_populates="bookings")

    __table_args__ = (
        # One booking per user per day, across all facilities
        UniqueConstraint("user_id", "booking_date", name="uq_facility_booking_user_day"),
        # One primary pending/approved booking per slot
        Index(
            "uq_facility_booking_primary_slot",
            "facility_id", "booking_date", "start_time",
            unique=True,
            postgresql_where=_PRIMARY_SLOT_HOLDER,
            sqlite_where=_PRIMARY_SLOT_HOLDER,
        ),
        Index("ix_facility_booking_slot", "facility_id", "booking_date", "start_time"),
        CheckConstraint(
            "waitlist_position IS NULL OR waitlist_position > 0",
            name="ck_facility_booking_waitlist_position_positive",
        ),
    )

    @property
    def is_waitlisted(self) -> bool:
        return self.waitlist_position is not None

    def __repr__(self) -> str:
        return (
            f"<FacilityBooking(id={self.id}, facility={self.facility_id}, "
            f"date={self.booking_date}, start={self.start_time}, status={self.status}, "
            f"waitlist={self.waitlist_position})>"
        )
