
import uuid
from sqlalchemy import Column, String, Boolean, DateTime, func, Integer
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.db.session import Base

class Facility(Base):
    __tablename__ = "facilities"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    location = Column(String(255), nullable=False)
    availability = Column(Boolean, default=True, nullable=False)  # accepting bookings
    capacity = Column(Integer, nullable=False)
    open_time = Column(String(5), nullable=False)   # "HH:MM"
    close_time = Column(String(5), nullable=False)  # "HH:MM"
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    # Relationships
    bookings = relationship("FacilityBooking", back_populates="facility")
