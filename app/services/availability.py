from dataclasses import dataclass
from datetime import date
from typing import List
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.exceptions import NotFound
from app.models.booking import ACTIVE_STATUSES, FacilityBooking
from app.models.facility import Facility
from app.utils.timeslots import Slot, generate_slots


@dataclass
class SlotAvailability:
    slot: Slot
    is_available: bool
    waitlist_count: int


def get_facility(db: Session, facility_id: UUID) -> Facility:
    facility = (
        db.query(Facility)
        .filter(Facility.id == facility_id, Facility.is_active == True)  # noqa: E712
        .first()
    )
    if not facility:
        raise NotFound("Facility not found")
    return facility


def active_bookings_for_day(db: Session, facility_id: UUID, booking_date: date) -> List[FacilityBooking]:
    """Pending/approved bookings (primary and waitlisted) for one facility on one day."""
    return (
        db.query(FacilityBooking)
        .filter(
            FacilityBooking.facility_id == facility_id,
            FacilityBooking.booking_date == booking_date,
            FacilityBooking.status.in_(ACTIVE_STATUSES),
        )
        .order_by(FacilityBooking.start_time)
        .all()
    )


def resolve_availability(db: Session, facility_id: UUID, booking_date: date) -> List[SlotAvailability]:
    """
    Build the slot grid for a facility and date, annotated with occupancy.

    - ``is_available`` is False when a primary (non-waitlisted) booking holds the slot.
    - ``waitlist_count`` counts waitlisted bookings at the slot's start time.

    Past dates can be queried. Read-only.
    """
    facility = get_facility(db, facility_id)
    slots = generate_slots(facility.open_time, facility.close_time)

    occupied = set()
    waitlisted: dict = {}
    for booking in active_bookings_for_day(db, facility.id, booking_date):
        if booking.waitlist_position is None:
            occupied.add(booking.start_time)
        else:
            waitlisted[booking.start_time] = waitlisted.get(booking.start_time, 0) + 1

    return [
        SlotAvailability(
            slot=slot,
            is_available=slot.start_time not in occupied,
            waitlist_count=waitlisted.get(slot.start_time, 0),
        )
        for slot in slots
    ]
