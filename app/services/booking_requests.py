"""
Booking request handler.

Validates a booking attempt and either commits a primary booking, commits a
waitlist entry, or hands back a WaitlistOffer when the slot is taken and the
caller has not opted into the waitlist.

Rules are checked fail-fast in this order:

1. the facility exists and accepts bookings
2. the requested interval is one whole slot on the facility's grid, not in the past
3. the user has no other booking that day (any facility, any status)
4. the slot is free, or the caller joins its waitlist

The checks and the insert share one session transaction. Two concurrent
requests can still both pass the checks; the unique constraints declared on
FacilityBooking are the backstop and a lost race is translated here.
"""

import logging
from dataclasses import dataclass
from datetime import date, time
from typing import Optional, Union
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import DailyLimitExceeded, FacilityUnavailable, ValidationFailed
from app.models.booking import ACTIVE_STATUSES, BookingStatus, FacilityBooking
from app.models.facility import Facility
from app.models.user import User
from app.services.availability import get_facility
from app.services.notifications import notify_waitlist_position
from app.utils.timeslots import SLOT_MINUTES, Slot, format_hhmm, generate_slots, minutes_between, parse_hhmm

logger = logging.getLogger(__name__)

DAILY_LIMIT_MESSAGE = "You already have a booking for this date. Only one booking per day is allowed."
WAITLIST_OFFER_MESSAGE = "This slot is already booked. Would you like to join the waitlist?"

USER_DAY_CONSTRAINT = "uq_facility_booking_user_day"
PRIMARY_SLOT_CONSTRAINT = "uq_facility_booking_primary_slot"


@dataclass
class WaitlistOffer:
    """Returned instead of a booking when the slot is taken and the caller did not opt in."""
    facility_id: UUID
    booking_date: date
    start_time: time
    end_time: time
    message: str = WAITLIST_OFFER_MESSAGE


def find_primary_booking(
    db: Session, facility_id: UUID, booking_date: date, start_time: time,
    exclude_id: Optional[UUID] = None,
) -> Optional[FacilityBooking]:
    """The pending/approved non-waitlisted booking holding a slot, if any."""
    query = db.query(FacilityBooking).filter(
        FacilityBooking.facility_id == facility_id,
        FacilityBooking.booking_date == booking_date,
        FacilityBooking.start_time == start_time,
        FacilityBooking.status.in_(ACTIVE_STATUSES),
        FacilityBooking.waitlist_position == None,  # noqa: E711
    )
    if exclude_id is not None:
        query = query.filter(FacilityBooking.id != exclude_id)
    return query.first()


def next_waitlist_position(db: Session, facility_id: UUID, booking_date: date, start_time: time) -> int:
    """Highest active waitlist position at the slot plus one, or 1 for an empty waitlist."""
    highest = (
        db.query(func.max(FacilityBooking.waitlist_position))
        .filter(
            FacilityBooking.facility_id == facility_id,
            FacilityBooking.booking_date == booking_date,
            FacilityBooking.start_time == start_time,
            FacilityBooking.status.in_(ACTIVE_STATUSES),
        )
        .scalar()
    )
    return (highest or 0) + 1


def _violated_constraint(exc: IntegrityError) -> Optional[str]:
    """Work out which booking constraint an IntegrityError came from."""
    orig = getattr(exc, "orig", None)
    diag = getattr(orig, "diag", None)
    name = getattr(diag, "constraint_name", None) if diag is not None else None
    if name in (USER_DAY_CONSTRAINT, PRIMARY_SLOT_CONSTRAINT):
        return name

    # SQLite reports the columns rather than the index name
    text = str(orig if orig is not None else exc)
    if USER_DAY_CONSTRAINT in text or "facility_bookings.user_id" in text:
        return USER_DAY_CONSTRAINT
    if PRIMARY_SLOT_CONSTRAINT in text or "facility_bookings.start_time" in text:
        return PRIMARY_SLOT_CONSTRAINT
    return None


def _validate_interval(facility: Facility, booking_date: date, start: time, end: time, today: date) -> None:
    if minutes_between(start, end) != SLOT_MINUTES:
        raise ValidationFailed("Booking must be for exactly 1 hour")

    if Slot(start, end) not in generate_slots(facility.open_time, facility.close_time):
        raise ValidationFailed(
            f"{format_hhmm(start)}-{format_hhmm(end)} is not a bookable slot for {facility.name} "
            f"(open {facility.open_time}-{facility.close_time})"
        )

    if booking_date < today:
        raise ValidationFailed("Bookings cannot be made for past dates")


def submit_booking(
    db: Session,
    user: User,
    facility_id: UUID,
    booking_date: date,
    start_time: Union[str, time],
    end_time: Union[str, time],
    join_waitlist: bool = False,
    today: Optional[date] = None,
) -> Union[FacilityBooking, WaitlistOffer]:
    facility = get_facility(db, facility_id)
    if not facility.availability:
        raise FacilityUnavailable("This facility is currently unavailable")

    start = parse_hhmm(start_time)
    end = parse_hhmm(end_time)
    _validate_interval(facility, booking_date, start, end, today or date.today())

    return _place_booking(db, user, facility, booking_date, start, end, join_waitlist, retry_on_race=True)


def _place_booking(
    db: Session,
    user: User,
    facility: Facility,
    booking_date: date,
    start: time,
    end: time,
    join_waitlist: bool,
    retry_on_race: bool,
) -> Union[FacilityBooking, WaitlistOffer]:
    existing = (
        db.query(FacilityBooking)
        .filter(FacilityBooking.user_id == user.id, FacilityBooking.booking_date == booking_date)
        .first()
    )
    if existing:
        raise DailyLimitExceeded(DAILY_LIMIT_MESSAGE)

    waitlist_position = None
    if find_primary_booking(db, facility.id, booking_date, start):
        if not join_waitlist:
            return WaitlistOffer(facility.id, booking_date, start, end)
        waitlist_position = next_waitlist_position(db, facility.id, booking_date, start)

    booking = FacilityBooking(
        user_id=user.id,
        facility_id=facility.id,
        booking_date=booking_date,
        start_time=start,
        end_time=end,
        status=BookingStatus.pending.value,
        waitlist_position=waitlist_position,
    )
    db.add(booking)

    try:
        db.flush()
        if waitlist_position is not None:
            notify_waitlist_position(db, booking, facility)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        constraint = _violated_constraint(exc)
        logger.warning(
            "Booking insert for user %s at %s %s %s lost a race (%s).",
            user.id, facility.id, booking_date, format_hhmm(start), constraint,
        )
        if constraint == USER_DAY_CONSTRAINT:
            raise DailyLimitExceeded(DAILY_LIMIT_MESSAGE) from exc
        if constraint == PRIMARY_SLOT_CONSTRAINT:
            if not join_waitlist:
                return WaitlistOffer(facility.id, booking_date, start, end)
            if retry_on_race:
                return _place_booking(db, user, facility, booking_date, start, end, join_waitlist, retry_on_race=False)
        raise

    db.refresh(booking)
    if booking.waitlist_position is None:
        logger.info("Booking %s created for %s on %s at %s.", booking.id, facility.name, booking_date, format_hhmm(start))
    else:
        logger.info(
            "Booking %s waitlisted at #%d for %s on %s at %s.",
            booking.id, booking.waitlist_position, facility.name, booking_date, format_hhmm(start),
        )
    return booking
