"""
Status transitions and waitlist promotion.

Booking status state machine::

    pending  --approve--> approved
    pending  --reject---> rejected
    pending  --cancel---> canceled
    approved --cancel---> canceled

rejected and canceled are terminal. By default the table is advisory: an
admin may set any target status regardless of the current one, so mistakes
can be corrected. STRICT_STATUS_TRANSITIONS turns it into a hard rule.

When a booking that was holding a slot (primary, pending or approved) is
canceled or rejected, the head of that slot's waitlist is promoted to a
pending primary booking. One promotion per vacancy; the remaining ranks keep
their numbers unless WAITLIST_RENUMBER_ON_PROMOTION is set, in which case the
slot's active waitlist is renumbered 1..n.

Approval queues one reminder per booking; canceling or rejecting withdraws any
reminder that has not been released yet.

Status update, promotion and the resulting notifications commit together.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import InvalidStatusTransition, NotFound, SlotConflict, ValidationFailed
from app.models.booking import ACTIVE_STATUSES, BookingStatus, FacilityBooking
from app.models.facility import Facility
from app.models.user import User
from app.services.booking_requests import find_primary_booking
from app.services.notifications import (
    notify_status_change,
    notify_waitlist_position,
    notify_waitlist_promotion,
    schedule_reminder,
    withdraw_reminders,
)
from app.utils.timeslots import format_hhmm

logger = logging.getLogger(__name__)

PROMOTION_REMARKS = "Promoted from waitlist"

ALLOWED_TRANSITIONS = {
    BookingStatus.pending: {BookingStatus.approved, BookingStatus.rejected, BookingStatus.canceled},
    BookingStatus.approved: {BookingStatus.canceled},
    BookingStatus.rejected: set(),
    BookingStatus.canceled: set(),
}

TARGET_STATUSES = {BookingStatus.approved, BookingStatus.rejected, BookingStatus.canceled}


def is_allowed_transition(current: str, new: str) -> bool:
    return BookingStatus(new) in ALLOWED_TRANSITIONS[BookingStatus(current)]


def _coerce_target(new_status) -> BookingStatus:
    try:
        target = BookingStatus(new_status)
    except ValueError:
        target = None
    if target not in TARGET_STATUSES:
        raise ValidationFailed(
            f"Invalid status '{new_status}': must be one of approved, rejected, canceled"
        )
    return target


def transition_status(
    db: Session,
    booking_id: UUID,
    new_status,
    remarks: Optional[str] = None,
    strict: Optional[bool] = None,
    renumber: Optional[bool] = None,
    now: Optional[datetime] = None,
) -> FacilityBooking:
    target = _coerce_target(new_status)
    strict = settings.STRICT_STATUS_TRANSITIONS if strict is None else strict
    renumber = settings.WAITLIST_RENUMBER_ON_PROMOTION if renumber is None else renumber

    booking = db.query(FacilityBooking).filter(FacilityBooking.id == booking_id).first()
    if not booking:
        raise NotFound("Booking not found")

    previous = booking.status
    if strict and not is_allowed_transition(previous, target):
        raise InvalidStatusTransition(
            f"Cannot change booking status from '{previous}' to '{target.value}'"
        )

    held_slot = booking.waitlist_position is None and previous in ACTIVE_STATUSES

    booking.status = target.value
    booking.remarks = remarks
    try:
        # Vacate the slot before anything else claims it
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise SlotConflict("Another booking already holds this slot") from exc

    facility = db.query(Facility).filter(Facility.id == booking.facility_id).first()

    notify_status_change(db, booking, facility, target.value, remarks)
    if target == BookingStatus.approved:
        schedule_reminder(db, booking, facility, now=now)
    else:
        withdraw_reminders(db, booking)

    promoted = None
    if target in (BookingStatus.canceled, BookingStatus.rejected) and held_slot:
        promoted = promote_next_waitlisted(db, booking, facility, renumber=renumber)

    db.commit()
    db.refresh(booking)

    logger.info("Booking %s moved from %s to %s.", booking.id, previous, booking.status)
    if promoted is not None:
        logger.info("Booking %s promoted from waitlist after %s was vacated.", promoted.id, booking.id)
    return booking


def promote_next_waitlisted(
    db: Session,
    vacated: FacilityBooking,
    facility: Facility,
    renumber: bool = False,
) -> Optional[FacilityBooking]:
    """
    Promote the lowest-ranked active waitlist entry for the vacated booking's slot.

    Returns the promoted booking, or None when the waitlist is empty or the
    slot is still held by another primary booking. Does not commit.
    """
    if find_primary_booking(db, vacated.facility_id, vacated.booking_date, vacated.start_time):
        return None

    candidate = (
        db.query(FacilityBooking)
        .filter(
            FacilityBooking.facility_id == vacated.facility_id,
            FacilityBooking.booking_date == vacated.booking_date,
            FacilityBooking.start_time == vacated.start_time,
            FacilityBooking.waitlist_position != None,  # noqa: E711
            FacilityBooking.status.in_(ACTIVE_STATUSES),
        )
        .order_by(FacilityBooking.waitlist_position.asc(), FacilityBooking.created_at.asc())
        .first()
    )
    if not candidate:
        return None

    vacated_rank = candidate.waitlist_position
    candidate.waitlist_position = None
    candidate.status = BookingStatus.pending.value
    candidate.remarks = PROMOTION_REMARKS
    db.flush()

    notify_waitlist_promotion(db, candidate, facility)

    if renumber:
        _close_rank_gap(db, candidate, facility)

    logger.info(
        "Promoted booking %s (rank #%d) for %s on %s at %s.",
        candidate.id, vacated_rank, facility.name, candidate.booking_date, format_hhmm(candidate.start_time),
    )
    return candidate


def _close_rank_gap(db: Session, promoted: FacilityBooking, facility: Facility) -> None:
    """Renumber the slot's remaining active waitlist entries to 1..n, keeping their order."""
    remaining = (
        db.query(FacilityBooking)
        .filter(
            FacilityBooking.facility_id == promoted.facility_id,
            FacilityBooking.booking_date == promoted.booking_date,
            FacilityBooking.start_time == promoted.start_time,
            FacilityBooking.waitlist_position != None,  # noqa: E711
            FacilityBooking.status.in_(ACTIVE_STATUSES),
        )
        .order_by(FacilityBooking.waitlist_position.asc(), FacilityBooking.created_at.asc())
        .all()
    )
    for rank, entry in enumerate(remaining, start=1):
        if entry.waitlist_position != rank:
            entry.waitlist_position = rank
            notify_waitlist_position(db, entry, facility)
    db.flush()


def cancel_own_booking(db: Session, user: User, booking_id: UUID) -> FacilityBooking:
    """Let a user cancel one of their own pending or approved bookings."""
    booking = (
        db.query(FacilityBooking)
        .filter(FacilityBooking.id == booking_id, FacilityBooking.user_id == user.id)
        .first()
    )
    if not booking:
        raise NotFound("Booking not found")
    if booking.status not in ACTIVE_STATUSES:
        raise InvalidStatusTransition(
            f"Only pending or approved bookings can be canceled (current status: '{booking.status}')"
        )
    return transition_status(db, booking.id, BookingStatus.canceled, remarks="Canceled by user")
