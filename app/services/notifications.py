"""
Notification dispatcher.

Turns booking lifecycle events into persisted, user-addressed Notification
rows. Nothing is pushed anywhere: clients poll GET /me/notifications. The
functions here only ``db.add`` the row so it commits together with the
change that triggered it; the caller owns the transaction.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.booking import BookingStatus, FacilityBooking
from app.models.facility import Facility
from app.models.notification import BookingKind, BookingRef, Notification, NotificationType
from app.utils.timeslots import format_hhmm, reminder_time_for

logger = logging.getLogger(__name__)


def _booking_ref(booking: FacilityBooking) -> BookingRef:
    return BookingRef(BookingKind.facility_booking, booking.id)


def _when(booking: FacilityBooking) -> tuple[str, str]:
    return booking.booking_date.isoformat(), format_hhmm(booking.start_time)


def create_notification(
    db: Session,
    user_id: UUID,
    title: str,
    message: str,
    type: NotificationType,
    related_booking: Optional[BookingRef] = None,
    scheduled_for: Optional[datetime] = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        type=NotificationType(type).value,
        scheduled_for=scheduled_for,
        is_sent=False,
        is_read=False,
    )
    notification.related_booking = related_booking
    db.add(notification)
    return notification


def notify_status_change(
    db: Session,
    booking: FacilityBooking,
    facility: Facility,
    status: str,
    remarks: Optional[str] = None,
) -> Notification:
    """Tell the booking's owner that an admin (or they) changed its status."""
    day, at = _when(booking)
    name = facility.name

    if status == BookingStatus.approved:
        title = f"Booking Approved: {name}"
        message = f"Your booking for {name} on {day} at {at} has been approved."
    elif status == BookingStatus.rejected:
        title = f"Booking Rejected: {name}"
        message = f"Your booking for {name} on {day} at {at} has been rejected."
    elif status == BookingStatus.canceled:
        title = f"Booking Canceled: {name}"
        message = f"Your booking for {name} on {day} at {at} has been canceled."
    else:
        title = f"Booking Update: {name}"
        message = f"Your booking for {name} on {day} at {at} has been updated to {status}."

    if remarks:
        message = f"{message} Remarks: {remarks}"

    return create_notification(
        db, booking.user_id, title, message,
        NotificationType.booking_status, _booking_ref(booking),
    )


def notify_waitlist_position(db: Session, booking: FacilityBooking, facility: Facility) -> Notification:
    day, at = _when(booking)
    return create_notification(
        db,
        booking.user_id,
        f"Waitlist Update: {facility.name}",
        (
            f"You are now at position #{booking.waitlist_position} on the waitlist "
            f"for {facility.name} on {day} at {at}."
        ),
        NotificationType.waitlist,
        _booking_ref(booking),
    )


def notify_waitlist_promotion(db: Session, booking: FacilityBooking, facility: Facility) -> Notification:
    day, at = _when(booking)
    return create_notification(
        db,
        booking.user_id,
        f"Booking Available: {facility.name}",
        (
            f"Good news! A spot has opened up for {facility.name} on {day} at {at}. "
            "Your booking has been moved from the waitlist to pending approval."
        ),
        NotificationType.waitlist,
        _booking_ref(booking),
    )


def notify_reminder(
    db: Session,
    booking: FacilityBooking,
    facility: Facility,
    scheduled_for: datetime,
) -> Notification:
    _, at = _when(booking)
    return create_notification(
        db,
        booking.user_id,
        f"Reminder: {facility.name}",
        f"Your booking for {facility.name} is scheduled for today at {at}. Don't forget!",
        NotificationType.reminder,
        _booking_ref(booking),
        scheduled_for=scheduled_for,
    )


def notify_penalty(db: Session, user_id: UUID, penalty_hours: int, reason: str) -> Notification:
    return create_notification(
        db,
        user_id,
        "Booking Restriction Applied",
        (
            f"Due to {reason}, you are restricted from making new bookings "
            f"for the next {penalty_hours} hours."
        ),
        NotificationType.penalty,
    )


def notify_general(db: Session, user_id: UUID, title: str, message: str) -> Notification:
    return create_notification(db, user_id, title, message, NotificationType.general)


def schedule_reminder(
    db: Session,
    booking: FacilityBooking,
    facility: Facility,
    now: Optional[datetime] = None,
) -> Optional[Notification]:
    """
    Queue a reminder REMINDER_LEAD_MINUTES before the booking starts.

    Missed reminders are dropped: if the reminder instant is not after ``now``
    nothing is written and None is returned. There is no catch-up delivery.
    A booking has at most one unsent reminder; if one is already queued it is
    returned as is. Times are naive local wall-clock, the same as
    booking_date/start_time.
    """
    now = now or datetime.now()
    fire_at = reminder_time_for(booking.booking_date, booking.start_time, settings.REMINDER_LEAD_MINUTES)

    if fire_at <= now:
        logger.debug("Missed reminder dropped for booking %s (due %s, now %s).", booking.id, fire_at, now)
        return None

    queued = _unsent_reminders(db, booking).first()
    if queued is not None:
        return queued

    return notify_reminder(db, booking, facility, scheduled_for=fire_at)


def _unsent_reminders(db: Session, booking: FacilityBooking):
    return db.query(Notification).filter(
        Notification.related_booking_kind == BookingKind.facility_booking.value,
        Notification.related_booking_id == booking.id,
        Notification.type == NotificationType.reminder.value,
        Notification.is_sent == False,  # noqa: E712
    )


def withdraw_reminders(db: Session, booking: FacilityBooking) -> int:
    """Delete the booking's queued reminders that have not been released yet. Does not commit."""
    withdrawn = _unsent_reminders(db, booking).delete(synchronize_session="fetch")
    if withdrawn:
        logger.debug("Withdrew %d queued reminder(s) for booking %s.", withdrawn, booking.id)
    return withdrawn


def release_due_reminders(db: Session, user_id: Optional[UUID] = None, now: Optional[datetime] = None) -> int:
    """
    Mark deferred reminders whose time has come as sent, making them visible to polling clients.

    Returns the number of reminders released. Does not commit.
    """
    now = now or datetime.now()
    query = db.query(Notification).filter(
        Notification.scheduled_for != None,  # noqa: E711
        Notification.scheduled_for <= now,
        Notification.is_sent == False,  # noqa: E712
    )
    if user_id is not None:
        query = query.filter(Notification.user_id == user_id)
    return query.update({"is_sent": True}, synchronize_session="fetch")


def visible_notifications(db: Session, user_id: UUID, now: Optional[datetime] = None):
    """Query of the user's notifications that are due: immediate ones plus released reminders."""
    now = now or datetime.now()
    return db.query(Notification).filter(
        Notification.user_id == user_id,
        or_(Notification.scheduled_for == None, Notification.scheduled_for <= now),  # noqa: E711
    )
