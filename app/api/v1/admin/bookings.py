from uuid import UUID
from typing import Optional
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, joinedload

from app.db.session import get_db
from app.api.deps import get_current_admin_user
from app.core.exceptions import NotFound
from app.models.user import User
from app.models.booking import FacilityBooking
from app.schemas.booking import AdminBooking, BookingStatusUpdate
from app.schemas.common import PaginatedResponse
from app.services.transitions import transition_status

router = APIRouter(prefix="/admin/bookings", tags=["Admin - Bookings"])


def _load_admin_booking(booking_id: UUID, db: Session) -> Optional[FacilityBooking]:
    return (
        db.query(FacilityBooking)
        .options(joinedload(FacilityBooking.user), joinedload(FacilityBooking.facility))
        .filter(FacilityBooking.id == booking_id)
        .first()
    )


@router.get("/", response_model=PaginatedResponse[AdminBooking])
def list_all_bookings(
    # --- Filters ---
    facility_id: Optional[UUID] = Query(None),
    date: Optional[date] = Query(None, description="Filter by booking date (YYYY-MM-DD)"),
    status: Optional[str] = Query(None, description="Filter by booking status (pending, approved, rejected, canceled)"),
    waitlisted: Optional[bool] = Query(None, description="true: only waitlist entries, false: only primary bookings"),
    # --- Pagination ---
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """
    Return all facility bookings, newest first.
    Supports filtering by facility, date, status and waitlist membership.
    """
    query = db.query(FacilityBooking).options(
        joinedload(FacilityBooking.user),
        joinedload(FacilityBooking.facility),
    )

    if facility_id:
        query = query.filter(FacilityBooking.facility_id == facility_id)
    if date:
        query = query.filter(FacilityBooking.booking_date == date)
    if status:
        query = query.filter(FacilityBooking.status == status)
    if waitlisted is True:
        query = query.filter(FacilityBooking.waitlist_position != None)  # noqa: E711
    elif waitlisted is False:
        query = query.filter(FacilityBooking.waitlist_position == None)  # noqa: E711

    total = query.count()
    bookings = (
        query.order_by(FacilityBooking.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return PaginatedResponse(
        data=bookings,
        total=total,
        page=page,
        limit=limit,
        total_pages=-(-total // limit) if total else 0,
    )


@router.get("/{booking_id}", response_model=AdminBooking)
def get_booking(
    booking_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    booking = _load_admin_booking(booking_id, db)
    if not booking:
        raise NotFound("Booking not found")
    return booking


@router.put("/status", response_model=AdminBooking)
def update_booking_status(
    data: BookingStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """
    Approve, reject or cancel a booking.

    - The booking's owner is always notified of the new status.
    - Approving queues a reminder 30 minutes before the slot starts.
    - Rejecting or canceling a primary booking promotes the first person on the
      slot's waitlist back to `pending` and notifies them.
    """
    booking = transition_status(db, data.booking_id, data.status, data.remarks)
    return _load_admin_booking(booking.id, db)
