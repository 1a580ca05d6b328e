from uuid import UUID
from typing import Optional
from datetime import date

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session, joinedload

from app.db.session import get_db
from app.api.deps import get_current_user
from app.core.exceptions import NotFound
from app.models.user import User
from app.models.booking import FacilityBooking
from app.schemas.booking import (
    BookingCreate,
    Booking as BookingSchema,
    WaitlistOfferResponse,
)
from app.schemas.common import PaginatedResponse
from app.services.booking_requests import WaitlistOffer, submit_booking
from app.services.transitions import cancel_own_booking
from app.utils.timeslots import format_hhmm

router = APIRouter(prefix="/bookings", tags=["Bookings"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_booking(booking_id: UUID, user_id, db: Session) -> Optional[FacilityBooking]:
    """Load one of the user's bookings with its facility eager-loaded."""
    return (
        db.query(FacilityBooking)
        .options(joinedload(FacilityBooking.facility))
        .filter(FacilityBooking.id == booking_id, FacilityBooking.user_id == user_id)
        .first()
    )


def _offer_response(offer: WaitlistOffer) -> JSONResponse:
    body = WaitlistOfferResponse(
        message=offer.message,
        facility_id=offer.facility_id,
        date=offer.booking_date,
        start_time=format_hhmm(offer.start_time),
        end_time=format_hhmm(offer.end_time),
    )
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=body.model_dump(mode="json"))


# ---------------------------------------------------------------------------
# POST /bookings — request a slot or join its waitlist
# ---------------------------------------------------------------------------


@router.post(
    "/",
    response_model=BookingSchema,
    status_code=status.HTTP_201_CREATED,
    responses={status.HTTP_409_CONFLICT: {"model": WaitlistOfferResponse}},
)
def create_booking(
    data: BookingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Request a 1-hour facility slot. The booking starts as `pending` until an admin acts on it.

    - Only one booking per user per day, across all facilities.
    - If the slot is already held and `join_waitlist` is false, responds **409** with
      `waitlist_available: true` and creates nothing; retry with `join_waitlist: true`
      to be queued. The response then carries `waitlist_position`.
    """
    result = submit_booking(
        db,
        current_user,
        facility_id=data.facility_id,
        booking_date=data.date,
        start_time=data.start_time,
        end_time=data.end_time,
        join_waitlist=data.join_waitlist,
    )
    if isinstance(result, WaitlistOffer):
        return _offer_response(result)
    return _load_booking(result.id, current_user.id, db)


# ---------------------------------------------------------------------------
# GET /bookings — list current user's bookings
# ---------------------------------------------------------------------------


@router.get("/", response_model=PaginatedResponse[BookingSchema])
def list_my_bookings(
    date: Optional[date] = Query(None, description="Filter by booking date (YYYY-MM-DD)"),
    facility_id: Optional[UUID] = Query(None),
    status: Optional[str] = Query(
        None, description="Filter by status: pending, approved, rejected, canceled"
    ),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Return the authenticated user's bookings; primary bookings first, then by waitlist rank and age."""
    query = (
        db.query(FacilityBooking)
        .options(joinedload(FacilityBooking.facility))
        .filter(FacilityBooking.user_id == current_user.id)
    )
    if date:
        query = query.filter(FacilityBooking.booking_date == date)
    if facility_id:
        query = query.filter(FacilityBooking.facility_id == facility_id)
    if status:
        query = query.filter(FacilityBooking.status == status)

    total = query.count()
    bookings = (
        query.order_by(
            FacilityBooking.waitlist_position.is_not(None),
            FacilityBooking.waitlist_position.asc(),
            FacilityBooking.created_at.asc(),
        )
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


# ---------------------------------------------------------------------------
# GET /bookings/{id} — single booking detail
# ---------------------------------------------------------------------------


@router.get("/{booking_id}", response_model=BookingSchema)
def get_booking(
    booking_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Return a single booking. Only the owning user can access it."""
    booking = _load_booking(booking_id, current_user.id, db)
    if not booking:
        raise NotFound("Booking not found")
    return booking


# ---------------------------------------------------------------------------
# PATCH /bookings/{id}/cancel
# ---------------------------------------------------------------------------


@router.patch("/{booking_id}/cancel", response_model=BookingSchema)
def cancel_booking(
    booking_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Cancel one of your pending or approved bookings.
    - A vacated slot is offered to the first person on its waitlist.
    - Sends a cancellation notification.
    """
    booking = cancel_own_booking(db, current_user, booking_id)
    return _load_booking(booking.id, current_user.id, db)
