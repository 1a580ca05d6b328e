from uuid import UUID
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.facility import Facility
from app.schemas.facility import Facility as FacilitySchema
from app.schemas.booking import AvailabilityResponse, SlotAvailability
from app.schemas.common import PaginatedResponse
from app.services.availability import get_facility, resolve_availability
from app.utils.timeslots import format_hhmm

router = APIRouter(prefix="/facilities", tags=["Facilities"])


@router.get("/", response_model=PaginatedResponse[FacilitySchema])
def list_facilities(
    available_only: bool = Query(False, description="Only facilities currently accepting bookings"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """Return active facilities, alphabetically."""
    query = db.query(Facility).filter(Facility.is_active == True)  # noqa: E712
    if available_only:
        query = query.filter(Facility.availability == True)  # noqa: E712

    total = query.count()
    facilities = query.order_by(Facility.name).offset((page - 1) * limit).limit(limit).all()

    return PaginatedResponse(
        data=facilities,
        total=total,
        page=page,
        limit=limit,
        total_pages=-(-total // limit) if total else 0,
    )


@router.get("/{facility_id}", response_model=FacilitySchema)
def get_facility_detail(facility_id: UUID, db: Session = Depends(get_db)):
    return get_facility(db, facility_id)


# ---------------------------------------------------------------------------
# Availability (slot picker screen)
# ---------------------------------------------------------------------------


@router.get("/{facility_id}/availability", response_model=AvailabilityResponse)
def get_availability(
    facility_id: UUID,
    date: date = Query(..., description="Day to inspect (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
):
    """
    Return the facility's 1-hour slot grid for a day.
    Each slot reports whether it is free and how many people are waitlisted for it.
    Does not require authentication.
    """
    return AvailabilityResponse(
        facility_id=facility_id,
        date=date,
        slots=[
            SlotAvailability(
                start_time=format_hhmm(entry.slot.start_time),
                end_time=format_hhmm(entry.slot.end_time),
                is_available=entry.is_available,
                waitlist_count=entry.waitlist_count,
            )
            for entry in resolve_availability(db, facility_id, date)
        ],
    )
