from uuid import UUID
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_current_admin_user
from app.core.exceptions import NotFound, ValidationFailed
from app.models.user import User
from app.models.facility import Facility
from app.schemas.facility import (
    FacilityCreate,
    FacilityUpdate,
    Facility as FacilitySchema,
)
from app.schemas.common import PaginatedResponse
from app.utils.timeslots import parse_hhmm

router = APIRouter(prefix="/admin/facilities", tags=["Admin - Facilities"])


def _get_active_facility(db: Session, id: UUID) -> Facility:
    facility = db.query(Facility).filter(Facility.id == id, Facility.is_active == True).first()  # noqa: E712
    if not facility:
        raise NotFound("Facility not found")
    return facility


# ---------------------------------------------------------------------------
# Facility CRUD
# ---------------------------------------------------------------------------


@router.post("/", response_model=FacilitySchema, status_code=status.HTTP_201_CREATED)
def create_facility(
    data: FacilityCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    facility = Facility(**data.model_dump())
    db.add(facility)
    db.commit()
    db.refresh(facility)
    return facility


@router.get("/", response_model=PaginatedResponse[FacilitySchema])
def list_facilities(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """All active facilities, including ones switched off for booking."""
    query = db.query(Facility).filter(Facility.is_active == True)  # noqa: E712
    total = query.count()
    rows = query.order_by(Facility.created_at.desc()).offset((page - 1) * limit).limit(limit).all()

    return PaginatedResponse(
        data=rows,
        total=total,
        page=page,
        limit=limit,
        total_pages=-(-total // limit) if total else 0,
    )


@router.patch("/{id}", response_model=FacilitySchema)
def update_facility(
    id: UUID,
    data: FacilityUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """
    Edit a facility. Changing operating hours does not touch existing bookings;
    slots outside the new window simply stop being offered.
    """
    facility = _get_active_facility(db, id)

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(facility, field, value)

    if parse_hhmm(facility.close_time) <= parse_hhmm(facility.open_time):
        db.rollback()
        raise ValidationFailed("close_time must be after open_time")

    db.commit()
    db.refresh(facility)
    return facility


@router.delete("/{id}", status_code=status.HTTP_200_OK)
def delete_facility(
    id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """Soft-delete: the facility disappears from listings; its bookings are kept."""
    facility = _get_active_facility(db, id)
    facility.is_active = False
    facility.availability = False
    db.commit()
    return {"id": str(id), "is_active": False}
