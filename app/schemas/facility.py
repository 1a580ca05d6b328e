
from typing import Optional
from pydantic import BaseModel, UUID4, Field, field_validator, model_validator
from datetime import datetime

from app.core.exceptions import InvalidTimeFormat
from app.utils.timeslots import parse_hhmm, format_hhmm


def _normalize_hhmm(v):
    if v is None:
        return v
    try:
        return format_hhmm(parse_hhmm(v))
    except InvalidTimeFormat as exc:
        raise ValueError(exc.detail) from exc


# Facility Schemas
class FacilityBase(BaseModel):
    name: str
    location: str
    availability: bool = True
    capacity: int = Field(gt=0)
    open_time: str = Field(description="Opening time, HH:MM (24h)")
    close_time: str = Field(description="Closing time, HH:MM (24h)")

    @field_validator("open_time", "close_time", mode="before")
    @classmethod
    def normalize_time(cls, v):
        return _normalize_hhmm(v)

    @model_validator(mode="after")
    def check_hours(self):
        if parse_hhmm(self.close_time) <= parse_hhmm(self.open_time):
            raise ValueError("close_time must be after open_time")
        return self


class FacilityCreate(FacilityBase):
    pass


class FacilityUpdate(BaseModel):
    name: Optional[str] = None
    location: Optional[str] = None
    availability: Optional[bool] = None
    capacity: Optional[int] = Field(default=None, gt=0)
    open_time: Optional[str] = None
    close_time: Optional[str] = None

    @field_validator("open_time", "close_time", mode="before")
    @classmethod
    def normalize_time(cls, v):
        return _normalize_hhmm(v)


class Facility(FacilityBase):
    id: UUID4
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Compact facility for nested responses (bookings)
class FacilitySummary(BaseModel):
    id: UUID4
    name: str
    location: str

    class Config:
        from_attributes = True
