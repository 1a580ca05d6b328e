
from typing import Literal, Optional
from pydantic import BaseModel, Field, UUID4, model_validator
from datetime import datetime

from app.models.notification import BookingKind


class RelatedBooking(BaseModel):
    kind: BookingKind
    id: UUID4

    class Config:
        from_attributes = True


class NotificationBase(BaseModel):
    title: str
    message: str
    type: str


class Notification(NotificationBase):
    id: UUID4
    user_id: UUID4
    is_read: bool = False
    related_booking: Optional[RelatedBooking] = None
    scheduled_for: Optional[datetime] = None
    is_sent: bool = False
    created_at: datetime

    class Config:
        from_attributes = True


# PATCH /me/notifications/{id}/read
class NotificationReadUpdate(BaseModel):
    is_read: bool = True


# POST /admin/notifications — admin-issued notice
class NotificationCreate(BaseModel):
    user_id: UUID4
    type: Literal["general", "penalty"] = "general"
    title: Optional[str] = None
    message: Optional[str] = None
    penalty_hours: Optional[int] = Field(default=None, gt=0)
    reason: Optional[str] = None

    @model_validator(mode="after")
    def check_fields(self):
        if self.type == "penalty":
            if self.penalty_hours is None or not self.reason:
                raise ValueError("penalty notices require penalty_hours and reason")
        elif not self.title or not self.message:
            raise ValueError("general notices require title and message")
        return self
