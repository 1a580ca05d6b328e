from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_current_admin_user
from app.core.exceptions import NotFound
from app.models.user import User
from app.schemas.notification import Notification as NotificationSchema, NotificationCreate
from app.services.notifications import notify_general, notify_penalty

router = APIRouter(prefix="/admin/notifications", tags=["Admin - Notifications"])


@router.post("/", response_model=NotificationSchema, status_code=status.HTTP_201_CREATED)
def send_notification(
    data: NotificationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """Send a general notice or a booking-restriction (penalty) notice to a user."""
    recipient = db.query(User).filter(User.id == data.user_id).first()
    if not recipient:
        raise NotFound("User not found")

    if data.type == "penalty":
        notification = notify_penalty(db, recipient.id, data.penalty_hours, data.reason)
    else:
        notification = notify_general(db, recipient.id, data.title, data.message)

    db.commit()
    db.refresh(notification)
    return notification
