from uuid import UUID
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_current_user
from app.core.exceptions import NotFound
from app.models.user import User
from app.models.notification import Notification
from app.schemas.user import User as UserSchema
from app.schemas.notification import Notification as NotificationSchema, NotificationReadUpdate
from app.schemas.common import PaginatedResponse
from app.services.notifications import release_due_reminders, visible_notifications

router = APIRouter(prefix="/me", tags=["Me"])


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


@router.get("/", response_model=UserSchema)
def get_me(current_user: User = Depends(get_current_user)):
    """Return the authenticated user's profile."""
    return current_user


# ---------------------------------------------------------------------------
# Notifications (polled by the client)
# ---------------------------------------------------------------------------


def _get_own_notification(notif_id: UUID, user: User, db: Session) -> Notification:
    notif = db.query(Notification).filter(
        Notification.id == notif_id,
        Notification.user_id == user.id,
    ).first()
    if not notif:
        raise NotFound("Notification not found")
    return notif


@router.get("/notifications", response_model=PaginatedResponse[NotificationSchema])
def list_notifications(
    unread_only: bool = Query(False, description="Return only unread notifications"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Return the current user's notifications, newest first.
    Reminders stay hidden until they are due; polling releases any that have come due.
    """
    if release_due_reminders(db, user_id=current_user.id):
        db.commit()

    query = visible_notifications(db, current_user.id)
    if unread_only:
        query = query.filter(Notification.is_read == False)  # noqa: E712

    total = query.count()
    notifications = (
        query.order_by(Notification.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return PaginatedResponse(
        data=notifications,
        total=total,
        page=page,
        limit=limit,
        total_pages=-(-total // limit) if total else 0,
    )


@router.patch("/notifications/read-all")
def mark_all_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Mark all due notifications for the current user as read."""
    ids = [
        n.id for n in visible_notifications(db, current_user.id)
        .filter(Notification.is_read == False)  # noqa: E712
        .all()
    ]
    updated = 0
    if ids:
        updated = db.query(Notification).filter(Notification.id.in_(ids)).update(
            {"is_read": True}, synchronize_session="fetch"
        )
    db.commit()
    return {"marked_read": updated}


@router.patch("/notifications/{notif_id}/read", response_model=NotificationSchema)
def mark_notification_read(
    notif_id: UUID,
    body: Optional[NotificationReadUpdate] = Body(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Mark a single notification as read (or unread with `{"is_read": false}`)."""
    notif = _get_own_notification(notif_id, current_user, db)
    notif.is_read = body.is_read if body is not None else True
    db.commit()
    db.refresh(notif)
    return notif


@router.delete("/notifications/{notif_id}")
def delete_notification(
    notif_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Delete one of your notifications."""
    notif = _get_own_notification(notif_id, current_user, db)
    db.delete(notif)
    db.commit()
    return {"id": str(notif_id), "deleted": True}
