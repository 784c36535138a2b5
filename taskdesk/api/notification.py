#taskdesk/api/notification.py
import uuid
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session
from typing import List

from taskdesk.core.actor import Actor
from taskdesk.crud.notification import (
    get_unread_count,
    get_user_notifications,
    mark_all_notifications_read,
    mark_notification_read,
)
from taskdesk.dependencies import apply_stale_views, get_actor, get_db
from taskdesk.schemas.notification import NotificationRead, UnreadCount
from taskdesk.schemas.response import SuccessResponse

router = APIRouter(prefix="/notifications", tags=["Notifications"])

@router.get("/", response_model=List[NotificationRead])
def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(100, ge=1, le=100),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    """
    Уведомления текущего пользователя (новые сверху).
    """
    return get_user_notifications(db, actor, unread_only=unread_only, limit=limit)

@router.get("/unread-count", response_model=UnreadCount)
def unread_count(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return UnreadCount(count=get_unread_count(db, actor))

@router.post("/read-all", response_model=SuccessResponse)
def read_all(
    response: Response,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    updated = mark_all_notifications_read(db, actor)
    apply_stale_views(response, actor)
    return SuccessResponse(result=updated, detail="Notifications marked as read")

@router.post("/{notification_id}/read", response_model=NotificationRead)
def read_one(
    notification_id: uuid.UUID,
    response: Response,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    notification = mark_notification_read(db, actor, notification_id)
    apply_stale_views(response, actor)
    return notification
