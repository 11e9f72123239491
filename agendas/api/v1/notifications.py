from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from agendas.api.deps import CurrentUser, StorageDep
from agendas.core.clock import utcnow
from agendas.core.errors import NotFoundError
from agendas.models import Notification
from agendas.schemas import NotificationRead, UnreadCount
from agendas.services.storage import SessionStorage

router = APIRouter()


def _own_notification(
    storage: SessionStorage, notification_id: UUID, user_id: UUID
) -> Notification:
    notification = storage.get_notification(notification_id)
    if notification is None or notification.recipient_id != user_id:
        raise NotFoundError("Notification not found")
    return notification


@router.get("/", response_model=List[NotificationRead], summary="List notifications")
def list_notifications(
    storage: StorageDep,
    current_user: CurrentUser,
    unread_only: bool = Query(default=False, description="Show only unread notifications"),
    limit: int = Query(default=50, ge=1, le=100, description="Maximum number of notifications"),
    offset: int = Query(default=0, ge=0),
) -> List[Notification]:
    return storage.list_notifications(
        current_user.id, unread_only=unread_only, limit=limit, offset=offset
    )


@router.get("/unread-count", response_model=UnreadCount, summary="Unread count")
def get_unread_count(storage: StorageDep, current_user: CurrentUser) -> UnreadCount:
    return UnreadCount(count=storage.count_unread(current_user.id))


@router.patch("/mark-all-read", summary="Mark all notifications as read")
def mark_all_read(storage: StorageDep, current_user: CurrentUser) -> dict:
    marked = storage.mark_all_read(current_user.id, utcnow())
    storage.commit()
    return {"marked": marked}


@router.patch(
    "/{notification_id}/read",
    response_model=NotificationRead,
    summary="Mark notification as read",
)
def mark_read(
    notification_id: UUID, storage: StorageDep, current_user: CurrentUser
) -> Notification:
    notification = _own_notification(storage, notification_id, current_user.id)
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        storage.save(notification)
        storage.commit()
        storage.refresh(notification)
    return notification


@router.delete(
    "/{notification_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete notification",
)
def delete_notification(
    notification_id: UUID, storage: StorageDep, current_user: CurrentUser
) -> Response:
    notification = _own_notification(storage, notification_id, current_user.id)
    storage.delete_notification(notification)
    storage.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
