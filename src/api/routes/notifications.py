"""Notification routes."""

from typing import Optional

from fastapi import APIRouter, Query

from config import DEFAULT_NOTIFICATION_LIMIT
from core.dependencies import NotificationManagerDep
from schemas.notification import (
    NotificationActionRequest,
    NotificationActionResponse,
    NotificationListResponse,
)

router = APIRouter(prefix="/api/notifications", tags=["Notification"])


@router.get("", response_model=NotificationListResponse, summary="List a user's notifications")
def list_notifications(
    notification_manager: NotificationManagerDep,
    user_id: str = Query(alias="userId", min_length=1),
    status: Optional[str] = Query(default=None),
    limit: int = Query(default=DEFAULT_NOTIFICATION_LIMIT, ge=1, le=200),
) -> NotificationListResponse:
    """List notifications filtered by ``unread``, ``read`` or ``all``."""
    notifications, unread_count = notification_manager.list_for_user(
        user_id, status, limit
    )
    return NotificationListResponse(
        notifications=notifications,
        unread_count=unread_count,
        total=len(notifications),
    )


@router.post("", response_model=NotificationActionResponse, summary="Mark a notification read or clicked")
def update_notification(
    req: NotificationActionRequest,
    notification_manager: NotificationManagerDep,
) -> NotificationActionResponse:
    if req.action == "mark_read":
        notification_manager.mark_read(req.notification_id)
    else:
        notification_manager.mark_clicked(req.notification_id)
    return NotificationActionResponse(
        success=True, message="Notification updated successfully"
    )
