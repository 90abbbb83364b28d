"""Notification schema definitions."""

from typing import List, Literal, Optional

from pydantic import Field

from schemas.base import CamelModel
from schemas.status import NotificationStatus


class Notification(CamelModel):
    notification_id: str = Field(alias="id")
    user_id: str
    kind: str
    message: str
    status: NotificationStatus
    created_at: str
    updated_at: str
    read_at: Optional[str] = None
    clicked_at: Optional[str] = None


class NotificationListResponse(CamelModel):
    notifications: List[Notification]
    unread_count: int
    total: int


class NotificationActionRequest(CamelModel):
    notification_id: str = Field(min_length=1)
    action: Literal["mark_read", "mark_clicked"]


class NotificationActionResponse(CamelModel):
    success: bool
    message: str
