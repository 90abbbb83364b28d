"""User notification database model."""

from sqlalchemy import Column, String, Text
from .base import Base


class NotificationModel(Base):
    """Notification database model."""

    __tablename__ = "notifications"

    notification_id = Column(String, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    kind = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    # 'pending', 'sent', 'delivered', 'read' or 'failed'
    status = Column(String, index=True, nullable=False, default="pending")
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)
    read_at = Column(String, nullable=True)
    clicked_at = Column(String, nullable=True)
