"""Notification delivery tracking.

Workflow managers record a notification whenever they change something a
user should hear about. Delivery itself is done elsewhere; the transport
reports progress through ``advance`` and the addressed user marks the
notification read. Status only ever moves forward (pending, sent, delivered,
read) and ``failed`` is terminal.
"""

import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from config import DEFAULT_NOTIFICATION_LIMIT
from core.exceptions import NotFoundError, ValidationError
from models.notification import NotificationModel
from schemas.notification import Notification
from schemas.status import (
    NOTIFICATION_PROGRESSION,
    NotificationStatus,
    UNREAD_NOTIFICATION_STATUSES,
)
from utils.converters import model_to_notification, now_iso

logger = logging.getLogger(__name__)

_UNREAD_VALUES = [status.value for status in UNREAD_NOTIFICATION_STATUSES]
_TRANSPORT_STATUSES = frozenset(
    {NotificationStatus.SENT, NotificationStatus.DELIVERED, NotificationStatus.FAILED}
)


class NotificationManager:
    """Records notifications and tracks their delivery status."""

    def __init__(self, db: Session):
        """Initialize NotificationManager.

        Args:
            db: SQLAlchemy Session.
        """
        self.db = db

    def record(
        self, user_id: str, kind: str, message: str, commit: bool = True
    ) -> Notification:
        """Create a pending notification for a user.

        Args:
            user_id: Addressed user.
            kind: Machine-readable event kind, e.g. ``verification_update``.
            message: Text shown to the user.
            commit: Commit immediately. Workflow managers pass False so the
                notification lands in the same commit as their own change.

        Returns:
            The created Notification.
        """
        now = now_iso()
        model = NotificationModel(
            notification_id=str(uuid.uuid4()),
            user_id=user_id,
            kind=kind,
            message=message,
            status=NotificationStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        self.db.add(model)
        if commit:
            self.db.commit()
            self.db.refresh(model)
        else:
            self.db.flush()
        logger.info(
            "Recorded %s notification %s for user %s", kind, model.notification_id, user_id
        )
        return model_to_notification(model)

    def _get_model(self, notification_id: str) -> NotificationModel:
        model = (
            self.db.query(NotificationModel)
            .filter(NotificationModel.notification_id == notification_id)
            .first()
        )
        if not model:
            raise NotFoundError("Notification", notification_id)
        return model

    def get_notification(self, notification_id: str) -> Notification:
        return model_to_notification(self._get_model(notification_id))

    def mark_read(self, notification_id: str) -> Notification:
        """Mark a notification as read.

        Idempotent: an already read notification is returned unchanged, and
        a failed one stays failed.

        Raises:
            NotFoundError: If the notification does not exist.
        """
        model = self._get_model(notification_id)
        status = NotificationStatus(model.status)
        if status in (NotificationStatus.READ, NotificationStatus.FAILED):
            logger.debug("Notification %s already %s, mark_read is a no-op", notification_id, status.value)
            return model_to_notification(model)

        now = now_iso()
        model.status = NotificationStatus.READ.value
        model.read_at = now
        model.updated_at = now
        self.db.commit()
        self.db.refresh(model)
        logger.info("Notification %s marked read", notification_id)
        return model_to_notification(model)

    def mark_clicked(self, notification_id: str) -> Notification:
        """Record a click; clicking an unread notification also reads it.

        A failed notification is returned unchanged.
        """
        model = self._get_model(notification_id)
        if NotificationStatus(model.status) == NotificationStatus.FAILED:
            logger.debug("Notification %s failed, mark_clicked is a no-op", notification_id)
            return model_to_notification(model)

        now = now_iso()
        model.clicked_at = now
        model.updated_at = now
        if NotificationStatus(model.status) in UNREAD_NOTIFICATION_STATUSES:
            model.status = NotificationStatus.READ.value
            model.read_at = now
        self.db.commit()
        self.db.refresh(model)
        return model_to_notification(model)

    def advance(self, notification_id: str, new_status: NotificationStatus) -> Notification:
        """Apply a delivery report from the transport.

        Reports that would move the status backwards, or that arrive after
        the notification failed, are ignored so that duplicated or
        reordered reports are harmless.

        Args:
            notification_id: Notification to update.
            new_status: One of sent, delivered or failed.

        Raises:
            NotFoundError: If the notification does not exist.
            ValidationError: If ``new_status`` is not a transport status.
        """
        allowed = sorted(s.value for s in _TRANSPORT_STATUSES)
        try:
            new_status = NotificationStatus(new_status)
        except ValueError:
            raise ValidationError(
                f"Invalid notification status: {new_status}", {"allowed": allowed}
            )
        if new_status not in _TRANSPORT_STATUSES:
            raise ValidationError(
                f"Transport cannot set notification status '{new_status.value}'",
                {"allowed": allowed},
            )

        model = self._get_model(notification_id)
        current = NotificationStatus(model.status)
        if current == NotificationStatus.FAILED:
            logger.warning(
                "Ignoring %s report for failed notification %s", new_status.value, notification_id
            )
            return model_to_notification(model)

        if new_status == NotificationStatus.FAILED:
            # A notification the user has already seen cannot fail afterwards
            if current == NotificationStatus.READ:
                return model_to_notification(model)
        elif NOTIFICATION_PROGRESSION[new_status] <= NOTIFICATION_PROGRESSION[current]:
            return model_to_notification(model)

        model.status = new_status.value
        model.updated_at = now_iso()
        self.db.commit()
        self.db.refresh(model)
        logger.info(
            "Notification %s advanced %s -> %s", notification_id, current.value, new_status.value
        )
        return model_to_notification(model)

    def count_unread(self, user_id: str) -> int:
        return (
            self.db.query(NotificationModel)
            .filter(
                NotificationModel.user_id == user_id,
                NotificationModel.status.in_(_UNREAD_VALUES),
            )
            .count()
        )

    def list_for_user(
        self,
        user_id: str,
        status_filter: Optional[str] = None,
        limit: int = DEFAULT_NOTIFICATION_LIMIT,
    ) -> Tuple[List[Notification], int]:
        """List a user's notifications, newest first.

        Args:
            user_id: Addressed user.
            status_filter: ``unread``, ``read`` or ``all`` (default).
            limit: Maximum number of notifications returned.

        Returns:
            Tuple of (notifications, unread count).

        Raises:
            ValidationError: If the filter or limit is invalid.
        """
        if limit < 1:
            raise ValidationError("limit must be a positive integer")

        query = self.db.query(NotificationModel).filter(
            NotificationModel.user_id == user_id
        )
        if status_filter == "unread":
            query = query.filter(NotificationModel.status.in_(_UNREAD_VALUES))
        elif status_filter == "read":
            query = query.filter(NotificationModel.status == NotificationStatus.READ.value)
        elif status_filter not in (None, "", "all"):
            raise ValidationError(
                f"Invalid status filter: {status_filter}",
                {"allowed": ["unread", "read", "all"]},
            )

        models = query.order_by(NotificationModel.created_at.desc()).limit(limit).all()
        return [model_to_notification(m) for m in models], self.count_unread(user_id)
