"""Verification of organization admin accounts.

RTO and provider admins start in ``pending`` and are moved through review
by the platform admin. By default any status may be set from any other, so
an administrator can always override; with ``strict`` transitions enabled
only the moves in ``VERIFICATION_TRANSITIONS`` are accepted.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from core.exceptions import NotFoundError, PreconditionError, ValidationError
from models.user import UserModel
from schemas.status import (
    ORG_ADMIN_ROLES,
    Role,
    VerificationStatus,
    is_org_admin_role,
    is_verification_transition_allowed,
)
from schemas.user import User
from schemas.verification import VerificationOverview, VerificationTotals
from utils.access_resolver import resolve_access
from utils.converters import model_to_user, now_iso
from utils.notification_manager import NotificationManager

logger = logging.getLogger(__name__)

_NOTIFICATION_MESSAGES: Dict[VerificationStatus, str] = {
    VerificationStatus.PENDING: "Your account is awaiting verification.",
    VerificationStatus.UNDER_REVIEW: "Your account is now under review.",
    VerificationStatus.VERIFIED: "Your account has been verified. Your dashboard is now available.",
    VerificationStatus.REJECTED: "Your verification request was rejected.",
    VerificationStatus.SUSPENDED: "Your account has been suspended.",
}


def refresh_access_cache(model: UserModel) -> None:
    """Recompute the denormalized ``can_access_dashboard`` flag of a user."""
    model.can_access_dashboard = resolve_access(model_to_user(model)).can_access


class VerificationManager:
    """Applies verification status changes to organization admins."""

    def __init__(
        self,
        db: Session,
        notifications: Optional[NotificationManager] = None,
        strict: bool = False,
    ):
        """Initialize VerificationManager.

        Args:
            db: SQLAlchemy Session.
            notifications: Tracker used to notify the affected user.
            strict: Enforce the transition table instead of allowing any
                status to be set from any other.
        """
        self.db = db
        self.notifications = notifications or NotificationManager(db)
        self.strict = strict

    def _get_user_model(self, user_id: str) -> UserModel:
        model = self.db.query(UserModel).filter(UserModel.user_id == user_id).first()
        if not model:
            raise NotFoundError("User", user_id)
        return model

    def _check_actor(self, actor_id: str) -> None:
        actor = self.db.query(UserModel).filter(UserModel.user_id == actor_id).first()
        if not actor:
            raise NotFoundError("Admin", actor_id)
        if actor.role != Role.PLATFORM_ADMIN.value:
            raise PreconditionError(
                "Only platform admins can change verification status",
                {"adminId": actor_id},
            )

    def set_verification_status(
        self,
        user_id: str,
        new_status: str,
        actor_id: str,
        notes: Optional[str] = None,
    ) -> User:
        """Set the verification status of an organization admin.

        Args:
            user_id: Organization admin to update.
            new_status: Target verification status.
            actor_id: Platform admin performing the change.
            notes: Reviewer notes stored with the decision.

        Returns:
            The updated User.

        Raises:
            ValidationError: If the status is invalid, the user is not an
                organization admin, or a strict transition is violated.
            NotFoundError: If the user or the actor does not exist.
            PreconditionError: If the actor is not a platform admin.
        """
        try:
            status = VerificationStatus(new_status)
        except ValueError:
            raise ValidationError(
                "Invalid verification status",
                {"allowed": [s.value for s in VerificationStatus]},
            )

        model = self._get_user_model(user_id)
        if not is_org_admin_role(model.role):
            raise ValidationError(
                f"Users with role {model.role} are not subject to verification",
                {"userId": user_id},
            )
        self._check_actor(actor_id)

        previous = model.verification_status
        if self.strict and not is_verification_transition_allowed(previous, status):
            raise ValidationError(
                f"Cannot change verification status from {previous or 'pending'} to {status.value}",
                {"from": previous or VerificationStatus.PENDING.value, "to": status.value},
            )

        now = now_iso()
        model.verification_status = status.value
        model.verification_notes = notes or ""
        model.verified_by = actor_id
        model.verified_at = now
        model.updated_at = now

        if status == VerificationStatus.VERIFIED:
            model.dashboard_activated_at = now
            model.status = "active"
        else:
            model.dashboard_activated_at = None
        refresh_access_cache(model)

        self.notifications.record(
            model.user_id,
            "verification_update",
            _NOTIFICATION_MESSAGES[status],
            commit=False,
        )
        self.db.commit()
        self.db.refresh(model)
        logger.info(
            "Verification status of %s changed %s -> %s by %s",
            user_id,
            previous,
            status.value,
            actor_id,
        )
        return model_to_user(model)

    def verification_overview(self) -> VerificationOverview:
        """Group all organization admins by verification status."""
        models = (
            self.db.query(UserModel)
            .filter(UserModel.role.in_([role.value for role in ORG_ADMIN_ROLES]))
            .order_by(UserModel.created_at.asc())
            .all()
        )
        groups: Dict[VerificationStatus, List[User]] = {s: [] for s in VerificationStatus}
        for model in models:
            status = VerificationStatus(model.verification_status or VerificationStatus.PENDING)
            groups[status].append(model_to_user(model))

        totals = VerificationTotals(
            pending=len(groups[VerificationStatus.PENDING]),
            under_review=len(groups[VerificationStatus.UNDER_REVIEW]),
            verified=len(groups[VerificationStatus.VERIFIED]),
            rejected=len(groups[VerificationStatus.REJECTED]),
            suspended=len(groups[VerificationStatus.SUSPENDED]),
            total=len(models),
        )
        return VerificationOverview(
            pending_verification=groups[VerificationStatus.PENDING],
            under_review=groups[VerificationStatus.UNDER_REVIEW],
            verified=groups[VerificationStatus.VERIFIED],
            rejected=groups[VerificationStatus.REJECTED],
            suspended=groups[VerificationStatus.SUSPENDED],
            totals=totals,
        )
