"""Invitation lifecycle for subordinate users.

Students and assessors are invited by an RTO, supervisors by a provider.
Inviting creates the user with a one-time token and a temporary password;
accepting the invitation retires the token and sets the user's own
password. Invitations that are not accepted within the configured number of
days expire.
"""

import logging
import secrets
import uuid
from datetime import datetime, timedelta
from typing import List, Optional

import pytz
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import INVITATION_EXPIRY_DAYS
from core.exceptions import (
    ConflictError,
    ExpiredError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from models.user import UserModel
from schemas.invitation import InvitationDetails, InvitationIssued, InvitationSummary
from schemas.status import (
    ORG_ADMIN_ROLE_FOR_TYPE,
    InvitationStatus,
    OrganizationType,
    VerificationStatus,
    is_subordinate_role,
    organization_type_for_role,
)
from schemas.user import User
from utils.converters import model_to_user, now_iso, parse_iso
from utils.notification_manager import NotificationManager
from utils.organization_manager import OrganizationManager
from utils.user_manager import UserManager
from utils.verification_manager import refresh_access_cache

logger = logging.getLogger(__name__)

TEMP_PASSWORD_LENGTH = 10
TOKEN_ATTEMPTS = 5


def invitation_url(token: str) -> str:
    return f"/accept-invitation?token={token}"


class InvitationManager:
    """Sends, accepts and expires invitations."""

    def __init__(
        self,
        db: Session,
        users: Optional[UserManager] = None,
        notifications: Optional[NotificationManager] = None,
        expiry_days: int = INVITATION_EXPIRY_DAYS,
    ):
        """Initialize InvitationManager.

        Args:
            db: SQLAlchemy Session.
            users: Credential store used to hash passwords.
            notifications: Tracker used to notify the inviter on acceptance.
            expiry_days: Days an invitation stays valid.
        """
        self.db = db
        self.users = users or UserManager(db)
        self.notifications = notifications or NotificationManager(db)
        self.organizations = OrganizationManager(db)
        self.expiry_days = expiry_days

    def _expires_at(self, model: UserModel) -> Optional[datetime]:
        invited_at = parse_iso(model.invited_at)
        if invited_at is None:
            return None
        return invited_at + timedelta(days=self.expiry_days)

    def _is_expired(self, model: UserModel, now: Optional[datetime] = None) -> bool:
        expires_at = self._expires_at(model)
        if expires_at is None:
            return False
        return (now or datetime.now(pytz.utc)) > expires_at

    def _generate_token(self) -> str:
        for _ in range(TOKEN_ATTEMPTS):
            token = secrets.token_urlsafe(24)
            taken = (
                self.db.query(UserModel.user_id)
                .filter(UserModel.invitation_token == token)
                .first()
            )
            if not taken:
                return token
        raise ConflictError("Could not generate a unique invitation token")

    def _check_inviter(
        self, invited_by: str, organization_id: str, organization_type: OrganizationType
    ) -> None:
        inviter = self.db.query(UserModel).filter(UserModel.user_id == invited_by).first()
        if not inviter:
            raise NotFoundError("Inviting user", invited_by)
        if (
            inviter.role != ORG_ADMIN_ROLE_FOR_TYPE[organization_type].value
            or inviter.organization_id != organization_id
        ):
            raise PreconditionError(
                "Only an admin of the organization can send its invitations",
                {"invitedBy": invited_by, "organizationId": organization_id},
            )
        if inviter.verification_status != VerificationStatus.VERIFIED.value:
            raise PreconditionError(
                "Organization admin must be verified before inviting users",
                {"invitedBy": invited_by},
            )

    def send_invitation(
        self,
        email: str,
        role: str,
        invited_by: str,
        organization_id: str,
        organization_type: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> InvitationIssued:
        """Invite a student, assessor or supervisor.

        Args:
            email: Email of the invitee; must not belong to any user.
            role: ``student``, ``assessor`` or ``supervisor``.
            invited_by: User ID of the inviting organization admin.
            organization_id: Organization the invitee will belong to.
            organization_type: ``rto`` or ``provider``; must match the role.
            first_name: Given name of the invitee.
            last_name: Family name of the invitee.

        Returns:
            InvitationIssued with the token and the temporary password.

        Raises:
            ValidationError: If the role cannot be invited by that organization type.
            NotFoundError: If the organization or the inviter does not exist.
            PreconditionError: If the inviter is not a verified admin of the organization.
            ConflictError: If the email already belongs to a user.
        """
        try:
            org_type = OrganizationType(organization_type)
        except ValueError:
            raise ValidationError(f"Invalid organization type: {organization_type}")
        if not is_subordinate_role(role) or organization_type_for_role(role) != org_type:
            raise ValidationError(f"Role {role} cannot be invited by {org_type.value}")

        self.organizations.get_organization(organization_id, org_type)
        self._check_inviter(invited_by, organization_id, org_type)

        email = email.strip().lower()
        if self.users.find_model_by_email(email):
            raise ConflictError("User with this email already exists", {"email": email})

        token = self._generate_token()
        temp_password = secrets.token_urlsafe(TEMP_PASSWORD_LENGTH)[:TEMP_PASSWORD_LENGTH]
        now = now_iso()
        model = UserModel(
            user_id=str(uuid.uuid4()),
            email=email,
            first_name=first_name,
            last_name=last_name,
            role=role,
            status="pending",
            password_hash=self.users.hash_password(temp_password),
            must_change_password=True,
            email_verified=False,
            invitation_status=InvitationStatus.INVITED.value,
            invitation_token=token,
            invited_by=invited_by,
            invited_at=now,
            organization_id=organization_id,
            organization_type=org_type.value,
            can_access_dashboard=False,
            created_at=now,
            updated_at=now,
        )
        try:
            self.db.add(model)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("User with this email already exists", {"email": email}) from e

        logger.info(
            "User %s invited %s as %s to %s %s",
            invited_by,
            model.user_id,
            role,
            org_type.value,
            organization_id,
        )
        return InvitationIssued(
            user_id=model.user_id,
            temp_password=temp_password,
            invitation_token=token,
            invitation_url=invitation_url(token),
        )

    def _find_by_token(self, token: str) -> UserModel:
        model = None
        if token:
            model = (
                self.db.query(UserModel)
                .filter(UserModel.invitation_token == token)
                .first()
            )
        if not model or model.invitation_status != InvitationStatus.INVITED.value:
            raise NotFoundError("Invitation")
        return model

    def _expire(self, model: UserModel) -> None:
        model.invitation_status = InvitationStatus.EXPIRED.value
        model.invitation_token = None
        model.updated_at = now_iso()
        refresh_access_cache(model)

    def get_invitation_details(self, token: str) -> InvitationDetails:
        """Preview a live invitation.

        Raises:
            NotFoundError: If the token does not resolve to a live invitation.
            ExpiredError: If the invitation has expired.
        """
        model = self._find_by_token(token)
        if self._is_expired(model):
            raise ExpiredError("Invitation has expired")

        organization = self.organizations.find_organization(model.organization_id)
        expires_at = self._expires_at(model)
        return InvitationDetails(
            first_name=model.first_name,
            last_name=model.last_name,
            email=model.email,
            role=model.role,
            organization_name=organization.name if organization else "",
            invited_at=model.invited_at,
            expires_at=expires_at.isoformat() if expires_at else None,
            requires_password_change=bool(model.must_change_password),
        )

    def accept_invitation(self, token: str, new_password: str) -> User:
        """Accept an invitation and set the user's own password.

        Args:
            token: Invitation token from the invitation link.
            new_password: Password replacing the temporary one.

        Returns:
            The activated User.

        Raises:
            NotFoundError: If the token is unknown or already used.
            ExpiredError: If the invitation has expired; the invitation is
                marked expired and its token retired.
            ValidationError: If the new password is empty.
        """
        if not new_password:
            raise ValidationError("A new password is required to accept an invitation")

        model = self._find_by_token(token)
        if self._is_expired(model):
            self._expire(model)
            self.db.commit()
            logger.info("Invitation for %s expired before acceptance", model.user_id)
            raise ExpiredError("Invitation has expired")

        now = now_iso()
        model.invitation_status = InvitationStatus.ACCEPTED.value
        model.invitation_token = None
        model.accepted_at = now
        model.password_hash = self.users.hash_password(new_password)
        model.must_change_password = False
        model.email_verified = True
        model.status = "active"
        model.updated_at = now
        refresh_access_cache(model)
        if model.can_access_dashboard:
            model.dashboard_activated_at = now

        if model.invited_by:
            name = " ".join(p for p in (model.first_name, model.last_name) if p) or model.email
            self.notifications.record(
                model.invited_by,
                "invitation_accepted",
                f"{name} accepted your invitation.",
                commit=False,
            )
        self.db.commit()
        self.db.refresh(model)
        logger.info("User %s accepted invitation", model.user_id)
        return model_to_user(model)

    def list_invitations(
        self, invited_by: str, organization_id: Optional[str] = None
    ) -> List[InvitationSummary]:
        query = self.db.query(UserModel).filter(UserModel.invited_by == invited_by)
        if organization_id:
            query = query.filter(UserModel.organization_id == organization_id)
        models = query.order_by(UserModel.created_at.desc()).all()
        return [
            InvitationSummary(
                id=m.user_id,
                email=m.email,
                first_name=m.first_name,
                last_name=m.last_name,
                role=m.role,
                invitation_status=m.invitation_status,
                invited_at=m.invited_at,
                accepted_at=m.accepted_at,
                organization_id=m.organization_id,
                organization_type=m.organization_type,
            )
            for m in models
        ]

    def expire_stale_invitations(self, now: Optional[datetime] = None) -> int:
        """Mark every overdue invitation expired.

        Args:
            now: Reference time, defaults to the current UTC time.

        Returns:
            Number of invitations expired.
        """
        models = (
            self.db.query(UserModel)
            .filter(UserModel.invitation_status == InvitationStatus.INVITED.value)
            .all()
        )
        expired = 0
        for model in models:
            if self._is_expired(model, now):
                self._expire(model)
                expired += 1
        if expired:
            self.db.commit()
        logger.info("Expired %d stale invitations", expired)
        return expired
