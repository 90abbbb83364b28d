"""User management utilities.

This module provides user account storage, password hashing, registration
of organization admins and the platform admin, and credential checks.
"""

import logging
import uuid
from typing import Optional

import bcrypt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import BCRYPT_ROUNDS
from core.exceptions import ConflictError, ValidationError
from models.user import UserModel
from schemas.status import (
    OrganizationType,
    Role,
    VerificationStatus,
    is_org_admin_role,
    organization_type_for_role,
    parse_role,
)
from schemas.user import User
from utils.converters import model_to_user, now_iso
from utils.organization_manager import OrganizationManager

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a password using bcrypt.

    Args:
        password: Plain text password.
        rounds: bcrypt cost factor.

    Returns:
        Hashed password (bcrypt hash string).
    """
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > BCRYPT_MAX_BYTES:
        logger.warning(
            "Password exceeds %d bytes (%d bytes), truncating",
            BCRYPT_MAX_BYTES,
            len(password_bytes),
        )
        password_bytes = password_bytes[:BCRYPT_MAX_BYTES]

    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password_bytes, salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a bcrypt hash.

    Args:
        plain_password: Plain text password to verify.
        hashed_password: Bcrypt hash string to verify against.

    Returns:
        True if password matches, False otherwise.
    """
    password_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))
    except ValueError as e:
        logger.error("Password verification error: %s", e)
        return False


class UserManager:
    """Manages user accounts and credentials using SQLAlchemy."""

    def __init__(self, db: Session, bcrypt_rounds: int = BCRYPT_ROUNDS):
        """Initialize UserManager.

        Args:
            db: SQLAlchemy Session.
            bcrypt_rounds: bcrypt cost factor for new password hashes.
        """
        self.db = db
        self.bcrypt_rounds = bcrypt_rounds

    def hash_password(self, password: str) -> str:
        return hash_password(password, self.bcrypt_rounds)

    def find_model_by_email(self, email: str) -> Optional[UserModel]:
        return (
            self.db.query(UserModel)
            .filter(UserModel.email == email.strip().lower())
            .first()
        )

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        """Get a user by user ID.

        Args:
            user_id: User ID to look up.

        Returns:
            User object if found, None otherwise.
        """
        model = self.db.query(UserModel).filter(UserModel.user_id == user_id).first()
        if model:
            return model_to_user(model)
        return None

    def register(
        self,
        email: str,
        password: str,
        role: str,
        first_name: str,
        last_name: str,
        organization_name: Optional[str] = None,
    ) -> User:
        """Register an organization admin or the platform admin.

        Organization admins get a new organization and start in verification
        status ``pending``. Subordinate roles can only join by invitation.

        Args:
            email: Login email, stored lower-cased.
            password: Plain text password.
            role: ``platform_admin``, ``rto_admin`` or ``provider_admin``.
            first_name: Given name.
            last_name: Family name.
            organization_name: Name of the organization an org admin represents.

        Returns:
            Created User object.

        Raises:
            ValidationError: If the role cannot self-register or the
                organization name is missing.
            ConflictError: If the email is already registered.
        """
        parsed_role = parse_role(role)
        if parsed_role is None:
            raise ValidationError(f"Invalid role: {role}")
        if parsed_role != Role.PLATFORM_ADMIN and not is_org_admin_role(role):
            raise ValidationError(
                f"Role {role} cannot self-register; it must be invited by an organization"
            )
        if is_org_admin_role(role) and not (organization_name or "").strip():
            raise ValidationError("organizationName is required for organization admins")

        email = email.strip().lower()
        if self.find_model_by_email(email):
            raise ConflictError("User with this email already exists", {"email": email})

        now = now_iso()
        model = UserModel(
            user_id=str(uuid.uuid4()),
            email=email,
            first_name=first_name,
            last_name=last_name,
            password_hash=self.hash_password(password),
            role=parsed_role.value,
            status="pending",
            can_access_dashboard=False,
            must_change_password=False,
            email_verified=False,
            created_at=now,
            updated_at=now,
        )

        if parsed_role == Role.PLATFORM_ADMIN:
            model.status = "active"
            model.can_access_dashboard = True
            model.dashboard_activated_at = now
        else:
            org_type: OrganizationType = organization_type_for_role(role)
            organization = OrganizationManager(self.db).create_organization(
                organization_name, org_type, commit=False
            )
            model.organization_id = organization.organization_id
            model.organization_type = org_type.value
            model.verification_status = VerificationStatus.PENDING.value

        # Handle potential race condition: if two requests check simultaneously,
        # both might pass the check but the unique constraint will catch it
        try:
            self.db.add(model)
            self.db.commit()
            self.db.refresh(model)
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("User with this email already exists", {"email": email}) from e

        logger.info("Registered %s user %s", model.role, model.user_id)
        return model_to_user(model)

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """Check a login.

        Returns:
            The User when the password matches, None otherwise.
        """
        model = self.find_model_by_email(email)
        if model is None or not verify_password(password, model.password_hash):
            return None
        return model_to_user(model)
