"""User database model.

This module defines the User database model using SQLAlchemy. Verification
and invitation state live directly on the user record.
"""

from sqlalchemy import Boolean, Column, ForeignKey, String, Text
from .base import Base


class UserModel(Base):
    """User database model."""

    __tablename__ = "users"

    user_id = Column(String, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    password_hash = Column(String, nullable=False)
    # 'platform_admin', 'rto_admin', 'provider_admin', 'student', 'supervisor' or 'assessor'
    role = Column(String, index=True, nullable=False)
    status = Column(String, nullable=False, default="pending")  # 'pending' or 'active'

    # Org-admin verification
    verification_status = Column(String, index=True, nullable=True)
    verification_notes = Column(Text, nullable=True)
    verified_by = Column(String, nullable=True)
    verified_at = Column(String, nullable=True)  # ISO format string

    # Subordinate invitation
    invitation_status = Column(String, index=True, nullable=True)
    invitation_token = Column(String, unique=True, index=True, nullable=True)
    invited_by = Column(String, index=True, nullable=True)
    invited_at = Column(String, nullable=True)
    accepted_at = Column(String, nullable=True)

    # Organization linkage
    organization_id = Column(
        String, ForeignKey("organizations.organization_id"), index=True, nullable=True
    )
    organization_type = Column(String, nullable=True)  # 'rto' or 'provider'

    # Denormalized access cache, see utils.access_resolver
    can_access_dashboard = Column(Boolean, nullable=False, default=False)
    dashboard_activated_at = Column(String, nullable=True)

    must_change_password = Column(Boolean, nullable=False, default=False)
    email_verified = Column(Boolean, nullable=False, default=False)

    created_at = Column(String, nullable=False)  # ISO format string
    updated_at = Column(String, nullable=False)
