"""User schema definitions.

This module defines the User model exchanged between managers, the access
resolver and the API, plus the authentication request/response bodies.
"""

from datetime import datetime
from typing import Optional

import pytz
from pydantic import Field

from schemas.access import AccessDecision
from schemas.base import EMAIL_PATTERN, CamelModel
from schemas.status import InvitationStatus, OrganizationType, VerificationStatus


class User(CamelModel):
    """A user record without its credential."""

    user_id: str = Field(alias="id")
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[str] = None
    status: str = "pending"

    verification_status: Optional[VerificationStatus] = None
    verification_notes: Optional[str] = None
    verified_by: Optional[str] = None
    verified_at: Optional[str] = None

    invitation_status: Optional[InvitationStatus] = None
    # Only handed out by the invitation endpoints, never in user listings
    invitation_token: Optional[str] = Field(default=None, exclude=True)
    invited_by: Optional[str] = None
    invited_at: Optional[str] = None
    accepted_at: Optional[str] = None

    organization_id: Optional[str] = None
    organization_type: Optional[OrganizationType] = None

    can_access_dashboard: bool = False
    dashboard_activated_at: Optional[str] = None
    must_change_password: bool = False
    email_verified: bool = False

    created_at: str = Field(
        default_factory=lambda: datetime.now(pytz.utc).isoformat()
    )
    updated_at: str = Field(
        default_factory=lambda: datetime.now(pytz.utc).isoformat()
    )


class RegisterRequest(CamelModel):
    """Self-registration of an organization admin or the platform admin."""

    email: str = Field(pattern=EMAIL_PATTERN)
    password: str = Field(min_length=8)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    role: str
    organization_name: Optional[str] = None
    admin_token: Optional[str] = None


class RegisterResponse(CamelModel):
    message: str
    user_id: str
    organization_id: Optional[str] = None


class LoginRequest(CamelModel):
    email: str = Field(pattern=EMAIL_PATTERN)
    password: str


class LoginResponse(CamelModel):
    user: User
    token: str
    access: AccessDecision


class CurrentUserResponse(CamelModel):
    user: User
    access: AccessDecision
