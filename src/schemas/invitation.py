"""Invitation request/response schemas."""

from typing import List, Optional

from pydantic import Field

from schemas.base import EMAIL_PATTERN, CamelModel
from schemas.status import InvitationStatus, OrganizationType
from schemas.user import User


class SendInvitationRequest(CamelModel):
    email: str = Field(pattern=EMAIL_PATTERN)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    role: str = Field(min_length=1)
    invited_by: str = Field(min_length=1)
    organization_id: str = Field(min_length=1)
    organization_type: OrganizationType


class InvitationIssued(CamelModel):
    """Result of sending an invitation.

    The temporary password is returned once to the caller, who is expected
    to deliver it out of band; only its hash is stored.
    """

    message: str = "Invitation sent successfully"
    user_id: str
    temp_password: str
    invitation_token: str
    invitation_url: str


class AcceptInvitationRequest(CamelModel):
    invitation_token: str = Field(min_length=1)
    new_password: str = Field(min_length=8)


class AcceptInvitationResponse(CamelModel):
    message: str = "Invitation accepted successfully"
    user: User
    dashboard_url: str


class InvitationDetails(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str
    role: str
    organization_name: str = ""
    invited_at: Optional[str] = None
    expires_at: Optional[str] = None
    requires_password_change: bool = True


class InvitationDetailsResponse(CamelModel):
    invitation: InvitationDetails


class InvitationSummary(CamelModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str
    invitation_status: Optional[InvitationStatus] = None
    invited_at: Optional[str] = None
    accepted_at: Optional[str] = None
    organization_id: Optional[str] = None
    organization_type: Optional[OrganizationType] = None


class InvitationListResponse(CamelModel):
    invitations: List[InvitationSummary]
