"""Invitation routes.

Organization admins invite students, assessors and supervisors; invitees
accept with the token from their invitation link.
"""

from typing import Optional

from fastapi import APIRouter, Query

from core.dependencies import InvitationManagerDep
from schemas.invitation import (
    AcceptInvitationRequest,
    AcceptInvitationResponse,
    InvitationDetailsResponse,
    InvitationIssued,
    InvitationListResponse,
    SendInvitationRequest,
)
from schemas.status import dashboard_url

router = APIRouter(prefix="/api/invitations", tags=["Invitation"])


@router.post("", response_model=InvitationIssued, summary="Send an invitation")
def send_invitation(
    req: SendInvitationRequest,
    invitation_manager: InvitationManagerDep,
) -> InvitationIssued:
    """Create an invited user and return the token and temporary password."""
    return invitation_manager.send_invitation(
        email=req.email,
        role=req.role,
        invited_by=req.invited_by,
        organization_id=req.organization_id,
        organization_type=req.organization_type,
        first_name=req.first_name,
        last_name=req.last_name,
    )


@router.get("", response_model=InvitationListResponse, summary="List sent invitations")
def list_invitations(
    invitation_manager: InvitationManagerDep,
    invited_by: str = Query(alias="invitedBy", min_length=1),
    organization_id: Optional[str] = Query(default=None, alias="organizationId"),
) -> InvitationListResponse:
    return InvitationListResponse(
        invitations=invitation_manager.list_invitations(invited_by, organization_id)
    )


@router.get("/accept", response_model=InvitationDetailsResponse, summary="Preview an invitation")
def get_invitation(
    invitation_manager: InvitationManagerDep,
    token: str = Query(min_length=1),
) -> InvitationDetailsResponse:
    return InvitationDetailsResponse(
        invitation=invitation_manager.get_invitation_details(token)
    )


@router.post("/accept", response_model=AcceptInvitationResponse, summary="Accept an invitation")
def accept_invitation(
    req: AcceptInvitationRequest,
    invitation_manager: InvitationManagerDep,
) -> AcceptInvitationResponse:
    """Accept an invitation, replacing the temporary password.

    Returns 404 for unknown or already used tokens and 410 for expired
    invitations.
    """
    user = invitation_manager.accept_invitation(req.invitation_token, req.new_password)
    return AcceptInvitationResponse(user=user, dashboard_url=dashboard_url(user.role))
