"""Dashboard access resolution.

``resolve_access`` decides from the user record alone whether the user may
open their dashboard and, if not, which page the front end should send them
to. It performs no I/O, so it is safe to call on every request. The
``can_access_dashboard`` column is a denormalized copy of its answer, kept for
listing queries; it is written by the workflow managers and never read here.
"""

from schemas.access import AccessDecision
from schemas.status import (
    InvitationStatus,
    OrganizationType,
    Role,
    ROLE_ORGANIZATION_TYPE,
    ROLE_PATH_SEGMENT,
    VerificationStatus,
    parse_role,
)
from schemas.user import User

LOGIN_PATH = "/login"

_ORG_ADMIN_REASONS = {
    Role.RTO_ADMIN: "RTO requires admin verification to access dashboard",
    Role.PROVIDER_ADMIN: "Provider requires admin verification to access dashboard",
}

_SUBORDINATE_REASONS = {
    Role.STUDENT: "Student must be registered by RTO and accept invitation",
    Role.SUPERVISOR: "Supervisor must be assigned by provider and accept invitation",
    Role.ASSESSOR: "Assessor must be assigned by RTO and accept invitation",
}


def _resolve_org_admin(user: User, role: Role) -> AccessDecision:
    segment = ROLE_PATH_SEGMENT[role]
    status = (
        VerificationStatus(user.verification_status)
        if user.verification_status
        else VerificationStatus.PENDING
    )
    if status == VerificationStatus.VERIFIED:
        return AccessDecision(can_access=True, reason="Verified organization admin")

    if status == VerificationStatus.REJECTED:
        redirect = f"/{segment}/verification-rejected"
    elif status == VerificationStatus.SUSPENDED:
        redirect = f"/{segment}/account-suspended"
    else:
        # pending, unset and under_review all wait on the platform admin
        redirect = f"/{segment}/verification-pending"
    return AccessDecision(
        can_access=False, redirect_to=redirect, reason=_ORG_ADMIN_REASONS[role]
    )


def _resolve_subordinate(user: User, role: Role) -> AccessDecision:
    status = user.invitation_status or InvitationStatus.NONE
    org_type: OrganizationType = ROLE_ORGANIZATION_TYPE[role]
    # Linked only to an organization of the type that owns the role
    linked = bool(user.organization_id) and user.organization_type == org_type

    if status == InvitationStatus.ACCEPTED and linked:
        return AccessDecision(can_access=True, reason="Invitation accepted")

    reason = _SUBORDINATE_REASONS[role]
    if status == InvitationStatus.INVITED and user.invitation_token:
        redirect = f"/accept-invitation?token={user.invitation_token}"
    elif not linked:
        redirect = f"/{role.value}/no-{org_type.value}"
    else:
        redirect = f"/{role.value}/invitation-pending"
    return AccessDecision(can_access=False, redirect_to=redirect, reason=reason)


def resolve_access(user: User) -> AccessDecision:
    """Resolve whether a user may reach their dashboard.

    Args:
        user: The user record to evaluate.

    Returns:
        AccessDecision with ``can_access``, the page to redirect to when
        access is denied, and a human readable reason.
    """
    role = parse_role(user.role)
    if role is None:
        return AccessDecision(
            can_access=False, redirect_to=LOGIN_PATH, reason="Invalid user role"
        )
    if role == Role.PLATFORM_ADMIN:
        return AccessDecision(can_access=True, reason="Platform admin")
    if role in _ORG_ADMIN_REASONS:
        return _resolve_org_admin(user, role)
    return _resolve_subordinate(user, role)
