"""Shared status enums and role predicates.

Every workflow manager and the access resolver speak in these types. The
enums are ``str`` subclasses so they compare equal to the raw values stored
in the database and sent over the wire. Enum members hash by name, so
raw strings must be converted before set or dict lookups.
"""

from enum import Enum
from typing import Dict, FrozenSet, Optional


class Role(str, Enum):
    PLATFORM_ADMIN = "platform_admin"
    RTO_ADMIN = "rto_admin"
    PROVIDER_ADMIN = "provider_admin"
    STUDENT = "student"
    SUPERVISOR = "supervisor"
    ASSESSOR = "assessor"


class OrganizationType(str, Enum):
    RTO = "rto"
    PROVIDER = "provider"


class VerificationStatus(str, Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    VERIFIED = "verified"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


class InvitationStatus(str, Enum):
    NONE = "none"
    INVITED = "invited"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


class ContractStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    TERMINATED = "terminated"


class ContractType(str, Enum):
    MOU = "mou"
    PLACEMENT_AGREEMENT = "placement_agreement"
    SERVICE_AGREEMENT = "service_agreement"


class SignatureParty(str, Enum):
    RTO = "rto"
    PROVIDER = "provider"


class NotificationStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"


ORG_ADMIN_ROLES: FrozenSet[Role] = frozenset({Role.RTO_ADMIN, Role.PROVIDER_ADMIN})
SUBORDINATE_ROLES: FrozenSet[Role] = frozenset(
    {Role.STUDENT, Role.SUPERVISOR, Role.ASSESSOR}
)

# Organization type each non-platform role belongs to
ROLE_ORGANIZATION_TYPE: Dict[Role, OrganizationType] = {
    Role.RTO_ADMIN: OrganizationType.RTO,
    Role.PROVIDER_ADMIN: OrganizationType.PROVIDER,
    Role.STUDENT: OrganizationType.RTO,
    Role.ASSESSOR: OrganizationType.RTO,
    Role.SUPERVISOR: OrganizationType.PROVIDER,
}

ORG_ADMIN_ROLE_FOR_TYPE: Dict[OrganizationType, Role] = {
    OrganizationType.RTO: Role.RTO_ADMIN,
    OrganizationType.PROVIDER: Role.PROVIDER_ADMIN,
}

# URL segment of each role's area in the front end
ROLE_PATH_SEGMENT: Dict[Role, str] = {
    Role.PLATFORM_ADMIN: "admin",
    Role.RTO_ADMIN: "rto",
    Role.PROVIDER_ADMIN: "provider",
    Role.STUDENT: "student",
    Role.SUPERVISOR: "supervisor",
    Role.ASSESSOR: "assessor",
}

VERIFICATION_TRANSITIONS: Dict[VerificationStatus, FrozenSet[VerificationStatus]] = {
    VerificationStatus.PENDING: frozenset({VerificationStatus.UNDER_REVIEW}),
    VerificationStatus.UNDER_REVIEW: frozenset(
        {VerificationStatus.VERIFIED, VerificationStatus.REJECTED}
    ),
    VerificationStatus.VERIFIED: frozenset({VerificationStatus.SUSPENDED}),
    VerificationStatus.REJECTED: frozenset({VerificationStatus.UNDER_REVIEW}),
    VerificationStatus.SUSPENDED: frozenset({VerificationStatus.UNDER_REVIEW}),
}

TERMINAL_CONTRACT_STATUSES: FrozenSet[ContractStatus] = frozenset(
    {ContractStatus.EXPIRED, ContractStatus.TERMINATED}
)

UNREAD_NOTIFICATION_STATUSES: FrozenSet[NotificationStatus] = frozenset(
    {NotificationStatus.PENDING, NotificationStatus.SENT, NotificationStatus.DELIVERED}
)

# Forward order of delivery; FAILED sits outside it and is terminal
NOTIFICATION_PROGRESSION: Dict[NotificationStatus, int] = {
    NotificationStatus.PENDING: 0,
    NotificationStatus.SENT: 1,
    NotificationStatus.DELIVERED: 2,
    NotificationStatus.READ: 3,
}


def parse_role(value: Optional[str]) -> Optional[Role]:
    """Return the Role for a raw value, or None when unset or unknown."""
    if not value:
        return None
    try:
        return Role(value)
    except ValueError:
        return None


def is_org_admin_role(role: Optional[str]) -> bool:
    return parse_role(role) in ORG_ADMIN_ROLES


def is_subordinate_role(role: Optional[str]) -> bool:
    return parse_role(role) in SUBORDINATE_ROLES


def organization_type_for_role(role: Optional[str]) -> Optional[OrganizationType]:
    parsed = parse_role(role)
    if parsed is None:
        return None
    return ROLE_ORGANIZATION_TYPE.get(parsed)


def dashboard_url(role: Optional[str]) -> str:
    """Landing page of a role once access is granted."""
    parsed = parse_role(role)
    if parsed is None:
        return "/dashboard"
    return f"/{ROLE_PATH_SEGMENT[parsed]}/dashboard"


def is_verification_transition_allowed(
    current: Optional[VerificationStatus], new: VerificationStatus
) -> bool:
    """Check a verification change against the strict transition table.

    An unset status is treated as pending, and re-setting the current
    status is always allowed.
    """
    current = VerificationStatus(current or VerificationStatus.PENDING)
    new = VerificationStatus(new)
    if current == new:
        return True
    return new in VERIFICATION_TRANSITIONS[current]


def enum_value(value):
    """Raw string of an enum member, or the value itself when already raw."""
    if isinstance(value, Enum):
        return value.value
    return value
