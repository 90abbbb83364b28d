"""
Factory helpers for building users, organizations and contracts in tests.
Importable directly from test modules as well as from conftest fixtures.
"""
import uuid
from typing import Optional

from models.organization import OrganizationModel
from models.user import UserModel
from schemas.status import (
    ORG_ADMIN_ROLE_FOR_TYPE,
    InvitationStatus,
    OrganizationType,
    Role,
    organization_type_for_role,
)
from schemas.user import User
from utils.converters import now_iso
from utils.user_manager import hash_password

TEST_PASSWORD = "correct-horse-battery"
TEST_BCRYPT_ROUNDS = 4
TEST_ADMIN_TOKEN = "test-admin-token"


def make_user(**overrides) -> User:
    """Build an unsaved User record for pure resolver tests."""
    fields = dict(
        user_id=str(uuid.uuid4()),
        email=f"{uuid.uuid4().hex[:8]}@example.com",
        role=Role.STUDENT.value,
    )
    fields.update(overrides)
    if fields.get("organization_id") and "organization_type" not in fields:
        org_type = organization_type_for_role(fields["role"])
        fields["organization_type"] = org_type.value if org_type else None
    return User(**fields)


def _user_model(role: str, email: Optional[str] = None, **fields) -> UserModel:
    now = now_iso()
    values = dict(
        user_id=str(uuid.uuid4()),
        email=email or f"{uuid.uuid4().hex[:8]}@example.com",
        first_name="Test",
        last_name="User",
        password_hash=hash_password(TEST_PASSWORD, TEST_BCRYPT_ROUNDS),
        role=role,
        status="active",
        can_access_dashboard=False,
        must_change_password=False,
        email_verified=True,
        created_at=now,
        updated_at=now,
    )
    values.update(fields)
    return UserModel(**values)


def make_platform_admin(db, email: Optional[str] = None) -> UserModel:
    model = _user_model(Role.PLATFORM_ADMIN.value, email=email, can_access_dashboard=True)
    db.add(model)
    db.commit()
    db.refresh(model)
    return model


def make_organization(db, organization_type: OrganizationType, name: Optional[str] = None) -> OrganizationModel:
    model = OrganizationModel(
        organization_id=uuid.uuid4().hex[:16],
        name=name or f"{organization_type.value.upper()} {uuid.uuid4().hex[:4]}",
        organization_type=organization_type.value,
        created_at=now_iso(),
    )
    db.add(model)
    db.commit()
    db.refresh(model)
    return model


def make_org_admin(
    db,
    organization_type: OrganizationType,
    verification_status: Optional[str] = "verified",
    organization: Optional[OrganizationModel] = None,
    email: Optional[str] = None,
):
    """Create an organization and its admin.

    Returns:
        Tuple of (OrganizationModel, UserModel).
    """
    organization = organization or make_organization(db, organization_type)
    admin = _user_model(
        ORG_ADMIN_ROLE_FOR_TYPE[organization_type].value,
        email=email,
        organization_id=organization.organization_id,
        organization_type=organization_type.value,
        verification_status=verification_status,
        can_access_dashboard=verification_status == "verified",
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return organization, admin


def make_subordinate(
    db,
    role: Role,
    organization: Optional[OrganizationModel],
    invitation_status: InvitationStatus = InvitationStatus.ACCEPTED,
    **fields,
) -> UserModel:
    token = uuid.uuid4().hex if invitation_status == InvitationStatus.INVITED else None
    model = _user_model(
        role.value,
        organization_id=organization.organization_id if organization else None,
        organization_type=organization_type_for_role(role.value).value,
        invitation_status=invitation_status.value,
        invitation_token=token,
        invited_at=now_iso(),
        **fields,
    )
    db.add(model)
    db.commit()
    db.refresh(model)
    return model
