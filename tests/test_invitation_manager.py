from datetime import datetime, timedelta

import pytest
import pytz

from factories import make_org_admin, make_subordinate
from core.exceptions import (
    ConflictError,
    ExpiredError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from models.notification import NotificationModel
from models.user import UserModel
from schemas.status import InvitationStatus, OrganizationType, Role
from utils.access_resolver import resolve_access
from utils.converters import model_to_user
from utils.user_manager import verify_password

NEW_PASSWORD = "a-brand-new-password"


def _invite_student(invitations, organization, admin, email="student@example.com"):
    return invitations.send_invitation(
        email=email,
        role="student",
        invited_by=admin.user_id,
        organization_id=organization.organization_id,
        organization_type="rto",
        first_name="Sam",
        last_name="Student",
    )


def _backdate_invitation(db, user_id, days):
    model = db.get(UserModel, user_id)
    model.invited_at = (datetime.now(pytz.utc) - timedelta(days=days)).isoformat()
    db.commit()


def test_invitation_round_trip(db, invitations, verified_rto):
    organization, admin = verified_rto

    issued = _invite_student(invitations, organization, admin)

    invited = db.get(UserModel, issued.user_id)
    assert invited.invitation_status == "invited"
    assert invited.invitation_token == issued.invitation_token
    assert invited.must_change_password is True
    assert invited.can_access_dashboard is False
    assert verify_password(issued.temp_password, invited.password_hash)
    assert issued.invitation_url == f"/accept-invitation?token={issued.invitation_token}"

    decision = resolve_access(model_to_user(invited))
    assert decision.redirect_to == issued.invitation_url

    user = invitations.accept_invitation(issued.invitation_token, NEW_PASSWORD)

    assert user.invitation_status == "accepted"
    assert user.accepted_at is not None
    assert user.can_access_dashboard is True
    assert user.must_change_password is False
    assert user.dashboard_activated_at is not None
    assert resolve_access(user).can_access is True

    db.expire_all()
    accepted = db.get(UserModel, issued.user_id)
    assert accepted.invitation_token is None
    assert verify_password(NEW_PASSWORD, accepted.password_hash)
    assert not verify_password(issued.temp_password, accepted.password_hash)


def test_accepted_token_cannot_be_reused(db, invitations, verified_rto):
    organization, admin = verified_rto
    issued = _invite_student(invitations, organization, admin)
    invitations.accept_invitation(issued.invitation_token, NEW_PASSWORD)
    db.expire_all()
    before = db.get(UserModel, issued.user_id).password_hash

    with pytest.raises(NotFoundError):
        invitations.accept_invitation(issued.invitation_token, "another-password")

    db.expire_all()
    assert db.get(UserModel, issued.user_id).password_hash == before


def test_unknown_token(invitations):
    with pytest.raises(NotFoundError):
        invitations.accept_invitation("no-such-token", NEW_PASSWORD)


def test_empty_password_rejected(invitations, verified_rto):
    organization, admin = verified_rto
    issued = _invite_student(invitations, organization, admin)

    with pytest.raises(ValidationError):
        invitations.accept_invitation(issued.invitation_token, "")


@pytest.mark.parametrize(
    "role, organization_type",
    [("supervisor", "rto"), ("student", "provider"), ("assessor", "provider"), ("rto_admin", "rto")],
)
def test_role_must_match_organization_type(invitations, verified_rto, role, organization_type):
    organization, admin = verified_rto

    with pytest.raises(ValidationError):
        invitations.send_invitation(
            email="x@example.com",
            role=role,
            invited_by=admin.user_id,
            organization_id=organization.organization_id,
            organization_type=organization_type,
        )


def test_provider_invites_supervisor(db, invitations, verified_provider):
    organization, admin = verified_provider

    issued = invitations.send_invitation(
        email="Supervisor@Example.com",
        role="supervisor",
        invited_by=admin.user_id,
        organization_id=organization.organization_id,
        organization_type="provider",
    )

    invited = db.get(UserModel, issued.user_id)
    assert invited.email == "supervisor@example.com"
    assert invited.organization_type == "provider"


def test_duplicate_email_conflicts(invitations, verified_rto):
    organization, admin = verified_rto
    _invite_student(invitations, organization, admin)

    with pytest.raises(ConflictError):
        _invite_student(invitations, organization, admin)


def test_invitation_requires_existing_organization(invitations, verified_rto):
    _, admin = verified_rto

    with pytest.raises(NotFoundError):
        invitations.send_invitation(
            email="x@example.com",
            role="student",
            invited_by=admin.user_id,
            organization_id="missing",
            organization_type="rto",
        )


def test_inviter_must_be_verified(db, invitations):
    organization, admin = make_org_admin(db, OrganizationType.RTO, verification_status="pending")

    with pytest.raises(PreconditionError):
        _invite_student(invitations, organization, admin)


def test_inviter_must_belong_to_organization(db, invitations, verified_rto):
    organization, _ = verified_rto
    _, other_admin = make_org_admin(db, OrganizationType.RTO)

    with pytest.raises(PreconditionError):
        _invite_student(invitations, organization, other_admin)


def test_invitation_details(invitations, verified_rto):
    organization, admin = verified_rto
    issued = _invite_student(invitations, organization, admin)

    details = invitations.get_invitation_details(issued.invitation_token)

    assert details.email == "student@example.com"
    assert details.role == "student"
    assert details.organization_name == organization.name
    assert details.expires_at is not None
    assert details.requires_password_change is True


def test_expired_invitation_is_retired(db, invitations, verified_rto):
    organization, admin = verified_rto
    issued = _invite_student(invitations, organization, admin)
    _backdate_invitation(db, issued.user_id, days=8)

    with pytest.raises(ExpiredError):
        invitations.get_invitation_details(issued.invitation_token)
    with pytest.raises(ExpiredError):
        invitations.accept_invitation(issued.invitation_token, NEW_PASSWORD)

    db.expire_all()
    model = db.get(UserModel, issued.user_id)
    assert model.invitation_status == "expired"
    assert model.invitation_token is None
    assert model.can_access_dashboard is False

    with pytest.raises(NotFoundError):
        invitations.accept_invitation(issued.invitation_token, NEW_PASSWORD)


def test_expire_stale_invitations(db, invitations, verified_rto):
    organization, admin = verified_rto
    stale = _invite_student(invitations, organization, admin, email="old@example.com")
    fresh = _invite_student(invitations, organization, admin, email="new@example.com")
    _backdate_invitation(db, stale.user_id, days=30)

    assert invitations.expire_stale_invitations() == 1

    db.expire_all()
    assert db.get(UserModel, stale.user_id).invitation_status == "expired"
    assert db.get(UserModel, fresh.user_id).invitation_status == "invited"


def test_acceptance_notifies_inviter(db, invitations, verified_rto):
    organization, admin = verified_rto
    issued = _invite_student(invitations, organization, admin)

    invitations.accept_invitation(issued.invitation_token, NEW_PASSWORD)

    kinds = [
        n.kind
        for n in db.query(NotificationModel).filter(NotificationModel.user_id == admin.user_id)
    ]
    assert kinds == ["invitation_accepted"]


def test_list_invitations(db, invitations, verified_rto):
    organization, admin = verified_rto
    _invite_student(invitations, organization, admin, email="a@example.com")
    issued = _invite_student(invitations, organization, admin, email="b@example.com")
    invitations.accept_invitation(issued.invitation_token, NEW_PASSWORD)
    make_subordinate(db, Role.ASSESSOR, organization, InvitationStatus.ACCEPTED)

    summaries = invitations.list_invitations(admin.user_id, organization.organization_id)

    assert {s.email for s in summaries} == {"a@example.com", "b@example.com"}
    statuses = {s.email: s.invitation_status for s in summaries}
    assert statuses == {"a@example.com": "invited", "b@example.com": "accepted"}


def test_tokens_are_unique(invitations, verified_rto):
    organization, admin = verified_rto

    tokens = {
        _invite_student(invitations, organization, admin, email=f"s{i}@example.com").invitation_token
        for i in range(5)
    }

    assert len(tokens) == 5
