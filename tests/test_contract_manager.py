from datetime import date

import pytest
from sqlalchemy import update

from factories import make_org_admin, make_organization
from core.exceptions import ConflictError, NotFoundError, PreconditionError, ValidationError
from models.contract import ContractModel
from models.notification import NotificationModel
from schemas.contract import ContractTerms
from schemas.status import OrganizationType
from utils.contract_manager import ContractManager
from utils.converters import now_iso


def _terms(**overrides):
    fields = dict(
        title="Clinical placement MoU",
        start_date=date(2026, 1, 1),
        end_date=date(2026, 12, 31),
        max_students=10,
    )
    fields.update(overrides)
    return ContractTerms(**fields)


@pytest.fixture
def draft(contracts, verified_rto, verified_provider):
    rto, rto_admin = verified_rto
    provider, _ = verified_provider
    return contracts.create_contract(
        rto.organization_id, provider.organization_id, _terms(), rto_admin.user_id
    )


def test_create_contract_starts_as_draft(draft, verified_rto, verified_provider):
    rto, _ = verified_rto
    provider, _ = verified_provider

    assert draft.status == "draft"
    assert draft.version == 0
    assert draft.rto_name == rto.name
    assert draft.provider_name == provider.name
    assert draft.rto_signed_at is None
    assert draft.provider_signed_at is None


def test_create_requires_verified_provider(db, contracts, verified_rto):
    rto, rto_admin = verified_rto
    provider, _ = make_org_admin(db, OrganizationType.PROVIDER, verification_status="pending")

    with pytest.raises(PreconditionError) as exc_info:
        contracts.create_contract(rto.organization_id, provider.organization_id, _terms(), rto_admin.user_id)

    assert exc_info.value.message == "Provider is not verified"
    assert db.query(ContractModel).count() == 0


def test_create_requires_verified_rto(db, contracts, verified_provider):
    provider, provider_admin = verified_provider
    rto = make_organization(db, OrganizationType.RTO)

    with pytest.raises(PreconditionError) as exc_info:
        contracts.create_contract(rto.organization_id, provider.organization_id, _terms(), provider_admin.user_id)

    assert exc_info.value.message == "RTO is not verified"


def test_create_with_missing_organization(contracts, verified_rto):
    rto, rto_admin = verified_rto

    with pytest.raises(NotFoundError) as exc_info:
        contracts.create_contract(rto.organization_id, "missing", _terms(), rto_admin.user_id)

    assert exc_info.value.entity == "Provider"


def test_organization_type_is_checked(contracts, verified_rto):
    rto, rto_admin = verified_rto

    with pytest.raises(NotFoundError):
        contracts.create_contract(rto.organization_id, rto.organization_id, _terms(), rto_admin.user_id)


def test_end_date_before_start_date(contracts, verified_rto, verified_provider):
    rto, rto_admin = verified_rto
    provider, _ = verified_provider

    with pytest.raises(ValidationError):
        contracts.create_contract(
            rto.organization_id,
            provider.organization_id,
            _terms(start_date=date(2026, 6, 1), end_date=date(2026, 5, 1)),
            rto_admin.user_id,
        )


def test_two_signatures_activate(contracts, draft, verified_rto, verified_provider):
    _, rto_admin = verified_rto
    _, provider_admin = verified_provider

    first = contracts.sign(draft.contract_id, rto_admin.user_id, "rto")
    assert first.status == "pending"
    assert first.rto_signed_by == rto_admin.user_id
    assert first.rto_signed_at is not None

    second = contracts.sign(draft.contract_id, provider_admin.user_id, "provider")
    assert second.status == "active"
    assert second.provider_signed_by == provider_admin.user_id
    assert second.version == 2


def test_signing_order_does_not_matter(contracts, draft, verified_rto, verified_provider):
    _, rto_admin = verified_rto
    _, provider_admin = verified_provider

    contracts.sign(draft.contract_id, provider_admin.user_id, "provider")
    contract = contracts.sign(draft.contract_id, rto_admin.user_id, "rto")

    assert contract.status == "active"


def test_resigning_is_a_no_op(contracts, draft, verified_rto):
    _, rto_admin = verified_rto
    first = contracts.sign(draft.contract_id, rto_admin.user_id, "rto")

    again = contracts.sign(draft.contract_id, "someone-else", "rto")

    assert again.status == "pending"
    assert again.rto_signed_by == rto_admin.user_id
    assert again.rto_signed_at == first.rto_signed_at
    assert again.version == first.version


def test_invalid_party(contracts, draft):
    with pytest.raises(ValidationError):
        contracts.sign(draft.contract_id, "user-1", "platform")


def test_sign_unknown_contract(contracts):
    with pytest.raises(NotFoundError):
        contracts.sign("missing", "user-1", "rto")


@pytest.mark.parametrize("terminal", ["terminated", "expired"])
def test_terminal_contract_cannot_be_signed(contracts, draft, verified_rto, terminal):
    _, rto_admin = verified_rto
    contracts.update_status(draft.contract_id, terminal)

    with pytest.raises(ValidationError):
        contracts.sign(draft.contract_id, rto_admin.user_id, "rto")

    contract = contracts.get_contract(draft.contract_id)
    assert contract.status == terminal
    assert contract.rto_signed_at is None


def test_activation_notifies_both_signers(db, contracts, draft, verified_rto, verified_provider):
    _, rto_admin = verified_rto
    _, provider_admin = verified_provider

    contracts.sign(draft.contract_id, rto_admin.user_id, "rto")
    contracts.sign(draft.contract_id, provider_admin.user_id, "provider")

    recipients = {
        n.user_id
        for n in db.query(NotificationModel).filter(NotificationModel.kind == "contract_activated")
    }
    assert recipients == {rto_admin.user_id, provider_admin.user_id}


def test_concurrent_signature_is_not_lost(db, contracts, draft, verified_rto, verified_provider, monkeypatch):
    """The other party signs between our read and our write."""
    _, rto_admin = verified_rto
    _, provider_admin = verified_provider
    real_snapshot = ContractManager._snapshot
    calls = []

    def racing_snapshot(self, contract_id):
        state = real_snapshot(self, contract_id)
        if not calls:
            db.execute(
                update(ContractModel)
                .where(ContractModel.contract_id == contract_id)
                .values(
                    provider_signed_by=provider_admin.user_id,
                    provider_signed_at=now_iso(),
                    status="pending",
                    version=ContractModel.version + 1,
                )
            )
            db.commit()
        calls.append(state)
        return state

    monkeypatch.setattr(ContractManager, "_snapshot", racing_snapshot)

    contract = contracts.sign(draft.contract_id, rto_admin.user_id, "rto")

    assert len(calls) == 2
    assert contract.status == "active"
    assert contract.rto_signed_by == rto_admin.user_id
    assert contract.provider_signed_by == provider_admin.user_id


def test_persistent_races_raise_conflict(db, notifications, draft, verified_rto, monkeypatch):
    _, rto_admin = verified_rto
    manager = ContractManager(db, notifications=notifications, max_attempts=3)
    real_snapshot = ContractManager._snapshot
    calls = []

    def always_stale(self, contract_id):
        state = real_snapshot(self, contract_id)
        db.execute(
            update(ContractModel)
            .where(ContractModel.contract_id == contract_id)
            .values(version=ContractModel.version + 1)
        )
        db.commit()
        calls.append(state)
        return state

    monkeypatch.setattr(ContractManager, "_snapshot", always_stale)

    with pytest.raises(ConflictError):
        manager.sign(draft.contract_id, rto_admin.user_id, "rto")
    assert len(calls) == 3


def test_active_requires_both_signatures(contracts, draft, verified_rto):
    _, rto_admin = verified_rto
    contracts.sign(draft.contract_id, rto_admin.user_id, "rto")

    with pytest.raises(ValidationError):
        contracts.update_status(draft.contract_id, "active")


def test_active_contract_cannot_go_back(contracts, draft, verified_rto, verified_provider):
    _, rto_admin = verified_rto
    _, provider_admin = verified_provider
    contracts.sign(draft.contract_id, rto_admin.user_id, "rto")
    contracts.sign(draft.contract_id, provider_admin.user_id, "provider")

    for target in ("draft", "pending"):
        with pytest.raises(ValidationError):
            contracts.update_status(draft.contract_id, target)

    assert contracts.update_status(draft.contract_id, "terminated").status == "terminated"


def test_pending_cannot_return_to_draft(contracts, draft):
    contracts.update_status(draft.contract_id, "pending")

    with pytest.raises(ValidationError):
        contracts.update_status(draft.contract_id, "draft")


def test_terminal_status_is_final(contracts, draft):
    contracts.update_status(draft.contract_id, "expired")

    with pytest.raises(ValidationError):
        contracts.update_status(draft.contract_id, "terminated")


def test_same_status_is_a_no_op(contracts, draft):
    contract = contracts.update_status(draft.contract_id, "draft")

    assert contract.version == draft.version


def test_invalid_status(contracts, draft):
    with pytest.raises(ValidationError):
        contracts.update_status(draft.contract_id, "signed")


def test_set_notes(contracts, draft):
    contract = contracts.set_notes(draft.contract_id, "Awaiting insurance certificate")

    assert contract.notes == "Awaiting insurance certificate"
    assert contract.version == draft.version + 1


def test_list_contracts(contracts, draft, verified_rto, verified_provider):
    rto, rto_admin = verified_rto
    provider, _ = verified_provider

    assert [c.contract_id for c in contracts.list_contracts(rto_id=rto.organization_id)] == [draft.contract_id]
    assert contracts.list_contracts(provider_id=provider.organization_id, status="active") == []
    assert len(contracts.list_contracts(provider_id=provider.organization_id, status="draft")) == 1

    with pytest.raises(ValidationError):
        contracts.list_contracts()
    with pytest.raises(ValidationError):
        contracts.list_contracts(rto_id=rto.organization_id, status="bogus")


def test_rejected_status_change_discards_signature(contracts, draft, verified_rto):
    _, rto_admin = verified_rto

    with pytest.raises(ValidationError):
        contracts.update_contract(
            draft.contract_id, signed_by=rto_admin.user_id, party="rto", status="draft"
        )

    contract = contracts.get_contract(draft.contract_id)
    assert contract.status == "draft"
    assert contract.rto_signed_by is None
    assert contract.version == draft.version


def test_signature_status_and_notes_in_one_write(contracts, draft, verified_rto, verified_provider):
    _, rto_admin = verified_rto
    _, provider_admin = verified_provider
    contracts.sign(draft.contract_id, provider_admin.user_id, "provider")

    contract = contracts.update_contract(
        draft.contract_id,
        signed_by=rto_admin.user_id,
        party="rto",
        status="active",
        notes="Countersigned on site",
    )

    assert contract.status == "active"
    assert contract.rto_signed_by == rto_admin.user_id
    assert contract.notes == "Countersigned on site"
    assert contract.version == 2


def test_update_without_changes_rejected(contracts, draft):
    with pytest.raises(ValidationError):
        contracts.update_contract(draft.contract_id)
