"""Contract (MoU) signature workflow.

A contract between an RTO and a provider starts as a draft, becomes pending
once the first party signs, and becomes active when both parties have
signed. Active contracts end as expired or terminated.

Each party's signature is a separate write, so the check "both signed,
activate" must not be split from the write that records the second
signature. Every update here is a conditional UPDATE on the row's
``version``: the new state is computed from a snapshot and only written if
no one else has written the contract since. A lost race re-reads the row
and re-applies the change.
"""

import logging
import secrets
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session

from config import CONTRACT_CAS_MAX_ATTEMPTS
from core.exceptions import (
    ConflictError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from models.contract import ContractModel
from models.organization import OrganizationModel
from schemas.contract import Contract, ContractTerms
from schemas.status import (
    TERMINAL_CONTRACT_STATUSES,
    ContractStatus,
    OrganizationType,
    SignatureParty,
    enum_value,
)
from utils.converters import model_to_contract, now_iso
from utils.notification_manager import NotificationManager
from utils.organization_manager import OrganizationManager

logger = logging.getLogger(__name__)

# Snapshot of the fields a transition reads, and the changes it writes
ContractSnapshot = Dict[str, Optional[str]]
Transition = Callable[[ContractSnapshot], Dict[str, Optional[str]]]

_SNAPSHOT_FIELDS = (
    "status",
    "rto_signed_by",
    "rto_signed_at",
    "provider_signed_by",
    "provider_signed_at",
    "version",
)

_PARTY_FIELDS = {
    SignatureParty.RTO: ("rto_signed_by", "rto_signed_at"),
    SignatureParty.PROVIDER: ("provider_signed_by", "provider_signed_at"),
}


def _fully_signed(state: ContractSnapshot) -> bool:
    return bool(state["rto_signed_at"]) and bool(state["provider_signed_at"])


def _parse_party(party: str) -> SignatureParty:
    try:
        return SignatureParty(party)
    except ValueError:
        raise ValidationError(
            f"Invalid signature party: {party}",
            {"allowed": [p.value for p in SignatureParty]},
        )


def _parse_status(status: str) -> ContractStatus:
    try:
        return ContractStatus(status)
    except ValueError:
        raise ValidationError(
            "Invalid contract status",
            {"allowed": [s.value for s in ContractStatus]},
        )


def _signature_changes(
    state: ContractSnapshot, party: SignatureParty, signer_id: str
) -> Dict[str, Optional[str]]:
    """Columns written by ``party`` signing; empty if that party already signed."""
    status = ContractStatus(state["status"])
    if status in TERMINAL_CONTRACT_STATUSES:
        raise ValidationError(
            f"Cannot sign a contract that is {status.value}",
            {"status": status.value},
        )
    by_field, at_field = _PARTY_FIELDS[party]
    if state[at_field]:
        return {}

    changes = {by_field: signer_id, at_field: now_iso()}
    if _fully_signed(dict(state, **changes)):
        changes["status"] = ContractStatus.ACTIVE.value
    elif status == ContractStatus.DRAFT:
        changes["status"] = ContractStatus.PENDING.value
    return changes


def _status_changes(
    state: ContractSnapshot, target: ContractStatus
) -> Dict[str, Optional[str]]:
    current = ContractStatus(state["status"])
    if current == target:
        return {}
    if current in TERMINAL_CONTRACT_STATUSES:
        raise ValidationError(
            f"Contract is {current.value} and can no longer change",
            {"status": current.value},
        )
    if target == ContractStatus.ACTIVE and not _fully_signed(state):
        raise ValidationError(
            "Contract can only become active once both parties have signed"
        )
    if target in (ContractStatus.DRAFT, ContractStatus.PENDING) and (
        current == ContractStatus.ACTIVE or _fully_signed(state)
    ):
        raise ValidationError(
            f"Cannot move a signed contract back to {target.value}",
            {"status": current.value},
        )
    if target == ContractStatus.DRAFT and current == ContractStatus.PENDING:
        raise ValidationError("Cannot move a pending contract back to draft")
    return {"status": target.value}


class ContractManager:
    """Creates contracts and applies signatures and status changes."""

    def __init__(
        self,
        db: Session,
        notifications: Optional[NotificationManager] = None,
        max_attempts: int = CONTRACT_CAS_MAX_ATTEMPTS,
    ):
        """Initialize ContractManager.

        Args:
            db: SQLAlchemy Session.
            notifications: Tracker used to announce activation.
            max_attempts: Compare-and-set attempts before raising ConflictError.
        """
        self.db = db
        self.notifications = notifications or NotificationManager(db)
        self.organizations = OrganizationManager(db)
        self.max_attempts = max_attempts

    # --- Queries ---

    def _organization_names(self, *organization_ids: str) -> Dict[str, str]:
        rows = (
            self.db.query(OrganizationModel.organization_id, OrganizationModel.name)
            .filter(OrganizationModel.organization_id.in_(organization_ids))
            .all()
        )
        return {org_id: name for org_id, name in rows}

    def _to_schema(self, model: ContractModel) -> Contract:
        names = self._organization_names(model.rto_id, model.provider_id)
        return model_to_contract(
            model,
            rto_name=names.get(model.rto_id, "Unknown RTO"),
            provider_name=names.get(model.provider_id, "Unknown Provider"),
        )

    def _get_model(self, contract_id: str) -> ContractModel:
        model = (
            self.db.query(ContractModel)
            .filter(ContractModel.contract_id == contract_id)
            .first()
        )
        if not model:
            raise NotFoundError("Contract", contract_id)
        return model

    def get_contract(self, contract_id: str) -> Contract:
        return self._to_schema(self._get_model(contract_id))

    def list_contracts(
        self,
        rto_id: Optional[str] = None,
        provider_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Contract]:
        """List contracts of an RTO and/or a provider, newest first.

        Raises:
            ValidationError: If neither organization is given or the status is invalid.
        """
        if not rto_id and not provider_id:
            raise ValidationError("Either rtoId or providerId is required")

        query = self.db.query(ContractModel)
        if rto_id:
            query = query.filter(ContractModel.rto_id == rto_id)
        if provider_id:
            query = query.filter(ContractModel.provider_id == provider_id)
        if status:
            try:
                status = ContractStatus(status)
            except ValueError:
                raise ValidationError(f"Invalid contract status: {status}")
            query = query.filter(ContractModel.status == status.value)
        models = query.order_by(ContractModel.created_at.desc()).all()
        return [self._to_schema(m) for m in models]

    # --- Creation ---

    def create_contract(
        self, rto_id: str, provider_id: str, terms: ContractTerms, created_by: str
    ) -> Contract:
        """Create a draft contract between a verified RTO and a verified provider.

        Args:
            rto_id: RTO party.
            provider_id: Provider party.
            terms: Title, dates and optional limits of the agreement.
            created_by: User ID of the creator.

        Returns:
            The created Contract in status ``draft``.

        Raises:
            NotFoundError: If either organization does not exist.
            PreconditionError: If either organization has no verified admin.
            ValidationError: If the end date precedes the start date.
        """
        if terms.end_date < terms.start_date:
            raise ValidationError(
                "endDate must not be before startDate",
                {"startDate": terms.start_date.isoformat(), "endDate": terms.end_date.isoformat()},
            )

        rto = self.organizations.get_organization(rto_id, OrganizationType.RTO)
        provider = self.organizations.get_organization(provider_id, OrganizationType.PROVIDER)
        if not self.organizations.has_verified_admin(rto):
            raise PreconditionError("RTO is not verified", {"rtoId": rto_id})
        if not self.organizations.has_verified_admin(provider):
            raise PreconditionError("Provider is not verified", {"providerId": provider_id})

        now = now_iso()
        model = ContractModel(
            contract_id=secrets.token_hex(8),
            rto_id=rto_id,
            provider_id=provider_id,
            title=terms.title,
            description=terms.description or "",
            contract_type=enum_value(terms.contract_type),
            status=ContractStatus.DRAFT.value,
            start_date=terms.start_date.isoformat(),
            end_date=terms.end_date.isoformat(),
            max_students=terms.max_students,
            placement_duration=terms.placement_duration,
            created_by=created_by,
            created_at=now,
            updated_at=now,
            version=0,
        )
        self.db.add(model)
        self.db.commit()
        self.db.refresh(model)
        logger.info(
            "Contract %s created between RTO %s and provider %s by %s",
            model.contract_id,
            rto_id,
            provider_id,
            created_by,
        )
        return self._to_schema(model)

    # --- Compare-and-set ---

    def _snapshot(self, contract_id: str) -> ContractSnapshot:
        row = (
            self.db.query(*(getattr(ContractModel, f) for f in _SNAPSHOT_FIELDS))
            .filter(ContractModel.contract_id == contract_id)
            .first()
        )
        if row is None:
            raise NotFoundError("Contract", contract_id)
        return dict(zip(_SNAPSHOT_FIELDS, row))

    def _compare_and_set(
        self, contract_id: str, transition: Transition
    ) -> Tuple[ContractSnapshot, Dict[str, Optional[str]]]:
        """Apply ``transition`` atomically against the latest contract state.

        ``transition`` receives a snapshot and returns the columns to change
        (an empty dict means nothing to do). It may raise to reject the
        change. The write only lands if the version is unchanged.

        Returns:
            Tuple of (snapshot the change was based on, applied changes).

        Raises:
            ConflictError: If every attempt lost a race.
        """
        for attempt in range(1, self.max_attempts + 1):
            state = self._snapshot(contract_id)
            changes = transition(state)
            if not changes:
                self.db.rollback()
                return state, {}

            changes["updated_at"] = now_iso()
            result = self.db.execute(
                update(ContractModel)
                .where(
                    ContractModel.contract_id == contract_id,
                    ContractModel.version == state["version"],
                )
                .values(version=state["version"] + 1, **changes)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                return state, changes

            self.db.rollback()
            logger.info(
                "Contract %s changed concurrently, retrying (attempt %d/%d)",
                contract_id,
                attempt,
                self.max_attempts,
            )
        raise ConflictError(
            "Contract was modified concurrently, please retry",
            {"contractId": contract_id},
        )

    # --- Signatures and status changes ---

    def update_contract(
        self,
        contract_id: str,
        signed_by: Optional[str] = None,
        party: Optional[str] = None,
        status: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Contract:
        """Apply a signature, a status change and notes as a single write.

        The status change is checked against the state the signature leaves
        behind. If any part is rejected nothing is written.

        Args:
            contract_id: Contract to update.
            signed_by: User ID of the signer; required with ``party``.
            party: ``rto`` or ``provider``.
            status: Target contract status.
            notes: Replacement free-text notes.

        Returns:
            The updated Contract.

        Raises:
            ValidationError: If nothing is requested, an argument is invalid,
                or a part of the change is not allowed.
            NotFoundError: If the contract does not exist.
            ConflictError: If the compare-and-set kept losing races.
        """
        if party is not None:
            party = _parse_party(party)
            if not signed_by:
                raise ValidationError("signedBy is required")
        target = _parse_status(status) if status is not None else None
        if party is None and target is None and notes is None:
            raise ValidationError("Nothing to update: give a signature, a status or notes")

        def apply_update(state: ContractSnapshot) -> Dict[str, Optional[str]]:
            changes: Dict[str, Optional[str]] = {}
            if party is not None:
                changes.update(_signature_changes(state, party, signed_by))
            if target is not None:
                changes.update(_status_changes(dict(state, **changes), target))
            if notes is not None:
                changes["notes"] = notes
            return changes

        state, changes = self._compare_and_set(contract_id, apply_update)
        if not changes:
            logger.info("Contract %s unchanged by update from %s", contract_id, signed_by)
            return self.get_contract(contract_id)

        signed = party is not None and _PARTY_FIELDS[party][1] in changes
        activated = signed and changes.get("status") == ContractStatus.ACTIVE.value
        if activated:
            self._announce_activation(contract_id, state, changes)
        self.db.commit()

        if signed:
            logger.info("Contract %s signed by %s for %s party", contract_id, signed_by, party.value)
        if "status" in changes:
            logger.info(
                "Contract %s status %s -> %s", contract_id, state["status"], changes["status"]
            )
        return self.get_contract(contract_id)

    def sign(self, contract_id: str, signer_id: str, party: str) -> Contract:
        """Record one party's signature.

        The first signature moves a draft to pending. The signature that
        completes both pairs activates the contract in the same write.
        Signing again for a party that already signed changes nothing.

        Raises:
            ValidationError: If the party is invalid or the contract is
                expired or terminated.
            NotFoundError: If the contract does not exist.
        """
        return self.update_contract(contract_id, signed_by=signer_id, party=party)

    def update_status(self, contract_id: str, new_status: str) -> Contract:
        """Change the contract status administratively.

        Allowed: draft to pending; any non-terminal status to expired or
        terminated; to active only when both parties have signed. Active
        contracts never return to draft or pending, and expired or
        terminated contracts are final.
        """
        return self.update_contract(contract_id, status=new_status)

    def set_notes(self, contract_id: str, notes: str) -> Contract:
        """Replace the free-text notes of a contract."""
        return self.update_contract(contract_id, notes=notes)

    def _announce_activation(
        self, contract_id: str, state: ContractSnapshot, changes: Dict[str, Optional[str]]
    ) -> None:
        signers = {
            changes.get("rto_signed_by") or state["rto_signed_by"],
            changes.get("provider_signed_by") or state["provider_signed_by"],
        }
        for user_id in sorted(s for s in signers if s):
            self.notifications.record(
                user_id,
                "contract_activated",
                "Both parties have signed the contract. It is now active.",
                commit=False,
            )
        logger.info("Contract %s activated", contract_id)
