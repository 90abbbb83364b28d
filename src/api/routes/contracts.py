"""Contract (MoU) routes."""

from typing import Optional

from fastapi import APIRouter, Query

from core.dependencies import ContractManagerDep
from schemas.contract import (
    ContractListResponse,
    ContractResponse,
    CreateContractRequest,
    CreateContractResponse,
    UpdateContractRequest,
)

router = APIRouter(prefix="/api/contracts", tags=["Contract"])


@router.post("", response_model=CreateContractResponse, summary="Create a contract")
def create_contract(
    req: CreateContractRequest,
    contract_manager: ContractManagerDep,
) -> CreateContractResponse:
    """Create a draft contract between a verified RTO and a verified provider.

    Returns 404 if either organization is missing and 403 if either is not
    verified.
    """
    contract = contract_manager.create_contract(
        req.rto_id, req.provider_id, req.terms(), req.created_by
    )
    return CreateContractResponse(contract_id=contract.contract_id, contract=contract)


@router.get("", response_model=ContractListResponse, summary="List contracts")
def list_contracts(
    contract_manager: ContractManagerDep,
    rto_id: Optional[str] = Query(default=None, alias="rtoId"),
    provider_id: Optional[str] = Query(default=None, alias="providerId"),
    status: Optional[str] = Query(default=None),
) -> ContractListResponse:
    return ContractListResponse(
        contracts=contract_manager.list_contracts(rto_id, provider_id, status)
    )


@router.get("/{contract_id}", response_model=ContractResponse, summary="Get a contract")
def get_contract(
    contract_id: str,
    contract_manager: ContractManagerDep,
) -> ContractResponse:
    return ContractResponse(contract=contract_manager.get_contract(contract_id))


@router.put("/{contract_id}", response_model=ContractResponse, summary="Sign or update a contract")
def update_contract(
    contract_id: str,
    req: UpdateContractRequest,
    contract_manager: ContractManagerDep,
) -> ContractResponse:
    """Apply a signature, a status change and/or notes.

    A signature that completes both parties activates the contract. All
    parts land in one write, so a rejected part leaves the contract unchanged.
    """
    contract = contract_manager.update_contract(
        contract_id,
        signed_by=req.signed_by,
        party=req.signature_type,
        status=req.status,
        notes=req.notes or None,
    )
    return ContractResponse(message="Contract updated successfully", contract=contract)
