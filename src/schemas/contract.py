"""Contract schema definitions."""

from datetime import date
from typing import List, Optional

from pydantic import Field, model_validator

from schemas.base import CamelModel
from schemas.status import ContractStatus, ContractType, SignatureParty


class Contract(CamelModel):
    contract_id: str = Field(alias="id")
    rto_id: str
    provider_id: str
    rto_name: Optional[str] = None
    provider_name: Optional[str] = None

    title: str
    description: str = ""
    contract_type: ContractType = ContractType.MOU
    status: ContractStatus

    start_date: str
    end_date: str
    max_students: Optional[int] = None
    placement_duration: Optional[int] = None

    rto_signed_by: Optional[str] = None
    rto_signed_at: Optional[str] = None
    provider_signed_by: Optional[str] = None
    provider_signed_at: Optional[str] = None

    notes: Optional[str] = None
    created_by: str
    created_at: str
    updated_at: str
    version: int = 0


class ContractTerms(CamelModel):
    """Negotiated terms of a new contract."""

    title: str = Field(min_length=1)
    description: str = ""
    contract_type: ContractType = ContractType.MOU
    start_date: date
    end_date: date
    max_students: Optional[int] = Field(default=None, ge=1)
    placement_duration: Optional[int] = Field(default=None, ge=1)


class CreateContractRequest(ContractTerms):
    rto_id: str = Field(min_length=1)
    provider_id: str = Field(min_length=1)
    created_by: str = Field(min_length=1)

    def terms(self) -> ContractTerms:
        return ContractTerms.model_validate(
            self.model_dump(include=set(ContractTerms.model_fields))
        )


class CreateContractResponse(CamelModel):
    message: str = "Contract created successfully"
    contract_id: str
    contract: Contract


class UpdateContractRequest(CamelModel):
    status: Optional[ContractStatus] = None
    signed_by: Optional[str] = None
    signature_type: Optional[SignatureParty] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_signature_pair(self) -> "UpdateContractRequest":
        if bool(self.signed_by) != bool(self.signature_type):
            raise ValueError("signedBy and signatureType must be given together")
        return self


class ContractResponse(CamelModel):
    message: Optional[str] = None
    contract: Contract


class ContractListResponse(CamelModel):
    contracts: List[Contract]
