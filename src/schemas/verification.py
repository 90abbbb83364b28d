"""Verification request/response schemas."""

from typing import List, Optional

from pydantic import Field

from schemas.base import CamelModel
from schemas.status import VerificationStatus
from schemas.user import User


class UpdateVerificationRequest(CamelModel):
    user_id: str = Field(min_length=1)
    verification_status: VerificationStatus
    verification_notes: Optional[str] = None
    admin_id: str = Field(min_length=1)


class UpdateVerificationResponse(CamelModel):
    message: str
    user: User


class VerificationTotals(CamelModel):
    pending: int = 0
    under_review: int = 0
    verified: int = 0
    rejected: int = 0
    suspended: int = 0
    total: int = 0


class VerificationOverview(CamelModel):
    """Org-admin accounts grouped by verification status."""

    pending_verification: List[User] = Field(default_factory=list)
    under_review: List[User] = Field(default_factory=list)
    verified: List[User] = Field(default_factory=list)
    rejected: List[User] = Field(default_factory=list)
    suspended: List[User] = Field(default_factory=list)
    totals: VerificationTotals = Field(default_factory=VerificationTotals)
