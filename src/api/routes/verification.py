"""Organization admin verification routes."""

from fastapi import APIRouter

from core.dependencies import VerificationManagerDep
from schemas.verification import (
    UpdateVerificationRequest,
    UpdateVerificationResponse,
    VerificationOverview,
)

router = APIRouter(prefix="/api/verification", tags=["Verification"])


@router.get("", response_model=VerificationOverview, summary="List admins by verification status")
def get_verification_overview(
    verification_manager: VerificationManagerDep,
) -> VerificationOverview:
    return verification_manager.verification_overview()


@router.post("", response_model=UpdateVerificationResponse, summary="Update verification status")
def update_verification_status(
    req: UpdateVerificationRequest,
    verification_manager: VerificationManagerDep,
) -> UpdateVerificationResponse:
    """Verify, reject, suspend or reopen an organization admin.

    Args:
        req: Target user, new status, notes and the acting platform admin.
        verification_manager: Injected VerificationManager instance.

    Returns:
        UpdateVerificationResponse with the updated user.
    """
    user = verification_manager.set_verification_status(
        req.user_id,
        req.verification_status,
        req.admin_id,
        req.verification_notes,
    )
    return UpdateVerificationResponse(
        message="Verification status updated successfully", user=user
    )
