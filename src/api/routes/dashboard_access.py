"""Dashboard access route used by the front end's redirect logic."""

from typing import Optional

from fastapi import APIRouter, Header, HTTPException, status

from core.dependencies import UserManagerDep
from schemas.access import AccessDecision
from utils.access_resolver import LOGIN_PATH, resolve_access

router = APIRouter(prefix="/api/dashboard-access", tags=["Access"])


@router.get(
    "",
    response_model=AccessDecision,
    response_model_exclude_none=True,
    summary="Check dashboard access",
)
def check_dashboard_access(
    user_manager: UserManagerDep,
    x_user_id: Optional[str] = Header(default=None, alias="X-User-ID"),
) -> AccessDecision:
    """Resolve whether the user named in the ``X-User-ID`` header may open their dashboard.

    The decision is recomputed from the stored user record on every call.
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User ID required",
        )
    user = user_manager.get_user_by_id(x_user_id)
    if user is None:
        return AccessDecision(
            can_access=False, redirect_to=LOGIN_PATH, reason="User not found"
        )
    return resolve_access(user)
