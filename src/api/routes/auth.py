"""Authentication routes.

This module handles HTTP endpoints for registration, login and the current
user's profile. Organization admins register themselves and then wait for
platform verification; subordinate users arrive through invitations.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

import pytz
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from core.dependencies import SettingsDep, UserManagerDep
from core.exceptions import PreconditionError
from schemas.status import Role
from schemas.user import (
    CurrentUserResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    User,
)
from utils.access_resolver import resolve_access

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

# HTTP Bearer token security
security = HTTPBearer()


def create_access_token(
    data: dict,
    secret_key: str,
    algorithm: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a JWT access token.

    Args:
        data: Data to encode in the token.
        secret_key: Signing key.
        algorithm: JWT signing algorithm.
        expires_delta: Optional expiration time delta.

    Returns:
        Encoded JWT token string.
    """
    to_encode = data.copy()
    expire = datetime.now(pytz.utc) + (expires_delta or timedelta(minutes=15))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, secret_key, algorithm=algorithm)


def verify_token(
    settings: SettingsDep,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """Verify JWT token from Authorization header.

    Raises:
        HTTPException: If token is invalid or expired.
    """
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )
    if payload.get("sub") is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )
    return payload


def get_current_user(
    user_manager: UserManagerDep,
    token_payload: dict = Depends(verify_token),
) -> User:
    """Get current authenticated user.

    Raises:
        HTTPException: If user is not found.
    """
    user = user_manager.get_user_by_id(token_payload["sub"])
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


@router.post("/register", response_model=RegisterResponse, summary="Register an account")
def register(
    req: RegisterRequest,
    user_manager: UserManagerDep,
    settings: SettingsDep,
) -> RegisterResponse:
    """Register a new user.

    Registration requirements:
    - Platform admin: requires ADMIN_TOKEN from the environment
    - RTO/provider admin: requires an organization name; starts pending verification
    - Student/supervisor/assessor: not allowed, these roles are invited
    """
    if req.role == Role.PLATFORM_ADMIN.value:
        if not settings.admin_token:
            logger.error("ADMIN_TOKEN is not set in environment variables")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Admin registration is not configured. ADMIN_TOKEN not set.",
            )
        if req.admin_token != settings.admin_token:
            logger.warning("Rejected platform admin registration with a wrong admin token")
            raise PreconditionError("Invalid admin token")

    user = user_manager.register(
        email=req.email,
        password=req.password,
        role=req.role,
        first_name=req.first_name,
        last_name=req.last_name,
        organization_name=req.organization_name,
    )
    return RegisterResponse(
        message="User registered successfully",
        user_id=user.user_id,
        organization_id=user.organization_id,
    )


@router.post("/login", response_model=LoginResponse, summary="Log in")
def login(
    req: LoginRequest,
    user_manager: UserManagerDep,
    settings: SettingsDep,
) -> LoginResponse:
    """Login with email and password.

    Blocked accounts can log in too; the returned access decision tells the
    front end where to send them.
    """
    user = user_manager.authenticate(req.email, req.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    access_token = create_access_token(
        data={"sub": user.user_id, "role": user.role},
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
    )
    return LoginResponse(user=user, token=access_token, access=resolve_access(user))


@router.get("/me", response_model=CurrentUserResponse, summary="Current user")
def get_current_user_info(
    current_user: User = Depends(get_current_user),
) -> CurrentUserResponse:
    """Get current authenticated user information and dashboard access."""
    return CurrentUserResponse(user=current_user, access=resolve_access(current_user))
