"""Dependency injection module for FastAPI.

This module provides dependency injection functions for FastAPI routes.
Settings and the database live on ``app.state``; every manager is built per
request around a request-scoped DB session.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from config import Settings
from core.database import get_db
from utils import contract_manager
from utils import invitation_manager
from utils import notification_manager
from utils import user_manager
from utils import verification_manager


def get_settings(request: Request) -> Settings:
    """Get the Settings the application was created with."""
    return request.app.state.settings


SettingsDep = Annotated[Settings, Depends(get_settings)]
DBSessionDep = Annotated[Session, Depends(get_db)]


def get_user_manager(db: DBSessionDep, settings: SettingsDep) -> user_manager.UserManager:
    """Get UserManager instance with request-scoped DB session.

    Args:
        db: Database session.
        settings: Application settings.

    Returns:
        UserManager instance.
    """
    return user_manager.UserManager(db, bcrypt_rounds=settings.bcrypt_rounds)


def get_notification_manager(
    db: DBSessionDep,
) -> notification_manager.NotificationManager:
    """Get NotificationManager instance with request-scoped DB session."""
    return notification_manager.NotificationManager(db)


def get_verification_manager(
    db: DBSessionDep, settings: SettingsDep
) -> verification_manager.VerificationManager:
    """Get VerificationManager instance with request-scoped DB session."""
    return verification_manager.VerificationManager(
        db, strict=settings.strict_verification
    )


def get_invitation_manager(
    db: DBSessionDep, settings: SettingsDep
) -> invitation_manager.InvitationManager:
    """Get InvitationManager instance with request-scoped DB session."""
    return invitation_manager.InvitationManager(
        db,
        users=user_manager.UserManager(db, bcrypt_rounds=settings.bcrypt_rounds),
        expiry_days=settings.invitation_expiry_days,
    )


def get_contract_manager(
    db: DBSessionDep, settings: SettingsDep
) -> contract_manager.ContractManager:
    """Get ContractManager instance with request-scoped DB session."""
    return contract_manager.ContractManager(
        db, max_attempts=settings.contract_cas_max_attempts
    )


# Type aliases for dependency injection
UserManagerDep = Annotated[
    user_manager.UserManager, Depends(get_user_manager)
]
NotificationManagerDep = Annotated[
    notification_manager.NotificationManager, Depends(get_notification_manager)
]
VerificationManagerDep = Annotated[
    verification_manager.VerificationManager, Depends(get_verification_manager)
]
InvitationManagerDep = Annotated[
    invitation_manager.InvitationManager, Depends(get_invitation_manager)
]
ContractManagerDep = Annotated[
    contract_manager.ContractManager, Depends(get_contract_manager)
]
