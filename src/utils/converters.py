"""Conversions between database models and schema objects."""

from datetime import datetime
from typing import Optional

import pytz

from models.contract import ContractModel
from models.notification import NotificationModel
from models.user import UserModel
from schemas.contract import Contract
from schemas.notification import Notification
from schemas.user import User


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string, the storage format for timestamps."""
    return datetime.now(pytz.utc).isoformat()


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored ISO timestamp into an aware datetime."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = pytz.utc.localize(parsed)
    return parsed


def model_to_user(model: UserModel) -> User:
    return User(
        user_id=model.user_id,
        email=model.email,
        first_name=model.first_name,
        last_name=model.last_name,
        role=model.role,
        status=model.status,
        verification_status=model.verification_status,
        verification_notes=model.verification_notes,
        verified_by=model.verified_by,
        verified_at=model.verified_at,
        invitation_status=model.invitation_status,
        invitation_token=model.invitation_token,
        invited_by=model.invited_by,
        invited_at=model.invited_at,
        accepted_at=model.accepted_at,
        organization_id=model.organization_id,
        organization_type=model.organization_type,
        can_access_dashboard=bool(model.can_access_dashboard),
        dashboard_activated_at=model.dashboard_activated_at,
        must_change_password=bool(model.must_change_password),
        email_verified=bool(model.email_verified),
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def model_to_contract(
    model: ContractModel,
    rto_name: Optional[str] = None,
    provider_name: Optional[str] = None,
) -> Contract:
    return Contract(
        contract_id=model.contract_id,
        rto_id=model.rto_id,
        provider_id=model.provider_id,
        rto_name=rto_name,
        provider_name=provider_name,
        title=model.title,
        description=model.description or "",
        contract_type=model.contract_type,
        status=model.status,
        start_date=model.start_date,
        end_date=model.end_date,
        max_students=model.max_students,
        placement_duration=model.placement_duration,
        rto_signed_by=model.rto_signed_by,
        rto_signed_at=model.rto_signed_at,
        provider_signed_by=model.provider_signed_by,
        provider_signed_at=model.provider_signed_at,
        notes=model.notes,
        created_by=model.created_by,
        created_at=model.created_at,
        updated_at=model.updated_at,
        version=model.version or 0,
    )


def model_to_notification(model: NotificationModel) -> Notification:
    return Notification(
        notification_id=model.notification_id,
        user_id=model.user_id,
        kind=model.kind,
        message=model.message,
        status=model.status,
        created_at=model.created_at,
        updated_at=model.updated_at,
        read_at=model.read_at,
        clicked_at=model.clicked_at,
    )
