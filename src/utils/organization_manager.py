"""Organization registry.

RTOs and host providers are plain records; whether an organization is
verified is decided by the verification status of its admin account.
"""

import logging
import secrets
from typing import Optional

from sqlalchemy.orm import Session

from core.exceptions import NotFoundError, ValidationError
from models.organization import OrganizationModel
from models.user import UserModel
from schemas.status import (
    ORG_ADMIN_ROLE_FOR_TYPE,
    OrganizationType,
    VerificationStatus,
)
from utils.converters import now_iso

logger = logging.getLogger(__name__)


class OrganizationManager:
    """Creates and looks up organizations."""

    def __init__(self, db: Session):
        self.db = db

    def create_organization(
        self, name: str, organization_type: OrganizationType, commit: bool = True
    ) -> OrganizationModel:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Organization name cannot be empty")
        model = OrganizationModel(
            organization_id=secrets.token_hex(8),
            name=name,
            organization_type=OrganizationType(organization_type).value,
            created_at=now_iso(),
        )
        self.db.add(model)
        if commit:
            self.db.commit()
            self.db.refresh(model)
        else:
            self.db.flush()
        logger.info("Created %s organization %s", model.organization_type, model.organization_id)
        return model

    def find_organization(
        self, organization_id: str, organization_type: Optional[OrganizationType] = None
    ) -> Optional[OrganizationModel]:
        query = self.db.query(OrganizationModel).filter(
            OrganizationModel.organization_id == organization_id
        )
        if organization_type is not None:
            query = query.filter(
                OrganizationModel.organization_type == OrganizationType(organization_type).value
            )
        return query.first()

    def get_organization(
        self, organization_id: str, organization_type: Optional[OrganizationType] = None
    ) -> OrganizationModel:
        """Get an organization, optionally requiring a specific type.

        Raises:
            NotFoundError: If no matching organization exists.
        """
        model = self.find_organization(organization_id, organization_type)
        if not model:
            entity = "Organization"
            if organization_type is not None:
                entity = "RTO" if OrganizationType(organization_type) == OrganizationType.RTO else "Provider"
            raise NotFoundError(entity, organization_id)
        return model

    def has_verified_admin(self, organization: OrganizationModel) -> bool:
        """Whether any admin of the organization is verified."""
        admin_role = ORG_ADMIN_ROLE_FOR_TYPE[OrganizationType(organization.organization_type)]
        return (
            self.db.query(UserModel)
            .filter(
                UserModel.organization_id == organization.organization_id,
                UserModel.role == admin_role.value,
                UserModel.verification_status == VerificationStatus.VERIFIED.value,
            )
            .first()
            is not None
        )
