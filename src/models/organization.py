"""Organization database model (RTOs and host providers)."""

from sqlalchemy import Column, String
from .base import Base


class OrganizationModel(Base):
    """Organization database model."""

    __tablename__ = "organizations"

    organization_id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    organization_type = Column(String, index=True, nullable=False)  # 'rto' or 'provider'
    created_at = Column(String, nullable=False)
