"""Contract (MoU) database model."""

from sqlalchemy import Column, ForeignKey, Integer, String, Text
from .base import Base


class ContractModel(Base):
    """Placement agreement between one RTO and one provider."""

    __tablename__ = "contracts"

    contract_id = Column(String, primary_key=True, index=True)
    rto_id = Column(
        String, ForeignKey("organizations.organization_id"), index=True, nullable=False
    )
    provider_id = Column(
        String, ForeignKey("organizations.organization_id"), index=True, nullable=False
    )

    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    contract_type = Column(String, nullable=False, default="mou")
    status = Column(String, index=True, nullable=False, default="draft")

    start_date = Column(String, nullable=False)  # ISO date string
    end_date = Column(String, nullable=False)
    max_students = Column(Integer, nullable=True)
    placement_duration = Column(Integer, nullable=True)  # weeks

    rto_signed_by = Column(String, nullable=True)
    rto_signed_at = Column(String, nullable=True)
    provider_signed_by = Column(String, nullable=True)
    provider_signed_at = Column(String, nullable=True)

    notes = Column(Text, nullable=True)
    created_by = Column(String, nullable=False)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)

    # Bumped on every write; guards compare-and-set updates
    version = Column(Integer, nullable=False, default=0)
