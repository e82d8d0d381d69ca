from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, Index, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

from app.models.base import Base


class DistributionAuditLog(Base):
    """Append-only record of assignment, rejection, and reassignment events.

    Ids are stored without foreign keys so entries outlive the rows they
    describe.
    """

    __tablename__ = "distribution_audit_logs"
    audit_id = Column(Uuid, primary_key=True, default=uuid4)
    action = Column(String(50), nullable=False)
    lead_id = Column(Uuid)
    agency_id = Column(Uuid)
    assignment_id = Column(Uuid)
    status = Column(String(20), nullable=False, default="success")
    message = Column(Text)
    details = Column(JSON().with_variant(JSONB(), "postgresql"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_distribution_audit_lead", "lead_id"),
        Index("idx_distribution_audit_action_created", "action", "created_at"),
    )
