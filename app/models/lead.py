from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.constants import LEAD_STATUS_CHECK_CLAUSE
from app.models.base import Base


class Lead(Base):
    """Incoming sales lead tied to a geography and an industry.

    Leads are created ``new`` by ingestion.  The distribution engine moves
    them to ``assigned`` / ``rejected`` and keeps ``assigned_agency_id`` in
    step with the single active assignment; ``converted`` and ``lost`` are
    set downstream and take the lead out of distribution.
    """

    __tablename__ = "leads"
    lead_id = Column(Uuid, primary_key=True, default=uuid4)
    zipcode = Column(String(10))
    city = Column(String(100))
    county = Column(String(100))
    state = Column(String(2))
    industry = Column(String(100))
    status = Column(String(20), nullable=False, default="new", server_default="new")
    assigned_agency_id = Column(
        Uuid, ForeignKey("agencies.agency_id", ondelete="SET NULL")
    )
    assigned_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    assigned_agency = relationship("Agency")
    assignments = relationship(
        "LeadAssignment",
        back_populates="lead",
        foreign_keys="[LeadAssignment.lead_id]",
        order_by="LeadAssignment.assigned_at",
    )

    __table_args__ = (
        Index("idx_leads_status_created", "status", "created_at"),
        CheckConstraint(LEAD_STATUS_CHECK_CLAUSE, name="ck_lead_status"),
    )
