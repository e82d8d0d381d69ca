from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.constants import (
    ASSIGNMENT_METHOD_CHECK_CLAUSE,
    ASSIGNMENT_STATUS_CHECK_CLAUSE,
)
from app.models.base import Base

_ACTIVE_ONLY = text("status = 'active'")


class LeadAssignment(Base):
    """One lead bound to one agency at a point in time.

    History is kept: rejected and reassigned rows are never deleted.  A
    partial unique index allows at most one ``active`` row per lead, so
    the store itself refuses a second concurrent assignment.
    """

    __tablename__ = "lead_assignments"
    assignment_id = Column(Uuid, primary_key=True, default=uuid4)
    lead_id = Column(
        Uuid,
        ForeignKey("leads.lead_id", ondelete="CASCADE"),
        nullable=False,
    )
    agency_id = Column(
        Uuid,
        ForeignKey("agencies.agency_id", ondelete="CASCADE"),
        nullable=False,
    )
    status = Column(String(20), nullable=False, default="active")
    assignment_method = Column(String(20), nullable=False, default="round_robin")
    territory_type = Column(String(20))
    territory_value = Column(String(100))
    reason = Column(Text)
    assigned_at = Column(DateTime(timezone=True), server_default=func.now())
    rejected_at = Column(DateTime(timezone=True))
    reassigned_at = Column(DateTime(timezone=True))
    # Plain id: set before the superseding row is inserted
    superseded_by_id = Column(Uuid)

    lead = relationship("Lead", back_populates="assignments", foreign_keys=[lead_id])
    agency = relationship("Agency", back_populates="assignments")

    __table_args__ = (
        Index(
            "uq_lead_assignments_active_lead",
            "lead_id",
            unique=True,
            postgresql_where=_ACTIVE_ONLY,
            sqlite_where=_ACTIVE_ONLY,
        ),
        Index("idx_lead_assignments_agency_status", "agency_id", "status"),
        Index(
            "idx_lead_assignments_territory", "territory_type", "territory_value"
        ),
        CheckConstraint(ASSIGNMENT_STATUS_CHECK_CLAUSE, name="ck_assignment_status"),
        CheckConstraint(ASSIGNMENT_METHOD_CHECK_CLAUSE, name="ck_assignment_method"),
    )
