from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    String,
    Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func, true

from app.core.constants import SUBSCRIPTION_STATUS_CHECK_CLAUSE
from app.models.base import Base


class Agency(Base):
    """Agency that buys territory rights and receives distributed leads.

    Subscription standing and the plan's lead limit are owned by the
    subscription-management side of the platform; the distribution engine
    only reads them and moves ``current_lead_count`` up or down as
    assignments are created, rejected, or superseded.  A ``max_leads`` of
    ``NULL`` means the plan is unlimited.
    """

    __tablename__ = "agencies"
    agency_id = Column(Uuid, primary_key=True, default=uuid4)
    business_name = Column(String(200), nullable=False)
    industry = Column(String(100))
    subscription_status = Column(
        String(20), nullable=False, default="trial", server_default="trial"
    )
    current_lead_count = Column(Integer, nullable=False, default=0, server_default="0")
    max_leads = Column(Integer)
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    territories = relationship("TerritoryOwnership", back_populates="agency")
    assignments = relationship("LeadAssignment", back_populates="agency")

    __table_args__ = (
        CheckConstraint(
            "current_lead_count >= 0", name="ck_agency_lead_count_nonneg"
        ),
        CheckConstraint(
            "max_leads IS NULL OR max_leads >= 0", name="ck_agency_max_leads_nonneg"
        ),
        CheckConstraint(
            SUBSCRIPTION_STATUS_CHECK_CLAUSE, name="ck_agency_subscription_status"
        ),
    )
