from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func, true

from app.core.constants import TERRITORY_TYPE_CHECK_CLAUSE
from app.models.base import Base


class TerritoryOwnership(Base):
    """An agency's claim on one geography unit (zipcode, city, county, state).

    ``value`` is stored normalised (5-digit zipcode, lower-case city and
    county, upper-case state code).  City and county rows may carry a
    ``state`` qualifier so that e.g. *Springfield, IL* does not match a
    lead in Springfield, MO.  Several agencies may own the same
    ``(type, value)``; ``priority`` (0–10, higher wins) orders them.
    Rows are soft-deleted through ``deleted_at``.
    """

    __tablename__ = "territories"
    territory_id = Column(Uuid, primary_key=True, default=uuid4)
    agency_id = Column(
        Uuid,
        ForeignKey("agencies.agency_id", ondelete="CASCADE"),
        nullable=False,
    )
    type = Column(String(20), nullable=False, default="zipcode")
    value = Column(String(100), nullable=False)
    state = Column(String(2))
    priority = Column(Integer, nullable=False, default=0, server_default="0")
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    deleted_at = Column(DateTime(timezone=True))

    agency = relationship("Agency", back_populates="territories")

    __table_args__ = (
        Index("idx_territories_type_value", "type", "value"),
        Index("idx_territories_agency", "agency_id"),
        CheckConstraint(TERRITORY_TYPE_CHECK_CLAUSE, name="ck_territory_type"),
        CheckConstraint("priority BETWEEN 0 AND 10", name="ck_territory_priority"),
    )
