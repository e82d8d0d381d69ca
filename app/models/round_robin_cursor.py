from uuid import uuid4

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.sql import func

from app.models.base import Base


class RoundRobinCursor(Base):
    """Durable rotation pointer for one territory key.

    Keyed by ``(territory_type, territory_value, industry)``; ``industry``
    is the empty string for leads without an industry tag so the unique
    constraint still applies.  ``version`` is the compare-and-set guard:
    every advance bumps it, and an advance that does not find the version
    it read changes nothing.
    """

    __tablename__ = "round_robin_cursors"
    cursor_id = Column(Uuid, primary_key=True, default=uuid4)
    territory_type = Column(String(20), nullable=False)
    territory_value = Column(String(100), nullable=False)
    industry = Column(String(100), nullable=False, default="", server_default="")
    last_agency_id = Column(
        Uuid, ForeignKey("agencies.agency_id", ondelete="SET NULL")
    )
    rotation_index = Column(Integer, nullable=False, default=0, server_default="0")
    version = Column(Integer, nullable=False, default=0, server_default="0")
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint(
            "territory_type",
            "territory_value",
            "industry",
            name="uq_round_robin_cursor_key",
        ),
    )
