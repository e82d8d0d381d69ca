from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select, update

from app.models.lead import Lead
from app.repositories.base import BaseRepository
from app.schemas.common import LeadStatus


class LeadRepository(BaseRepository):
    """Encapsulates every SQL query that touches the ``leads`` table."""

    async def get_by_id(self, lead_id: UUID) -> Optional[Lead]:
        """Return a single lead by primary key, or ``None``.

        Always re-reads the row so guarded updates issued earlier in the
        session are visible.
        """
        result = await self._db.execute(
            select(Lead)
            .where(Lead.lead_id == lead_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_unassigned(self, limit: int) -> List[Lead]:
        """Return up to *limit* ``new`` leads without an assignee, oldest first."""
        result = await self._db.execute(
            select(Lead)
            .where(
                Lead.status == LeadStatus.new.value,
                Lead.assigned_agency_id.is_(None),
            )
            .order_by(Lead.created_at, Lead.lead_id)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def create(self, **kwargs) -> Lead:
        """Insert a new lead and return the model instance."""
        lead = Lead(**kwargs)
        self._db.add(lead)
        return lead

    async def compare_and_set_assignee(
        self,
        lead_id: UUID,
        *,
        expected_statuses: Iterable[str],
        expected_agency_id: Optional[UUID],
        new_status: str,
        new_agency_id: Optional[UUID],
        assigned_at: Optional[datetime] = None,
    ) -> bool:
        """Move a lead to *new_status*/*new_agency_id* only if it is still
        in one of *expected_statuses* with *expected_agency_id*.

        Returns ``False`` when a concurrent writer changed the lead first.
        """
        if expected_agency_id is None:
            assignee_guard = Lead.assigned_agency_id.is_(None)
        else:
            assignee_guard = Lead.assigned_agency_id == expected_agency_id

        values = {"status": new_status, "assigned_agency_id": new_agency_id}
        if assigned_at is not None or new_agency_id is None:
            values["assigned_at"] = assigned_at

        return await self._conditional_update(
            update(Lead).where(
                Lead.lead_id == lead_id,
                Lead.status.in_(list(expected_statuses)),
                assignee_guard,
            ),
            **values,
        )
