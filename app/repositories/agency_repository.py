from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func, or_, select, update

from app.models.agency import Agency
from app.models.assignment import LeadAssignment
from app.repositories.base import BaseRepository
from app.schemas.common import AssignmentStatus


class AgencyRepository(BaseRepository):
    """Encapsulates every SQL query that touches the ``agencies`` table."""

    async def get_by_id(self, agency_id: UUID) -> Optional[Agency]:
        """Return a single agency by primary key, or ``None``."""
        result = await self._db.execute(
            select(Agency)
            .where(Agency.agency_id == agency_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_many(self, agency_ids: Iterable[UUID]) -> List[Agency]:
        """Return the agencies in *agency_ids* (unknown ids are skipped)."""
        ids = list(agency_ids)
        if not ids:
            return []
        result = await self._db.execute(
            select(Agency)
            .where(Agency.agency_id.in_(ids))
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_all(self) -> List[Agency]:
        """Return every agency, ordered by business name."""
        result = await self._db.execute(
            select(Agency)
            .order_by(Agency.business_name, Agency.agency_id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def create(self, **kwargs) -> Agency:
        """Insert a new agency and return the model instance."""
        agency = Agency(**kwargs)
        self._db.add(agency)
        return agency

    async def try_increment_lead_count(self, agency_id: UUID) -> bool:
        """Take one unit of capacity for *agency_id*.

        The limit check and the increment are a single statement, so two
        concurrent assignments can never push the agency past
        ``max_leads``.  Returns ``False`` when the agency is full.
        """
        return await self._conditional_update(
            update(Agency).where(
                Agency.agency_id == agency_id,
                or_(
                    Agency.max_leads.is_(None),
                    Agency.current_lead_count < Agency.max_leads,
                ),
            ),
            current_lead_count=Agency.current_lead_count + 1,
        )

    async def decrement_lead_count(self, agency_id: UUID) -> bool:
        """Release one unit of capacity; never goes below zero."""
        return await self._conditional_update(
            update(Agency).where(
                Agency.agency_id == agency_id,
                Agency.current_lead_count > 0,
            ),
            current_lead_count=Agency.current_lead_count - 1,
        )

    async def count_active_assignments(self, agency_id: UUID) -> int:
        """Recount active assignment rows for *agency_id* from history."""
        result = await self._db.execute(
            select(func.count())
            .select_from(LeadAssignment)
            .where(
                LeadAssignment.agency_id == agency_id,
                LeadAssignment.status == AssignmentStatus.active.value,
            )
        )
        return result.scalar_one()
