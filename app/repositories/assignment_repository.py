"""Assignment repository – lead-assignment database operations."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update

from app.models.assignment import LeadAssignment
from app.repositories.base import BaseRepository
from app.schemas.common import AssignmentStatus


class AssignmentRepository(BaseRepository):
    """Encapsulates queries against the ``lead_assignments`` table."""

    async def get_by_id(self, assignment_id: UUID) -> Optional[LeadAssignment]:
        result = await self._db.execute(
            select(LeadAssignment)
            .where(LeadAssignment.assignment_id == assignment_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_active_for_lead(self, lead_id: UUID) -> Optional[LeadAssignment]:
        """Return the lead's active assignment, or ``None``."""
        result = await self._db.execute(
            select(LeadAssignment)
            .where(
                LeadAssignment.lead_id == lead_id,
                LeadAssignment.status == AssignmentStatus.active.value,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_for_lead(self, lead_id: UUID) -> List[LeadAssignment]:
        """Full assignment history of a lead, oldest first."""
        result = await self._db.execute(
            select(LeadAssignment)
            .where(LeadAssignment.lead_id == lead_id)
            .order_by(LeadAssignment.assigned_at)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def create(self, **kwargs) -> LeadAssignment:
        """Insert a new assignment record and flush it to obtain constraints."""
        assignment = LeadAssignment(**kwargs)
        self._db.add(assignment)
        await self._db.flush()
        return assignment

    async def mark_rejected(
        self, assignment_id: UUID, reason: Optional[str], at: datetime
    ) -> bool:
        """Flip an ``active`` assignment to ``rejected``."""
        return await self._conditional_update(
            update(LeadAssignment).where(
                LeadAssignment.assignment_id == assignment_id,
                LeadAssignment.status == AssignmentStatus.active.value,
            ),
            status=AssignmentStatus.rejected.value,
            rejected_at=at,
            reason=reason,
        )

    async def mark_reassigned(
        self, assignment_id: UUID, superseded_by_id: UUID, at: datetime
    ) -> bool:
        """Supersede an ``active`` or ``rejected`` assignment."""
        return await self._conditional_update(
            update(LeadAssignment).where(
                LeadAssignment.assignment_id == assignment_id,
                LeadAssignment.status.in_(
                    [AssignmentStatus.active.value, AssignmentStatus.rejected.value]
                ),
            ),
            status=AssignmentStatus.reassigned.value,
            reassigned_at=at,
            superseded_by_id=superseded_by_id,
        )
