"""Read-only rollups over assignment history for operational dashboards."""

from typing import Any, Dict, List, Optional

from sqlalchemy import case, func, select

from app.models.agency import Agency
from app.models.assignment import LeadAssignment
from app.repositories.base import BaseRepository
from app.schemas.common import AssignmentStatus


class StatsRepository(BaseRepository):
    """Aggregate queries over ``lead_assignments``; never writes."""

    @staticmethod
    def _status_count(status: AssignmentStatus):
        return func.coalesce(
            func.sum(case((LeadAssignment.status == status.value, 1), else_=0)), 0
        )

    @staticmethod
    def _rejection_count():
        # Rejected rows are later marked reassigned; rejected_at survives that
        return func.count(LeadAssignment.rejected_at)

    async def status_counts(self, territory_value: Optional[str] = None) -> Dict[str, int]:
        """Return assignment counts per status, optionally for one territory."""
        query = select(
            func.count(LeadAssignment.assignment_id).label("total"),
            self._status_count(AssignmentStatus.active).label("active"),
            self._rejection_count().label("rejected"),
            self._status_count(AssignmentStatus.reassigned).label("reassigned"),
            func.count(func.distinct(LeadAssignment.lead_id)).label("leads"),
        )
        if territory_value is not None:
            query = query.where(LeadAssignment.territory_value == territory_value)
        row = (await self._db.execute(query)).one()
        return {
            "total": int(row.total or 0),
            "active": int(row.active or 0),
            "rejected": int(row.rejected or 0),
            "reassigned": int(row.reassigned or 0),
            "leads": int(row.leads or 0),
        }

    async def by_agency(self, territory_value: Optional[str] = None) -> List[Dict[str, Any]]:
        """Per-agency assignment breakdown, busiest agency first."""
        query = (
            select(
                LeadAssignment.agency_id,
                Agency.business_name,
                func.count(LeadAssignment.assignment_id).label("leads_assigned"),
                self._status_count(AssignmentStatus.active).label("active"),
                self._rejection_count().label("rejected"),
                func.max(LeadAssignment.assigned_at).label("last_assignment"),
            )
            .join(Agency, Agency.agency_id == LeadAssignment.agency_id)
            .group_by(LeadAssignment.agency_id, Agency.business_name)
            .order_by(
                func.count(LeadAssignment.assignment_id).desc(),
                Agency.business_name,
            )
        )
        if territory_value is not None:
            query = query.where(LeadAssignment.territory_value == territory_value)
        result = await self._db.execute(query)
        return [
            {
                "agency_id": row.agency_id,
                "business_name": row.business_name,
                "leads_assigned": int(row.leads_assigned),
                "active": int(row.active or 0),
                "rejected": int(row.rejected or 0),
                "last_assignment": row.last_assignment,
            }
            for row in result.all()
        ]
