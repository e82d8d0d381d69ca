from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select

from app.models.audit_log import DistributionAuditLog
from app.repositories.base import BaseRepository
from app.schemas.common import AuditAction


class AuditRepository(BaseRepository):
    """Append-only writes to ``distribution_audit_logs``."""

    async def record(
        self,
        action: AuditAction,
        *,
        lead_id: Optional[UUID] = None,
        agency_id: Optional[UUID] = None,
        assignment_id: Optional[UUID] = None,
        status: str = "success",
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> DistributionAuditLog:
        """Stage an audit entry in the current unit of work."""
        entry = DistributionAuditLog(
            action=action.value,
            lead_id=lead_id,
            agency_id=agency_id,
            assignment_id=assignment_id,
            status=status,
            message=message,
            details=details or {},
        )
        self._db.add(entry)
        return entry

    async def list_for_lead(self, lead_id: UUID) -> List[DistributionAuditLog]:
        result = await self._db.execute(
            select(DistributionAuditLog)
            .where(DistributionAuditLog.lead_id == lead_id)
            .order_by(DistributionAuditLog.created_at)
        )
        return list(result.scalars().all())
