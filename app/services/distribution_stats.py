"""Read-only reporting over distribution history: stats, dry runs, conflicts."""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import CacheService, stats_cache_key
from app.core.config import settings
from app.core.exceptions import LeadNotFoundError
from app.core.geography import Geography, normalize_territory_filter
from app.repositories.agency_repository import AgencyRepository
from app.repositories.cursor_repository import CursorRepository
from app.repositories.lead_repository import LeadRepository
from app.repositories.stats_repository import StatsRepository
from app.repositories.territory_repository import TerritoryRepository
from app.schemas.common import TerritoryType
from app.schemas.distribution import (
    AgencyDistributionStats,
    CursorState,
    DistributionStats,
    EligibilityReport,
    TerritoryConflict,
    TerritoryConflictReport,
)
from app.services.capacity_gate import has_capacity
from app.services.eligibility import ineligibility_reason
from app.services.lead_distribution import LeadDistributionService, candidate_out
from app.services.round_robin import RoundRobinSelector

logger = logging.getLogger(__name__)


class DistributionStatsService:
    """Dashboards and dry runs.  Nothing here writes to the database."""

    def __init__(
        self, session: AsyncSession, cache: Optional[CacheService] = None
    ) -> None:
        self._cache: CacheService = cache or CacheService()
        self._leads = LeadRepository(session)
        self._agencies = AgencyRepository(session)
        self._territories = TerritoryRepository(session)
        self._stats = StatsRepository(session)
        self._cursors = CursorRepository(session)
        self._distribution = LeadDistributionService(session, self._cache)

    async def get_distribution_stats(
        self,
        territory: Optional[str] = None,
        territory_type: Optional[TerritoryType] = None,
    ) -> DistributionStats:
        """Assignment rollup, globally or for one territory value.

        *territory* is normalised like stored claims ("Dallas" matches the
        city claim "dallas", "75201-1234" matches "75201"); *territory_type*
        overrides the type guessed from the value.

        Results are cached for ``STATS_CACHE_TTL`` seconds and dropped
        whenever an assignment in the territory changes.
        """
        territory = normalize_territory_filter(
            territory, territory_type.value if territory_type else None
        )
        key = stats_cache_key(territory)
        cached = await self._cache.get_json(key)
        if cached is not None:
            logger.debug("Stats cache hit for %s", key)
            return DistributionStats.model_validate(cached)

        if territory:
            agencies = await self._territories.list_owner_agencies(territory)
        else:
            agencies = await self._agencies.list_all()
        eligible = [
            agency
            for agency in agencies
            if ineligibility_reason(agency, None) is None and has_capacity(agency)
        ]
        counts = await self._stats.status_counts(territory)
        by_agency = await self._stats.by_agency(territory)
        cursors = await self._cursors.list_for_territory(territory)

        stats = DistributionStats(
            territory=territory,
            total_agencies=len(agencies),
            eligible_agencies_count=len(eligible),
            assignments_count=counts["total"],
            active_assignments_count=counts["active"],
            rejections_count=counts["rejected"],
            reassignments_count=counts["reassigned"],
            total_leads_distributed=counts["leads"],
            by_agency=[AgencyDistributionStats(**row) for row in by_agency],
            cursors=[CursorState.model_validate(cursor) for cursor in cursors],
        )
        await self._cache.set_json(
            key, stats.model_dump(mode="json"), ttl=settings.STATS_CACHE_TTL
        )
        return stats

    async def test_distribution_eligibility(self, lead_id: UUID) -> EligibilityReport:
        """Report what the pipeline would see for a stored lead, without writing.

        ``next_agency_id`` previews the rotation; the real choice is made
        under the cursor lock and may differ if another lead is assigned
        first.
        """
        lead = await self._leads.get_by_id(lead_id)
        if lead is None:
            raise LeadNotFoundError(f"Lead {lead_id} not found")

        geography = Geography.from_lead(lead)
        report = EligibilityReport(
            lead_id=lead.lead_id,
            lead_status=lead.status,
            industry=lead.industry,
        )
        if geography.is_empty:
            return report

        shortlist = await self._distribution.shortlist(geography, lead.industry)
        report.territory = str(shortlist.key) if shortlist.key else None
        report.owners_count = len(shortlist.owners)
        report.eligible_agencies = len(shortlist.eligible)
        report.agencies_with_capacity = len(shortlist.available)
        report.agencies = [candidate_out(c) for c in shortlist.eligible]
        if shortlist.available:
            selector = RoundRobinSelector(self._cursors)
            chosen = await selector.select_next(shortlist.available, shortlist.key)
            report.next_agency_id = chosen.agency_id
        return report

    async def territory_conflicts(self) -> TerritoryConflictReport:
        """Every territory claimed by more than one live agency."""
        conflicts = [
            TerritoryConflict(**row) for row in await self._territories.find_conflicts()
        ]
        return TerritoryConflictReport(
            conflicts=conflicts, total_conflicts=len(conflicts)
        )
