import logging
from dataclasses import dataclass, field
from typing import Collection, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import CacheService
from app.core.config import settings
from app.core.constants import DISTRIBUTABLE_STATUSES, TERMINAL_STATUSES
from app.core.exceptions import (
    AgencyNotEligibleError,
    AgencyNotFoundError,
    AlreadyAssignedError,
    AssignmentNotFoundError,
    CapacityExceededError,
    InvalidLeadDataError,
    LeadDistributionError,
    LeadNotFoundError,
    NoEligibleAgencyError,
)
from app.core.geography import Geography, TerritoryKey
from app.models.agency import Agency
from app.models.assignment import LeadAssignment
from app.models.lead import Lead
from app.repositories.agency_repository import AgencyRepository
from app.repositories.assignment_repository import AssignmentRepository
from app.repositories.lead_repository import LeadRepository
from app.repositories.territory_repository import TerritoryRepository
from app.schemas.common import AssignmentMethod, AssignmentStatus
from app.schemas.distribution import (
    AgencyCandidateOut,
    AgencyCapacityOut,
    BatchDistributionResult,
    DistributionResult,
)
from app.services.assignment_writer import AssignmentWriter
from app.services.capacity_gate import (
    capacity_limit,
    filter_by_capacity,
    has_capacity,
    remaining_capacity,
)
from app.services.eligibility import filter_eligible, ineligibility_reason
from app.services.territory_index import Candidate, TerritoryIndex

logger = logging.getLogger(__name__)


@dataclass
class Shortlist:
    """Output of the read-only pipeline stages for one geography."""

    key: Optional[TerritoryKey]
    owners: List[Candidate] = field(default_factory=list)
    eligible: List[Candidate] = field(default_factory=list)
    available: List[Candidate] = field(default_factory=list)


def candidate_out(candidate: Candidate) -> AgencyCandidateOut:
    agency = candidate.agency
    return AgencyCandidateOut(
        agency_id=agency.agency_id,
        business_name=agency.business_name,
        industry=agency.industry,
        subscription_status=agency.subscription_status,
        priority=candidate.priority,
        territory_type=candidate.territory_type.value,
        territory_value=candidate.territory_value,
        current_leads=agency.current_lead_count or 0,
        max_leads=capacity_limit(agency).max_leads,
        capacity_remaining=remaining_capacity(agency),
    )


def capacity_out(agency: Agency) -> AgencyCapacityOut:
    return AgencyCapacityOut(
        agency_id=agency.agency_id,
        business_name=agency.business_name,
        current_leads=agency.current_lead_count or 0,
        max_leads=agency.max_leads,
        capacity_remaining=remaining_capacity(agency),
    )


class LeadDistributionService:
    """Routes leads to agencies: territory match, eligibility, capacity,
    round-robin selection, then a single-transaction assignment write.

    One instance works on one ``AsyncSession``; every write goes through
    :class:`AssignmentWriter`, which commits or rolls back per lead.
    """

    def __init__(
        self, session: AsyncSession, cache: Optional[CacheService] = None
    ) -> None:
        self._session = session
        self._cache: CacheService = cache or CacheService()
        self._leads = LeadRepository(session)
        self._agencies = AgencyRepository(session)
        self._assignments = AssignmentRepository(session)
        self._territories = TerritoryIndex(TerritoryRepository(session))
        self._writer = AssignmentWriter(session)

    # ------------------------------------------------------------------
    # Read-only stages
    # ------------------------------------------------------------------

    async def shortlist(
        self,
        geography: Geography,
        industry: Optional[str] = None,
        exclude_agency_ids: Collection[UUID] = (),
    ) -> Shortlist:
        """Run territory resolution, eligibility and the capacity prune."""
        owners = await self._territories.resolve_owners(geography)
        eligible = filter_eligible(owners, industry, exclude_agency_ids)
        return Shortlist(
            key=TerritoryIndex.territory_key(owners, industry),
            owners=owners,
            eligible=eligible,
            available=filter_by_capacity(eligible),
        )

    async def eligible_shortlist(
        self,
        geography: Geography,
        industry: Optional[str] = None,
        exclude_agency_ids: Collection[UUID] = (),
    ) -> Shortlist:
        """:meth:`shortlist` for caller-supplied geography, which must be non-empty."""
        if geography.is_empty:
            raise InvalidLeadDataError(
                "At least one of zipcode, city, county or state is required"
            )
        return await self.shortlist(geography, industry, exclude_agency_ids)

    async def find_eligible_agencies(
        self,
        geography: Geography,
        industry: Optional[str] = None,
        exclude_agency_ids: Collection[UUID] = (),
    ) -> List[Candidate]:
        """Agencies owning *geography* that may take a lead in *industry*.

        Capacity is not considered here; see
        :meth:`filter_by_subscription_limits`.
        """
        shortlist = await self.eligible_shortlist(
            geography, industry, exclude_agency_ids
        )
        return shortlist.eligible

    async def filter_by_subscription_limits(
        self, agency_ids: Iterable[UUID]
    ) -> List[Agency]:
        """Return the agencies in *agency_ids* still below their plan limit.

        Unknown ids are skipped.  Order follows *agency_ids*.
        """
        ids = list(dict.fromkeys(agency_ids))
        agencies = {a.agency_id: a for a in await self._agencies.get_many(ids)}
        return [
            agencies[agency_id]
            for agency_id in ids
            if agency_id in agencies and has_capacity(agencies[agency_id])
        ]

    # ------------------------------------------------------------------
    # Distribution
    # ------------------------------------------------------------------

    async def distribute_lead(self, lead_id: UUID) -> DistributionResult:
        """Assign one lead to the next eligible agency in its territory.

        A lead that is already assigned, or whose territory has no agency
        able to take it, yields ``success=False`` and is left untouched.

        Raises:
            LeadNotFoundError: *lead_id* does not exist.
            InvalidLeadDataError: The lead has no geography or is closed.
            PersistenceError: The assignment could not be written.
        """
        lead = await self._get_lead(lead_id)
        try:
            assignment, shortlist = await self._route(lead)
        except (AlreadyAssignedError, NoEligibleAgencyError) as exc:
            logger.info("Lead %s not distributed: %s", lead_id, exc.detail)
            return DistributionResult.failed(lead_id, exc)

        await self._cache.invalidate_stats(assignment.territory_value)
        return self._assigned(assignment, shortlist)

    async def batch_distribute(
        self,
        lead_ids: Optional[Iterable[UUID]] = None,
        limit: Optional[int] = None,
    ) -> BatchDistributionResult:
        """Distribute several leads, isolating each lead's failure.

        At most *limit* leads are processed.  When *lead_ids* is omitted the
        oldest unassigned ``new`` leads are taken.  A failure on one lead is
        recorded in its slot and never stops the rest of the batch.
        """
        limit = min(limit or settings.DEFAULT_BATCH_LIMIT, settings.MAX_BATCH_LIMIT)
        if lead_ids is None:
            pending = await self._leads.get_unassigned(limit)
            lead_ids = [lead.lead_id for lead in pending]
        else:
            lead_ids = list(lead_ids)[:limit]

        result = BatchDistributionResult(total=len(lead_ids))
        for lead_id in lead_ids:
            try:
                outcome = await self.distribute_lead(lead_id)
            except LeadDistributionError as exc:
                logger.warning(
                    "Batch distribution failed for lead %s: %s", lead_id, exc.detail
                )
                outcome = DistributionResult.failed(lead_id, exc)
            result.record(outcome)

        logger.info(
            "Batch distribution finished: %d total, %d assigned, %d failed",
            result.total,
            result.successful,
            result.failed,
        )
        return result

    # ------------------------------------------------------------------
    # Rejection and admin override
    # ------------------------------------------------------------------

    async def reject(
        self, lead_id: UUID, agency_id: UUID, reason: Optional[str] = None
    ) -> DistributionResult:
        """Record *agency_id*'s rejection and pass the lead to another agency.

        The rejection is committed first.  If no other agency can take the
        lead it stays ``rejected`` and the result carries
        ``reason="no_eligible_agency"``.

        Raises:
            LeadNotFoundError: *lead_id* does not exist.
            AssignmentNotFoundError: The agency holds no active assignment
                for the lead.
        """
        lead = await self._get_lead(lead_id)
        active = await self._assignments.get_active_for_lead(lead_id)
        if active is None or active.agency_id != agency_id:
            raise AssignmentNotFoundError(
                f"Agency {agency_id} has no active assignment for lead {lead_id}"
            )

        assignment_id = active.assignment_id
        territory_value = active.territory_value
        await self._writer.release(lead, active, reason)
        await self._cache.invalidate_stats(territory_value)

        rejected = await self._assignments.get_by_id(assignment_id)
        lead = await self._get_lead(lead_id)
        try:
            assignment, shortlist = await self._route(
                lead,
                exclude_agency_ids=(agency_id,),
                supersede=rejected,
                method=AssignmentMethod.reassignment,
                reason=reason,
            )
        except (AlreadyAssignedError, NoEligibleAgencyError) as exc:
            logger.info(
                "Rejected lead %s could not be reassigned: %s", lead_id, exc.detail
            )
            return DistributionResult.failed(lead_id, exc, previous_agency_id=agency_id)

        await self._cache.invalidate_stats(assignment.territory_value)
        return self._assigned(assignment, shortlist, previous_agency_id=agency_id)

    async def assign_lead_to_agency(
        self, lead_id: UUID, agency_id: UUID, reason: Optional[str] = None
    ) -> DistributionResult:
        """Admin override: give the lead to *agency_id* without rotation.

        The agency must still own the lead's territory, be eligible, and
        have capacity.  A current assignment to another agency is
        superseded.  The territory cursor still moves to *agency_id*.

        Raises:
            LeadNotFoundError, AgencyNotFoundError: Unknown ids.
            InvalidLeadDataError: The lead has no geography or is closed.
            AlreadyAssignedError: The lead is already with *agency_id*.
            AgencyNotEligibleError: The agency does not own the territory
                or is not eligible for the lead.
            CapacityExceededError: The agency is at its plan limit.
        """
        lead = await self._get_lead(lead_id)
        if await self._agencies.get_by_id(agency_id) is None:
            raise AgencyNotFoundError(f"Agency {agency_id} not found")
        self._check_open(lead)
        if lead.assigned_agency_id == agency_id:
            raise AlreadyAssignedError(
                f"Lead {lead_id} is already assigned to agency {agency_id}"
            )

        geography = self._geography(lead)
        owners = await self._territories.resolve_owners(geography)
        candidate = next((c for c in owners if c.agency_id == agency_id), None)
        if candidate is None:
            raise AgencyNotEligibleError(
                f"Agency {agency_id} does not own the territory of lead {lead_id}"
            )
        why_not = ineligibility_reason(candidate.agency, lead.industry)
        if why_not is not None:
            raise AgencyNotEligibleError(
                f"Agency {agency_id} is not eligible for lead {lead_id}: {why_not}"
            )
        if not has_capacity(candidate.agency):
            raise CapacityExceededError(
                f"Agency {agency_id} has reached its plan's lead limit"
            )

        previous = await self._current_assignment(lead_id)
        previous_agency_id = previous.agency_id if previous is not None else None
        previous_territory = previous.territory_value if previous is not None else None
        shortlist = Shortlist(
            key=TerritoryIndex.territory_key(owners, lead.industry),
            owners=owners,
            eligible=[candidate],
            available=[candidate],
        )
        assignment = await self._writer.assign(
            lead,
            [candidate],
            shortlist.key,
            method=AssignmentMethod.admin_override,
            rotate=False,
            supersede=previous,
            reason=reason,
        )
        await self._cache.invalidate_stats(
            previous_territory, assignment.territory_value
        )
        return self._assigned(
            assignment, shortlist, previous_agency_id=previous_agency_id
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _get_lead(self, lead_id: UUID) -> Lead:
        lead = await self._leads.get_by_id(lead_id)
        if lead is None:
            raise LeadNotFoundError(f"Lead {lead_id} not found")
        return lead

    @staticmethod
    def _check_open(lead: Lead) -> None:
        if lead.status in TERMINAL_STATUSES:
            raise InvalidLeadDataError(
                f"Lead {lead.lead_id} is {lead.status} and cannot be distributed"
            )

    @staticmethod
    def _geography(lead: Lead) -> Geography:
        geography = Geography.from_lead(lead)
        if geography.is_empty:
            raise InvalidLeadDataError(
                f"Lead {lead.lead_id} has no zipcode, city, county or state"
            )
        return geography

    async def _route(
        self,
        lead: Lead,
        *,
        exclude_agency_ids: Collection[UUID] = (),
        supersede: Optional[LeadAssignment] = None,
        method: AssignmentMethod = AssignmentMethod.round_robin,
        reason: Optional[str] = None,
    ):
        self._check_open(lead)
        if (
            lead.assigned_agency_id is not None
            or lead.status not in DISTRIBUTABLE_STATUSES
        ):
            raise AlreadyAssignedError(
                f"Lead {lead.lead_id} is already assigned to agency "
                f"{lead.assigned_agency_id}"
            )

        geography = self._geography(lead)
        shortlist = await self.shortlist(geography, lead.industry, exclude_agency_ids)
        if not shortlist.owners:
            raise NoEligibleAgencyError(
                f"No agency owns the territory of lead {lead.lead_id}"
            )
        if not shortlist.available:
            raise NoEligibleAgencyError(
                f"No eligible agency with capacity for lead {lead.lead_id} "
                f"in {shortlist.key}"
            )

        assignment = await self._writer.assign(
            lead,
            shortlist.available,
            shortlist.key,
            method=method,
            supersede=supersede,
            reason=reason,
        )
        return assignment, shortlist

    async def _current_assignment(self, lead_id: UUID) -> Optional[LeadAssignment]:
        """The active assignment or, failing that, the latest rejected one."""
        active = await self._assignments.get_active_for_lead(lead_id)
        if active is not None:
            return active
        for assignment in reversed(await self._assignments.list_for_lead(lead_id)):
            if assignment.status == AssignmentStatus.rejected.value:
                return assignment
        return None

    @staticmethod
    def _assigned(
        assignment: LeadAssignment,
        shortlist: Shortlist,
        previous_agency_id: Optional[UUID] = None,
    ) -> DistributionResult:
        names: Dict[UUID, str] = {
            c.agency_id: c.agency.business_name for c in shortlist.available
        }
        return DistributionResult(
            success=True,
            lead_id=assignment.lead_id,
            agency_id=assignment.agency_id,
            agency_name=names.get(assignment.agency_id),
            assignment_id=assignment.assignment_id,
            previous_agency_id=previous_agency_id,
            territory=str(shortlist.key),
            distribution_method=AssignmentMethod(assignment.assignment_method),
            reason=assignment.reason,
            message="Lead distributed successfully",
        )
