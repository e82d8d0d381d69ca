from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request

from app.api.deps import get_distribution_service, get_stats_service
from app.core.config import settings
from app.core.geography import Geography
from app.core.rate_limit import limiter
from app.schemas.common import TerritoryType
from app.schemas.distribution import (
    AssignLeadRequest,
    BatchDistributeRequest,
    BatchDistributionResponse,
    CapacityFilterRequest,
    CapacityFilterResponse,
    DistributionResult,
    DistributionStats,
    EligibilityReport,
    EligibleAgenciesResponse,
    RejectLeadRequest,
    TerritoryConflictReport,
)
from app.services.distribution_stats import DistributionStatsService
from app.services.lead_distribution import (
    LeadDistributionService,
    candidate_out,
    capacity_out,
)

router = APIRouter(prefix="/distribution", tags=["Distribution"])


@router.post("/leads/{lead_id}/distribute", response_model=DistributionResult)
async def distribute_lead(
    lead_id: UUID,
    service: LeadDistributionService = Depends(get_distribution_service),
) -> DistributionResult:
    """Distribute a single lead to the next eligible agency in its territory.

    Already-assigned leads and territories without an eligible agency
    return ``success: false`` with a ``reason`` rather than an error.
    """
    return await service.distribute_lead(lead_id)


@router.post("/batch", response_model=BatchDistributionResponse)
@limiter.limit(settings.BATCH_RATE_LIMIT)
async def batch_distribute(
    request: Request,
    request_body: Optional[BatchDistributeRequest] = None,
    service: LeadDistributionService = Depends(get_distribution_service),
) -> BatchDistributionResponse:
    """Distribute pending ``new`` leads, oldest first.

    Rate-limited per IP.  One lead failing does not stop the batch.
    """
    limit = request_body.limit if request_body is not None else None
    result = await service.batch_distribute(limit=limit)
    return BatchDistributionResponse(
        message=(
            f"Batch distribution completed: {result.successful} successful, "
            f"{result.failed} failed"
        ),
        data=result,
    )


@router.get("/eligible-agencies", response_model=EligibleAgenciesResponse)
async def find_eligible_agencies(
    zipcode: Optional[str] = Query(None, max_length=10),
    city: Optional[str] = Query(None, max_length=100),
    county: Optional[str] = Query(None, max_length=100),
    state: Optional[str] = Query(None, max_length=2),
    industry: Optional[str] = Query(None, max_length=100),
    service: LeadDistributionService = Depends(get_distribution_service),
) -> EligibleAgenciesResponse:
    """Agencies that own the given geography and may take the industry."""
    geography = Geography.from_lead(
        Geography(zipcode=zipcode, city=city, county=county, state=state)
    )
    shortlist = await service.eligible_shortlist(geography, industry)
    return EligibleAgenciesResponse(
        territory=str(shortlist.key) if shortlist.key else None,
        industry=industry,
        agencies=[candidate_out(c) for c in shortlist.eligible],
    )


@router.post("/capacity-filter", response_model=CapacityFilterResponse)
async def filter_by_subscription_limits(
    request_body: CapacityFilterRequest,
    service: LeadDistributionService = Depends(get_distribution_service),
) -> CapacityFilterResponse:
    """Keep only the given agencies that are below their plan's lead limit."""
    agencies = await service.filter_by_subscription_limits(request_body.agency_ids)
    return CapacityFilterResponse(
        requested=len(request_body.agency_ids),
        agencies=[capacity_out(a) for a in agencies],
    )


@router.put("/leads/{lead_id}/assign", response_model=DistributionResult)
async def assign_lead_to_agency(
    lead_id: UUID,
    request_body: AssignLeadRequest,
    service: LeadDistributionService = Depends(get_distribution_service),
) -> DistributionResult:
    """Admin override: assign a lead to a specific agency."""
    return await service.assign_lead_to_agency(
        lead_id, request_body.agency_id, request_body.reason
    )


@router.post("/leads/{lead_id}/reject", response_model=DistributionResult)
async def reject_lead(
    lead_id: UUID,
    request_body: RejectLeadRequest,
    service: LeadDistributionService = Depends(get_distribution_service),
) -> DistributionResult:
    """Record an agency's rejection and reassign the lead to another agency."""
    return await service.reject(lead_id, request_body.agency_id, request_body.reason)


@router.get("/stats", response_model=DistributionStats)
async def distribution_stats(
    territory: Optional[str] = Query(None, description="Territory value, e.g. 75201"),
    territory_type: Optional[TerritoryType] = Query(
        None, description="Type of the territory value; guessed when omitted"
    ),
    service: DistributionStatsService = Depends(get_stats_service),
) -> DistributionStats:
    return await service.get_distribution_stats(territory, territory_type)


@router.get("/leads/{lead_id}/eligibility", response_model=EligibilityReport)
async def test_distribution_eligibility(
    lead_id: UUID,
    service: DistributionStatsService = Depends(get_stats_service),
) -> EligibilityReport:
    """Dry run of the eligibility pipeline for a lead; nothing is written."""
    return await service.test_distribution_eligibility(lead_id)


@router.get("/territories/conflicts", response_model=TerritoryConflictReport)
async def territory_conflicts(
    service: DistributionStatsService = Depends(get_stats_service),
) -> TerritoryConflictReport:
    return await service.territory_conflicts()
