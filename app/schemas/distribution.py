"""Request and response schemas for the lead distribution engine."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.core.exceptions import LeadDistributionError
from app.schemas.common import AssignmentMethod, SuccessResponse


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class BatchDistributeRequest(BaseModel):
    """Body of a batch distribution call; ``limit`` bounds the work done."""

    limit: Optional[int] = Field(None, ge=1, description="Max leads to process")


class RejectLeadRequest(BaseModel):
    agency_id: UUID
    reason: Optional[str] = Field(None, max_length=500)


class AssignLeadRequest(BaseModel):
    """Admin override: put a lead on a named agency, bypassing rotation."""

    agency_id: UUID
    reason: Optional[str] = Field(None, max_length=500)


class CapacityFilterRequest(BaseModel):
    agency_ids: List[UUID] = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class DistributionResult(BaseModel):
    """Outcome of distributing (or redistributing) one lead.

    Benign outcomes (``already_assigned``, ``no_eligible_agency``) come
    back with ``success=False`` and a ``reason`` instead of raising.
    """

    success: bool
    lead_id: UUID
    agency_id: Optional[UUID] = None
    agency_name: Optional[str] = None
    assignment_id: Optional[UUID] = None
    previous_agency_id: Optional[UUID] = None
    territory: Optional[str] = None
    distribution_method: Optional[AssignmentMethod] = None
    reason: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def failed(
        cls,
        lead_id: UUID,
        exc: LeadDistributionError,
        previous_agency_id: Optional[UUID] = None,
    ) -> "DistributionResult":
        return cls(
            success=False,
            lead_id=lead_id,
            reason=exc.reason,
            message=exc.detail,
            previous_agency_id=previous_agency_id,
        )


class BatchDistributionResult(BaseModel):
    total: int = 0
    successful: int = 0
    failed: int = 0
    assignments: List[DistributionResult] = Field(default_factory=list)
    errors: List[DistributionResult] = Field(default_factory=list)

    def record(self, outcome: DistributionResult) -> None:
        if outcome.success:
            self.successful += 1
            self.assignments.append(outcome)
        else:
            self.failed += 1
            self.errors.append(outcome)


class BatchDistributionResponse(SuccessResponse):
    message: str
    data: BatchDistributionResult


class AgencyCandidateOut(BaseModel):
    """An agency as seen by the pipeline for one lead or territory."""

    agency_id: UUID
    business_name: str
    industry: Optional[str] = None
    subscription_status: str
    priority: int
    territory_type: str
    territory_value: str
    current_leads: int
    max_leads: Optional[int] = None
    capacity_remaining: Optional[int] = None


class EligibleAgenciesResponse(BaseModel):
    territory: Optional[str] = None
    industry: Optional[str] = None
    agencies: List[AgencyCandidateOut] = Field(default_factory=list)


class AgencyCapacityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    agency_id: UUID
    business_name: str
    current_leads: int
    max_leads: Optional[int] = None
    capacity_remaining: Optional[int] = None


class CapacityFilterResponse(BaseModel):
    requested: int
    agencies: List[AgencyCapacityOut] = Field(default_factory=list)


class EligibilityReport(BaseModel):
    """Dry run of the eligibility stages for a stored lead."""

    lead_id: UUID
    lead_status: str
    territory: Optional[str] = None
    industry: Optional[str] = None
    owners_count: int = 0
    eligible_agencies: int = 0
    agencies_with_capacity: int = 0
    next_agency_id: Optional[UUID] = None
    agencies: List[AgencyCandidateOut] = Field(default_factory=list)


class AgencyDistributionStats(BaseModel):
    agency_id: UUID
    business_name: str
    leads_assigned: int
    active: int
    rejected: int
    last_assignment: Optional[datetime] = None


class CursorState(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    territory_type: str
    territory_value: str
    industry: str
    last_agency_id: Optional[UUID] = None
    rotation_index: int
    updated_at: Optional[datetime] = None


class DistributionStats(BaseModel):
    territory: Optional[str] = None
    total_agencies: int = 0
    eligible_agencies_count: int = 0
    assignments_count: int = 0
    active_assignments_count: int = 0
    rejections_count: int = 0
    reassignments_count: int = 0
    total_leads_distributed: int = 0
    by_agency: List[AgencyDistributionStats] = Field(default_factory=list)
    cursors: List[CursorState] = Field(default_factory=list)


class TerritoryConflictAgency(BaseModel):
    agency_id: UUID
    business_name: str
    priority: int
    state: Optional[str] = None


class TerritoryConflict(BaseModel):
    type: str
    value: str
    agency_count: int
    agencies: List[TerritoryConflictAgency]


class TerritoryConflictReport(BaseModel):
    conflicts: List[TerritoryConflict] = Field(default_factory=list)
    total_conflicts: int = 0
