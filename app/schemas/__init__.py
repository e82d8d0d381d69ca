"""Pydantic schemas package – re-exports for convenience."""

# Common enums
from app.schemas.common import (
    LeadStatus as LeadStatus,
    SubscriptionStatus as SubscriptionStatus,
    TerritoryType as TerritoryType,
    AssignmentStatus as AssignmentStatus,
    AssignmentMethod as AssignmentMethod,
    AuditAction as AuditAction,
    SuccessResponse as SuccessResponse,
)

# Distribution schemas
from app.schemas.distribution import (
    BatchDistributeRequest as BatchDistributeRequest,
    RejectLeadRequest as RejectLeadRequest,
    AssignLeadRequest as AssignLeadRequest,
    CapacityFilterRequest as CapacityFilterRequest,
    DistributionResult as DistributionResult,
    BatchDistributionResult as BatchDistributionResult,
    BatchDistributionResponse as BatchDistributionResponse,
    AgencyCandidateOut as AgencyCandidateOut,
    EligibleAgenciesResponse as EligibleAgenciesResponse,
    AgencyCapacityOut as AgencyCapacityOut,
    CapacityFilterResponse as CapacityFilterResponse,
    EligibilityReport as EligibilityReport,
    DistributionStats as DistributionStats,
    TerritoryConflictReport as TerritoryConflictReport,
)
