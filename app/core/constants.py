from typing import FrozenSet, Tuple

from app.schemas.common import (
    AssignmentMethod,
    AssignmentStatus,
    LeadStatus,
    SubscriptionStatus,
    TerritoryType,
)


def _check_clause(column: str, values) -> str:
    return f"{column} IN ({', '.join(repr(v.value) for v in values)})"


LEAD_STATUSES: FrozenSet[str] = frozenset(s.value for s in LeadStatus)
LEAD_STATUS_CHECK_CLAUSE: str = _check_clause("status", LeadStatus)

# Statuses from which a lead may enter the distribution pipeline
DISTRIBUTABLE_STATUSES: FrozenSet[str] = frozenset(
    {LeadStatus.new.value, LeadStatus.rejected.value, LeadStatus.reassigned.value}
)

# Terminal states, set by downstream lead management, never distributed
TERMINAL_STATUSES: FrozenSet[str] = frozenset(
    {LeadStatus.converted.value, LeadStatus.lost.value}
)

ASSIGNMENT_STATUS_CHECK_CLAUSE: str = _check_clause("status", AssignmentStatus)
ASSIGNMENT_METHOD_CHECK_CLAUSE: str = _check_clause(
    "assignment_method", AssignmentMethod
)

# Subscription states that can receive leads
BILLABLE_SUBSCRIPTION_STATUSES: FrozenSet[str] = frozenset(
    {SubscriptionStatus.trial.value, SubscriptionStatus.active.value}
)
SUBSCRIPTION_STATUS_CHECK_CLAUSE: str = _check_clause(
    "subscription_status", SubscriptionStatus
)

# Most specific geography first
TERRITORY_PRECEDENCE: Tuple[TerritoryType, ...] = (
    TerritoryType.zipcode,
    TerritoryType.city,
    TerritoryType.county,
    TerritoryType.state,
)
TERRITORY_TYPE_CHECK_CLAUSE: str = _check_clause("type", TerritoryType)

MIN_TERRITORY_PRIORITY: int = 0
MAX_TERRITORY_PRIORITY: int = 10

# Cursor key component used when a lead carries no industry tag
ANY_INDUSTRY: str = ""

# Redis key prefix for cached distribution stats
STATS_CACHE_PREFIX: str = "distribution_stats"
