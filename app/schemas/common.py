from enum import Enum
from pydantic import BaseModel


class LeadStatus(str, Enum):
    new = "new"
    assigned = "assigned"
    rejected = "rejected"
    reassigned = "reassigned"
    converted = "converted"
    lost = "lost"


class SubscriptionStatus(str, Enum):
    trial = "trial"
    active = "active"
    suspended = "suspended"
    cancelled = "cancelled"
    expired = "expired"


class TerritoryType(str, Enum):
    zipcode = "zipcode"
    city = "city"
    county = "county"
    state = "state"


class AssignmentStatus(str, Enum):
    active = "active"
    rejected = "rejected"
    reassigned = "reassigned"


class AssignmentMethod(str, Enum):
    round_robin = "round_robin"
    reassignment = "reassignment"
    admin_override = "admin_override"


class AuditAction(str, Enum):
    lead_assigned = "lead_assigned"
    lead_rejected = "lead_rejected"
    lead_reassigned = "lead_reassigned"


class SuccessResponse(BaseModel):
    """Generic success response base."""

    success: bool = True
