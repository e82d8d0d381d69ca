from app.models.base import Base
from app.models.agency import Agency
from app.models.territory import TerritoryOwnership
from app.models.lead import Lead
from app.models.assignment import LeadAssignment
from app.models.round_robin_cursor import RoundRobinCursor
from app.models.audit_log import DistributionAuditLog

# Import event listeners to register them
from app.models import listeners  # noqa: F401

__all__ = [
    "Base",
    "Agency",
    "TerritoryOwnership",
    "Lead",
    "LeadAssignment",
    "RoundRobinCursor",
    "DistributionAuditLog",
]
