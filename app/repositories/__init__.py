"""Repository layer – all database access goes through here.

Repositories encapsulate SQLAlchemy queries so that the distribution
services only contain selection and admission logic.
"""

from app.repositories.lead_repository import LeadRepository
from app.repositories.agency_repository import AgencyRepository
from app.repositories.territory_repository import TerritoryRepository
from app.repositories.assignment_repository import AssignmentRepository
from app.repositories.cursor_repository import CursorRepository
from app.repositories.audit_repository import AuditRepository
from app.repositories.stats_repository import StatsRepository

__all__ = [
    "LeadRepository",
    "AgencyRepository",
    "TerritoryRepository",
    "AssignmentRepository",
    "CursorRepository",
    "AuditRepository",
    "StatsRepository",
]
