"""Plan capacity limits and the early capacity filter.

The filter here reads counters as loaded; the binding admission decision
is the conditional increment in :class:`AssignmentWriter`.
"""

from dataclasses import dataclass
from typing import List, Optional, Union

from app.models.agency import Agency
from app.services.territory_index import Candidate


@dataclass(frozen=True)
class Unlimited:
    """Plan without a lead limit."""

    max_leads: None = None

    def has_room(self, current: int) -> bool:
        return True

    def remaining(self, current: int) -> Optional[int]:
        return None


@dataclass(frozen=True)
class Bounded:
    """Plan capped at ``max_leads`` active leads."""

    max_leads: int

    def has_room(self, current: int) -> bool:
        return current < self.max_leads

    def remaining(self, current: int) -> Optional[int]:
        return max(self.max_leads - current, 0)


CapacityLimit = Union[Unlimited, Bounded]


def capacity_limit(agency: Agency) -> CapacityLimit:
    if agency.max_leads is None:
        return Unlimited()
    return Bounded(agency.max_leads)


def has_capacity(agency: Agency) -> bool:
    return capacity_limit(agency).has_room(agency.current_lead_count or 0)


def remaining_capacity(agency: Agency) -> Optional[int]:
    return capacity_limit(agency).remaining(agency.current_lead_count or 0)


def filter_by_capacity(candidates: List[Candidate]) -> List[Candidate]:
    """Drop candidates whose agency is at or above its plan limit."""
    return [candidate for candidate in candidates if has_capacity(candidate.agency)]
