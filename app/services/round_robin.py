"""Round-robin rotation over a territory's candidate agencies.

Candidates are put into a fixed order (territory priority descending, then
agency id ascending) and the rotation resumes strictly after the agency
recorded on the territory's persisted cursor.  When that agency has left
the candidate set the rotation restarts from the top, so fairness holds
even as eligibility shifts between calls.
"""

import logging
from typing import List, Optional, Sequence
from uuid import UUID

from app.core.exceptions import NoEligibleAgencyError
from app.core.geography import TerritoryKey
from app.repositories.cursor_repository import CursorRepository
from app.services.territory_index import Candidate

logger = logging.getLogger(__name__)


def fixed_order(candidates: Sequence[Candidate]) -> List[Candidate]:
    return sorted(candidates, key=lambda c: (-c.priority, c.agency_id))


def rotation_order(
    candidates: Sequence[Candidate], last_agency_id: Optional[UUID]
) -> List[Candidate]:
    """Return candidates in the order the rotation would visit them next."""
    ordered = fixed_order(candidates)
    start = 0
    for index, candidate in enumerate(ordered):
        if candidate.agency_id == last_agency_id:
            start = index + 1
            break
    start %= max(len(ordered), 1)
    return ordered[start:] + ordered[:start]


def select_next(
    candidates: Sequence[Candidate], last_agency_id: Optional[UUID]
) -> Candidate:
    order = rotation_order(candidates, last_agency_id)
    if not order:
        raise NoEligibleAgencyError()
    return order[0]


class RoundRobinSelector:
    """Reads a territory's cursor and previews the next agency in rotation.

    Previews do not lock or advance the cursor; the assignment writer
    repeats the selection under the cursor lock when it commits.
    """

    def __init__(self, cursor_repo: CursorRepository) -> None:
        self._cursors = cursor_repo

    async def last_agency_id(self, key: TerritoryKey) -> Optional[UUID]:
        cursor = await self._cursors.get(key)
        return cursor.last_agency_id if cursor is not None else None

    async def select_next(
        self, candidates: Sequence[Candidate], key: TerritoryKey
    ) -> Candidate:
        chosen = select_next(candidates, await self.last_agency_id(key))
        logger.debug("Next agency in rotation for %s is %s", key, chosen.agency_id)
        return chosen
