import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from app.core.constants import ANY_INDUSTRY, TERRITORY_PRECEDENCE
from app.core.geography import Geography, TerritoryKey, normalize_industry
from app.models.agency import Agency
from app.repositories.territory_repository import TerritoryRepository
from app.schemas.common import TerritoryType

logger = logging.getLogger(__name__)

# Lower rank = more specific geography
_MATCH_RANK: Dict[TerritoryType, int] = {
    territory_type: rank for rank, territory_type in enumerate(TERRITORY_PRECEDENCE)
}

# Territory types whose rows may be scoped to a state
_STATE_SCOPED = (TerritoryType.city, TerritoryType.county)


@dataclass(frozen=True)
class Candidate:
    """An agency that owns part of a lead's geography."""

    agency: Agency
    priority: int
    territory_type: TerritoryType
    territory_value: str

    @property
    def agency_id(self) -> UUID:
        return self.agency.agency_id

    @property
    def match_rank(self) -> Tuple[int, int]:
        return _MATCH_RANK[self.territory_type], -self.priority


class TerritoryIndex:
    """Resolves a lead's geography to the agencies that own it."""

    def __init__(self, territory_repo: TerritoryRepository) -> None:
        self._territories = territory_repo

    async def resolve_owners(self, geography: Geography) -> List[Candidate]:
        """Return every live owner of the geography, most specific match first.

        An agency holding several matching rows (say the zipcode and the
        state) is returned once, tagged with its most specific match and,
        within that level, its highest priority.  An empty list is a normal
        result.
        """
        rows = await self._territories.find_active_owners(geography.lookups())

        best: Dict[UUID, Candidate] = {}
        for territory, agency in rows:
            territory_type = TerritoryType(territory.type)
            if (
                territory_type in _STATE_SCOPED
                and territory.state
                and territory.state != geography.state
            ):
                continue
            candidate = Candidate(
                agency=agency,
                priority=territory.priority,
                territory_type=territory_type,
                territory_value=territory.value,
            )
            current = best.get(agency.agency_id)
            if current is None or candidate.match_rank < current.match_rank:
                best[agency.agency_id] = candidate

        owners = sorted(best.values(), key=lambda c: (c.match_rank, c.agency_id))
        logger.debug(
            "Resolved %d owner(s) for geography %s", len(owners), geography
        )
        return owners

    @staticmethod
    def territory_key(
        owners: Sequence[Candidate], industry: Optional[str]
    ) -> Optional[TerritoryKey]:
        """Cursor key for a lead: its most specific owned level plus industry."""
        if not owners:
            return None
        most_specific = min(owners, key=lambda c: c.match_rank)
        return TerritoryKey(
            territory_type=most_specific.territory_type.value,
            territory_value=most_specific.territory_value,
            industry=normalize_industry(industry) or ANY_INDUSTRY,
        )
