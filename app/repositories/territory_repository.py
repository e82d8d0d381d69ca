from typing import Any, Dict, List, Sequence, Tuple

from sqlalchemy import and_, func, or_, select

from app.models.agency import Agency
from app.models.territory import TerritoryOwnership
from app.repositories.base import BaseRepository
from app.schemas.common import TerritoryType


class TerritoryRepository(BaseRepository):
    """Encapsulates queries against the ``territories`` ownership table."""

    @staticmethod
    def _live():
        return and_(
            TerritoryOwnership.is_active.is_(True),
            TerritoryOwnership.deleted_at.is_(None),
        )

    async def find_active_owners(
        self, lookups: Sequence[Tuple[TerritoryType, str]]
    ) -> List[Tuple[TerritoryOwnership, Agency]]:
        """Return live ownership rows matching any ``(type, value)`` pair.

        Each row comes back with its owning agency so the caller can
        filter without further queries.
        """
        if not lookups:
            return []
        matches = [
            and_(
                TerritoryOwnership.type == territory_type.value,
                TerritoryOwnership.value == value,
            )
            for territory_type, value in lookups
        ]
        result = await self._db.execute(
            select(TerritoryOwnership, Agency)
            .join(Agency, Agency.agency_id == TerritoryOwnership.agency_id)
            .where(self._live(), or_(*matches))
            .execution_options(populate_existing=True)
        )
        return [(row[0], row[1]) for row in result.all()]

    async def list_owner_agencies(self, territory_value: str) -> List[Agency]:
        """Agencies with a live claim on *territory_value* (any type)."""
        result = await self._db.execute(
            select(Agency)
            .join(
                TerritoryOwnership,
                TerritoryOwnership.agency_id == Agency.agency_id,
            )
            .where(self._live(), TerritoryOwnership.value == territory_value)
            .distinct()
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def find_conflicts(self) -> List[Dict[str, Any]]:
        """Return every ``(type, value)`` owned by more than one agency.

        Ordered by the number of competing agencies, then type and value.
        """
        contested = (
            select(
                TerritoryOwnership.type.label("type"),
                TerritoryOwnership.value.label("value"),
                func.count(func.distinct(TerritoryOwnership.agency_id)).label(
                    "agency_count"
                ),
            )
            .where(self._live())
            .group_by(TerritoryOwnership.type, TerritoryOwnership.value)
            .having(func.count(func.distinct(TerritoryOwnership.agency_id)) > 1)
            .subquery()
        )
        result = await self._db.execute(
            select(
                contested.c.type,
                contested.c.value,
                contested.c.agency_count,
                TerritoryOwnership.agency_id,
                TerritoryOwnership.priority,
                TerritoryOwnership.state,
                Agency.business_name,
            )
            .join(
                TerritoryOwnership,
                and_(
                    TerritoryOwnership.type == contested.c.type,
                    TerritoryOwnership.value == contested.c.value,
                ),
            )
            .join(Agency, Agency.agency_id == TerritoryOwnership.agency_id)
            .where(self._live())
            .order_by(
                contested.c.agency_count.desc(),
                contested.c.type,
                contested.c.value,
                TerritoryOwnership.priority.desc(),
                Agency.business_name,
            )
        )

        conflicts: Dict[Tuple[str, str], Dict[str, Any]] = {}
        for row in result.all():
            entry = conflicts.setdefault(
                (row.type, row.value),
                {
                    "type": row.type,
                    "value": row.value,
                    "agency_count": row.agency_count,
                    "agencies": [],
                },
            )
            entry["agencies"].append(
                {
                    "agency_id": row.agency_id,
                    "business_name": row.business_name,
                    "priority": row.priority,
                    "state": row.state,
                }
            )
        return list(conflicts.values())

    async def create(self, **kwargs) -> TerritoryOwnership:
        """Insert a new ownership row and return the model instance."""
        territory = TerritoryOwnership(**kwargs)
        self._db.add(territory)
        return territory
