from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite

from app.core.geography import TerritoryKey
from app.models.round_robin_cursor import RoundRobinCursor
from app.repositories.base import BaseRepository

# Dialects whose INSERT supports ON CONFLICT DO NOTHING
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class CursorRepository(BaseRepository):
    """Persistence for per-territory round-robin cursors."""

    @staticmethod
    def _key_clause(key: TerritoryKey):
        return (
            RoundRobinCursor.territory_type == key.territory_type,
            RoundRobinCursor.territory_value == key.territory_value,
            RoundRobinCursor.industry == key.industry,
        )

    async def get(self, key: TerritoryKey) -> Optional[RoundRobinCursor]:
        """Read the cursor for *key* without locking it."""
        result = await self._db.execute(
            select(RoundRobinCursor)
            .where(*self._key_clause(key))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_for_update(self, key: TerritoryKey) -> RoundRobinCursor:
        """Return the cursor for *key*, creating it lazily, and lock the row.

        On PostgreSQL the ``FOR UPDATE`` lock serialises assignments in the
        same territory until the surrounding transaction ends.
        """
        await self._ensure(key)
        result = await self._db.execute(
            select(RoundRobinCursor)
            .where(*self._key_clause(key))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def _ensure(self, key: TerritoryKey) -> None:
        values = {
            "territory_type": key.territory_type,
            "territory_value": key.territory_value,
            "industry": key.industry,
        }
        insert = _UPSERT_INSERTS.get(self.dialect_name)
        if insert is not None:
            await self._db.execute(
                insert(RoundRobinCursor)
                .values(cursor_id=uuid4(), **values)
                .on_conflict_do_nothing(
                    index_elements=["territory_type", "territory_value", "industry"]
                )
            )
            return

        if await self.get(key) is not None:
            return
        self._db.add(RoundRobinCursor(**values))
        await self._db.flush()

    async def advance(
        self, cursor_id: UUID, expected_version: int, agency_id: UUID
    ) -> bool:
        """Compare-and-set the cursor onto *agency_id*.

        Succeeds only while the row still carries *expected_version*.
        """
        return await self._conditional_update(
            update(RoundRobinCursor).where(
                RoundRobinCursor.cursor_id == cursor_id,
                RoundRobinCursor.version == expected_version,
            ),
            last_agency_id=agency_id,
            rotation_index=RoundRobinCursor.rotation_index + 1,
            version=RoundRobinCursor.version + 1,
            updated_at=func.now(),
        )

    async def list_for_territory(
        self, territory_value: Optional[str] = None
    ) -> List[RoundRobinCursor]:
        query = select(RoundRobinCursor).order_by(
            RoundRobinCursor.territory_type,
            RoundRobinCursor.territory_value,
            RoundRobinCursor.industry,
        )
        if territory_value is not None:
            query = query.where(RoundRobinCursor.territory_value == territory_value)
        result = await self._db.execute(query)
        return list(result.scalars().all())
