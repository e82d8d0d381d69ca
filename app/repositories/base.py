from typing import Any

from sqlalchemy import Update
from sqlalchemy.ext.asyncio import AsyncSession


class BaseRepository:
    """Thin base class that holds the database session.

    Every concrete repository receives an ``AsyncSession`` at
    construction time so that the distribution engine's repositories
    share one unit-of-work per lead.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    @property
    def dialect_name(self) -> str:
        """Name of the backing database dialect (``postgresql``, ``sqlite``)."""
        return self._db.get_bind().dialect.name

    async def _conditional_update(self, statement: Update, **values: Any) -> bool:
        """Run a guarded ``UPDATE`` and report whether any row matched.

        The WHERE clause carries the precondition, so check and write are
        one statement.  The ORM session is not synchronised; callers
        re-read rows they need afterwards.
        """
        result = await self._db.execute(
            statement.values(**values).execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def flush(self) -> None:
        """Flush pending changes without committing."""
        await self._db.flush()

    async def commit(self) -> None:
        """Commit the current transaction."""
        await self._db.commit()

    async def rollback(self) -> None:
        """Roll back the current transaction."""
        await self._db.rollback()
