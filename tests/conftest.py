from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, AsyncGenerator, Optional
from unittest.mock import AsyncMock
from uuid import uuid4

if TYPE_CHECKING:
    from app.core.cache import CacheService

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.rate_limit import limiter
from app.main import app
from app.models import Agency, Base, Lead, TerritoryOwnership

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

_BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite engine with the full distribution schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    session_maker = async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Yield an ``httpx.AsyncClient`` wired to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Give every test a fresh rate-limit window."""
    limiter.reset()
    yield


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Return an ``AsyncMock`` that behaves like ``redis.asyncio.Redis``."""
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock()
    redis.setex = AsyncMock()
    redis.delete = AsyncMock()
    redis.ping = AsyncMock()
    return redis


@pytest.fixture
def mock_cache(mock_redis) -> "CacheService":
    """Return a ``CacheService`` backed by the mock Redis client."""
    from app.core.cache import CacheService

    return CacheService(redis_client=mock_redis)


# ---------------------------------------------------------------------------
# Row builders
# ---------------------------------------------------------------------------


class MarketplaceFactory:
    """Creates agencies, territory claims and leads in the test database."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._lead_seq = 0

    async def agency(
        self,
        name: str = "Agency",
        *,
        industry: Optional[str] = "roofing",
        subscription_status: str = "active",
        max_leads: Optional[int] = None,
        current_lead_count: int = 0,
        is_active: bool = True,
    ) -> Agency:
        agency = Agency(
            agency_id=uuid4(),
            business_name=name,
            industry=industry,
            subscription_status=subscription_status,
            max_leads=max_leads,
            current_lead_count=current_lead_count,
            is_active=is_active,
        )
        self.session.add(agency)
        await self.session.commit()
        return agency

    async def territory(
        self,
        agency: Agency,
        value: str,
        *,
        type: str = "zipcode",
        state: Optional[str] = None,
        priority: int = 0,
        is_active: bool = True,
        deleted_at: Optional[datetime] = None,
    ) -> TerritoryOwnership:
        territory = TerritoryOwnership(
            territory_id=uuid4(),
            agency_id=agency.agency_id,
            type=type,
            value=value,
            state=state,
            priority=priority,
            is_active=is_active,
            deleted_at=deleted_at,
        )
        self.session.add(territory)
        await self.session.commit()
        return territory

    async def lead(
        self,
        zipcode: Optional[str] = "75201",
        *,
        city: Optional[str] = None,
        county: Optional[str] = None,
        state: Optional[str] = None,
        industry: Optional[str] = "roofing",
        status: str = "new",
    ) -> Lead:
        self._lead_seq += 1
        lead = Lead(
            lead_id=uuid4(),
            zipcode=zipcode,
            city=city,
            county=county,
            state=state,
            industry=industry,
            status=status,
            created_at=_BASE_TIME + timedelta(minutes=self._lead_seq),
        )
        self.session.add(lead)
        await self.session.commit()
        return lead


@pytest.fixture
def factory(db_session) -> MarketplaceFactory:
    return MarketplaceFactory(db_session)
