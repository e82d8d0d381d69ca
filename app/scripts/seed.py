"""Sample marketplace data: agencies, overlapping territories and new leads.

Run with ``python -m app.scripts.seed`` against a migrated database, then
``POST /api/v1/distribution/batch`` to distribute the leads.
"""

import asyncio
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings
from app.models import Agency, Lead, TerritoryOwnership

# (business_name, industry, subscription_status, max_leads)
AGENCIES = [
    ("Lone Star Roofing", "roofing", "active", 25),
    ("Big D Roof Pros", "roofing", "active", 10),
    ("Dallas Shingle Co", "roofing", "trial", 5),
    ("Metroplex Plumbing", "plumbing", "active", None),
    ("Texas Home Solar", "solar", "suspended", 20),
]

# (agency index, type, value, state, priority)
TERRITORIES = [
    (0, "zipcode", "75201", None, 5),
    (1, "zipcode", "75201", None, 5),
    (2, "zipcode", "75201", None, 3),
    (2, "city", "Dallas", "TX", 2),
    (3, "county", "Dallas County", "TX", 0),
    (3, "state", "TX", None, 0),
    (4, "zipcode", "75201", None, 8),
]

# (zipcode, city, county, state, industry)
LEADS = [
    ("75201", "Dallas", "Dallas County", "TX", "roofing"),
    ("75201", "Dallas", "Dallas County", "TX", "roofing"),
    ("75201", "Dallas", "Dallas County", "TX", "roofing"),
    ("75202", "Dallas", "Dallas County", "TX", "roofing"),
    ("75204", "Dallas", "Dallas County", "TX", "plumbing"),
    ("73301", "Austin", "Travis County", "TX", "plumbing"),
    ("10001", "New York", "New York County", "NY", "roofing"),
    ("75201", "Dallas", "Dallas County", "TX", None),
]


async def seed():
    engine = create_async_engine(settings.DATABASE_URL, echo=False)
    session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with session_maker() as session:
        print("Seeding lead marketplace sample data")

        await session.execute(
            text(
                "TRUNCATE TABLE "
                "distribution_audit_logs, "
                "round_robin_cursors, "
                "lead_assignments, "
                "leads, "
                "territories, "
                "agencies "
                "CASCADE"
            )
        )
        await session.commit()
        print("Cleared existing data")

        agencies = [
            Agency(
                business_name=name,
                industry=industry,
                subscription_status=status,
                max_leads=max_leads,
            )
            for name, industry, status, max_leads in AGENCIES
        ]
        session.add_all(agencies)
        await session.flush()
        print(f"Created {len(agencies)} agencies")

        territories = [
            TerritoryOwnership(
                agency_id=agencies[index].agency_id,
                type=territory_type,
                value=value,
                state=state,
                priority=priority,
            )
            for index, territory_type, value, state, priority in TERRITORIES
        ]
        session.add_all(territories)
        print(f"Created {len(territories)} territory claims")

        base_time = datetime.now(timezone.utc) - timedelta(hours=len(LEADS))
        leads = [
            Lead(
                zipcode=zipcode,
                city=city,
                county=county,
                state=state,
                industry=industry,
                created_at=base_time + timedelta(hours=offset),
            )
            for offset, (zipcode, city, county, state, industry) in enumerate(LEADS)
        ]
        session.add_all(leads)
        await session.commit()
        print(f"Created {len(leads)} new leads")

        lead_cnt = (await session.execute(select(func.count(Lead.lead_id)))).scalar()
        claim_cnt = (
            await session.execute(select(func.count(TerritoryOwnership.territory_id)))
        ).scalar()
        print("\nValidation:")
        print(f"  Leads: {lead_cnt}")
        print(f"  Territory claims: {claim_cnt}")
        print("Seeding complete")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
