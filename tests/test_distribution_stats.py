"""Tests for distribution stats, eligibility dry runs and conflict reports."""

import json
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from app.core.exceptions import LeadNotFoundError
from app.repositories.assignment_repository import AssignmentRepository
from app.repositories.cursor_repository import CursorRepository
from app.schemas.distribution import DistributionStats
from app.services.distribution_stats import DistributionStatsService
from app.services.lead_distribution import LeadDistributionService


class TestDistributionStats:
    @pytest.mark.asyncio
    async def test_rollup_for_territory(self, db_session, factory, mock_cache):
        first = await factory.agency("First", max_leads=10)
        second = await factory.agency("Second", subscription_status="expired")
        elsewhere = await factory.agency("Elsewhere")
        await factory.territory(first, "75201")
        await factory.territory(second, "75201")
        await factory.territory(elsewhere, "10001")
        first_id = first.agency_id
        distribution = LeadDistributionService(db_session)
        lead_ids = [(await factory.lead("75201")).lead_id for _ in range(2)]
        for lead_id in lead_ids:
            await distribution.distribute_lead(lead_id)
        await distribution.reject(lead_ids[0], first_id, "Duplicate")

        stats = await DistributionStatsService(
            db_session, mock_cache
        ).get_distribution_stats(" 75201 ")

        assert stats.territory == "75201"
        assert stats.total_agencies == 2
        assert stats.eligible_agencies_count == 1
        assert stats.assignments_count == 2
        assert stats.active_assignments_count == 1
        assert stats.rejections_count == 1
        assert stats.total_leads_distributed == 2
        assert [row.agency_id for row in stats.by_agency] == [first_id]
        assert stats.by_agency[0].leads_assigned == 2
        assert stats.by_agency[0].last_assignment is not None
        assert len(stats.cursors) == 1
        assert stats.cursors[0].territory_value == "75201"

    @pytest.mark.asyncio
    async def test_rejection_still_counted_after_reassignment(
        self, db_session, factory, mock_cache
    ):
        for name in ("A", "B"):
            await factory.territory(await factory.agency(name), "75201")
        lead_id = (await factory.lead("75201")).lead_id
        distribution = LeadDistributionService(db_session)
        first = await distribution.distribute_lead(lead_id)

        outcome = await distribution.reject(lead_id, first.agency_id, "Not our area")
        assert outcome.success is True
        assert outcome.agency_id != first.agency_id

        stats = await DistributionStatsService(
            db_session, mock_cache
        ).get_distribution_stats("75201")

        assert stats.rejections_count == 1
        assert stats.reassignments_count == 1
        assert stats.active_assignments_count == 1
        rejected = {row.agency_id: row.rejected for row in stats.by_agency}
        assert rejected == {first.agency_id: 1, outcome.agency_id: 0}

    @pytest.mark.asyncio
    async def test_territory_filter_matches_stored_form(
        self, db_session, factory, mock_cache, mock_redis
    ):
        agency = await factory.agency("Uptown")
        await factory.territory(agency, "Dallas", type="city", state="TX")
        lead_id = (
            await factory.lead(zipcode=None, city="Dallas", state="TX")
        ).lead_id
        result = await LeadDistributionService(db_session).distribute_lead(lead_id)
        assert result.success is True

        stats = await DistributionStatsService(
            db_session, mock_cache
        ).get_distribution_stats(" DALLAS ")

        assert stats.territory == "dallas"
        assert stats.total_agencies == 1
        assert stats.assignments_count == 1
        key = mock_redis.setex.call_args.args[0]
        assert key == "distribution_stats:dallas"

    @pytest.mark.asyncio
    async def test_zip_plus_four_filter(self, db_session, factory, mock_cache):
        agency = await factory.agency("Zip")
        await factory.territory(agency, "75201")
        lead_id = (await factory.lead("75201")).lead_id
        await LeadDistributionService(db_session).distribute_lead(lead_id)

        stats = await DistributionStatsService(
            db_session, mock_cache
        ).get_distribution_stats("75201-1234")

        assert stats.territory == "75201"
        assert stats.assignments_count == 1

    @pytest.mark.asyncio
    async def test_global_rollup_is_cached(
        self, db_session, factory, mock_cache, mock_redis
    ):
        await factory.agency("Only")

        stats = await DistributionStatsService(
            db_session, mock_cache
        ).get_distribution_stats()

        assert stats.territory is None
        assert stats.total_agencies == 1
        mock_redis.setex.assert_awaited_once()
        key, ttl, payload = mock_redis.setex.call_args.args
        assert key == "distribution_stats:all"
        assert ttl == 60
        assert json.loads(payload)["total_agencies"] == 1

    @pytest.mark.asyncio
    async def test_cache_hit_skips_database(self, mock_cache, mock_redis):
        cached = DistributionStats(territory="75201", assignments_count=7)
        mock_redis.get.return_value = json.dumps(cached.model_dump(mode="json"))
        service = DistributionStatsService(AsyncMock(), mock_cache)

        stats = await service.get_distribution_stats("75201")

        assert stats.assignments_count == 7
        mock_redis.get.assert_awaited_once_with("distribution_stats:75201")

    @pytest.mark.asyncio
    async def test_works_without_redis(self, db_session):
        stats = await DistributionStatsService(db_session).get_distribution_stats()
        assert stats.assignments_count == 0


class TestEligibilityReport:
    @pytest.mark.asyncio
    async def test_dry_run_counts_each_stage(self, db_session, factory):
        open_ = await factory.agency("Open", max_leads=5, current_lead_count=2)
        full = await factory.agency("Full", max_leads=5, current_lead_count=5)
        solar = await factory.agency("Solar", industry="solar")
        for agency in (open_, full, solar):
            await factory.territory(agency, "75201")
        lead = await factory.lead("75201")
        lead_id = lead.lead_id

        report = await DistributionStatsService(
            db_session
        ).test_distribution_eligibility(lead_id)

        assert report.territory == "zipcode:75201:roofing"
        assert report.owners_count == 3
        assert report.eligible_agencies == 2
        assert report.agencies_with_capacity == 1
        assert report.next_agency_id == open_.agency_id
        by_name = {a.business_name: a for a in report.agencies}
        assert by_name["Open"].current_leads == 2
        assert by_name["Open"].capacity_remaining == 3
        assert by_name["Full"].capacity_remaining == 0

        # Nothing written
        assert await AssignmentRepository(db_session).list_for_lead(lead_id) == []
        assert await CursorRepository(db_session).list_for_territory() == []

    @pytest.mark.asyncio
    async def test_lead_without_geography_reports_nothing(self, db_session, factory):
        lead = await factory.lead(None)

        report = await DistributionStatsService(
            db_session
        ).test_distribution_eligibility(lead.lead_id)

        assert report.territory is None
        assert report.owners_count == 0

    @pytest.mark.asyncio
    async def test_unknown_lead(self, db_session):
        with pytest.raises(LeadNotFoundError):
            await DistributionStatsService(db_session).test_distribution_eligibility(
                uuid4()
            )


class TestTerritoryConflicts:
    @pytest.mark.asyncio
    async def test_shared_territories_reported(self, db_session, factory):
        low = await factory.agency("Low")
        high = await factory.agency("High")
        alone = await factory.agency("Alone")
        await factory.territory(low, "75201", priority=1)
        await factory.territory(high, "75201", priority=7)
        await factory.territory(alone, "75202")

        report = await DistributionStatsService(db_session).territory_conflicts()

        assert report.total_conflicts == 1
        conflict = report.conflicts[0]
        assert (conflict.type, conflict.value, conflict.agency_count) == (
            "zipcode",
            "75201",
            2,
        )
        assert [a.business_name for a in conflict.agencies] == ["High", "Low"]
