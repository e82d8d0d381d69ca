"""Tests for plan capacity limits and agency eligibility rules."""

from types import SimpleNamespace
from uuid import uuid4

from app.schemas.common import TerritoryType
from app.services.capacity_gate import (
    Bounded,
    Unlimited,
    capacity_limit,
    filter_by_capacity,
    has_capacity,
    remaining_capacity,
)
from app.services.eligibility import filter_eligible, ineligibility_reason
from app.services.territory_index import Candidate


def _agency(**overrides):
    values = dict(
        agency_id=uuid4(),
        business_name="Agency",
        industry="roofing",
        subscription_status="active",
        is_active=True,
        current_lead_count=0,
        max_leads=None,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def _candidate(agency) -> Candidate:
    return Candidate(
        agency=agency,
        priority=0,
        territory_type=TerritoryType.zipcode,
        territory_value="75201",
    )


class TestCapacityLimit:
    def test_null_max_leads_is_unlimited(self):
        agency = _agency(max_leads=None, current_lead_count=10_000)
        assert capacity_limit(agency) == Unlimited()
        assert has_capacity(agency)
        assert remaining_capacity(agency) is None

    def test_bounded_limit(self):
        agency = _agency(max_leads=5, current_lead_count=3)
        assert capacity_limit(agency) == Bounded(5)
        assert has_capacity(agency)
        assert remaining_capacity(agency) == 2

    def test_at_limit_has_no_room(self):
        agency = _agency(max_leads=5, current_lead_count=5)
        assert not has_capacity(agency)
        assert remaining_capacity(agency) == 0

    def test_zero_limit_takes_nothing(self):
        assert not has_capacity(_agency(max_leads=0))

    def test_filter_drops_full_agencies(self):
        full = _candidate(_agency(max_leads=1, current_lead_count=1))
        open_ = _candidate(_agency(max_leads=2, current_lead_count=1))
        unlimited = _candidate(_agency())
        assert filter_by_capacity([full, open_, unlimited]) == [open_, unlimited]


class TestEligibility:
    def test_active_matching_agency_is_eligible(self):
        assert ineligibility_reason(_agency(), "roofing") is None

    def test_trial_subscription_is_eligible(self):
        assert ineligibility_reason(_agency(subscription_status="trial"), "roofing") is None

    def test_non_billable_subscriptions_excluded(self):
        for status in ("suspended", "cancelled", "expired"):
            reason = ineligibility_reason(_agency(subscription_status=status), "roofing")
            assert reason == f"subscription is {status}"

    def test_inactive_agency_excluded(self):
        assert ineligibility_reason(_agency(is_active=False), None) == "agency is inactive"

    def test_industry_compared_after_trim_and_casefold(self):
        assert ineligibility_reason(_agency(industry=" Roofing"), "ROOFING ") is None
        assert ineligibility_reason(_agency(industry="solar"), "roofing") is not None

    def test_lead_without_industry_matches_any_agency(self):
        assert ineligibility_reason(_agency(industry="plumbing"), None) is None
        assert ineligibility_reason(_agency(industry=None), "") is None

    def test_filter_eligible_honours_exclusions(self):
        keep = _candidate(_agency())
        rejecter = _candidate(_agency())
        wrong_industry = _candidate(_agency(industry="solar"))
        result = filter_eligible(
            [keep, rejecter, wrong_industry],
            "roofing",
            exclude_agency_ids={rejecter.agency_id},
        )
        assert result == [keep]
