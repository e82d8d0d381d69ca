"""Industry and subscription eligibility: pure functions over loaded rows."""

from typing import Collection, List, Optional
from uuid import UUID

from app.core.constants import BILLABLE_SUBSCRIPTION_STATUSES
from app.core.geography import normalize_industry
from app.models.agency import Agency
from app.services.territory_index import Candidate


def ineligibility_reason(agency: Agency, industry: Optional[str]) -> Optional[str]:
    """Return why *agency* cannot take a lead in *industry*, or ``None``."""
    if not agency.is_active:
        return "agency is inactive"
    if agency.subscription_status not in BILLABLE_SUBSCRIPTION_STATUSES:
        return f"subscription is {agency.subscription_status}"
    lead_industry = normalize_industry(industry)
    if lead_industry and normalize_industry(agency.industry) != lead_industry:
        return f"industry {agency.industry!r} does not match {industry!r}"
    return None


def filter_eligible(
    candidates: List[Candidate],
    industry: Optional[str],
    exclude_agency_ids: Collection[UUID] = (),
) -> List[Candidate]:
    """Keep candidates in billable standing whose industry matches the lead.

    Leads without an industry tag pass every agency.  Agencies listed in
    *exclude_agency_ids* (e.g. the one that just rejected the lead) are
    dropped regardless.
    """
    return [
        candidate
        for candidate in candidates
        if candidate.agency_id not in exclude_agency_ids
        and ineligibility_reason(candidate.agency, industry) is None
    ]
