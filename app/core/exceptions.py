class LeadDistributionError(Exception):
    """Base class for all distribution-engine domain exceptions.

    Every custom exception in this module inherits from here so that a
    single ``except LeadDistributionError`` clause can catch any domain
    error.  ``reason`` is the machine-readable code used in structured
    results and JSON error bodies.
    """

    reason: str = "distribution_error"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(detail)


class NotFoundError(LeadDistributionError):
    """Raised when a lead, agency, or assignment id does not resolve."""

    reason = "not_found"

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(detail)


class LeadNotFoundError(NotFoundError):
    """Raised when a requested lead does not exist."""

    reason = "lead_not_found"

    def __init__(self, detail: str = "Lead not found"):
        super().__init__(detail)


class AgencyNotFoundError(NotFoundError):
    """Raised when a requested agency does not exist."""

    reason = "agency_not_found"

    def __init__(self, detail: str = "Agency not found"):
        super().__init__(detail)


class AssignmentNotFoundError(NotFoundError):
    """Raised when a lead has no active assignment for the given agency."""

    reason = "assignment_not_found"

    def __init__(self, detail: str = "Active assignment not found"):
        super().__init__(detail)


class AlreadyAssignedError(LeadDistributionError):
    """Raised when the admission precondition on a lead no longer holds.

    Another request won the conditional write on the lead row.  Callers
    treat this as a lost race, not as a fault.
    """

    reason = "already_assigned"

    def __init__(self, detail: str = "Lead is already assigned to an agency"):
        super().__init__(detail)


class NoEligibleAgencyError(LeadDistributionError):
    """Raised when the eligibility pipeline yields no candidate agency."""

    reason = "no_eligible_agency"

    def __init__(
        self, detail: str = "No eligible agency available for this territory/industry"
    ):
        super().__init__(detail)


class AgencyNotEligibleError(NoEligibleAgencyError):
    """Raised when an admin names an agency that cannot receive the lead."""

    reason = "agency_not_eligible"

    def __init__(self, detail: str = "Agency is not eligible for this lead"):
        super().__init__(detail)


class CapacityExceededError(LeadDistributionError):
    """Raised on the admin direct-assign path when the agency has no room."""

    reason = "capacity_exceeded"

    def __init__(self, detail: str = "Agency has reached its plan's lead limit"):
        super().__init__(detail)


class InvalidLeadDataError(LeadDistributionError):
    """Raised when a lead cannot be routed (e.g. it carries no geography)."""

    reason = "invalid_lead_data"

    def __init__(self, detail: str = "Invalid lead data"):
        super().__init__(detail)


class PersistenceError(LeadDistributionError):
    """Raised when a store write fails; the current unit of work is rolled back."""

    reason = "persistence_error"

    def __init__(self, detail: str = "Failed to persist distribution changes"):
        super().__init__(detail)
