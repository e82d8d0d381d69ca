import logging
from datetime import datetime, timezone
from typing import Optional, Sequence
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AlreadyAssignedError,
    AssignmentNotFoundError,
    CapacityExceededError,
    LeadDistributionError,
    NoEligibleAgencyError,
    PersistenceError,
)
from app.core.geography import TerritoryKey
from app.models.assignment import LeadAssignment
from app.models.lead import Lead
from app.repositories.agency_repository import AgencyRepository
from app.repositories.assignment_repository import AssignmentRepository
from app.repositories.audit_repository import AuditRepository
from app.repositories.cursor_repository import CursorRepository
from app.repositories.lead_repository import LeadRepository
from app.schemas.common import (
    AssignmentMethod,
    AssignmentStatus,
    AuditAction,
    LeadStatus,
)
from app.services.round_robin import rotation_order
from app.services.territory_index import Candidate

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AssignmentWriter:
    """Applies assignment and rejection transitions as single transactions.

    Each public method either commits all of its effects (lead row,
    assignment row, agency counter, rotation cursor, audit entry) or rolls
    every one of them back.  Preconditions are enforced by guarded
    ``UPDATE`` statements rather than by reading first, so a request that
    loses a race finds out from the row count.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._leads = LeadRepository(session)
        self._agencies = AgencyRepository(session)
        self._assignments = AssignmentRepository(session)
        self._cursors = CursorRepository(session)
        self._audit = AuditRepository(session)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def assign(
        self,
        lead: Lead,
        candidates: Sequence[Candidate],
        key: TerritoryKey,
        *,
        method: AssignmentMethod = AssignmentMethod.round_robin,
        rotate: bool = True,
        supersede: Optional[LeadAssignment] = None,
        reason: Optional[str] = None,
    ) -> LeadAssignment:
        """Assign *lead* to the next admissible candidate and commit.

        With ``rotate=True`` the candidates are visited in round-robin
        order from the territory cursor (read under a row lock); otherwise
        they are tried as given.  The first agency whose counter can be
        incremented within its plan limit receives the lead.

        The lead must still be in the status and have the assignee it was
        read with; otherwise :class:`AlreadyAssignedError` is raised and
        nothing is written.  *supersede* is the assignment being replaced
        (rejected or, on an admin override, still active).

        Raises:
            AlreadyAssignedError: The lead changed since it was read.
            NoEligibleAgencyError: Every candidate filled up before admission.
            CapacityExceededError: Same, for an explicit (non-rotating) target.
            PersistenceError: The store rejected a write or the cursor moved.
        """
        lead_id = lead.lead_id
        try:
            assignment = await self._assign(
                lead,
                candidates,
                key,
                method=method,
                rotate=rotate,
                supersede=supersede,
                reason=reason,
            )
            await self._session.commit()
        except LeadDistributionError:
            await self._session.rollback()
            raise
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error(
                "Assignment write failed for lead %s", lead_id, exc_info=True
            )
            raise PersistenceError(
                f"Failed to persist assignment for lead {lead_id}"
            ) from exc

        logger.info(
            "Lead %s assigned to agency %s via %s (territory %s)",
            lead.lead_id,
            assignment.agency_id,
            method.value,
            key,
        )
        return assignment

    async def release(
        self, lead: Lead, assignment: LeadAssignment, reason: Optional[str]
    ) -> None:
        """Record an agency's rejection of its active assignment and commit.

        The assignment becomes ``rejected``, the agency's counter drops by
        one, and the lead returns to ``rejected`` with no assignee.
        """
        lead_id = lead.lead_id
        try:
            await self._release(lead, assignment, reason)
            await self._session.commit()
        except LeadDistributionError:
            await self._session.rollback()
            raise
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error(
                "Rejection write failed for lead %s", lead_id, exc_info=True
            )
            raise PersistenceError(
                f"Failed to persist rejection for lead {lead_id}"
            ) from exc

        logger.info(
            "Agency %s rejected lead %s (assignment %s)",
            assignment.agency_id,
            lead.lead_id,
            assignment.assignment_id,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _assign(
        self,
        lead: Lead,
        candidates: Sequence[Candidate],
        key: TerritoryKey,
        *,
        method: AssignmentMethod,
        rotate: bool,
        supersede: Optional[LeadAssignment],
        reason: Optional[str],
    ) -> LeadAssignment:
        if not candidates:
            raise NoEligibleAgencyError()

        cursor = await self._cursors.get_for_update(key)
        order = (
            rotation_order(candidates, cursor.last_agency_id)
            if rotate
            else list(candidates)
        )

        # 1. Admission: take one unit of capacity from the first agency
        #    in rotation order that still has room.
        chosen = await self._admit(order)
        if chosen is None:
            if rotate:
                raise NoEligibleAgencyError(
                    "All eligible agencies have reached their subscription limits"
                )
            raise CapacityExceededError(
                f"Agency {order[0].agency_id} has reached its plan's lead limit"
            )

        now = _utcnow()

        # 2. Lead compare-and-swap against the state it was read in
        swapped = await self._leads.compare_and_set_assignee(
            lead.lead_id,
            expected_statuses=[lead.status],
            expected_agency_id=lead.assigned_agency_id,
            new_status=LeadStatus.assigned.value,
            new_agency_id=chosen.agency_id,
            assigned_at=now,
        )
        if not swapped:
            raise AlreadyAssignedError(
                f"Lead {lead.lead_id} changed while it was being assigned"
            )

        # 3. Supersede the previous assignment, then insert the new one
        assignment_id = uuid4()
        if supersede is not None:
            await self._supersede(supersede, assignment_id, now)

        assignment = await self._assignments.create(
            assignment_id=assignment_id,
            lead_id=lead.lead_id,
            agency_id=chosen.agency_id,
            status=AssignmentStatus.active.value,
            assignment_method=method.value,
            territory_type=key.territory_type,
            territory_value=key.territory_value,
            reason=reason,
            assigned_at=now,
        )

        # 4. Advance the rotation cursor onto the chosen agency
        advanced = await self._cursors.advance(
            cursor.cursor_id, cursor.version, chosen.agency_id
        )
        if not advanced:
            raise PersistenceError(
                f"Round-robin cursor for {key} moved during assignment"
            )

        await self._audit.record(
            AuditAction.lead_reassigned
            if supersede is not None
            else AuditAction.lead_assigned,
            lead_id=lead.lead_id,
            agency_id=chosen.agency_id,
            assignment_id=assignment_id,
            message=reason,
            details={
                "method": method.value,
                "territory": str(key),
                "priority": chosen.priority,
                "previous_agency_id": str(supersede.agency_id) if supersede else None,
                "rotation_index": cursor.rotation_index + 1,
            },
        )
        return assignment

    async def _admit(self, order: Sequence[Candidate]) -> Optional[Candidate]:
        for candidate in order:
            if await self._agencies.try_increment_lead_count(candidate.agency_id):
                return candidate
            logger.info(
                "Agency %s reached its lead limit before admission; skipping",
                candidate.agency_id,
            )
        return None

    async def _supersede(
        self, previous: LeadAssignment, superseded_by: UUID, at: datetime
    ) -> None:
        was_active = previous.status == AssignmentStatus.active.value
        if not await self._assignments.mark_reassigned(
            previous.assignment_id, superseded_by, at
        ):
            raise AlreadyAssignedError(
                f"Assignment {previous.assignment_id} was superseded concurrently"
            )
        if was_active:
            await self._agencies.decrement_lead_count(previous.agency_id)

    async def _release(
        self, lead: Lead, assignment: LeadAssignment, reason: Optional[str]
    ) -> None:
        now = _utcnow()
        if not await self._assignments.mark_rejected(
            assignment.assignment_id, reason, now
        ):
            raise AssignmentNotFoundError(
                f"Assignment {assignment.assignment_id} is no longer active"
            )
        await self._agencies.decrement_lead_count(assignment.agency_id)

        swapped = await self._leads.compare_and_set_assignee(
            lead.lead_id,
            expected_statuses=[LeadStatus.assigned.value],
            expected_agency_id=assignment.agency_id,
            new_status=LeadStatus.rejected.value,
            new_agency_id=None,
        )
        if not swapped:
            raise AssignmentNotFoundError(
                f"Lead {lead.lead_id} is no longer assigned to agency "
                f"{assignment.agency_id}"
            )

        await self._audit.record(
            AuditAction.lead_rejected,
            lead_id=lead.lead_id,
            agency_id=assignment.agency_id,
            assignment_id=assignment.assignment_id,
            message=reason,
        )
