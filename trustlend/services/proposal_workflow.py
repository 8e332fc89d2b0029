"""Proposal Workflow — renegotiation of terms between the two participants.

Invariants:
    - Either participant may propose while the arrangement is not closed
    - Only the OTHER participant may respond; self-response fails without mutating
    - pending -> accepted | rejected, once; a second response fails InvalidStateError
    - Accepting applies the proposal kind to the arrangement in the same unit of work
"""

from datetime import date, datetime
from typing import Callable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from trustlend.core.domain_types import (
    ActivityType, ActorRole, ProposalDecision, ProposalStatus,
)
from trustlend.core.enforce_lifecycle import check_not_closed, resolve_role
from trustlend.core.errors import ErrorContext, InvalidArgumentError, InvalidStateError
from trustlend.core.format_messages import (
    proposal_created_message, proposal_responded_message,
)
from trustlend.core.proposal_kinds import parse_proposal_kind
from trustlend.infrastructure.arrangement_locks import ArrangementLocks
from trustlend.models.arrangement import Arrangement
from trustlend.models.proposal import Proposal
from trustlend.services.activity_log import append_activity
from trustlend.services.arrangement_transaction import (
    ArrangementTransaction, arrangement_id_of, utcnow,
)
from trustlend.services.ledger_queries import load_proposal


class ProposalWorkflow:
    """Create and resolve proposals."""

    def __init__(
        self,
        db: AsyncSession,
        locks: ArrangementLocks,
        clock: Callable[[], datetime] = utcnow,
        max_attempts: int = 3,
    ):
        self.db = db
        self.clock = clock
        self.tx = ArrangementTransaction(db, locks, max_attempts=max_attempts)

    async def create_proposal(
        self,
        arrangement_id: UUID,
        caller_id: UUID,
        proposal_type: str | None,
        new_expected_by: date | None = None,
        reason: str | None = None,
    ) -> Proposal:
        async def work(arrangement: Arrangement) -> Proposal:
            role = resolve_role(arrangement, caller_id)
            check_not_closed(arrangement, "create proposals")
            kind = parse_proposal_kind(proposal_type, new_expected_by)
            now = self.clock()
            proposal = Proposal(
                arrangement_id=arrangement.id,
                type=kind.type.value,
                new_expected_by=new_expected_by,
                reason=reason or None,
                proposed_by_id=caller_id,
                status=ProposalStatus.PENDING.value,
                created_at=now,
            )
            self.db.add(proposal)
            await self.db.flush()
            append_activity(
                self.db, arrangement.id, ActivityType.PROPOSAL_CREATED,
                ActorRole.of(role),
                proposal_created_message(proposal.type, new_expected_by),
                {"proposal_id": str(proposal.id)},
                created_at=now,
            )
            return proposal

        return await self.tx.run(arrangement_id, work)

    async def respond_to_proposal(
        self, proposal_id: UUID, caller_id: UUID, decision: ProposalDecision | str,
    ) -> tuple[Proposal, Arrangement]:
        try:
            decision = ProposalDecision(decision)
        except ValueError:
            raise InvalidArgumentError(
                "decision must be 'accept' or 'reject'", "decision",
            )
        arrangement_id = await arrangement_id_of(self.db, Proposal, proposal_id)

        async def work(arrangement: Arrangement) -> tuple[Proposal, Arrangement]:
            role = resolve_role(arrangement, caller_id)
            proposal = await load_proposal(self.db, proposal_id)
            if proposal.proposed_by_id == caller_id:
                raise InvalidArgumentError(
                    "You cannot respond to your own proposal", "proposal_id",
                )
            if proposal.status != ProposalStatus.PENDING.value:
                raise InvalidStateError(
                    f"This proposal has already been {proposal.status}",
                    ErrorContext(arrangement_id=str(arrangement.id), resource_id=str(proposal.id)),
                )
            check_not_closed(arrangement, "respond to proposals")

            details = {
                "proposal_id": str(proposal.id),
                "decision": decision.value,
                "updated_expected_by": None,
            }
            if decision == ProposalDecision.ACCEPT:
                kind = parse_proposal_kind(proposal.type, proposal.new_expected_by)
                details.update(kind.apply(arrangement))
                proposal.status = ProposalStatus.ACCEPTED.value
            else:
                proposal.status = ProposalStatus.REJECTED.value
            now = self.clock()
            proposal.resolved_at = now

            append_activity(
                self.db, arrangement.id, ActivityType.PROPOSAL_RESPONDED,
                ActorRole.of(role),
                proposal_responded_message(proposal.type, proposal.status),
                details,
                created_at=now,
            )
            return proposal, arrangement

        return await self.tx.run(arrangement_id, work)
