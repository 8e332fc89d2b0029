"""Arrangement Lifecycle — create, accept, close and auto-close.

Invariants:
    - create: borrower resolved by email, never the lender; starts pending
    - accept: borrower only, pending -> active
    - close: any participant, only when remaining == 0; auto_close is the same
      transition attributed to the system
    - Closing deactivates the arrangement's active/snoozed reminder
    - Every transition appends exactly one Activity in the same unit of work

Design Decisions:
    - close_arrangement() is a plain function over an already-locked row so the
      payment workflow can auto-close inside its own unit of work
    - Invitation email sent after commit, best-effort: a mail outage never blocks
      creating the arrangement
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Callable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from trustlend.core.balance import compute_balance
from trustlend.core.domain_types import (
    ActivityType, ActorRole, ArrangementStatus, RepaymentStyle,
)
from trustlend.core.enforce_lifecycle import (
    check_acceptable, check_closable, check_distinct_parties, resolve_role,
)
from trustlend.core.errors import InvalidArgumentError, ResourceNotFoundError
from trustlend.core.format_messages import (
    ACCEPTED_MESSAGE, AUTO_CLOSE_MESSAGE, MANUAL_CLOSE_MESSAGE,
    arrangement_created_message, invitation_email,
)
from trustlend.core.repository_protocols import Notifier
from trustlend.infrastructure.arrangement_locks import ArrangementLocks
from trustlend.models.arrangement import Arrangement
from trustlend.services.activity_log import append_activity
from trustlend.services.arrangement_transaction import ArrangementTransaction, utcnow
from trustlend.services.ledger_queries import get_user, load_payments, resolve_user_by_email
from trustlend.services.reminder_workflow import deactivate_open_reminders

logger = logging.getLogger(__name__)


async def close_arrangement(
    db: AsyncSession,
    arrangement: Arrangement,
    actor_role: ActorRole,
    message: str | None,
    now: datetime,
) -> None:
    """Apply the closed transition to a locked arrangement (no commit)."""
    arrangement.status = ArrangementStatus.CLOSED.value
    arrangement.closed_at = now
    arrangement.closed_message = message
    await deactivate_open_reminders(db, arrangement.id)
    append_activity(
        db, arrangement.id, ActivityType.ARRANGEMENT_CLOSED, actor_role,
        message or MANUAL_CLOSE_MESSAGE, created_at=now,
    )


async def auto_close(db: AsyncSession, arrangement: Arrangement, now: datetime) -> None:
    await close_arrangement(db, arrangement, ActorRole.SYSTEM, AUTO_CLOSE_MESSAGE, now)
    logger.info(
        "Arrangement settled and auto-closed",
        extra={"arrangement_id": arrangement.id},
    )


class ArrangementLifecycle:
    """Lifecycle transitions for arrangements."""

    def __init__(
        self,
        db: AsyncSession,
        locks: ArrangementLocks,
        notifier: Notifier | None = None,
        clock: Callable[[], datetime] = utcnow,
        max_attempts: int = 3,
    ):
        self.db = db
        self.notifier = notifier
        self.clock = clock
        self.tx = ArrangementTransaction(db, locks, max_attempts=max_attempts)

    async def create(
        self,
        lender_id: UUID,
        title: str,
        total_amount: Decimal,
        borrower_email: str,
        repayment_style: RepaymentStyle | str,
        currency: str = "INR",
        expected_by: date | None = None,
        note: str | None = None,
    ) -> Arrangement:
        if not title or not title.strip():
            raise InvalidArgumentError("Title is required", "title")
        if total_amount is None or total_amount <= 0:
            raise InvalidArgumentError("totalAmount must be a positive amount", "total_amount")
        if not borrower_email:
            raise InvalidArgumentError(
                "borrower_email is required to send an invitation", "borrower_email",
            )
        try:
            style = RepaymentStyle(repayment_style)
        except ValueError:
            raise InvalidArgumentError(
                f"Unknown repayment style '{repayment_style}'", "repayment_style",
            )

        lender = await get_user(self.db, lender_id)
        borrower = await resolve_user_by_email(self.db, borrower_email)
        if borrower is None:
            raise ResourceNotFoundError("User", borrower_email.strip().lower())
        check_distinct_parties(lender.id, borrower.id)

        now = self.clock()
        arrangement = Arrangement(
            title=title.strip(),
            total_amount=Decimal(total_amount),
            currency=(currency or "INR").upper(),
            lender_id=lender.id,
            borrower_id=borrower.id,
            expected_by=expected_by,
            repayment_style=style.value,
            note=note or None,
            status=ArrangementStatus.PENDING.value,
            created_at=now,
        )
        try:
            self.db.add(arrangement)
            await self.db.flush()
            append_activity(
                self.db, arrangement.id, ActivityType.ARRANGEMENT_CREATED,
                ActorRole.LENDER,
                arrangement_created_message(arrangement.title, borrower.email),
                created_at=now,
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info("Arrangement created", extra={"arrangement_id": arrangement.id})

        if self.notifier:
            subject, body = invitation_email(arrangement, lender.name)
            await self.notifier.send(borrower.email, subject, body)
        return arrangement

    async def accept(self, arrangement_id: UUID, caller_id: UUID) -> Arrangement:
        async def work(arrangement: Arrangement) -> Arrangement:
            role = resolve_role(arrangement, caller_id)
            check_acceptable(arrangement, role)
            arrangement.status = ArrangementStatus.ACTIVE.value
            append_activity(
                self.db, arrangement.id, ActivityType.ARRANGEMENT_ACCEPTED,
                ActorRole.BORROWER, ACCEPTED_MESSAGE, created_at=self.clock(),
            )
            return arrangement

        return await self.tx.run(arrangement_id, work)

    async def close(
        self, arrangement_id: UUID, caller_id: UUID, message: str | None = None,
    ) -> Arrangement:
        async def work(arrangement: Arrangement) -> Arrangement:
            role = resolve_role(arrangement, caller_id)
            balance = compute_balance(
                arrangement.total_amount, await load_payments(self.db, arrangement.id),
            )
            check_closable(arrangement, balance)
            await close_arrangement(
                self.db, arrangement, ActorRole.of(role), message or None, self.clock(),
            )
            return arrangement

        return await self.tx.run(arrangement_id, work)
