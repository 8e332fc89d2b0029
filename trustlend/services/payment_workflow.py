"""Payment Workflow — record, confirm and reject payments; auto-close on settlement.

Invariants:
    - Balance is computed from rows read inside the same locked unit as the write
    - Sum of confirmed amounts never exceeds the total (checked on record and confirm)
    - A lender-recorded payment is confirmed at creation (the lender acknowledges receipt)
    - Only the lender confirms or rejects; confirmed/rejected are terminal
    - remaining is recomputed after every confirmation; remaining <= 0 auto-closes

Design Decisions:
    - Notifications go out after commit and are best-effort: the ledger write is
      the source of truth, email is a courtesy
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Callable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from trustlend.core.balance import Balance, compute_balance
from trustlend.core.domain_types import (
    ActivityType, ActorRole, PaymentStatus, Role,
)
from trustlend.core.enforce_lifecycle import check_not_closed, require_role, resolve_role
from trustlend.core.enforce_payments import (
    check_confirmable, check_recordable, check_rejectable,
)
from trustlend.core.errors import ErrorContext
from trustlend.core.format_messages import (
    payment_awaiting_email, payment_confirmed_message, payment_recorded_message,
    payment_rejected_message, payment_update_email,
)
from trustlend.core.repository_protocols import Notifier
from trustlend.infrastructure.arrangement_locks import ArrangementLocks
from trustlend.models.arrangement import Arrangement
from trustlend.models.payment import Payment
from trustlend.services.activity_log import append_activity
from trustlend.services.arrangement_lifecycle import auto_close
from trustlend.services.arrangement_transaction import (
    ArrangementTransaction, arrangement_id_of, utcnow,
)
from trustlend.services.ledger_queries import get_user, load_payment, load_payments

logger = logging.getLogger(__name__)


@dataclass
class PaymentOutcome:
    """Result of a payment operation, with the balance after the write."""
    payment: Payment
    arrangement: Arrangement
    balance: Balance
    recorded_by: Role
    auto_closed: bool = False


class PaymentWorkflow:
    """Payment recording and confirmation."""

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

    async def _settle_if_paid(self, arrangement: Arrangement, now: datetime) -> tuple[Balance, bool]:
        balance = compute_balance(
            arrangement.total_amount, await load_payments(self.db, arrangement.id),
        )
        if balance.is_settled:
            await auto_close(self.db, arrangement, now)
            return balance, True
        return balance, False

    async def record_payment(
        self,
        arrangement_id: UUID,
        caller_id: UUID,
        amount: Decimal,
        paid_on: date | None = None,
        note: str | None = None,
    ) -> PaymentOutcome:
        async def work(arrangement: Arrangement) -> PaymentOutcome:
            role = resolve_role(arrangement, caller_id)
            check_not_closed(arrangement, "add payments")
            auto_confirm = role == Role.LENDER
            balance = compute_balance(
                arrangement.total_amount, await load_payments(self.db, arrangement.id),
            )
            check_recordable(balance, Decimal(amount), auto_confirm, arrangement.currency)

            now = self.clock()
            payment = Payment(
                id=uuid.uuid4(),
                arrangement_id=arrangement.id,
                amount=Decimal(amount),
                paid_on=paid_on or now.date(),
                note=note or None,
                recorded_by_id=caller_id,
                status=PaymentStatus.PENDING_CONFIRMATION.value,
                created_at=now,
            )
            if auto_confirm:
                payment.status = PaymentStatus.CONFIRMED.value
                payment.confirmed_at = now
                payment.confirmed_by_id = caller_id
            self.db.add(payment)
            append_activity(
                self.db, arrangement.id, ActivityType.PAYMENT_RECORDED,
                ActorRole.of(role),
                payment_recorded_message(payment.amount, arrangement.currency, auto_confirm),
                {"payment_id": str(payment.id), "auto_confirmed": auto_confirm},
                created_at=now,
            )
            await self.db.flush()

            auto_closed = False
            if auto_confirm:
                balance, auto_closed = await self._settle_if_paid(arrangement, now)
            else:
                balance = compute_balance(
                    arrangement.total_amount, await load_payments(self.db, arrangement.id),
                )
            return PaymentOutcome(payment, arrangement, balance, role, auto_closed)

        outcome = await self.tx.run(arrangement_id, work)
        logger.info(
            "Payment recorded",
            extra={"arrangement_id": arrangement_id, "payment_id": outcome.payment.id},
        )
        if outcome.recorded_by == Role.BORROWER:
            await self._notify_lender(outcome)
        return outcome

    async def confirm_payment(self, payment_id: UUID, caller_id: UUID) -> PaymentOutcome:
        arrangement_id = await arrangement_id_of(self.db, Payment, payment_id)

        async def work(arrangement: Arrangement) -> PaymentOutcome:
            role = resolve_role(arrangement, caller_id)
            require_role(arrangement, role, Role.LENDER, "confirm payments")
            payment = await load_payment(self.db, payment_id)
            balance = compute_balance(
                arrangement.total_amount, await load_payments(self.db, arrangement.id),
            )
            check_confirmable(
                payment.status, payment.amount, balance, arrangement.currency,
                ErrorContext(arrangement_id=str(arrangement.id), resource_id=str(payment.id)),
            )
            now = self.clock()
            payment.status = PaymentStatus.CONFIRMED.value
            payment.confirmed_at = now
            payment.confirmed_by_id = caller_id
            append_activity(
                self.db, arrangement.id, ActivityType.PAYMENT_CONFIRMED,
                ActorRole.LENDER,
                payment_confirmed_message(payment.amount, arrangement.currency),
                {"payment_id": str(payment.id)},
                created_at=now,
            )
            await self.db.flush()
            balance, auto_closed = await self._settle_if_paid(arrangement, now)
            return PaymentOutcome(payment, arrangement, balance, role, auto_closed)

        outcome = await self.tx.run(arrangement_id, work)
        await self._notify_borrower(outcome, "confirmed")
        return outcome

    async def reject_payment(self, payment_id: UUID, caller_id: UUID) -> PaymentOutcome:
        arrangement_id = await arrangement_id_of(self.db, Payment, payment_id)

        async def work(arrangement: Arrangement) -> PaymentOutcome:
            role = resolve_role(arrangement, caller_id)
            require_role(arrangement, role, Role.LENDER, "reject payments")
            payment = await load_payment(self.db, payment_id)
            check_rejectable(
                payment.status,
                ErrorContext(arrangement_id=str(arrangement.id), resource_id=str(payment.id)),
            )
            payment.status = PaymentStatus.REJECTED.value
            payment.confirmed_at = None
            payment.confirmed_by_id = None
            append_activity(
                self.db, arrangement.id, ActivityType.PAYMENT_REJECTED,
                ActorRole.LENDER,
                payment_rejected_message(payment.amount, arrangement.currency),
                {"payment_id": str(payment.id)},
                created_at=self.clock(),
            )
            await self.db.flush()
            balance = compute_balance(
                arrangement.total_amount, await load_payments(self.db, arrangement.id),
            )
            return PaymentOutcome(payment, arrangement, balance, role)

        outcome = await self.tx.run(arrangement_id, work)
        await self._notify_borrower(outcome, "not confirmed")
        return outcome

    async def _notify_borrower(self, outcome: PaymentOutcome, verb: str) -> None:
        if not self.notifier:
            return
        if outcome.payment.recorded_by_id == outcome.arrangement.lender_id:
            return
        borrower = await get_user(self.db, outcome.arrangement.borrower_id)
        subject, body = payment_update_email(outcome.arrangement, outcome.payment.amount, verb)
        await self.notifier.send(borrower.email, subject, body)

    async def _notify_lender(self, outcome: PaymentOutcome) -> None:
        if not self.notifier:
            return
        lender = await get_user(self.db, outcome.arrangement.lender_id)
        subject, body = payment_awaiting_email(outcome.arrangement, outcome.payment.amount)
        await self.notifier.send(lender.email, subject, body)
