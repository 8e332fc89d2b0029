"""Reminder Sweeper — periodic background pass that sends due reminders.

Invariants:
    - Due = (active AND next_trigger <= now) OR (snoozed AND snooze_until <= now),
      on an arrangement that is not closed
    - Each reminder is processed in its own session and ArrangementTransaction:
      due-ness and the rate-limit gate are re-checked under the lock
    - Rate-limited reminders are deferred with no state change
    - A failed delivery changes nothing (next_trigger and last_reminded_at untouched),
      so the reminder is retried next cycle
    - A failure on one reminder is logged and never aborts the sweep
    - Each reminder unit runs at most once per sweep (no store retries): a delivered
      email is never repeated inside the same sweep
    - stop() lets the in-flight iteration finish before returning

Design Decisions:
    - start/stop/_loop shape of a background monitor started from the FastAPI lifespan
    - asyncio.Event for the sleep between cycles: stop() wakes the loop immediately
      instead of waiting out the interval
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncContextManager, Callable
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from trustlend.core.balance import compute_balance
from trustlend.core.domain_types import (
    ActivityType, ActorRole, ArrangementStatus, ReminderStatus,
)
from trustlend.core.enforce_reminders import (
    is_due, next_trigger_after, rate_limit_hours_remaining,
)
from trustlend.core.format_messages import reminder_email, reminder_sent_message
from trustlend.core.repository_protocols import Notifier
from trustlend.infrastructure.arrangement_locks import ArrangementLocks
from trustlend.models.arrangement import Arrangement
from trustlend.models.reminder import Reminder
from trustlend.services.activity_log import append_activity
from trustlend.services.arrangement_transaction import ArrangementTransaction, utcnow
from trustlend.services.ledger_queries import get_user, load_payments, load_reminder

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncContextManager[AsyncSession]]

SENT = "sent"
DEFERRED = "deferred"
FAILED = "failed"
SKIPPED = "skipped"


@dataclass
class SweepReport:
    sent: int = 0
    deferred: int = 0
    failed: int = 0
    skipped: int = 0

    def count(self, outcome: str) -> None:
        setattr(self, outcome, getattr(self, outcome) + 1)


async def find_due_reminders(db: AsyncSession, now: datetime) -> list[tuple[UUID, UUID]]:
    result = await db.execute(
        select(Reminder.id, Reminder.arrangement_id)
        .join(Arrangement, Arrangement.id == Reminder.arrangement_id)
        .where(Arrangement.status != ArrangementStatus.CLOSED.value)
        .where(or_(
            and_(
                Reminder.status == ReminderStatus.ACTIVE.value,
                Reminder.next_trigger <= now,
            ),
            and_(
                Reminder.status == ReminderStatus.SNOOZED.value,
                Reminder.snooze_until <= now,
            ),
        ))
        .order_by(Reminder.next_trigger),
    )
    return [(row[0], row[1]) for row in result.all()]


class ReminderSweeper:
    """Background sender for scheduled reminders."""

    def __init__(
        self,
        session_factory: SessionFactory,
        locks: ArrangementLocks,
        notifier: Notifier,
        rate_limit_hours: int = 24,
        interval_seconds: float = 60,
        startup_delay_seconds: float = 10,
        max_attempts: int = 3,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.locks = locks
        self.notifier = notifier
        self.rate_limit_hours = rate_limit_hours
        self.interval_seconds = interval_seconds
        self.startup_delay_seconds = startup_delay_seconds
        self.max_attempts = max_attempts
        self.clock = clock
        self._stopping = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            logger.warning("Reminder sweeper is already running")
            return
        self._stopping.clear()
        self._task = asyncio.create_task(self._loop(), name="reminder-sweeper")
        logger.info("Reminder sweeper started")

    async def stop(self) -> None:
        if not self._task:
            return
        self._stopping.set()
        await self._task
        self._task = None
        logger.info("Reminder sweeper stopped")

    async def _wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`; True if stop() was requested meanwhile."""
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True

    async def _loop(self) -> None:
        if await self._wait(self.startup_delay_seconds):
            return
        while not self._stopping.is_set():
            try:
                await self.sweep_once()
            except Exception as e:
                logger.error(f"Reminder sweep failed: {e}", exc_info=True)
            if await self._wait(self.interval_seconds):
                return

    async def sweep_once(self, now: datetime | None = None) -> SweepReport:
        now = now or self.clock()
        report = SweepReport()
        async with self.session_factory() as db:
            due = await find_due_reminders(db, now)
        for reminder_id, arrangement_id in due:
            try:
                outcome = await self._process(reminder_id, arrangement_id, now)
            except Exception as e:
                logger.error(
                    f"Reminder {reminder_id} failed during sweep: {e}",
                    exc_info=True,
                    extra={"reminder_id": reminder_id, "arrangement_id": arrangement_id},
                )
                outcome = FAILED
            report.count(outcome)
        if due:
            logger.info(
                "Reminder sweep finished",
                extra={"sent": report.sent, "deferred": report.deferred, "failed": report.failed},
            )
        return report

    async def _process(self, reminder_id: UUID, arrangement_id: UUID, now: datetime) -> str:
        async with self.session_factory() as db:
            tx = ArrangementTransaction(db, self.locks, max_attempts=self.max_attempts)

            async def work(arrangement: Arrangement) -> str:
                reminder = await load_reminder(db, reminder_id)
                if arrangement.status == ArrangementStatus.CLOSED.value or not is_due(
                    reminder.status, reminder.next_trigger, reminder.snooze_until, now,
                ):
                    return SKIPPED
                if rate_limit_hours_remaining(
                    arrangement.last_reminded_at, now, self.rate_limit_hours,
                ):
                    logger.debug(
                        "Reminder deferred by rate limit",
                        extra={"reminder_id": reminder.id, "arrangement_id": arrangement.id},
                    )
                    return DEFERRED

                borrower = await get_user(db, arrangement.borrower_id)
                balance = compute_balance(
                    arrangement.total_amount, await load_payments(db, arrangement.id),
                )
                subject, body = reminder_email(
                    arrangement, balance.remaining, reminder.message_tone,
                    reminder.custom_message,
                )
                if not await self.notifier.send(borrower.email, subject, body):
                    logger.warning(
                        "Reminder delivery failed; will retry next cycle",
                        extra={"reminder_id": reminder.id, "arrangement_id": arrangement.id},
                    )
                    return FAILED

                arrangement.last_reminded_at = now
                reminder.next_trigger = next_trigger_after(reminder.schedule, now)
                reminder.status = ReminderStatus.ACTIVE.value
                reminder.snooze_until = None
                reminder.visible_note = None
                append_activity(
                    db, arrangement.id, ActivityType.REMINDER_SENT, ActorRole.SYSTEM,
                    reminder_sent_message(reminder.schedule),
                    {"reminder_id": str(reminder.id), "manual": False},
                    created_at=now,
                )
                return SENT

            return await tx.run(arrangement_id, work, retry=False)
