"""Reminder Workflow — singleton reminder policy, snoozing, and manual sends.

Invariants:
    - At most one reminder per arrangement is active or snoozed: creating one first
      deactivates every open reminder, inside the same unit of work
    - Lender creates, deletes and sends; borrower snoozes
    - Closed arrangements take no new reminders or snoozes; manual sends need active
    - Manual sends pass the rate-limit gate on last_reminded_at; a failed delivery
      raises NotificationFailedError and records nothing

Design Decisions:
    - delete is a soft delete (status=inactive) so history survives
    - The manual-send unit holds the arrangement lock across delivery: two racing
      sends cannot both pass the gate
    - The manual-send unit runs without store retries: a commit failure after a
      delivered email surfaces DatabaseError instead of mailing the borrower twice
"""

import logging
from datetime import datetime
from typing import Callable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from trustlend.core.balance import compute_balance
from trustlend.core.domain_types import (
    ActivityType, ActorRole, ReminderSchedule, ReminderStatus, Role,
)
from trustlend.core.enforce_lifecycle import (
    check_active, check_not_closed, require_role, resolve_role,
)
from trustlend.core.enforce_reminders import (
    check_rate_limit, check_snoozable, next_trigger_after, resolve_snooze_until,
)
from trustlend.core.errors import ErrorContext, InvalidArgumentError, NotificationFailedError
from trustlend.core.format_messages import (
    DEFAULT_SNOOZE_NOTE, reminder_email, reminder_scheduled_message,
    reminder_sent_message, reminder_snoozed_message,
)
from trustlend.core.repository_protocols import Notifier
from trustlend.infrastructure.arrangement_locks import ArrangementLocks
from trustlend.models.arrangement import Arrangement
from trustlend.models.reminder import Reminder
from trustlend.services.activity_log import append_activity
from trustlend.services.arrangement_transaction import (
    ArrangementTransaction, arrangement_id_of, utcnow,
)
from trustlend.services.ledger_queries import (
    get_user, load_payments, load_reminder, load_reminders,
)

logger = logging.getLogger(__name__)

_OPEN_STATUSES = (ReminderStatus.ACTIVE.value, ReminderStatus.SNOOZED.value)


async def deactivate_open_reminders(db: AsyncSession, arrangement_id: UUID) -> int:
    """Turn off every active/snoozed reminder of a locked arrangement (no commit)."""
    count = 0
    for reminder in await load_reminders(db, arrangement_id):
        if reminder.status in _OPEN_STATUSES:
            reminder.status = ReminderStatus.INACTIVE.value
            count += 1
    return count


class ReminderWorkflow:
    """Caller-driven reminder operations."""

    def __init__(
        self,
        db: AsyncSession,
        locks: ArrangementLocks,
        notifier: Notifier,
        rate_limit_hours: int = 24,
        clock: Callable[[], datetime] = utcnow,
        max_attempts: int = 3,
    ):
        self.db = db
        self.notifier = notifier
        self.rate_limit_hours = rate_limit_hours
        self.clock = clock
        self.tx = ArrangementTransaction(db, locks, max_attempts=max_attempts)

    async def create_auto_reminder(
        self,
        arrangement_id: UUID,
        caller_id: UUID,
        schedule: ReminderSchedule | str = ReminderSchedule.MONTHLY,
        tone: str | None = None,
        custom_message: str | None = None,
    ) -> Reminder:
        try:
            schedule = ReminderSchedule(schedule)
        except ValueError:
            raise InvalidArgumentError(
                f"schedule must be 'weekly' or 'monthly', got '{schedule}'", "schedule",
            )

        async def work(arrangement: Arrangement) -> Reminder:
            role = resolve_role(arrangement, caller_id)
            require_role(arrangement, role, Role.LENDER, "create reminders")
            check_not_closed(arrangement, "add reminders")
            replaced = await deactivate_open_reminders(self.db, arrangement.id)
            now = self.clock()
            reminder = Reminder(
                arrangement_id=arrangement.id,
                schedule=schedule.value,
                message_tone=tone or "gentle",
                custom_message=custom_message or None,
                next_trigger=next_trigger_after(schedule, now),
                status=ReminderStatus.ACTIVE.value,
                created_by_id=caller_id,
                created_at=now,
            )
            self.db.add(reminder)
            append_activity(
                self.db, arrangement.id, ActivityType.REMINDER_SCHEDULED,
                ActorRole.LENDER, reminder_scheduled_message(schedule.value),
                {"schedule": schedule.value, "replaced": replaced},
                created_at=now,
            )
            return reminder

        return await self.tx.run(arrangement_id, work)

    async def delete_reminder(self, reminder_id: UUID, caller_id: UUID) -> Reminder:
        arrangement_id = await arrangement_id_of(self.db, Reminder, reminder_id)

        async def work(arrangement: Arrangement) -> Reminder:
            role = resolve_role(arrangement, caller_id)
            require_role(arrangement, role, Role.LENDER, "delete reminders")
            reminder = await load_reminder(self.db, reminder_id)
            reminder.status = ReminderStatus.INACTIVE.value
            return reminder

        return await self.tx.run(arrangement_id, work)

    async def snooze_reminder(
        self,
        reminder_id: UUID,
        caller_id: UUID,
        snooze_until: datetime | None = None,
        reason: str | None = None,
    ) -> Reminder:
        arrangement_id = await arrangement_id_of(self.db, Reminder, reminder_id)

        async def work(arrangement: Arrangement) -> Reminder:
            role = resolve_role(arrangement, caller_id)
            require_role(arrangement, role, Role.BORROWER, "snooze reminders")
            check_not_closed(arrangement, "snooze reminders")
            reminder = await load_reminder(self.db, reminder_id)
            check_snoozable(
                reminder.status,
                ErrorContext(arrangement_id=str(arrangement.id), resource_id=str(reminder.id)),
            )
            now = self.clock()
            until = resolve_snooze_until(snooze_until, now)
            reminder.status = ReminderStatus.SNOOZED.value
            reminder.snooze_until = until
            reminder.visible_note = reason or DEFAULT_SNOOZE_NOTE
            append_activity(
                self.db, arrangement.id, ActivityType.REMINDER_SNOOZED,
                ActorRole.BORROWER,
                reminder_snoozed_message(until.date()),
                {"reminder_id": str(reminder.id), "reason": reason},
                created_at=now,
            )
            return reminder

        return await self.tx.run(arrangement_id, work)

    async def send_manual_reminder(
        self, arrangement_id: UUID, caller_id: UUID, message: str | None = None,
    ) -> Arrangement:
        async def work(arrangement: Arrangement) -> Arrangement:
            role = resolve_role(arrangement, caller_id)
            require_role(arrangement, role, Role.LENDER, "send reminders")
            check_active(arrangement, "send a reminder")
            now = self.clock()
            check_rate_limit(
                arrangement.last_reminded_at, now, self.rate_limit_hours,
                ErrorContext(arrangement_id=str(arrangement.id)),
            )
            borrower = await get_user(self.db, arrangement.borrower_id)
            balance = compute_balance(
                arrangement.total_amount, await load_payments(self.db, arrangement.id),
            )
            subject, body = reminder_email(
                arrangement, balance.remaining, custom_message=message,
            )
            if not await self.notifier.send(borrower.email, subject, body):
                raise NotificationFailedError(
                    borrower.email, ErrorContext(arrangement_id=str(arrangement.id)),
                )
            arrangement.last_reminded_at = now
            append_activity(
                self.db, arrangement.id, ActivityType.REMINDER_SENT,
                ActorRole.LENDER, reminder_sent_message(),
                {"manual": True},
                created_at=now,
            )
            logger.info("Manual reminder sent", extra={"arrangement_id": arrangement.id})
            return arrangement

        return await self.tx.run(arrangement_id, work, retry=False)
