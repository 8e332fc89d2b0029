"""Reminder Workflow — singleton reminders, snoozing and rate-limited manual sends.

Invariants:
    - Creating a reminder turns off every other open reminder of the arrangement
    - Lender creates/deletes/sends, borrower snoozes
    - A second manual send inside the window fails RateLimited with the hours left
    - A failed delivery fails NotificationFailed and records nothing
    - A delivered reminder is never re-sent by a store retry
"""

from datetime import timedelta

import pytest
from sqlalchemy import select

from trustlend.core.errors import (
    DatabaseError, ForbiddenError, InvalidArgumentError, InvalidStateError,
    NotificationFailedError, RateLimitedError,
)
from trustlend.models.reminder import Reminder
from trustlend.services.activity_log import recent_activity
from trustlend.services.reminder_workflow import ReminderWorkflow
from tests.services.fakes import T0, FailFirstCommit


@pytest.fixture
def workflow(work_db, locks, notifier, clock):
    return ReminderWorkflow(work_db, locks, notifier, rate_limit_hours=24, clock=clock)


async def _open_reminders(db, arrangement_id):
    result = await db.execute(
        select(Reminder)
        .where(Reminder.arrangement_id == arrangement_id)
        .where(Reminder.status.in_(("active", "snoozed"))),
    )
    return result.scalars().all()


# ─── create / delete ────────────────────────────────────────────

async def test_create_schedules_first_trigger(workflow, arrangement, lender):
    reminder = await workflow.create_auto_reminder(arrangement.id, lender.id, "weekly")
    assert reminder.status == "active"
    assert reminder.next_trigger == T0 + timedelta(days=7)


async def test_new_reminder_replaces_open_one(workflow, arrangement, lender, test_db):
    await workflow.create_auto_reminder(arrangement.id, lender.id, "weekly")
    second = await workflow.create_auto_reminder(arrangement.id, lender.id, "monthly")

    open_reminders = await _open_reminders(test_db, arrangement.id)
    assert [r.id for r in open_reminders] == [second.id]


async def test_borrower_cannot_create(workflow, arrangement, borrower):
    with pytest.raises(ForbiddenError):
        await workflow.create_auto_reminder(arrangement.id, borrower.id)


async def test_unknown_schedule_rejected(workflow, arrangement, lender):
    with pytest.raises(InvalidArgumentError):
        await workflow.create_auto_reminder(arrangement.id, lender.id, "daily")


async def test_no_reminders_on_closed(workflow, make_arrangement, lender):
    closed = await make_arrangement(status="closed")
    with pytest.raises(InvalidStateError):
        await workflow.create_auto_reminder(closed.id, lender.id)


async def test_delete_is_soft_and_idempotent(workflow, arrangement, lender):
    reminder = await workflow.create_auto_reminder(arrangement.id, lender.id)
    deleted = await workflow.delete_reminder(reminder.id, lender.id)
    assert deleted.status == "inactive"
    again = await workflow.delete_reminder(reminder.id, lender.id)
    assert again.status == "inactive"


# ─── snooze ─────────────────────────────────────────────────────

async def test_borrower_snoozes_with_default_period(
    workflow, arrangement, lender, borrower, work_db, clock,
):
    reminder = await workflow.create_auto_reminder(arrangement.id, lender.id)
    clock.advance(minutes=5)
    snoozed = await workflow.snooze_reminder(reminder.id, borrower.id, reason="Travelling")
    assert snoozed.status == "snoozed"
    assert snoozed.snooze_until == T0 + timedelta(days=14, minutes=5)
    assert snoozed.visible_note == "Travelling"
    latest = (await recent_activity(work_db, arrangement.id))[0]
    assert latest.type == "reminder_snoozed"


async def test_lender_cannot_snooze(workflow, arrangement, lender):
    reminder = await workflow.create_auto_reminder(arrangement.id, lender.id)
    reminder_id = reminder.id
    with pytest.raises(ForbiddenError):
        await workflow.snooze_reminder(reminder_id, lender.id)


async def test_snooze_into_past_rejected(workflow, arrangement, lender, borrower):
    reminder = await workflow.create_auto_reminder(arrangement.id, lender.id)
    reminder_id = reminder.id
    with pytest.raises(InvalidArgumentError):
        await workflow.snooze_reminder(reminder_id, borrower.id, T0 - timedelta(days=1))


async def test_snooze_inactive_rejected(workflow, arrangement, lender, borrower):
    reminder = await workflow.create_auto_reminder(arrangement.id, lender.id)
    reminder_id = reminder.id
    await workflow.delete_reminder(reminder_id, lender.id)
    with pytest.raises(InvalidStateError):
        await workflow.snooze_reminder(reminder_id, borrower.id)


# ─── manual send ────────────────────────────────────────────────

async def test_manual_send_then_rate_limited(
    workflow, arrangement, lender, borrower, notifier, clock,
):
    sent = await workflow.send_manual_reminder(arrangement.id, lender.id)
    assert sent.last_reminded_at == T0
    assert len(notifier.to(borrower.email)) == 1

    clock.advance(hours=5)
    with pytest.raises(RateLimitedError) as exc:
        await workflow.send_manual_reminder(arrangement.id, lender.id)
    assert exc.value.hours_remaining == 19
    assert len(notifier.sent) == 1


async def test_manual_send_allowed_after_window(workflow, arrangement, lender, notifier, clock):
    await workflow.send_manual_reminder(arrangement.id, lender.id)
    clock.advance(hours=24)
    await workflow.send_manual_reminder(arrangement.id, lender.id, "Quick ping")
    assert notifier.sent[-1]["body"] == "Quick ping"


async def test_failed_delivery_records_nothing(
    workflow, arrangement, lender, notifier, test_db,
):
    notifier.fail = True
    with pytest.raises(NotificationFailedError):
        await workflow.send_manual_reminder(arrangement.id, lender.id)

    await test_db.refresh(arrangement)
    assert arrangement.last_reminded_at is None
    assert await recent_activity(test_db, arrangement.id) == []


async def test_manual_send_needs_active(workflow, make_arrangement, lender):
    pending = await make_arrangement(status="pending")
    with pytest.raises(InvalidStateError):
        await workflow.send_manual_reminder(pending.id, lender.id)


async def test_borrower_cannot_send(workflow, arrangement, borrower):
    with pytest.raises(ForbiddenError):
        await workflow.send_manual_reminder(arrangement.id, borrower.id)


async def test_zero_hour_limit_disables_throttle(work_db, locks, notifier, clock, arrangement, lender):
    workflow = ReminderWorkflow(work_db, locks, notifier, rate_limit_hours=0, clock=clock)
    await workflow.send_manual_reminder(arrangement.id, lender.id)
    await workflow.send_manual_reminder(arrangement.id, lender.id)
    assert len(notifier.sent) == 2


async def test_commit_failure_after_delivery_mails_once(
    workflow, arrangement, lender, borrower, notifier, work_db, test_db,
):
    FailFirstCommit().patch(work_db)
    with pytest.raises(DatabaseError):
        await workflow.send_manual_reminder(arrangement.id, lender.id)

    assert len(notifier.to(borrower.email)) == 1
    await test_db.refresh(arrangement)
    assert arrangement.last_reminded_at is None


# ─── activity timestamps ────────────────────────────────────────

async def test_activities_use_workflow_clock(workflow, arrangement, lender, borrower, clock, work_db):
    reminder = await workflow.create_auto_reminder(arrangement.id, lender.id)
    clock.advance(hours=3)
    await workflow.snooze_reminder(reminder.id, borrower.id)

    stamps = {
        a.type: a.created_at.replace(tzinfo=None)
        for a in await recent_activity(work_db, arrangement.id)
    }
    assert stamps == {
        "reminder_scheduled": T0.replace(tzinfo=None),
        "reminder_snoozed": (T0 + timedelta(hours=3)).replace(tzinfo=None),
    }
