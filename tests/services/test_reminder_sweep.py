"""Reminder Sweeper — due selection, rescheduling, deferral and failure isolation.

Invariants:
    - Only active-and-due or snoozed-and-expired reminders on open arrangements are sent
    - A successful send moves next_trigger one period past now and clears the snooze
    - A rate-limited reminder is deferred untouched
    - A failed send leaves next_trigger and last_reminded_at untouched
    - A store failure after delivery is not retried within the sweep
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import timedelta

import pytest

from trustlend.models.reminder import Reminder
from trustlend.services.activity_log import recent_activity
from trustlend.services.reminder_sweep import ReminderSweeper, find_due_reminders
from tests.services.fakes import T0, FailFirstCommit

NOW = T0 + timedelta(days=30)


@pytest.fixture
def sweeper(test_session_factory, locks, notifier):
    return ReminderSweeper(
        test_session_factory, locks, notifier,
        rate_limit_hours=24, interval_seconds=0.01, startup_delay_seconds=0,
    )


@pytest.fixture
def add_reminder(test_db, lender):
    async def _add(arrangement, **fields) -> Reminder:
        reminder = Reminder(
            arrangement_id=arrangement.id,
            schedule=fields.pop("schedule", "weekly"),
            next_trigger=fields.pop("next_trigger", NOW - timedelta(hours=1)),
            status=fields.pop("status", "active"),
            created_by_id=lender.id,
            created_at=T0,
            **fields,
        )
        test_db.add(reminder)
        await test_db.commit()
        return reminder

    return _add


async def test_due_selection(test_db, make_arrangement, add_reminder):
    open_arrangement = await make_arrangement()
    closed = await make_arrangement(status="closed")
    due = await add_reminder(open_arrangement)
    await add_reminder(open_arrangement, next_trigger=NOW + timedelta(days=1))
    await add_reminder(open_arrangement, status="inactive")
    await add_reminder(closed)
    snoozed_due = await add_reminder(
        open_arrangement, status="snoozed",
        next_trigger=NOW + timedelta(days=5), snooze_until=NOW - timedelta(minutes=5),
    )
    await add_reminder(
        open_arrangement, status="snoozed", snooze_until=NOW + timedelta(days=2),
    )

    found = {rid for rid, _ in await find_due_reminders(test_db, NOW)}
    assert found == {due.id, snoozed_due.id}


async def test_sent_reminder_is_rescheduled(
    sweeper, arrangement, add_reminder, borrower, notifier, test_db,
):
    reminder = await add_reminder(
        arrangement, status="snoozed", snooze_until=NOW - timedelta(minutes=1),
        visible_note="Travelling",
    )

    report = await sweeper.sweep_once(NOW)

    assert report.sent == 1
    assert len(notifier.to(borrower.email)) == 1
    await test_db.refresh(reminder)
    await test_db.refresh(arrangement)
    assert reminder.status == "active"
    assert reminder.snooze_until is None
    assert reminder.visible_note is None
    assert reminder.next_trigger.replace(tzinfo=None) == (NOW + timedelta(weeks=1)).replace(tzinfo=None)
    assert arrangement.last_reminded_at.replace(tzinfo=None) == NOW.replace(tzinfo=None)
    latest = (await recent_activity(test_db, arrangement.id))[0]
    assert latest.type == "reminder_sent"
    assert latest.actor_role == "system"


async def test_rate_limited_reminder_deferred(
    sweeper, make_arrangement, add_reminder, notifier, test_db,
):
    arrangement = await make_arrangement(last_reminded_at=NOW - timedelta(hours=2))
    reminder = await add_reminder(arrangement)
    before = reminder.next_trigger

    report = await sweeper.sweep_once(NOW)

    assert report.deferred == 1
    assert notifier.sent == []
    await test_db.refresh(reminder)
    assert reminder.next_trigger.replace(tzinfo=None) == before.replace(tzinfo=None)


async def test_failed_send_does_not_advance(
    sweeper, arrangement, add_reminder, notifier, test_db,
):
    reminder = await add_reminder(arrangement)
    before = reminder.next_trigger
    notifier.fail = True

    report = await sweeper.sweep_once(NOW)

    assert report.failed == 1
    await test_db.refresh(reminder)
    await test_db.refresh(arrangement)
    assert reminder.next_trigger.replace(tzinfo=None) == before.replace(tzinfo=None)
    assert arrangement.last_reminded_at is None

    notifier.fail = False
    assert (await sweeper.sweep_once(NOW)).sent == 1


async def test_one_failure_does_not_abort_sweep(
    sweeper, make_arrangement, add_reminder, notifier, monkeypatch,
):
    first = await make_arrangement(title="First")
    second = await make_arrangement(title="Second")
    await add_reminder(first, next_trigger=NOW - timedelta(hours=2))
    await add_reminder(second, next_trigger=NOW - timedelta(hours=1))

    original_send = notifier.send

    async def flaky_send(to_email, subject, body):
        if "First" in subject:
            raise RuntimeError("mail relay exploded")
        return await original_send(to_email, subject, body)

    monkeypatch.setattr(notifier, "send", flaky_send)

    report = await sweeper.sweep_once(NOW)

    assert report.failed == 1
    assert report.sent == 1
    assert "Second" in notifier.sent[0]["subject"]


async def test_start_and_stop(sweeper, arrangement, add_reminder, notifier, clock):
    await add_reminder(arrangement, next_trigger=T0 - timedelta(days=1))
    sweeper.clock = clock

    sweeper.start()
    assert sweeper.running
    for _ in range(100):
        if notifier.sent:
            break
        await asyncio.sleep(0.01)
    await sweeper.stop()

    assert not sweeper.running
    assert len(notifier.sent) == 1


async def test_commit_failure_after_delivery_mails_once(
    test_session_factory, locks, notifier, arrangement, add_reminder, borrower,
):
    await add_reminder(arrangement)
    failing = FailFirstCommit()

    @asynccontextmanager
    async def sessions():
        async with test_session_factory() as db:
            yield failing.patch(db)

    sweeper = ReminderSweeper(sessions, locks, notifier, rate_limit_hours=24)
    report = await sweeper.sweep_once(NOW)

    assert report.failed == 1
    assert report.sent == 0
    assert len(notifier.to(borrower.email)) == 1
