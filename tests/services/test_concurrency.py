"""Concurrency — racing units of work on one arrangement keep the ledger consistent.

Invariants:
    - Two concurrent confirmations that together exceed the total: exactly one wins
    - Two concurrent borrower records over the ceiling: exactly one wins
    - Two concurrent manual reminders: exactly one is sent
    - Two concurrent reminder schedules: exactly one stays open
"""

import asyncio
from datetime import date
from decimal import Decimal

from sqlalchemy import select

from trustlend.core.errors import InvalidArgumentError, RateLimitedError
from trustlend.core.balance import compute_balance
from trustlend.models.payment import Payment
from trustlend.models.reminder import Reminder
from trustlend.services.ledger_queries import load_payments
from trustlend.services.payment_workflow import PaymentWorkflow
from trustlend.services.reminder_workflow import ReminderWorkflow


async def _in_own_session(factory, make_workflow, call):
    async with factory() as db:
        return await call(make_workflow(db))


async def test_concurrent_confirmations_never_overpay(
    test_session_factory, locks, arrangement, lender, borrower, test_db,
):
    for _ in range(2):
        test_db.add(Payment(
            arrangement_id=arrangement.id, amount=Decimal("600"),
            paid_on=date(2026, 3, 1), recorded_by_id=borrower.id,
            status="pending_confirmation",
        ))
    await test_db.commit()
    payment_ids = (await test_db.execute(
        select(Payment.id).where(Payment.arrangement_id == arrangement.id),
    )).scalars().all()

    results = await asyncio.gather(*[
        _in_own_session(
            test_session_factory,
            lambda db: PaymentWorkflow(db, locks),
            lambda wf, pid=pid: wf.confirm_payment(pid, lender.id),
        )
        for pid in payment_ids
    ], return_exceptions=True)

    errors = [r for r in results if isinstance(r, Exception)]
    assert len(errors) == 1
    assert isinstance(errors[0], InvalidArgumentError)
    async with test_session_factory() as db:
        balance = compute_balance(arrangement.total_amount, await load_payments(db, arrangement.id))
    assert balance.paid == Decimal("600")


async def test_concurrent_records_respect_ceiling(
    test_session_factory, locks, arrangement, borrower,
):
    results = await asyncio.gather(*[
        _in_own_session(
            test_session_factory,
            lambda db: PaymentWorkflow(db, locks),
            lambda wf: wf.record_payment(arrangement.id, borrower.id, Decimal("700")),
        )
        for _ in range(2)
    ], return_exceptions=True)

    assert sum(isinstance(r, InvalidArgumentError) for r in results) == 1
    async with test_session_factory() as db:
        balance = compute_balance(arrangement.total_amount, await load_payments(db, arrangement.id))
    assert balance.pending == Decimal("700")


async def test_concurrent_manual_reminders_send_once(
    test_session_factory, locks, notifier, arrangement, lender,
):
    results = await asyncio.gather(*[
        _in_own_session(
            test_session_factory,
            lambda db: ReminderWorkflow(db, locks, notifier, rate_limit_hours=24),
            lambda wf: wf.send_manual_reminder(arrangement.id, lender.id),
        )
        for _ in range(2)
    ], return_exceptions=True)

    assert sum(isinstance(r, RateLimitedError) for r in results) == 1
    assert len(notifier.sent) == 1


async def test_concurrent_auto_reminders_keep_singleton(
    test_session_factory, locks, notifier, arrangement, lender,
):
    created = await asyncio.gather(*[
        _in_own_session(
            test_session_factory,
            lambda db: ReminderWorkflow(db, locks, notifier),
            lambda wf, schedule=schedule: wf.create_auto_reminder(arrangement.id, lender.id, schedule),
        )
        for schedule in ("weekly", "monthly")
    ])

    async with test_session_factory() as db:
        reminders = (await db.execute(
            select(Reminder).where(Reminder.arrangement_id == arrangement.id),
        )).scalars().all()
    assert len(reminders) == 2
    open_reminders = [r for r in reminders if r.status != "inactive"]
    assert len(open_reminders) == 1
    assert open_reminders[0].id in {r.id for r in created}
