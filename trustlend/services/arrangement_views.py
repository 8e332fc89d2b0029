"""Arrangement Views — participant-only read models.

Invariants:
    - Every view resolves the caller's role first; non-participants get ForbiddenError
    - Views never write; balances are derived with the same calculator the workflows use
    - Activity feed returns at most 50 rows, newest first
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from trustlend.core.balance import Balance, compute_balance
from trustlend.core.domain_types import PaymentStatus, Role
from trustlend.core.enforce_lifecycle import resolve_role
from trustlend.core.errors import ResourceNotFoundError
from trustlend.core.trust_summary import (
    RECENT_ACTIVITY_WINDOW, TrustSummary, build_trust_summary,
)
from trustlend.models.activity import Activity
from trustlend.models.arrangement import Arrangement
from trustlend.models.payment import Payment
from trustlend.models.proposal import Proposal
from trustlend.models.reminder import Reminder
from trustlend.models.user import User
from trustlend.services.activity_log import FEED_LIMIT, recent_activity
from trustlend.services.ledger_queries import (
    get_user, load_payments, load_proposals, load_reminders,
)


@dataclass
class ArrangementView:
    arrangement: Arrangement
    role: Role
    balance: Balance
    lender: User | None = None
    borrower: User | None = None


async def _participant_arrangement(
    db: AsyncSession, arrangement_id: UUID, caller_id: UUID,
) -> tuple[Arrangement, Role]:
    arrangement = await db.get(Arrangement, arrangement_id)
    if arrangement is None:
        raise ResourceNotFoundError("Arrangement", str(arrangement_id))
    return arrangement, resolve_role(arrangement, caller_id)


async def list_for_user(db: AsyncSession, caller_id: UUID) -> list[ArrangementView]:
    result = await db.execute(
        select(Arrangement)
        .where(or_(
            Arrangement.lender_id == caller_id,
            Arrangement.borrower_id == caller_id,
        ))
        .order_by(Arrangement.created_at.desc()),
    )
    views = []
    for arrangement in result.scalars().all():
        balance = compute_balance(
            arrangement.total_amount, await load_payments(db, arrangement.id),
        )
        views.append(ArrangementView(
            arrangement, resolve_role(arrangement, caller_id), balance,
        ))
    return views


async def arrangement_detail(
    db: AsyncSession, arrangement_id: UUID, caller_id: UUID,
) -> ArrangementView:
    arrangement, role = await _participant_arrangement(db, arrangement_id, caller_id)
    balance = compute_balance(
        arrangement.total_amount, await load_payments(db, arrangement.id),
    )
    return ArrangementView(
        arrangement, role, balance,
        lender=await get_user(db, arrangement.lender_id),
        borrower=await get_user(db, arrangement.borrower_id),
    )


async def payments_for(
    db: AsyncSession, arrangement_id: UUID, caller_id: UUID,
) -> list[tuple[Payment, str]]:
    """Payments newest first, each with the recorder's display name."""
    await _participant_arrangement(db, arrangement_id, caller_id)
    payments = await load_payments(db, arrangement_id)
    names: dict[UUID, str] = {}
    for p in payments:
        if p.recorded_by_id not in names:
            names[p.recorded_by_id] = (await get_user(db, p.recorded_by_id)).name
    return [(p, names[p.recorded_by_id]) for p in payments]


async def reminders_for(
    db: AsyncSession, arrangement_id: UUID, caller_id: UUID,
) -> list[Reminder]:
    await _participant_arrangement(db, arrangement_id, caller_id)
    return await load_reminders(db, arrangement_id)


async def proposals_for(
    db: AsyncSession, arrangement_id: UUID, caller_id: UUID,
) -> list[tuple[Proposal, str]]:
    await _participant_arrangement(db, arrangement_id, caller_id)
    proposals = await load_proposals(db, arrangement_id)
    return [(p, (await get_user(db, p.proposed_by_id)).name) for p in proposals]


async def activity_feed(
    db: AsyncSession, arrangement_id: UUID, caller_id: UUID,
) -> list[Activity]:
    await _participant_arrangement(db, arrangement_id, caller_id)
    return await recent_activity(db, arrangement_id, FEED_LIMIT)


async def trust_summary(
    db: AsyncSession, arrangement_id: UUID, caller_id: UUID,
) -> TrustSummary:
    arrangement, _ = await _participant_arrangement(db, arrangement_id, caller_id)
    result = await db.execute(
        select(Payment)
        .where(Payment.arrangement_id == arrangement_id)
        .where(Payment.status == PaymentStatus.CONFIRMED.value)
        .order_by(Payment.paid_on.asc()),
    )
    confirmed = list(result.scalars().all())
    recent = await recent_activity(db, arrangement_id, RECENT_ACTIVITY_WINDOW)
    return build_trust_summary(
        confirmed, recent, arrangement.expected_by, arrangement.created_at,
    )
