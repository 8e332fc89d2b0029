"""Ledger Queries — shared loaders for users and arrangement children.

Invariants:
    - Loaders used inside a unit of work refresh identity-mapped rows
      (populate_existing) so derived quantities never come from stale objects
    - resolve_user_by_email matches case-insensitively on the stored lower-case email
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trustlend.core.errors import ResourceNotFoundError
from trustlend.models.payment import Payment
from trustlend.models.reminder import Reminder
from trustlend.models.proposal import Proposal
from trustlend.models.user import User


async def get_user(db: AsyncSession, user_id: UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise ResourceNotFoundError("User", str(user_id))
    return user


async def resolve_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(
        select(User).where(User.email == email.strip().lower()),
    )
    return result.scalar_one_or_none()


async def load_payments(db: AsyncSession, arrangement_id: UUID) -> list[Payment]:
    result = await db.execute(
        select(Payment)
        .where(Payment.arrangement_id == arrangement_id)
        .order_by(Payment.paid_on.desc(), Payment.created_at.desc())
        .execution_options(populate_existing=True),
    )
    return list(result.scalars().all())


async def load_payment(db: AsyncSession, payment_id: UUID) -> Payment:
    result = await db.execute(
        select(Payment)
        .where(Payment.id == payment_id)
        .execution_options(populate_existing=True),
    )
    payment = result.scalar_one_or_none()
    if payment is None:
        raise ResourceNotFoundError("Payment", str(payment_id))
    return payment


async def load_reminders(db: AsyncSession, arrangement_id: UUID) -> list[Reminder]:
    result = await db.execute(
        select(Reminder)
        .where(Reminder.arrangement_id == arrangement_id)
        .order_by(Reminder.created_at.desc())
        .execution_options(populate_existing=True),
    )
    return list(result.scalars().all())


async def load_reminder(db: AsyncSession, reminder_id: UUID) -> Reminder:
    result = await db.execute(
        select(Reminder)
        .where(Reminder.id == reminder_id)
        .execution_options(populate_existing=True),
    )
    reminder = result.scalar_one_or_none()
    if reminder is None:
        raise ResourceNotFoundError("Reminder", str(reminder_id))
    return reminder


async def load_proposals(db: AsyncSession, arrangement_id: UUID) -> list[Proposal]:
    result = await db.execute(
        select(Proposal)
        .where(Proposal.arrangement_id == arrangement_id)
        .order_by(Proposal.created_at.desc()),
    )
    return list(result.scalars().all())


async def load_proposal(db: AsyncSession, proposal_id: UUID) -> Proposal:
    result = await db.execute(
        select(Proposal)
        .where(Proposal.id == proposal_id)
        .execution_options(populate_existing=True),
    )
    proposal = result.scalar_one_or_none()
    if proposal is None:
        raise ResourceNotFoundError("Proposal", str(proposal_id))
    return proposal
