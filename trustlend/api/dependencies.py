"""API Dependencies — caller identity and per-request service construction.

Invariants:
    - Caller identity comes from the X-User-Id header; missing or malformed -> 401
    - Long-lived collaborators (locks, notifier, code store) live on app.state,
      created once in the lifespan
    - Services are built per request around the request's AsyncSession
"""

from uuid import UUID

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from trustlend.config import Settings, get_settings
from trustlend.core.errors import UnauthenticatedError
from trustlend.core.repository_protocols import Notifier
from trustlend.core.verification_codes import VerificationCodeStore
from trustlend.infrastructure.arrangement_locks import ArrangementLocks
from trustlend.infrastructure.database import get_db
from trustlend.services.arrangement_lifecycle import ArrangementLifecycle
from trustlend.services.payment_workflow import PaymentWorkflow
from trustlend.services.proposal_workflow import ProposalWorkflow
from trustlend.services.reminder_workflow import ReminderWorkflow


async def get_caller_id(x_user_id: str | None = Header(None)) -> UUID:
    if not x_user_id:
        raise UnauthenticatedError("X-User-Id header is required")
    try:
        return UUID(x_user_id)
    except ValueError:
        raise UnauthenticatedError("X-User-Id must be a user id")


def get_locks(request: Request) -> ArrangementLocks:
    return request.app.state.arrangement_locks


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


def get_code_store(request: Request) -> VerificationCodeStore:
    return request.app.state.code_store


def get_lifecycle(
    db: AsyncSession = Depends(get_db),
    locks: ArrangementLocks = Depends(get_locks),
    notifier: Notifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
) -> ArrangementLifecycle:
    return ArrangementLifecycle(
        db, locks, notifier, max_attempts=settings.store_max_attempts,
    )


def get_payment_workflow(
    db: AsyncSession = Depends(get_db),
    locks: ArrangementLocks = Depends(get_locks),
    notifier: Notifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
) -> PaymentWorkflow:
    return PaymentWorkflow(
        db, locks, notifier, max_attempts=settings.store_max_attempts,
    )


def get_proposal_workflow(
    db: AsyncSession = Depends(get_db),
    locks: ArrangementLocks = Depends(get_locks),
    settings: Settings = Depends(get_settings),
) -> ProposalWorkflow:
    return ProposalWorkflow(db, locks, max_attempts=settings.store_max_attempts)


def get_reminder_workflow(
    db: AsyncSession = Depends(get_db),
    locks: ArrangementLocks = Depends(get_locks),
    notifier: Notifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
) -> ReminderWorkflow:
    return ReminderWorkflow(
        db, locks, notifier,
        rate_limit_hours=settings.reminder_rate_limit_hours,
        max_attempts=settings.store_max_attempts,
    )
