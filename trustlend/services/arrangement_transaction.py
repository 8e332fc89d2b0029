"""Arrangement Transaction — the atomic, serialized unit of work for one arrangement.

Invariants:
    - Work runs while holding the in-process arrangement lock AND the arrangement row
      lock (SELECT ... FOR UPDATE); every read inside it is refreshed from the store
    - Exactly one commit per successful unit; any exception rolls the unit back
    - Transient store failures are retried up to max_attempts with jittered
      exponential backoff, then surface as DatabaseError
    - Domain errors (LedgerError) are never retried
    - Units with external side effects (email delivery) run with retry=False: work
      executes at most once, a failed commit surfaces as DatabaseError

Design Decisions:
    - The whole read-derive-write sequence is a single callable passed to run(),
      so no workflow can split a balance read from the write that depends on it
    - populate_existing on every locked read: the session identity map may hold rows
      loaded before the lock was acquired
"""

import asyncio
import logging
import random
from datetime import datetime, timezone
from typing import Awaitable, Callable, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trustlend.core.errors import DatabaseError, ErrorContext, ResourceNotFoundError
from trustlend.infrastructure.arrangement_locks import ArrangementLocks
from trustlend.infrastructure.database import is_transient
from trustlend.models.arrangement import Arrangement

logger = logging.getLogger(__name__)

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def lock_arrangement(db: AsyncSession, arrangement_id: UUID) -> Arrangement:
    result = await db.execute(
        select(Arrangement)
        .where(Arrangement.id == arrangement_id)
        .with_for_update()
        .execution_options(populate_existing=True),
    )
    arrangement = result.scalar_one_or_none()
    if arrangement is None:
        raise ResourceNotFoundError("Arrangement", str(arrangement_id))
    return arrangement


async def arrangement_id_of(db: AsyncSession, model, resource_id: UUID) -> UUID:
    """Find the owning arrangement of a payment, reminder or proposal."""
    result = await db.execute(
        select(model.arrangement_id).where(model.id == resource_id),
    )
    arrangement_id = result.scalar_one_or_none()
    if arrangement_id is None:
        raise ResourceNotFoundError(model.__name__, str(resource_id))
    return arrangement_id


class ArrangementTransaction:
    """Runs read-then-write work on one arrangement atomically."""

    def __init__(
        self,
        db: AsyncSession,
        locks: ArrangementLocks,
        max_attempts: int = 3,
        base_delay_ms: int = 50,
    ):
        self.db = db
        self.locks = locks
        self.max_attempts = max_attempts
        self.base_delay_ms = base_delay_ms

    async def run(
        self,
        arrangement_id: UUID,
        work: Callable[[Arrangement], Awaitable[T]],
        retry: bool = True,
    ) -> T:
        max_attempts = self.max_attempts if retry else 1
        async with self.locks.hold(arrangement_id):
            for attempt in range(1, max_attempts + 1):
                try:
                    arrangement = await lock_arrangement(self.db, arrangement_id)
                    result = await work(arrangement)
                    await self.db.commit()
                    return result
                except Exception as e:
                    await self.db.rollback()
                    if not is_transient(e):
                        raise
                    if attempt == max_attempts:
                        logger.error(
                            f"Unit of work failed after {attempt} attempts: {e}",
                            extra={"arrangement_id": arrangement_id, "attempt": attempt},
                        )
                        raise DatabaseError(
                            "Store unavailable, retries exhausted", "transaction",
                            ErrorContext(arrangement_id=str(arrangement_id)),
                        )
                    await self._backoff(attempt, arrangement_id, e)
        raise AssertionError("unreachable")

    async def _backoff(self, attempt: int, arrangement_id: UUID, e: Exception) -> None:
        delay_ms = self.base_delay_ms * 2 ** (attempt - 1)
        delay_ms *= random.uniform(0.75, 1.25)  # ±25% jitter
        logger.warning(
            f"Transient store error, retrying in {delay_ms:.0f}ms: {e}",
            extra={"arrangement_id": arrangement_id, "attempt": attempt},
        )
        await asyncio.sleep(delay_ms / 1000)
