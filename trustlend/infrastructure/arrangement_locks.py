"""Arrangement Locks — single writer per arrangement id within one process.

Invariants:
    - hold(id) serializes every unit of work on the same arrangement
    - Units on different arrangements never wait on each other
    - Lock objects disappear once no coroutine holds or waits on them

Design Decisions:
    - Complements SELECT ... FOR UPDATE: the row lock serializes across processes on
      PostgreSQL, this lock serializes inside a process (and is the only guard on
      SQLite, which ignores FOR UPDATE)
    - WeakValueDictionary over a plain dict: no unbounded growth with arrangement count
"""

import asyncio
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator
from uuid import UUID


class ArrangementLocks:
    """Registry of per-arrangement asyncio locks."""

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[UUID, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, arrangement_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(arrangement_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[arrangement_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, arrangement_id: UUID) -> AsyncIterator[None]:
        lock = self._lock_for(arrangement_id)
        async with lock:
            yield

    def is_held(self, arrangement_id: UUID) -> bool:
        lock = self._locks.get(arrangement_id)
        return lock is not None and lock.locked()
