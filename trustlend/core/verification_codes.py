"""Verification Code Store — expiring, single-use one-time codes keyed by (email, purpose).

Invariants:
    - At most one live code per (email, purpose); issuing again replaces it (last writer wins)
    - verify() succeeds at most once per issued code; the entry is deleted on success
    - Codes expire ttl after issue; expired entries are deleted when touched
    - A wrong code leaves the live entry in place

Design Decisions:
    - Explicit collaborator held on app.state, not a module-level dict: tests and
      workers each get their own instance
    - Clock injected so expiry is testable without sleeping
    - Single event loop, no awaits between read and write: no locking needed
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from trustlend.core.domain_types import VerificationPurpose

CODE_DIGITS = 6


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CodeEntry:
    code: str
    expires_at: datetime


class VerificationCodeStore:
    """In-process TTL map of one-time codes."""

    def __init__(
        self, ttl: timedelta = timedelta(minutes=10),
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[tuple[str, VerificationPurpose], CodeEntry] = {}

    @staticmethod
    def _key(email: str, purpose: VerificationPurpose | str) -> tuple[str, VerificationPurpose]:
        return email.strip().lower(), VerificationPurpose(purpose)

    def issue(self, email: str, purpose: VerificationPurpose | str) -> str:
        code = f"{secrets.randbelow(10 ** CODE_DIGITS):0{CODE_DIGITS}d}"
        self._entries[self._key(email, purpose)] = CodeEntry(
            code=code, expires_at=self._clock() + self.ttl,
        )
        return code

    def verify(self, email: str, purpose: VerificationPurpose | str, code: str) -> bool:
        key = self._key(email, purpose)
        entry = self._entries.get(key)
        if entry is None:
            return False
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return False
        if not secrets.compare_digest(entry.code, code):
            return False
        del self._entries[key]
        return True

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now >= e.expires_at]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
