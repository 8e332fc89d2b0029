"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - Core functions receive ORM rows through these structural types, never the models
    - Notification delivery is reached only through the Notifier protocol

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Notifier.send returns bool instead of raising: delivery is best-effort and
      each caller decides whether a failure matters
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Protocol
from uuid import UUID


class ArrangementLike(Protocol):
    """Structural contract for Arrangement rows passed to core rules."""
    id: UUID
    title: str
    total_amount: Decimal
    currency: str
    lender_id: UUID
    borrower_id: UUID
    expected_by: date | None
    status: str
    last_reminded_at: datetime | None
    created_at: datetime


class PaymentLike(Protocol):
    """Structural contract for Payment rows used by the balance calculator."""
    amount: Decimal
    status: str
    paid_on: date


class ActivityLike(Protocol):
    type: str
    created_at: datetime


class Notifier(Protocol):
    """Contract for outbound notifications — implemented by infrastructure."""
    async def send(self, to_email: str, subject: str, body: str) -> bool: ...
