"""Balance Calculator — derives paid/pending/remaining from payment records.

Invariants:
    - paid = sum of CONFIRMED amounts; pending = sum of PENDING_CONFIRMATION amounts
    - remaining = max(0, total - paid); rejected payments count toward neither sum
    - Pure: callers must pass rows read inside the same transaction as their write

Design Decisions:
    - Computed in Python over the loaded rows instead of SQL SUM: the same rows are
      already locked and loaded by the unit of work, and Decimal stays exact on SQLite
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from trustlend.core.domain_types import PaymentStatus
from trustlend.core.repository_protocols import PaymentLike

ZERO = Decimal("0")


@dataclass(frozen=True)
class Balance:
    """Snapshot of an arrangement's settlement position."""
    total: Decimal
    paid: Decimal
    pending: Decimal

    @property
    def remaining(self) -> Decimal:
        return max(ZERO, self.total - self.paid)

    @property
    def is_settled(self) -> bool:
        return self.remaining <= ZERO

    @property
    def max_recordable(self) -> Decimal:
        """Ceiling for a payment that will wait for confirmation."""
        return max(ZERO, self.remaining - self.pending)

    @property
    def max_confirmable(self) -> Decimal:
        return max(ZERO, self.total - self.paid)


def compute_balance(total: Decimal, payments: Iterable[PaymentLike]) -> Balance:
    paid = ZERO
    pending = ZERO
    for p in payments:
        if p.status == PaymentStatus.CONFIRMED.value:
            paid += p.amount
        elif p.status == PaymentStatus.PENDING_CONFIRMATION.value:
            pending += p.amount
    return Balance(total=Decimal(total), paid=paid, pending=pending)
