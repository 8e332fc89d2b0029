"""Payment Enforcement — amount ceilings and per-payment state machine.

Invariants:
    - Sum of confirmed amounts never exceeds the arrangement total
    - A payment awaiting confirmation may not exceed remaining - pending
    - A lender-recorded (auto-confirmed) payment may not exceed remaining
    - confirmed and rejected are terminal; only pending_confirmation moves
    - Rejection messages state the exact ceiling that was violated
"""

from decimal import Decimal

from trustlend.core.balance import Balance
from trustlend.core.domain_types import PaymentStatus
from trustlend.core.errors import (
    ErrorContext, InvalidArgumentError, InvalidStateError,
)
from trustlend.core.format_messages import format_amount


def check_positive_amount(amount: Decimal) -> None:
    if amount is None or amount <= 0:
        raise InvalidArgumentError("A positive amount is required", "amount")


def recordable_ceiling(balance: Balance, auto_confirm: bool) -> Decimal:
    """Largest amount the recorder may submit right now."""
    return balance.remaining if auto_confirm else balance.max_recordable


def check_recordable(
    balance: Balance, amount: Decimal, auto_confirm: bool, currency: str,
) -> None:
    check_positive_amount(amount)
    ceiling = recordable_ceiling(balance, auto_confirm)
    if amount > ceiling:
        if auto_confirm:
            detail = "the remaining balance"
        else:
            detail = "the remaining balance minus payments awaiting confirmation"
        raise InvalidArgumentError(
            f"Amount {format_amount(amount, currency)} exceeds {detail}. "
            f"Maximum allowed: {format_amount(ceiling, currency)}",
            "amount",
        )


def _check_pending(status: str, ctx: ErrorContext) -> None:
    if status == PaymentStatus.CONFIRMED.value:
        raise InvalidStateError("Payment is already confirmed", ctx)
    if status == PaymentStatus.REJECTED.value:
        raise InvalidStateError("Payment has already been rejected", ctx)


def check_confirmable(
    status: str, amount: Decimal, balance: Balance, currency: str,
    ctx: ErrorContext | None = None,
) -> None:
    ctx = ctx or ErrorContext()
    _check_pending(status, ctx)
    if balance.paid + amount > balance.total:
        raise InvalidArgumentError(
            f"Confirming {format_amount(amount, currency)} would exceed the total "
            f"of {format_amount(balance.total, currency)}. Maximum confirmable: "
            f"{format_amount(balance.max_confirmable, currency)}",
            "amount",
        )


def check_rejectable(status: str, ctx: ErrorContext | None = None) -> None:
    _check_pending(status, ctx or ErrorContext())
