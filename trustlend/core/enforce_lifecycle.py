"""Lifecycle Enforcement — role resolution and arrangement state preconditions.

Invariants:
    - resolve_role is the only place that compares caller id to lender/borrower ids
    - A closed arrangement rejects every mutating workflow with InvalidStateError
    - Only a pending arrangement can be accepted, only by its borrower
    - An arrangement can be closed only when nothing remains to be paid

Design Decisions:
    - Rules raise typed LedgerErrors directly: every violation maps 1:1 to an
      error kind the HTTP layer already knows how to render
"""

from uuid import UUID

from trustlend.core.balance import Balance
from trustlend.core.domain_types import ArrangementStatus, Role
from trustlend.core.errors import (
    ErrorContext, ForbiddenError, InvalidArgumentError, InvalidStateError,
)
from trustlend.core.format_messages import format_amount
from trustlend.core.repository_protocols import ArrangementLike


def _ctx(arrangement: ArrangementLike) -> ErrorContext:
    return ErrorContext(arrangement_id=str(arrangement.id))


def resolve_role(arrangement: ArrangementLike, caller_id: UUID) -> Role:
    """Map the caller onto their role in this arrangement, or refuse."""
    if arrangement.lender_id == caller_id:
        return Role.LENDER
    if arrangement.borrower_id == caller_id:
        return Role.BORROWER
    raise ForbiddenError("You are not part of this arrangement", _ctx(arrangement))


def require_role(
    arrangement: ArrangementLike, role: Role, required: Role, action: str,
) -> None:
    if role != required:
        raise ForbiddenError(
            f"Only the {required.value} can {action}", _ctx(arrangement),
        )


def check_not_closed(arrangement: ArrangementLike, action: str) -> None:
    if arrangement.status == ArrangementStatus.CLOSED.value:
        raise InvalidStateError(
            f"Cannot {action} on a closed arrangement", _ctx(arrangement),
        )


def check_distinct_parties(lender_id: UUID, borrower_id: UUID) -> None:
    if lender_id == borrower_id:
        raise InvalidArgumentError(
            "You cannot create an arrangement with yourself", "borrower_email",
        )


def check_acceptable(arrangement: ArrangementLike, role: Role) -> None:
    require_role(arrangement, role, Role.BORROWER, "accept the invitation")
    if arrangement.status != ArrangementStatus.PENDING.value:
        raise InvalidStateError(
            "This arrangement is not pending acceptance", _ctx(arrangement),
        )


def check_active(arrangement: ArrangementLike, action: str) -> None:
    if arrangement.status != ArrangementStatus.ACTIVE.value:
        raise InvalidStateError(
            f"Cannot {action} unless the arrangement is active "
            f"(current status: {arrangement.status})",
            _ctx(arrangement),
        )


def check_closable(arrangement: ArrangementLike, balance: Balance) -> None:
    if arrangement.status == ArrangementStatus.CLOSED.value:
        raise InvalidStateError(
            "This arrangement is already closed", _ctx(arrangement),
        )
    if balance.remaining > 0:
        raise InvalidStateError(
            "Cannot close while there is a remaining balance of "
            f"{format_amount(balance.remaining, arrangement.currency)}. "
            "Record and confirm all payments first.",
            _ctx(arrangement),
        )
