"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - ArrangementId, PaymentId, ... wrap UUIDs — never use bare UUID in domain logic
    - All valid states encoded as Enums — no raw string matching
    - Role (lender | borrower) is resolved once per unit of work and passed explicitly;
      ActorRole adds SYSTEM for automatic transitions

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and persist to String columns without custom encoders
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", UUID)
ArrangementId = NewType("ArrangementId", UUID)
PaymentId = NewType("PaymentId", UUID)
ReminderId = NewType("ReminderId", UUID)
ProposalId = NewType("ProposalId", UUID)


# ─── Enums ───────────────────────────────────────────────────────

class ArrangementStatus(str, Enum):
    """Arrangement lifecycle: pending -> active -> closed (terminal)."""
    PENDING = "pending"
    ACTIVE = "active"
    CLOSED = "closed"


class RepaymentStyle(str, Enum):
    ONE_TIME = "one_time"
    INSTALLMENTS = "installments"
    FLEXIBLE = "flexible"


class PaymentStatus(str, Enum):
    """pending_confirmation -> confirmed | rejected (both terminal)."""
    PENDING_CONFIRMATION = "pending_confirmation"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class ReminderSchedule(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ReminderStatus(str, Enum):
    """At most one ACTIVE or SNOOZED reminder per arrangement."""
    ACTIVE = "active"
    SNOOZED = "snoozed"
    INACTIVE = "inactive"


class ProposalType(str, Enum):
    EXPECTED_BY_CHANGE = "expectedByChange"


class ProposalStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ProposalDecision(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"


class Role(str, Enum):
    """A caller's role within one arrangement."""
    LENDER = "lender"
    BORROWER = "borrower"


class ActorRole(str, Enum):
    """Who performed an Activity — a participant role or the system itself."""
    LENDER = "lender"
    BORROWER = "borrower"
    SYSTEM = "system"

    @classmethod
    def of(cls, role: Role) -> "ActorRole":
        return cls(role.value)


class ActivityType(str, Enum):
    ARRANGEMENT_CREATED = "arrangement_created"
    ARRANGEMENT_ACCEPTED = "arrangement_accepted"
    ARRANGEMENT_CLOSED = "arrangement_closed"
    PAYMENT_RECORDED = "payment_recorded"
    PAYMENT_CONFIRMED = "payment_confirmed"
    PAYMENT_REJECTED = "payment_rejected"
    PROPOSAL_CREATED = "proposal_created"
    PROPOSAL_RESPONDED = "proposal_responded"
    REMINDER_SCHEDULED = "reminder_scheduled"
    REMINDER_SNOOZED = "reminder_snoozed"
    REMINDER_SENT = "reminder_sent"


class VerificationPurpose(str, Enum):
    SIGNUP = "signup"
    PASSWORD_RESET = "password_reset"
