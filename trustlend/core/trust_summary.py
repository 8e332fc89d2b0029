"""Trust Summary — read model derived from confirmed payments and recent activity.

Invariants:
    - on_time_ratio = confirmed payments paid on/before expected_by / confirmed payments,
      rounded to 2 places; 1.0 when there is no expected date or no payment yet
    - communication score counts payment_recorded, payment_confirmed and proposal_*
      activities among the most recent ones: >=5 excellent, <=1 limited, else good
    - last_interaction is the newest activity date, else the arrangement creation date
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Sequence

from trustlend.core.domain_types import ActivityType
from trustlend.core.repository_protocols import ActivityLike, PaymentLike

RECENT_ACTIVITY_WINDOW = 20
EXCELLENT_THRESHOLD = 5
LIMITED_THRESHOLD = 1


class CommunicationScore(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    LIMITED = "limited"


_SUMMARIES = {
    CommunicationScore.EXCELLENT: "Very responsive — great communication",
    CommunicationScore.GOOD: "Healthy and communicative arrangement",
    CommunicationScore.LIMITED: "Consider checking in gently when comfortable",
}

_COMMUNICATIVE_TYPES = {
    ActivityType.PAYMENT_RECORDED.value,
    ActivityType.PAYMENT_CONFIRMED.value,
}


@dataclass(frozen=True)
class TrustSummary:
    payments_on_time_ratio: float
    communication_score: CommunicationScore
    last_interaction: date
    summary: str


def on_time_ratio(confirmed: Sequence[PaymentLike], expected_by: date | None) -> float:
    if expected_by is None or not confirmed:
        return 1.0
    on_time = sum(1 for p in confirmed if p.paid_on <= expected_by)
    return round(on_time / len(confirmed), 2)


def communication_score(recent: Sequence[ActivityLike]) -> CommunicationScore:
    count = sum(
        1 for a in recent[:RECENT_ACTIVITY_WINDOW]
        if a.type in _COMMUNICATIVE_TYPES or "proposal" in a.type
    )
    if count >= EXCELLENT_THRESHOLD:
        return CommunicationScore.EXCELLENT
    if count <= LIMITED_THRESHOLD:
        return CommunicationScore.LIMITED
    return CommunicationScore.GOOD


def build_trust_summary(
    confirmed: Sequence[PaymentLike],
    recent: Sequence[ActivityLike],
    expected_by: date | None,
    created_at: datetime,
) -> TrustSummary:
    """`recent` must be ordered newest first."""
    score = communication_score(recent)
    last = recent[0].created_at if recent else created_at
    return TrustSummary(
        payments_on_time_ratio=on_time_ratio(confirmed, expected_by),
        communication_score=score,
        last_interaction=last.date(),
        summary=_SUMMARIES[score],
    )
