"""Proposal Kinds — tagged variant over the renegotiations a participant can propose.

Invariants:
    - Every ProposalType maps to exactly one kind class
    - A kind validates its own payload at construction (InvalidArgumentError)
    - apply() mutates only the arrangement fields the kind owns and returns the
      metadata recorded on the proposal_responded activity

Design Decisions:
    - New kinds extend the variant by adding a dataclass and a parser entry,
      never by string matching inside the workflow
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, ClassVar, Union

from trustlend.core.domain_types import ProposalType
from trustlend.core.errors import InvalidArgumentError


@dataclass(frozen=True)
class ExpectedByChange:
    """Move the arrangement's expected repayment date."""
    new_expected_by: date
    type: ClassVar[ProposalType] = ProposalType.EXPECTED_BY_CHANGE

    def apply(self, arrangement: Any) -> dict:
        arrangement.expected_by = self.new_expected_by
        return {"updated_expected_by": self.new_expected_by.isoformat()}


ProposalKind = Union[ExpectedByChange]


def _parse_expected_by_change(new_expected_by: date | None) -> ExpectedByChange:
    if new_expected_by is None:
        raise InvalidArgumentError(
            "new_expected_by is required for an expectedByChange proposal",
            "new_expected_by",
        )
    return ExpectedByChange(new_expected_by=new_expected_by)


_PARSERS: dict[ProposalType, Callable[..., ProposalKind]] = {
    ProposalType.EXPECTED_BY_CHANGE: _parse_expected_by_change,
}


def parse_proposal_kind(
    proposal_type: str | None, new_expected_by: date | None = None,
) -> ProposalKind:
    if not proposal_type:
        raise InvalidArgumentError("Proposal type is required", "type")
    try:
        kind = ProposalType(proposal_type)
    except ValueError:
        allowed = ", ".join(t.value for t in ProposalType)
        raise InvalidArgumentError(
            f"Unknown proposal type '{proposal_type}'. Allowed: {allowed}", "type",
        )
    return _PARSERS[kind](new_expected_by)
