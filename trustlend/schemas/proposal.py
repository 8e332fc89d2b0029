"""Proposal Schemas — renegotiation input and views.

Invariants:
    - type is checked by the service so unknown kinds surface as INVALID_ARGUMENT
"""

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ProposalCreate(BaseModel):
    type: str = Field(min_length=1, max_length=50)
    new_expected_by: date | None = None
    reason: str | None = Field(None, max_length=1000)


class ProposalRespond(BaseModel):
    decision: Literal["accept", "reject"]


class ProposalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    arrangement_id: UUID
    type: str
    new_expected_by: date | None
    reason: str | None
    proposed_by_id: UUID
    proposed_by_name: str | None = None
    status: str
    created_at: datetime
    resolved_at: datetime | None


class ProposalResolution(BaseModel):
    proposal: ProposalResponse
    expected_by: date | None
