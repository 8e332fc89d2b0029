"""Arrangement Schemas — create/close input and read models.

Invariants:
    - total_amount > 0 with at most 2 decimal places
    - currency is a 3-letter code, upper-cased
    - Amounts are serialized as numbers
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from trustlend.schemas.user import Participant


class ArrangementCreate(BaseModel):
    """Arrangement creation — the lender invites a borrower by email."""
    title: str = Field(min_length=1, max_length=200)
    total_amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    borrower_email: EmailStr
    repayment_style: Literal["one_time", "installments", "flexible"] = "one_time"
    currency: str = Field("INR", min_length=3, max_length=3)
    expected_by: date | None = None
    note: str | None = Field(None, max_length=2000)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title cannot be empty or whitespace")
        return v

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()


class ArrangementClose(BaseModel):
    message: str | None = Field(None, max_length=500)


class ArrangementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    total_amount: float
    currency: str
    lender_id: UUID
    borrower_id: UUID
    expected_by: date | None
    repayment_style: str
    note: str | None
    status: str
    closed_at: datetime | None
    closed_message: str | None
    last_reminded_at: datetime | None
    created_at: datetime


class ArrangementSummary(BaseModel):
    """Row of the caller's arrangement list."""
    arrangement: ArrangementResponse
    role: str
    remaining: float


class ArrangementDetail(BaseModel):
    arrangement: ArrangementResponse
    role: str
    paid: float
    pending: float
    remaining: float
    lender: Participant
    borrower: Participant


class ActivityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: str
    actor_role: str
    message: str
    metadata: dict | None = Field(None, validation_alias="details")
    created_at: datetime


class TrustSummaryResponse(BaseModel):
    payments_on_time_ratio: float
    communication_score: str
    last_interaction: date
    summary: str
