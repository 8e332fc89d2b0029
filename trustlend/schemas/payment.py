"""Payment Schemas — record/confirm input and payment views.

Invariants:
    - amount > 0 with at most 2 decimal places; the ceiling is checked by the service
    - PaymentConfirm.confirmed=false is a rejection
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PaymentCreate(BaseModel):
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    paid_on: date | None = None
    note: str | None = Field(None, max_length=1000)


class PaymentConfirm(BaseModel):
    confirmed: bool = True


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    arrangement_id: UUID
    amount: float
    paid_on: date
    note: str | None
    recorded_by_id: UUID
    recorded_by_name: str | None = None
    status: str
    confirmed_at: datetime | None
    confirmed_by_id: UUID | None
    created_at: datetime


class PaymentOutcomeResponse(BaseModel):
    """Payment plus the arrangement position after the write."""
    payment: PaymentResponse
    arrangement_status: str
    paid: float
    pending: float
    remaining: float
    auto_closed: bool
