"""Arrangement ORM — the aggregate root of the ledger.

Invariants:
    - total_amount > 0; lender_id != borrower_id
    - status transitions: pending -> active -> closed (terminal); pending -> closed
      only through settlement
    - last_reminded_at is the single rate-limit clock for manual and automatic reminders

Design Decisions:
    - Numeric(12, 2) for money: Decimal end to end, never float
    - No ORM relationships: children and parties are loaded explicitly by the
      services, so the unit of work decides what it reads under the row lock
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Text, Date, DateTime, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from trustlend.db.base import Base


class Arrangement(Base):
    """Arrangement aggregate root — owns payments, reminders, proposals, activities."""
    __tablename__ = "arrangements"
    __table_args__ = (
        CheckConstraint("total_amount > 0", name="ck_arrangements_total_positive"),
        CheckConstraint("lender_id <> borrower_id", name="ck_arrangements_distinct_parties"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False,
    )
    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default="INR",
    )
    lender_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True,
    )
    borrower_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True,
    )
    expected_by: Mapped[date | None] = mapped_column(Date, nullable=True)
    repayment_style: Mapped[str] = mapped_column(String(20), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending",
    )
    closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    closed_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_reminded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
