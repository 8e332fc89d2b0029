"""Reminder ORM — a recurring nudge policy for one arrangement.

Invariants:
    - At most one reminder per arrangement is active or snoozed (enforced by the
      reminder workflow inside the arrangement's unit of work)
    - inactive is a soft delete; rows are never removed
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from trustlend.db.base import Base


class Reminder(Base):
    __tablename__ = "reminders"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    arrangement_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("arrangements.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    schedule: Mapped[str] = mapped_column(String(20), nullable=False)
    message_tone: Mapped[str] = mapped_column(
        String(20), nullable=False, default="gentle",
    )
    custom_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    next_trigger: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="active", index=True,
    )
    snooze_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    visible_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
