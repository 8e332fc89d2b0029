"""Reminder Schemas — schedule, snooze and manual-send input; reminder views."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ReminderCreate(BaseModel):
    schedule: Literal["weekly", "monthly"] = "monthly"
    message_tone: Literal["gentle", "neutral", "firm"] = "gentle"
    custom_message: str | None = Field(None, max_length=1000)


class ReminderSnooze(BaseModel):
    """snooze_until defaults to 14 days from now when omitted."""
    snooze_until: datetime | None = None
    reason: str | None = Field(None, max_length=500)


class ManualReminder(BaseModel):
    message: str | None = Field(None, max_length=1000)


class ReminderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    arrangement_id: UUID
    schedule: str
    message_tone: str
    custom_message: str | None
    next_trigger: datetime
    status: str
    snooze_until: datetime | None
    visible_note: str | None
    created_at: datetime


class ManualReminderResponse(BaseModel):
    sent: bool = True
    last_reminded_at: datetime
