"""Reminder Routes — schedule, list, send, delete and snooze reminders.

Invariants:
    - Lender schedules, sends and deletes; borrower snoozes
    - A rate-limited manual send returns 429 with hours_remaining
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from trustlend.api.dependencies import get_caller_id, get_reminder_workflow
from trustlend.infrastructure.database import get_db
from trustlend.schemas.reminder import (
    ManualReminder, ManualReminderResponse, ReminderCreate, ReminderResponse,
    ReminderSnooze,
)
from trustlend.services import arrangement_views
from trustlend.services.reminder_workflow import ReminderWorkflow

router = APIRouter(prefix="/api/v1", tags=["reminders"])


@router.post(
    "/arrangements/{arrangement_id}/reminders",
    response_model=ReminderResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_reminder(
    arrangement_id: UUID,
    body: ReminderCreate,
    caller_id: UUID = Depends(get_caller_id),
    workflow: ReminderWorkflow = Depends(get_reminder_workflow),
):
    """Replaces any active or snoozed reminder on the arrangement."""
    return await workflow.create_auto_reminder(
        arrangement_id, caller_id, body.schedule, body.message_tone, body.custom_message,
    )


@router.get(
    "/arrangements/{arrangement_id}/reminders",
    response_model=list[ReminderResponse],
)
async def list_reminders(
    arrangement_id: UUID,
    caller_id: UUID = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db),
):
    return await arrangement_views.reminders_for(db, arrangement_id, caller_id)


@router.post(
    "/arrangements/{arrangement_id}/reminders/send",
    response_model=ManualReminderResponse,
)
async def send_reminder(
    arrangement_id: UUID,
    body: ManualReminder | None = None,
    caller_id: UUID = Depends(get_caller_id),
    workflow: ReminderWorkflow = Depends(get_reminder_workflow),
):
    arrangement = await workflow.send_manual_reminder(
        arrangement_id, caller_id, body.message if body else None,
    )
    return ManualReminderResponse(last_reminded_at=arrangement.last_reminded_at)


@router.delete("/reminders/{reminder_id}", response_model=ReminderResponse)
async def delete_reminder(
    reminder_id: UUID,
    caller_id: UUID = Depends(get_caller_id),
    workflow: ReminderWorkflow = Depends(get_reminder_workflow),
):
    return await workflow.delete_reminder(reminder_id, caller_id)


@router.post("/reminders/{reminder_id}/snooze", response_model=ReminderResponse)
async def snooze_reminder(
    reminder_id: UUID,
    body: ReminderSnooze | None = None,
    caller_id: UUID = Depends(get_caller_id),
    workflow: ReminderWorkflow = Depends(get_reminder_workflow),
):
    return await workflow.snooze_reminder(
        reminder_id, caller_id,
        body.snooze_until if body else None,
        body.reason if body else None,
    )
