"""Reminder Enforcement — schedule arithmetic, rate-limit gate, due-ness.

Invariants:
    - next trigger = now + 1 week (weekly) or now + 1 calendar month (monthly)
    - Rate limit: no send within reminder_rate_limit_hours of last_reminded_at;
      a limit of 0 disables the gate
    - A reminder is due when ACTIVE with next_trigger <= now, or SNOOZED with
      snooze_until <= now; INACTIVE reminders are never due
    - All datetimes compared in UTC (rows read back from SQLite come back naive)

Design Decisions:
    - relativedelta for the monthly step: Jan 31 + 1 month = Feb 28/29, never Mar 3
    - Hours remaining rounded up so "try again in N hours" is never too early
"""

import math
from datetime import datetime, timedelta, timezone

from dateutil.relativedelta import relativedelta

from trustlend.core.domain_types import ReminderSchedule, ReminderStatus
from trustlend.core.errors import (
    ErrorContext, InvalidArgumentError, InvalidStateError, RateLimitedError,
)

DEFAULT_SNOOZE = timedelta(days=14)


def as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def next_trigger_after(schedule: ReminderSchedule | str, now: datetime) -> datetime:
    schedule = ReminderSchedule(schedule)
    if schedule == ReminderSchedule.WEEKLY:
        return now + timedelta(weeks=1)
    return now + relativedelta(months=1)


def rate_limit_hours_remaining(
    last_reminded_at: datetime | None, now: datetime, limit_hours: int,
) -> int:
    """Whole hours until the next send is allowed; 0 when sending is allowed now."""
    if limit_hours <= 0 or last_reminded_at is None:
        return 0
    elapsed = as_utc(now) - as_utc(last_reminded_at)
    window = timedelta(hours=limit_hours)
    if elapsed >= window:
        return 0
    return max(1, math.ceil((window - elapsed).total_seconds() / 3600))


def check_rate_limit(
    last_reminded_at: datetime | None, now: datetime, limit_hours: int,
    ctx: ErrorContext | None = None,
) -> None:
    hours = rate_limit_hours_remaining(last_reminded_at, now, limit_hours)
    if hours:
        raise RateLimitedError(hours, limit_hours, ctx)


def is_due(status: str, next_trigger: datetime | None,
           snooze_until: datetime | None, now: datetime) -> bool:
    now = as_utc(now)
    if status == ReminderStatus.ACTIVE.value:
        return next_trigger is not None and as_utc(next_trigger) <= now
    if status == ReminderStatus.SNOOZED.value:
        return snooze_until is not None and as_utc(snooze_until) <= now
    return False


def resolve_snooze_until(requested: datetime | None, now: datetime) -> datetime:
    if requested is None:
        return now + DEFAULT_SNOOZE
    requested = as_utc(requested)
    if requested <= now:
        raise InvalidArgumentError(
            "snooze_until must be in the future", "snooze_until",
        )
    return requested


def check_snoozable(status: str, ctx: ErrorContext | None = None) -> None:
    if status == ReminderStatus.INACTIVE.value:
        raise InvalidStateError(
            "This reminder has been turned off and cannot be snoozed",
            ctx or ErrorContext(),
        )
