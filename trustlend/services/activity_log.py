"""Activity Log — append-only lifecycle events per arrangement.

Invariants:
    - append_activity only adds rows; nothing in the codebase updates or deletes them
    - Appends join the caller's unit of work (no commit here)
    - Feeds are returned newest first
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trustlend.core.domain_types import ActivityType, ActorRole
from trustlend.models.activity import Activity

FEED_LIMIT = 50


def append_activity(
    db: AsyncSession,
    arrangement_id: UUID,
    activity_type: ActivityType,
    actor_role: ActorRole,
    message: str,
    details: dict | None = None,
    created_at: datetime | None = None,
) -> Activity:
    """created_at should be the unit's own clock reading; wall clock if omitted."""
    activity = Activity(
        arrangement_id=arrangement_id,
        type=activity_type.value,
        actor_role=actor_role.value,
        message=message,
        details=details,
    )
    if created_at is not None:
        activity.created_at = created_at
    db.add(activity)
    return activity


async def recent_activity(
    db: AsyncSession, arrangement_id: UUID, limit: int = FEED_LIMIT,
) -> list[Activity]:
    result = await db.execute(
        select(Activity)
        .where(Activity.arrangement_id == arrangement_id)
        .order_by(Activity.created_at.desc())
        .limit(limit),
    )
    return list(result.scalars().all())
