"""Arrangement Routes — create, list, detail, accept, close, activity and trust summary.

Invariants:
    - Every route resolves the caller from X-User-Id; only participants see an arrangement
    - Routes never contain business logic (delegate to services)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from trustlend.api.dependencies import get_caller_id, get_lifecycle
from trustlend.infrastructure.database import get_db
from trustlend.schemas.arrangement import (
    ActivityResponse, ArrangementClose, ArrangementCreate, ArrangementDetail,
    ArrangementResponse, ArrangementSummary, TrustSummaryResponse,
)
from trustlend.schemas.user import Participant
from trustlend.services import arrangement_views
from trustlend.services.arrangement_lifecycle import ArrangementLifecycle

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/arrangements", tags=["arrangements"])


@router.post(
    "", response_model=ArrangementResponse, status_code=status.HTTP_201_CREATED,
)
async def create_arrangement(
    body: ArrangementCreate,
    caller_id: UUID = Depends(get_caller_id),
    lifecycle: ArrangementLifecycle = Depends(get_lifecycle),
):
    """Create an arrangement as lender and invite the borrower by email."""
    return await lifecycle.create(
        lender_id=caller_id,
        title=body.title,
        total_amount=body.total_amount,
        borrower_email=body.borrower_email,
        repayment_style=body.repayment_style,
        currency=body.currency,
        expected_by=body.expected_by,
        note=body.note,
    )


@router.get("", response_model=list[ArrangementSummary])
async def list_arrangements(
    caller_id: UUID = Depends(get_caller_id), db: AsyncSession = Depends(get_db),
):
    views = await arrangement_views.list_for_user(db, caller_id)
    return [
        ArrangementSummary(
            arrangement=ArrangementResponse.model_validate(v.arrangement),
            role=v.role.value,
            remaining=v.balance.remaining,
        )
        for v in views
    ]


@router.get("/{arrangement_id}", response_model=ArrangementDetail)
async def get_arrangement(
    arrangement_id: UUID,
    caller_id: UUID = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db),
):
    view = await arrangement_views.arrangement_detail(db, arrangement_id, caller_id)
    return ArrangementDetail(
        arrangement=ArrangementResponse.model_validate(view.arrangement),
        role=view.role.value,
        paid=view.balance.paid,
        pending=view.balance.pending,
        remaining=view.balance.remaining,
        lender=Participant.model_validate(view.lender),
        borrower=Participant.model_validate(view.borrower),
    )


@router.post("/{arrangement_id}/accept", response_model=ArrangementResponse)
async def accept_arrangement(
    arrangement_id: UUID,
    caller_id: UUID = Depends(get_caller_id),
    lifecycle: ArrangementLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.accept(arrangement_id, caller_id)


@router.post("/{arrangement_id}/close", response_model=ArrangementResponse)
async def close_arrangement(
    arrangement_id: UUID,
    body: ArrangementClose | None = None,
    caller_id: UUID = Depends(get_caller_id),
    lifecycle: ArrangementLifecycle = Depends(get_lifecycle),
):
    """Close a fully settled arrangement."""
    message = body.message if body else None
    return await lifecycle.close(arrangement_id, caller_id, message)


@router.get("/{arrangement_id}/activity", response_model=list[ActivityResponse])
async def get_activity(
    arrangement_id: UUID,
    caller_id: UUID = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db),
):
    """Latest 50 activity entries, newest first."""
    return await arrangement_views.activity_feed(db, arrangement_id, caller_id)


@router.get("/{arrangement_id}/trust-summary", response_model=TrustSummaryResponse)
async def get_trust_summary(
    arrangement_id: UUID,
    caller_id: UUID = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db),
):
    summary = await arrangement_views.trust_summary(db, arrangement_id, caller_id)
    return TrustSummaryResponse(
        payments_on_time_ratio=summary.payments_on_time_ratio,
        communication_score=summary.communication_score.value,
        last_interaction=summary.last_interaction,
        summary=summary.summary,
    )
