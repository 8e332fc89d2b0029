"""Payment Routes — record, list, confirm and reject payments.

Invariants:
    - POST /payments/{id}/confirm with confirmed=false is a rejection
    - Responses carry the arrangement position after the write
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from trustlend.api.dependencies import get_caller_id, get_payment_workflow
from trustlend.infrastructure.database import get_db
from trustlend.schemas.payment import (
    PaymentConfirm, PaymentCreate, PaymentOutcomeResponse, PaymentResponse,
)
from trustlend.services import arrangement_views
from trustlend.services.payment_workflow import PaymentOutcome, PaymentWorkflow

router = APIRouter(prefix="/api/v1", tags=["payments"])


def _outcome_response(outcome: PaymentOutcome) -> PaymentOutcomeResponse:
    return PaymentOutcomeResponse(
        payment=PaymentResponse.model_validate(outcome.payment),
        arrangement_status=outcome.arrangement.status,
        paid=outcome.balance.paid,
        pending=outcome.balance.pending,
        remaining=outcome.balance.remaining,
        auto_closed=outcome.auto_closed,
    )


@router.post(
    "/arrangements/{arrangement_id}/payments",
    response_model=PaymentOutcomeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(
    arrangement_id: UUID,
    body: PaymentCreate,
    caller_id: UUID = Depends(get_caller_id),
    workflow: PaymentWorkflow = Depends(get_payment_workflow),
):
    """Borrower records wait for confirmation; lender records count immediately."""
    outcome = await workflow.record_payment(
        arrangement_id, caller_id, body.amount, body.paid_on, body.note,
    )
    return _outcome_response(outcome)


@router.get(
    "/arrangements/{arrangement_id}/payments",
    response_model=list[PaymentResponse],
)
async def list_payments(
    arrangement_id: UUID,
    caller_id: UUID = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db),
):
    rows = await arrangement_views.payments_for(db, arrangement_id, caller_id)
    return [
        PaymentResponse.model_validate(p).model_copy(update={"recorded_by_name": name})
        for p, name in rows
    ]


@router.post("/payments/{payment_id}/confirm", response_model=PaymentOutcomeResponse)
async def confirm_payment(
    payment_id: UUID,
    body: PaymentConfirm | None = None,
    caller_id: UUID = Depends(get_caller_id),
    workflow: PaymentWorkflow = Depends(get_payment_workflow),
):
    if body is not None and not body.confirmed:
        outcome = await workflow.reject_payment(payment_id, caller_id)
    else:
        outcome = await workflow.confirm_payment(payment_id, caller_id)
    return _outcome_response(outcome)


@router.post("/payments/{payment_id}/reject", response_model=PaymentOutcomeResponse)
async def reject_payment(
    payment_id: UUID,
    caller_id: UUID = Depends(get_caller_id),
    workflow: PaymentWorkflow = Depends(get_payment_workflow),
):
    outcome = await workflow.reject_payment(payment_id, caller_id)
    return _outcome_response(outcome)
