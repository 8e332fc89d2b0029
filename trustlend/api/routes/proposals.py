"""Proposal Routes — propose new terms and respond to the other side's proposal."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from trustlend.api.dependencies import get_caller_id, get_proposal_workflow
from trustlend.infrastructure.database import get_db
from trustlend.schemas.proposal import (
    ProposalCreate, ProposalResolution, ProposalRespond, ProposalResponse,
)
from trustlend.services import arrangement_views
from trustlend.services.proposal_workflow import ProposalWorkflow

router = APIRouter(prefix="/api/v1", tags=["proposals"])


@router.post(
    "/arrangements/{arrangement_id}/proposals",
    response_model=ProposalResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_proposal(
    arrangement_id: UUID,
    body: ProposalCreate,
    caller_id: UUID = Depends(get_caller_id),
    workflow: ProposalWorkflow = Depends(get_proposal_workflow),
):
    return await workflow.create_proposal(
        arrangement_id, caller_id, body.type, body.new_expected_by, body.reason,
    )


@router.get(
    "/arrangements/{arrangement_id}/proposals",
    response_model=list[ProposalResponse],
)
async def list_proposals(
    arrangement_id: UUID,
    caller_id: UUID = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db),
):
    rows = await arrangement_views.proposals_for(db, arrangement_id, caller_id)
    return [
        ProposalResponse.model_validate(p).model_copy(update={"proposed_by_name": name})
        for p, name in rows
    ]


@router.post("/proposals/{proposal_id}/respond", response_model=ProposalResolution)
async def respond_to_proposal(
    proposal_id: UUID,
    body: ProposalRespond,
    caller_id: UUID = Depends(get_caller_id),
    workflow: ProposalWorkflow = Depends(get_proposal_workflow),
):
    """Accepting applies the proposed terms to the arrangement."""
    proposal, arrangement = await workflow.respond_to_proposal(
        proposal_id, caller_id, body.decision,
    )
    return ProposalResolution(
        proposal=ProposalResponse.model_validate(proposal),
        expected_by=arrangement.expected_by,
    )
