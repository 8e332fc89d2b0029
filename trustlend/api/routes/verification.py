"""Verification Routes — request and check one-time email codes."""

from fastapi import APIRouter, Depends

from trustlend.api.dependencies import get_code_store, get_notifier
from trustlend.core.repository_protocols import Notifier
from trustlend.core.verification_codes import VerificationCodeStore
from trustlend.schemas.verification import (
    VerificationCheck, VerificationCheckResponse, VerificationRequest,
    VerificationRequestResponse,
)
from trustlend.services.verification import request_code, verify_code

router = APIRouter(prefix="/api/v1/verification", tags=["verification"])


@router.post("/request", response_model=VerificationRequestResponse)
async def request_verification_code(
    body: VerificationRequest,
    store: VerificationCodeStore = Depends(get_code_store),
    notifier: Notifier = Depends(get_notifier),
):
    sent = await request_code(store, notifier, body.email, body.purpose)
    return VerificationRequestResponse(
        sent=sent, expires_in_minutes=int(store.ttl.total_seconds() // 60),
    )


@router.post("/verify", response_model=VerificationCheckResponse)
async def verify_verification_code(
    body: VerificationCheck,
    store: VerificationCodeStore = Depends(get_code_store),
):
    """Single use: a second verify with the same code fails."""
    verify_code(store, body.email, body.purpose, body.code)
    return VerificationCheckResponse()
