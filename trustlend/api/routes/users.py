"""User Routes — registration and the caller's own profile."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from trustlend.api.dependencies import get_caller_id
from trustlend.infrastructure.database import get_db
from trustlend.schemas.user import UserCreate, UserResponse
from trustlend.services.user_accounts import current_user, register_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.post(
    "", response_model=UserResponse, status_code=status.HTTP_201_CREATED,
)
async def create_user(body: UserCreate, db: AsyncSession = Depends(get_db)):
    """Register a lender or borrower."""
    return await register_user(db, body.name, body.email, body.timezone)


@router.get("/me", response_model=UserResponse)
async def get_me(
    caller_id: UUID = Depends(get_caller_id), db: AsyncSession = Depends(get_db),
):
    return await current_user(db, caller_id)
