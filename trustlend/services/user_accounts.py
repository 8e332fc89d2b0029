"""User Accounts — registration and lookup of lenders and borrowers.

Invariants:
    - Emails are stored lower-cased and unique; a duplicate fails ConflictError
    - Registration never touches arrangements
"""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from trustlend.core.errors import ConflictError, InvalidArgumentError
from trustlend.models.user import User
from trustlend.services.ledger_queries import get_user, resolve_user_by_email

logger = logging.getLogger(__name__)


async def register_user(
    db: AsyncSession, name: str, email: str, timezone: str | None = None,
) -> User:
    if not name or not name.strip():
        raise InvalidArgumentError("Name is required", "name")
    email = (email or "").strip().lower()
    if not email:
        raise InvalidArgumentError("Email is required", "email")
    if await resolve_user_by_email(db, email) is not None:
        raise ConflictError(f"A user with email {email} already exists")

    user = User(name=name.strip(), email=email, timezone=timezone or "UTC")
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        await db.rollback()
        raise ConflictError(f"A user with email {email} already exists")
    logger.info(f"User registered: {user.id}")
    return user


async def current_user(db: AsyncSession, user_id: UUID) -> User:
    return await get_user(db, user_id)
