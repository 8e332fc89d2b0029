"""Verification — issue and check one-time codes by email.

Invariants:
    - Requesting a code always replaces the previous one for (email, purpose)
    - A failed verify never reveals whether the code was wrong, expired or unknown
    - Delivery is best-effort: the code is stored even when the email fails
"""

import logging

from trustlend.core.domain_types import VerificationPurpose
from trustlend.core.errors import InvalidArgumentError
from trustlend.core.format_messages import verification_email
from trustlend.core.repository_protocols import Notifier
from trustlend.core.verification_codes import VerificationCodeStore

logger = logging.getLogger(__name__)


def _purpose(purpose: VerificationPurpose | str) -> VerificationPurpose:
    try:
        return VerificationPurpose(purpose)
    except ValueError:
        raise InvalidArgumentError(
            f"Unknown verification purpose '{purpose}'", "purpose",
        )


async def request_code(
    store: VerificationCodeStore,
    notifier: Notifier,
    email: str,
    purpose: VerificationPurpose | str,
) -> bool:
    """Issue a code and mail it. Returns whether delivery succeeded."""
    if not email or not email.strip():
        raise InvalidArgumentError("Email is required", "email")
    purpose = _purpose(purpose)
    store.purge_expired()
    code = store.issue(email, purpose)
    ttl_minutes = int(store.ttl.total_seconds() // 60)
    subject, body = verification_email(code, purpose.value, ttl_minutes)
    delivered = await notifier.send(email.strip().lower(), subject, body)
    if not delivered:
        logger.warning(f"Verification code for {purpose.value} could not be delivered")
    return delivered


def verify_code(
    store: VerificationCodeStore,
    email: str,
    purpose: VerificationPurpose | str,
    code: str,
) -> None:
    if not store.verify(email, _purpose(purpose), (code or "").strip()):
        raise InvalidArgumentError("Invalid or expired verification code", "code")
