"""Error Hierarchy — typed, categorized exceptions for all TrustLend failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable at the caller boundary
    - Messages that reject an amount state the concrete limit that was violated
    - to_response() produces the REST envelope

Design Decisions:
    - Single hierarchy with LedgerError base: FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    PERMISSION = "permission"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    RATE_LIMIT = "rate_limit"
    DATABASE = "database"
    EXTERNAL_SERVICE = "external_service"
    CONFLICT = "conflict"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    arrangement_id: str | None = None
    resource_id: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class LedgerError(Exception):
    """Base exception for all TrustLend errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "arrangement_id": self.context.arrangement_id,
                    "resource_id": self.context.resource_id,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class InvalidArgumentError(LedgerError):
    """Missing, malformed or out-of-range input."""
    def __init__(
        self, message: str, field: str | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "INVALID_ARGUMENT", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class UnauthenticatedError(LedgerError):
    """Request carries no usable caller identity."""
    def __init__(self, message: str = "Authentication required", context: ErrorContext | None = None):
        super().__init__(
            message, "UNAUTHENTICATED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class ForbiddenError(LedgerError):
    """Caller lacks the role required for the operation."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "FORBIDDEN", ErrorCategory.PERMISSION,
            ErrorSeverity.WARNING, context, 403,
        )


class ResourceNotFoundError(LedgerError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class InvalidStateError(LedgerError):
    """Operation not valid for the current lifecycle state."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "INVALID_STATE", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )


class ConflictError(LedgerError):
    """Unique resource already exists."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class RateLimitedError(LedgerError):
    """Reminder send throttled for this arrangement."""
    def __init__(
        self, hours_remaining: int, limit_hours: int,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = hours_remaining * 3_600_000
        super().__init__(
            f"A reminder was already sent recently. Reminders are limited to one "
            f"every {limit_hours} hour(s); try again in {hours_remaining} hour(s).",
            "RATE_LIMITED", ErrorCategory.RATE_LIMIT,
            ErrorSeverity.WARNING, ctx, 429,
        )
        self.hours_remaining = hours_remaining
        self.limit_hours = limit_hours

    def to_response(self) -> dict:
        response = super().to_response()
        response["error"]["hours_remaining"] = self.hours_remaining
        return response


# ─── Infrastructure Errors (500-level) ──────────────────────────

class NotificationFailedError(LedgerError):
    """Notification could not be delivered on a path that must surface it."""
    def __init__(self, recipient: str, context: ErrorContext | None = None):
        super().__init__(
            f"Could not deliver the reminder to {recipient}. Nothing was recorded; try again later.",
            "NOTIFICATION_FAILED", ErrorCategory.EXTERNAL_SERVICE,
            ErrorSeverity.ERROR, context, 502,
        )
        self.recipient = recipient


class DatabaseError(LedgerError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
