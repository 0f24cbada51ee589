"""Error Hierarchy — one exception tree for every marketplace failure mode.

Invariants:
    - Each class pins its code, category, severity and HTTP status as class attributes;
      callers override only what varies (ConflictError's code, the message)
    - 4xx classes describe caller mistakes or state-machine refusals; 5xx classes are
      infrastructure (database, payment gateway) and carry CRITICAL severity
    - to_response() is the only serializer of the REST error envelope
    - Messages never include driver output or secrets

Design Decisions:
    - ErrorContext is a plain dataclass so core/ can attach resource ids and retry
      hints without importing logging or FastAPI
    - Conflict codes are distinct per state-machine violation so clients can branch on them
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Who/what the failure concerns, plus an optional retry hint."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user_id: str | None = None
    resource_type: str | None = None
    resource_id: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class DatanestError(Exception):
    """Base of the hierarchy. Subclasses set the class-level defaults."""

    code: str = "INTERNAL_ERROR"
    category: ErrorCategory = ErrorCategory.INTERNAL
    severity: ErrorSeverity = ErrorSeverity.ERROR
    http_status: int = 500

    def __init__(
        self,
        message: str,
        code: str | None = None,
        category: ErrorCategory | None = None,
        severity: ErrorSeverity | None = None,
        context: ErrorContext | None = None,
        http_status: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        if code is not None:
            self.code = code
        if category is not None:
            self.category = category
        if severity is not None:
            self.severity = severity
        if http_status is not None:
            self.http_status = http_status

    def to_response(self) -> dict:
        ctx = self.context
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": ctx.timestamp.isoformat(),
                "context": {
                    "resource_type": ctx.resource_type,
                    "resource_id": ctx.resource_id,
                    "retry_after_ms": ctx.retry_after_ms,
                },
            }
        }


def _about(
    context: ErrorContext | None, resource_type: str, resource_id: str,
) -> ErrorContext:
    ctx = context or ErrorContext()
    ctx.resource_type = resource_type
    ctx.resource_id = resource_id
    return ctx


# ─── 4xx ─────────────────────────────────────────────────────────

class InputValidationError(DatanestError):
    """Malformed input, caught before touching the store."""
    code = "VALIDATION_ERROR"
    category = ErrorCategory.VALIDATION
    http_status = 400

    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(message, context=context)
        self.field = field


class AuthenticationError(DatanestError):
    code = "NOT_AUTHENTICATED"
    category = ErrorCategory.AUTHENTICATION
    severity = ErrorSeverity.WARNING
    http_status = 401

    def __init__(self, message: str = "Could not validate credentials",
                 context: ErrorContext | None = None):
        super().__init__(message, context=context)


class ForbiddenError(DatanestError):
    """Authenticated, but the gate said no."""
    code = "FORBIDDEN"
    category = ErrorCategory.AUTHORIZATION
    severity = ErrorSeverity.WARNING
    http_status = 403

    def __init__(self, message: str = "Access denied", context: ErrorContext | None = None):
        super().__init__(message, context=context)


class ResourceNotFoundError(DatanestError):
    code = "RESOURCE_NOT_FOUND"
    category = ErrorCategory.RESOURCE_NOT_FOUND
    http_status = 404

    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            context=_about(context, resource_type, resource_id),
        )


class BlobMissingError(DatanestError):
    """Dataset row exists but its file is gone from the blob store."""
    code = "FILE_MISSING"
    category = ErrorCategory.RESOURCE_NOT_FOUND
    http_status = 404

    def __init__(self, dataset_id: str, context: ErrorContext | None = None):
        super().__init__("File not found", context=_about(context, "Dataset", dataset_id))


class ConflictError(DatanestError):
    """State-machine refusal: duplicate purchase, second acceptance, and so on."""
    category = ErrorCategory.CONFLICT
    http_status = 409

    def __init__(self, message: str, code: str, context: ErrorContext | None = None):
        super().__init__(message, code=code, context=context)


class InvalidTransitionError(ConflictError):
    def __init__(
        self, entity: str, current: str, target: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{entity} cannot move from '{current}' to '{target}'",
            "INVALID_TRANSITION", context,
        )
        self.current = current
        self.target = target


class PaymentRejectedError(DatanestError):
    """Gateway answered, but refused this payment (bad amount, declined card, bad state)."""
    code = "PAYMENT_REJECTED"
    category = ErrorCategory.EXTERNAL_API
    severity = ErrorSeverity.WARNING
    http_status = 402

    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(message, context=context)


# ─── 5xx ─────────────────────────────────────────────────────────

class DatabaseError(DatanestError):
    code = "DATABASE_ERROR"
    category = ErrorCategory.DATABASE
    severity = ErrorSeverity.CRITICAL
    http_status = 503

    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(f"Database {operation} failed: {message}", context=context)
        self.operation = operation


class PaymentGatewayError(DatanestError):
    """Gateway unreachable, rate limited, timed out, or failing on its side."""
    code = "PAYMENT_GATEWAY_UNAVAILABLE"
    category = ErrorCategory.EXTERNAL_API
    severity = ErrorSeverity.CRITICAL
    http_status = 503

    def __init__(
        self,
        message: str,
        gateway_error_type: str,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_ms
        super().__init__(
            f"Payment gateway error ({gateway_error_type}): {message}", context=ctx,
        )
        self.gateway_error_type = gateway_error_type
