"""Error Hierarchy: typed, categorized exceptions for every Commons failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Client errors (400-level) are raised before any side effect is attempted
    - UniquenessConflict carries an explicit kind and existing_id; callers
      branch on the exception type, never on ad hoc attributes
    - to_response() produces the REST envelope; no internal details leaked

Design Decisions:
    - Single hierarchy with CommonsError base: one FastAPI handler catches all
    - UpstreamDegradedError is raised by gateways and absorbed by the dispatcher;
      it only reaches a client if a route calls a gateway directly (none do)
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
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Context attached to an error for logs and the response envelope."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user_id: int | None = None
    resource_type: str | None = None
    resource_id: str | None = None
    debug_info: dict[str, Any] | None = None


class CommonsError(Exception):
    """Base exception for all Commons errors."""

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
                    "resource_type": self.context.resource_type,
                    "resource_id": self.context.resource_id,
                },
            }
        }


# ─── Client Errors (400-level) ──────────────────────────────────

class InvalidRequestError(CommonsError):
    """Malformed input or a self-referential action."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "INVALID_REQUEST", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )


class UnauthorizedError(CommonsError):
    """No principal could be resolved from the request credentials."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Authentication required",
            "UNAUTHORIZED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class ForbiddenError(CommonsError):
    """Principal is known but may not act on this record."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "FORBIDDEN", ErrorCategory.PERMISSION,
            ErrorSeverity.WARNING, context, 403,
        )


class ResourceNotFoundError(CommonsError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.resource_type = resource_type
        ctx.resource_id = str(resource_id)
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, ctx, 404,
        )
        self.resource_type = resource_type
        self.resource_id = str(resource_id)


class UniquenessConflict(CommonsError):
    """A create collided with a declared uniqueness constraint.

    existing_id points at the record that already holds the unique key, so
    callers can resolve to it instead of failing.
    """
    def __init__(
        self, collection: str, existing_id: int, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.resource_type = collection
        ctx.resource_id = str(existing_id)
        super().__init__(
            f"Record in '{collection}' already exists (id={existing_id})",
            "UNIQUENESS_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.INFO, ctx, 409,
        )
        self.kind = ErrorCategory.CONFLICT
        self.collection = collection
        self.existing_id = existing_id


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(CommonsError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class UpstreamDegradedError(CommonsError):
    """An external service (push gateway) is unreachable or erroring."""
    def __init__(self, service: str, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"{service} unavailable: {message}",
            "UPSTREAM_DEGRADED", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.WARNING, context, 503,
        )
        self.service = service
