"""Error Hierarchy — typed, categorized exceptions for entity service failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Cache misses and expired queries are NOT errors (they return None / False)
    - Transport failures are surfaced to the caller unmodified; no retry here
    - Mapping transform/operation exceptions propagate as raised (entity left
      partially mapped); only plan/process misuse gets a typed error

Design Decisions:
    - Single hierarchy with EntityServiceError base: callers catch one type
      for everything this library raises itself
    - ErrorContext as dataclass: rich observability without coupling to logging
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class ErrorSeverity(str, Enum):
    """Error severity for observability and caller handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    CONFIGURATION = "configuration"
    STATE = "state"
    RESOURCE_NOT_FOUND = "resource_not_found"
    TRANSPORT = "transport"
    TIMEOUT = "timeout"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    endpoint: str | None = None
    entity_key: str | None = None
    field_name: str | None = None
    status_code: int | None = None


class EntityServiceError(Exception):
    """Base exception for all entity service errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()

    def to_dict(self) -> dict:
        """Flatten to a JSON-safe dict for structured logging."""
        return {
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "timestamp": self.context.timestamp.isoformat(),
            "context": {
                "endpoint": self.context.endpoint,
                "entity_key": self.context.entity_key,
                "field_name": self.context.field_name,
                "status_code": self.context.status_code,
            },
        }


# ─── Programming Errors ─────────────────────────────────────────

class MappingPlanError(EntityServiceError):
    """Mapping plan declared inconsistently (e.g. two inbound behaviours)."""
    def __init__(self, message: str, field_name: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.field_name = field_name
        super().__init__(
            message, "MAPPING_PLAN_INVALID", ErrorCategory.CONFIGURATION,
            ErrorSeverity.ERROR, ctx,
        )
        self.field_name = field_name


class ProcessStateError(EntityServiceError):
    """Mapping process asked to do something its state does not allow."""
    def __init__(self, message: str, state: str, context: ErrorContext | None = None):
        super().__init__(
            message, "PROCESS_STATE_INVALID", ErrorCategory.STATE,
            ErrorSeverity.ERROR, context,
        )
        self.state = state


# ─── Transport Errors ───────────────────────────────────────────

class TransportError(EntityServiceError):
    """Request to the server failed (connection, HTTP status, bad body)."""
    def __init__(
        self,
        message: str,
        endpoint: str,
        status_code: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.endpoint = endpoint
        ctx.status_code = status_code
        super().__init__(
            f"Request to {endpoint} failed: {message}",
            "TRANSPORT_ERROR", ErrorCategory.TRANSPORT,
            ErrorSeverity.ERROR, ctx,
        )
        self.endpoint = endpoint
        self.status_code = status_code


class ResourceNotFoundError(TransportError):
    """Server answered 404 for the requested resource."""
    def __init__(self, endpoint: str, context: ErrorContext | None = None):
        super().__init__("resource not found", endpoint, 404, context)
        self.code = "RESOURCE_NOT_FOUND"
        self.category = ErrorCategory.RESOURCE_NOT_FOUND


class TransportTimeoutError(TransportError):
    """Request exceeded the transport timeout."""
    def __init__(self, endpoint: str, context: ErrorContext | None = None):
        super().__init__("request timed out", endpoint, None, context)
        self.code = "TRANSPORT_TIMEOUT"
        self.category = ErrorCategory.TIMEOUT
