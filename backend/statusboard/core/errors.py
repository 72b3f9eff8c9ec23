"""Error Hierarchy — typed, categorized exceptions for all Status Board failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Per-item and per-source errors are recoverable; the pipeline logs and continues
    - Only SnapshotUnavailableError reaches API callers during a refresh
    - to_response() produces the REST envelope

Design Decisions:
    - Single hierarchy with StatusBoardError base: FastAPI global handler catches all
      (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - Resolution overflow and refresh-in-progress are NOT exceptions: both are
      normal states (unresolved item, joined refresh)
"""

from dataclasses import dataclass, field
from enum import Enum
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
    CONFIGURATION = "configuration"
    EXTERNAL_API = "external_api"
    UNAVAILABLE = "unavailable"
    INTERNAL = "internal"
    TIMEOUT = "timeout"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    source_id: str | None = None
    item_id: str | None = None
    generation: int | None = None
    retry_after_ms: int | None = None


class StatusBoardError(Exception):
    """Base exception for all Status Board errors."""

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
                    "source_id": self.context.source_id,
                    "item_id": self.context.item_id,
                    "generation": self.context.generation,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }


# ─── Data Errors (recoverable, never surfaced) ──────────────────

class MalformedItemError(StatusBoardError):
    """A raw record lacks a required field — skipped, batch continues."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "MALFORMED_ITEM", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 422,
        )
        self.field = field


# ─── Source Errors ──────────────────────────────────────────────

class SourceUnavailableError(StatusBoardError):
    """One external source could not be paginated."""
    def __init__(
        self,
        source_id: str,
        message: str,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.source_id = source_id
        ctx.retry_after_ms = retry_after_ms
        super().__init__(
            f"Source '{source_id}' unavailable: {message}",
            "SOURCE_UNAVAILABLE", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.WARNING, ctx, 503,
        )
        self.source_id = source_id


class SourceConfigurationError(StatusBoardError):
    """Source settings are missing or unparsable."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "SOURCE_CONFIGURATION", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, context, 500,
        )


# ─── Refresh Errors (surface to API callers) ────────────────────

class SnapshotUnavailableError(StatusBoardError):
    """No data could be obtained and no earlier snapshot is cached."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "SNAPSHOT_UNAVAILABLE", ErrorCategory.UNAVAILABLE,
            ErrorSeverity.CRITICAL, context, 503,
        )


class RefreshTimeoutError(StatusBoardError):
    """In-flight refresh exceeded refresh_timeout_seconds."""
    def __init__(self, timeout_seconds: float, context: ErrorContext | None = None):
        super().__init__(
            f"Refresh exceeded {timeout_seconds}s",
            "REFRESH_TIMEOUT", ErrorCategory.TIMEOUT,
            ErrorSeverity.ERROR, context, 504,
        )
        self.timeout_seconds = timeout_seconds
