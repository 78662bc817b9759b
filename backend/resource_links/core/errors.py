"""Error Hierarchy — typed, categorized exceptions for every linking failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Request/lookup errors are 400/404; persistence and reload errors are 500-level
    - A duplicate link is NOT an error: it is LinkStatus.ALREADY_LINKED on the outcome
    - Store conflicts are recognized by StoreErrorKind, never by message text
    - to_response() produces the REST envelope; no internal details leaked

Design Decisions:
    - Single hierarchy with ResourceLinksError base: the FastAPI global handler catches all
    - StoreError is raised by entity store implementations; the orchestrator wraps it
      into the taxonomy below, keeping the original as __cause__ and .cause
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    INTERNAL = "internal"
    CONFLICT = "conflict"


class StoreErrorKind(str, Enum):
    """Structural marker carried by entity store failures."""
    INSERT_CONFLICT = "insert_conflict"
    VALIDATION = "validation"
    UNAVAILABLE = "unavailable"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    model: str | None = None
    relation: str | None = None
    parent_key: Any = None
    child_key: Any = None


class ResourceLinksError(Exception):
    """Base exception for all resource-links errors."""

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
                    "model": self.context.model,
                    "relation": self.context.relation,
                    "parent_key": _jsonable(self.context.parent_key),
                    "child_key": _jsonable(self.context.child_key),
                },
            }
        }


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


# ─── Store Errors (raised by EntityStore implementations) ───────

class StoreError(ResourceLinksError):
    """Entity store operation failed. kind tells conflicts from real failures."""
    def __init__(
        self, message: str, kind: StoreErrorKind, operation: str,
        context: ErrorContext | None = None,
    ):
        status = {
            StoreErrorKind.INSERT_CONFLICT: 409,
            StoreErrorKind.VALIDATION: 400,
            StoreErrorKind.UNAVAILABLE: 503,
        }[kind]
        category = {
            StoreErrorKind.INSERT_CONFLICT: ErrorCategory.CONFLICT,
            StoreErrorKind.VALIDATION: ErrorCategory.VALIDATION,
            StoreErrorKind.UNAVAILABLE: ErrorCategory.DATABASE,
        }[kind]
        super().__init__(
            f"Store {operation} failed: {message}",
            "STORE_ERROR", category, ErrorSeverity.ERROR, context, status,
        )
        self.kind = kind
        self.operation = operation

    @property
    def is_conflict(self) -> bool:
        return self.kind is StoreErrorKind.INSERT_CONFLICT


class DatabaseError(StoreError):
    """Database session failed outside any classified store operation."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(message, StoreErrorKind.UNAVAILABLE, operation, context)
        self.code = "DATABASE_ERROR"
        self.severity = ErrorSeverity.CRITICAL


# ─── Request/Lookup Errors (400-level) ──────────────────────────

class RequestInvalidError(ResourceLinksError):
    """Link request is malformed: no relation, no child, bad key, unknown target."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "REQUEST_INVALID", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class ParentNotFoundError(ResourceLinksError):
    """Parent record absent, or its type does not expose the relation."""
    def __init__(
        self, model: str, parent_key: Any, relation: str | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext(
            model=model, parent_key=parent_key, relation=relation,
        )
        if relation:
            message = f"{model} '{parent_key}' has no relation '{relation}'"
        else:
            message = f"{model} '{parent_key}' not found"
        super().__init__(
            message, "PARENT_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, ctx, 404,
        )


class ChildResolutionError(ResourceLinksError):
    """find-or-create for the child failed with a non-conflict store error."""
    def __init__(self, cause: StoreError, context: ErrorContext | None = None):
        invalid = cause.kind is StoreErrorKind.VALIDATION
        super().__init__(
            f"Could not resolve child record: {cause.message}",
            "INVALID_CHILD" if invalid else "CHILD_RESOLUTION_FAILED",
            ErrorCategory.VALIDATION if invalid else ErrorCategory.DATABASE,
            ErrorSeverity.ERROR if invalid else ErrorSeverity.CRITICAL,
            context, 400 if invalid else 503,
        )
        self.cause = cause


# ─── Persistence Errors (500-level) ─────────────────────────────

class PersistenceError(ResourceLinksError):
    """Adding the member or saving the parent failed with a non-conflict error."""
    def __init__(
        self, step: str, cause: StoreError | None = None,
        context: ErrorContext | None = None,
    ):
        detail = cause.message if cause else "unknown store failure"
        super().__init__(
            f"Link {step} failed: {detail}",
            "PERSISTENCE_FAILED", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.step = step
        self.cause = cause


class ReloadError(ResourceLinksError):
    """Parent vanished (or lost its relation) between mutation and final reload."""
    def __init__(self, model: str, parent_key: Any, context: ErrorContext | None = None):
        super().__init__(
            f"{model} '{parent_key}' could not be reloaded after linking",
            "RELOAD_FAILED", ErrorCategory.INTERNAL,
            ErrorSeverity.CRITICAL, context, 500,
        )
