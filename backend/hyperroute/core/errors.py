"""Error Hierarchy — typed, categorized exceptions for every kernel failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
      and the HTTP status the Dispatcher answers with
    - Client errors (400-level) are rendered by the Dispatcher with to_response()
    - Configuration errors are raised at registration/load time, never per request
    - Expected validation failures are Result values, not members of this hierarchy

Design Decisions:
    - Single hierarchy with HyperrouteError base: Dispatcher boundary catches all (ADR: uniform error shape)
    - ErrorContext as dataclass: the Dispatcher fills request fields in after the
      raise site, without coupling errors to logging
    - Severity and status fixed per family (ConfigurationError, InternalError):
      subclasses only name the failure
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class ErrorSeverity(str, Enum):
    """How loudly the Dispatcher reports the error."""
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """Which layer of the kernel rejected the request or registration."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    CONFIGURATION = "configuration"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Request-side facts attached to an error once it reaches the Dispatcher."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    correlation_id: str | None = None
    method: str | None = None
    path: str | None = None
    workflow_state: str | None = None


class HyperrouteError(Exception):
    """Base exception for all kernel errors."""

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
        """Body of the error response: {"error": {...}}."""
        ctx = self.context
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": ctx.timestamp.isoformat(),
                "context": {
                    "correlation_id": ctx.correlation_id,
                    "method": ctx.method,
                    "path": ctx.path,
                    "workflow_state": ctx.workflow_state,
                },
            }
        }


# ─── Client Errors (400-level) ──────────────────────────────────

class InvalidTransitionError(HyperrouteError):
    """No declared transition leaves the current state on this event."""
    def __init__(self, state: object, event: str, context: ErrorContext | None = None):
        context = context or ErrorContext()
        context.workflow_state = str(state)
        super().__init__(
            f"No transition from '{state}' on event '{event}'",
            "INVALID_TRANSITION", ErrorCategory.BUSINESS_RULE,
            context=context, http_status=409,
        )
        self.state = state
        self.event = event


class UnknownStateError(HyperrouteError):
    """State is not declared by the workflow definition."""
    def __init__(self, state: object, context: ErrorContext | None = None):
        super().__init__(
            f"State '{state}' is not declared by the workflow",
            "UNKNOWN_STATE", ErrorCategory.VALIDATION,
            context=context, http_status=400,
        )
        self.state = state


# ─── Configuration Errors (raised at startup) ───────────────────

class ConfigurationError(HyperrouteError):
    """Registration or definition problem; always critical, always 500."""
    def __init__(self, message: str, code: str, context: ErrorContext | None = None):
        super().__init__(
            message, code, ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, context, 500,
        )


class WorkflowDefinitionError(ConfigurationError):
    """Workflow definition is malformed or referentially incoherent."""
    def __init__(self, errors: list[str], context: ErrorContext | None = None):
        super().__init__(
            f"Invalid workflow definition: {', '.join(errors)}",
            "INVALID_WORKFLOW_DEFINITION", context,
        )
        self.errors = errors


class RouteConflictError(ConfigurationError):
    """Route registered twice under the 'error' conflict policy."""
    def __init__(self, method: str, path: str, context: ErrorContext | None = None):
        super().__init__(f"Route already registered: {method} {path}", "ROUTE_CONFLICT", context)
        self.method = method
        self.path = path


class RegistryFrozenError(ConfigurationError):
    """Registration attempted after the app started serving requests."""
    def __init__(self, what: str, context: ErrorContext | None = None):
        super().__init__(
            f"Cannot modify {what} after the app has been frozen", "REGISTRY_FROZEN", context,
        )


# ─── Internal Errors (500-level) ────────────────────────────────

class InternalError(HyperrouteError):
    """Kernel contract broken while serving a request."""
    def __init__(self, message: str, code: str, context: ErrorContext | None = None):
        super().__init__(
            message, code, ErrorCategory.INTERNAL,
            ErrorSeverity.CRITICAL, context, 500,
        )


class MiddlewareChainError(InternalError):
    """A middleware invoked next() more than once."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__("next() called multiple times", "NEXT_CALLED_TWICE", context)


class ResponseAlreadySetError(InternalError):
    """A response was set on a context that already carries one."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Response already set; pass overwrite=True to replace it",
            "RESPONSE_ALREADY_SET", context,
        )
