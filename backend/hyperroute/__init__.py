"""hyperroute — request-processing kernel for hypermedia-aware HTTP APIs.

Invariants:
    - Public API is re-exported here; submodules are implementation layout
"""

from hyperroute.app import App
from hyperroute.config import Settings, get_settings
from hyperroute.core.domain_types import ANY_METHOD, ConflictPolicy, MediaType
from hyperroute.core.errors import (
    ConfigurationError,
    HyperrouteError,
    InternalError,
    InvalidTransitionError,
    MiddlewareChainError,
    RegistryFrozenError,
    ResponseAlreadySetError,
    RouteConflictError,
    UnknownStateError,
    WorkflowDefinitionError,
)
from hyperroute.core.hypermedia import Link, ResourceLinks, create_links, render_html
from hyperroute.core.negotiation import parse_accept_header
from hyperroute.core.pipeline import Middleware, Next, compose
from hyperroute.core.result import Err, Ok, Result, ValidationResult, handle_result, is_ok
from hyperroute.core.routing import NO_MATCH, RouteMatch, Router, RouterBuilder
from hyperroute.core.validation import validate
from hyperroute.core.workflow import (
    Transition,
    TransitionTask,
    WorkflowDefinition,
    WorkflowInstance,
    apply_transition,
    assign_task,
    available_events,
    can_transition,
    create_instance,
    find_transition,
    get_pending_tasks,
    is_terminal,
    try_transition,
)
from hyperroute.http.context import Context, build_context, set_header, set_response
from hyperroute.http.responses import create_response, handle_error
from hyperroute.infrastructure.observability import JSONFormatter, configure_logging
from hyperroute.workflow_engine import WorkflowEngine

__all__ = [
    "ANY_METHOD",
    "NO_MATCH",
    "App",
    "ConfigurationError",
    "ConflictPolicy",
    "Context",
    "Err",
    "HyperrouteError",
    "InternalError",
    "JSONFormatter",
    "InvalidTransitionError",
    "Link",
    "MediaType",
    "Middleware",
    "MiddlewareChainError",
    "Next",
    "Ok",
    "RegistryFrozenError",
    "ResourceLinks",
    "ResponseAlreadySetError",
    "Result",
    "RouteConflictError",
    "RouteMatch",
    "Router",
    "RouterBuilder",
    "Settings",
    "Transition",
    "TransitionTask",
    "UnknownStateError",
    "ValidationResult",
    "WorkflowDefinition",
    "WorkflowDefinitionError",
    "WorkflowEngine",
    "WorkflowInstance",
    "apply_transition",
    "assign_task",
    "available_events",
    "build_context",
    "can_transition",
    "compose",
    "configure_logging",
    "create_instance",
    "create_links",
    "create_response",
    "find_transition",
    "get_pending_tasks",
    "get_settings",
    "handle_error",
    "handle_result",
    "is_ok",
    "is_terminal",
    "parse_accept_header",
    "render_html",
    "set_header",
    "set_response",
    "try_transition",
    "validate",
]
