"""Workflow Engine — app-bound loader and request binding for workflow definitions.

Invariants:
    - load() rejects malformed or referentially incoherent definitions with
      WorkflowDefinitionError; a rejected definition never replaces a loaded one
    - Definitions are read-only once the owning app freezes
    - Every request entering a create_handler() route gets a fresh instance on
      ctx.workflow; instances are never shared between requests
    - Freezing an engine that has handlers but no definition fails at startup

Design Decisions:
    - Thin shell over core.workflow: state-machine rules live in pure functions,
      the engine adds registration, logging and freeze semantics
    - define_transition() accumulates states and events from the transitions it
      receives, so small workflows need no separate states/events lists
"""

import inspect
import logging
from typing import Any, Callable

from hyperroute.core import workflow as wf
from hyperroute.core.domain_types import ANY_METHOD, Event, State
from hyperroute.core.errors import (
    InvalidTransitionError,
    RegistryFrozenError,
    WorkflowDefinitionError,
)
from hyperroute.core.result import Err, Ok, Result
from hyperroute.core.validation import validate
from hyperroute.core.workflow import (
    Transition,
    TransitionTask,
    WorkflowDefinition,
    WorkflowInstance,
)

logger = logging.getLogger(__name__)

RouteRegistrar = Callable[[str, str, Callable[..., Any]], Any]


class WorkflowEngine:
    """State-machine engine bound to one App."""

    def __init__(self, register_route: RouteRegistrar, name: str = "workflow") -> None:
        self.name = name
        self._register_route = register_route
        self._definition: WorkflowDefinition | None = None
        self._handler_paths: list[str] = []
        self._frozen = False

    # --- Definition -----------------------------------------------------------

    @property
    def definition(self) -> WorkflowDefinition:
        if self._definition is None:
            raise WorkflowDefinitionError([f"workflow '{self.name}' has no definition loaded"])
        return self._definition

    @property
    def is_loaded(self) -> bool:
        return self._definition is not None

    def _ensure_mutable(self) -> None:
        if self._frozen:
            raise RegistryFrozenError(f"workflow '{self.name}'")

    def load(self, raw: Any) -> "WorkflowEngine":
        """Validate and store a JSON-shaped definition.

        Raises:
            WorkflowDefinitionError: structure or referential integrity is broken.
            RegistryFrozenError: the owning app already serves requests.
        """
        self._ensure_mutable()
        match wf.validate_workflow_definition(raw):
            case Err(error=errors):
                logger.error(
                    f"Rejected workflow definition: {errors}",
                    extra={"workflow": self.name},
                )
                raise WorkflowDefinitionError(errors)
            case Ok(value=definition):
                self._definition = definition

        logger.info(
            f"Loaded workflow with {len(definition.states)} states, "
            f"{len(definition.transitions)} transitions",
            extra={"workflow": self.name},
        )
        return self

    def define_transition(self, config: Transition | dict) -> "WorkflowEngine":
        """Append one transition, declaring its states and event as needed."""
        self._ensure_mutable()
        match validate(Transition, config):
            case Err(error=errors):
                raise WorkflowDefinitionError(errors)
            case Ok(value=transition):
                pass

        current = self._definition
        states = list(current.states) if current else []
        events = list(current.events) if current else []
        for state in (transition.from_state, transition.to_state):
            if state not in states:
                states.append(state)
        if transition.on not in events:
            events.append(transition.on)

        self._definition = WorkflowDefinition(
            states=tuple(states),
            events=tuple(events),
            transitions=(current.transitions if current else ()) + (transition,),
            initial=current.initial if current else None,
        )
        return self

    def to_json(self) -> dict[str, Any]:
        """Export the loaded definition in load()'s input shape."""
        return self.definition.to_json()

    def freeze(self) -> None:
        if self._handler_paths and self._definition is None:
            raise WorkflowDefinitionError([
                f"workflow '{self.name}' serves {', '.join(self._handler_paths)} "
                "but has no definition loaded",
            ])
        self._frozen = True

    # --- Request binding ------------------------------------------------------

    def create_instance(self, current_state: State | None = None) -> WorkflowInstance:
        """Fresh instance at the initial state (or a resumed current_state)."""
        return wf.create_instance(self.definition, current_state)

    def create_handler(
        self,
        path: str,
        handler: Callable[..., Any],
        method: str = ANY_METHOD,
    ) -> "WorkflowEngine":
        """Register a route whose handler receives ctx.workflow."""
        self._ensure_mutable()

        async def bound(ctx: Any) -> None:
            ctx.workflow = self.create_instance()
            result = handler(ctx)
            if inspect.isawaitable(result):
                await result

        self._register_route(method, path, bound)
        self._handler_paths.append(path)
        return self

    # --- Transitions ----------------------------------------------------------

    def can_transition(self, instance: WorkflowInstance, event: Event) -> bool:
        return wf.can_transition(instance, event)

    def apply_transition(self, instance: WorkflowInstance, event: Event) -> WorkflowInstance:
        """See core.workflow.apply_transition: a non-matching event is a no-op."""
        updated = wf.apply_transition(instance, event)
        if updated is instance:
            logger.debug(
                "Transition not applied",
                extra={"workflow": self.name, "event": event, "state": str(instance.current_state)},
            )
        return updated

    def try_transition(
        self, instance: WorkflowInstance, event: Event,
    ) -> Result[WorkflowInstance, str]:
        return wf.try_transition(instance, event)

    def require_transition(self, instance: WorkflowInstance, event: Event) -> WorkflowInstance:
        """Fire event or raise; the dispatcher renders the error as 409.

        Raises:
            InvalidTransitionError: no transition leaves the current state on event.
        """
        match wf.try_transition(instance, event):
            case Ok(value=updated):
                return updated
            case Err():
                raise InvalidTransitionError(instance.current_state, event)

    def get_pending_tasks(self, instance: WorkflowInstance) -> list[TransitionTask]:
        return wf.get_pending_tasks(instance)

    def available_events(self, instance: WorkflowInstance) -> list[Event]:
        return wf.available_events(instance)

    def is_terminal(self, instance: WorkflowInstance) -> bool:
        return wf.is_terminal(instance)
