"""Workflow — finite-state machine definitions and copy-on-write instances.

Invariants:
    - Every transition's from/to is a declared state and its `on` a declared event
    - initial, when given, is a declared state; otherwise the first declared state starts
    - apply_transition() fires the FIRST transition matching (current_state, event)
      in declaration order; with no match it returns the instance unchanged
    - Instances are values: transitions return a new instance, history and tasks
      only ever grow, and no instance is shared across requests
    - "Terminal" is not declared: a state is terminal when no event can fire from it

Design Decisions:
    - Pydantic models for the JSON-shaped definition: structure errors come out of
      the same Validator Adapter as request bodies (ADR: single validation library)
    - Referential integrity checked in a pure pass after structure validation so
      every dangling reference is reported, not just the first
    - Silent no-op kept for apply_transition(); try_transition() is the strict
      variant returning Err when nothing fires
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field

from hyperroute.core.domain_types import Event, State
from hyperroute.core.errors import UnknownStateError
from hyperroute.core.result import Err, Ok, Result, ValidationResult
from hyperroute.core.validation import validate


# ─── Definition ──────────────────────────────────────────────────

class TransitionTask(BaseModel):
    """Work item assigned when a transition fires."""
    model_config = ConfigDict(frozen=True)

    assign: str
    message: str


class Transition(BaseModel):
    """Edge of the state graph: from --on--> to, with its task."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_state: State = Field(alias="from")
    to_state: State = Field(alias="to")
    on: Event
    task: TransitionTask


class WorkflowDefinition(BaseModel):
    """Declared states, events and ordered transitions of a workflow."""
    model_config = ConfigDict(frozen=True)

    states: tuple[State, ...] = Field(min_length=1)
    events: tuple[Event, ...] = ()
    transitions: tuple[Transition, ...] = ()
    initial: State | None = None

    @property
    def initial_state(self) -> State:
        return self.initial if self.initial is not None else self.states[0]

    def to_json(self) -> dict[str, Any]:
        """Plain JSON-shaped export, the same shape load() accepts."""
        return self.model_dump(mode="json", by_alias=True)


def check_references(definition: WorkflowDefinition) -> list[str]:
    """Return one message per dangling state/event reference."""
    states = set(definition.states)
    events = set(definition.events)
    errors: list[str] = []

    if definition.initial is not None and definition.initial not in states:
        errors.append(f"initial state '{definition.initial}' is not declared")

    for i, t in enumerate(definition.transitions):
        if t.from_state not in states:
            errors.append(f"transitions[{i}].from '{t.from_state}' is not a declared state")
        if t.to_state not in states:
            errors.append(f"transitions[{i}].to '{t.to_state}' is not a declared state")
        if t.on not in events:
            errors.append(f"transitions[{i}].on '{t.on}' is not a declared event")

    return errors


def validate_workflow_definition(raw: Any) -> ValidationResult[WorkflowDefinition]:
    """Structure + referential validation of a JSON-shaped definition."""
    if isinstance(raw, WorkflowDefinition):
        result: ValidationResult[WorkflowDefinition] = Ok(raw)
    else:
        result = validate(WorkflowDefinition, raw)

    match result:
        case Err():
            return result
        case Ok(value=definition):
            errors = check_references(definition)
            return Err(errors) if errors else Ok(definition)


# ─── Instance ────────────────────────────────────────────────────

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class HistoryEntry:
    """One fired transition."""
    from_state: State
    to_state: State
    at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {"from": self.from_state, "to": self.to_state, "at": self.at.isoformat()}


@dataclass(frozen=True)
class WorkflowInstance:
    """Request-scoped snapshot of a workflow execution."""
    definition: WorkflowDefinition
    current_state: State
    history: tuple[HistoryEntry, ...] = field(default_factory=tuple)
    tasks: tuple[TransitionTask, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_state": self.current_state,
            "history": [entry.to_dict() for entry in self.history],
            "tasks": [task.model_dump() for task in self.tasks],
            "available_events": available_events(self),
        }


def create_instance(
    definition: WorkflowDefinition, current_state: State | None = None,
) -> WorkflowInstance:
    """Fresh instance over a deep copy of definition.

    Raises:
        UnknownStateError: current_state is given but not declared.
    """
    state = definition.initial_state if current_state is None else current_state
    if state not in definition.states:
        raise UnknownStateError(state)
    return WorkflowInstance(
        definition=definition.model_copy(deep=True),
        current_state=state,
    )


def find_transition(instance: WorkflowInstance, event: Event) -> Transition | None:
    """First transition leaving the current state on event, in declaration order."""
    for transition in instance.definition.transitions:
        if transition.from_state == instance.current_state and transition.on == event:
            return transition
    return None


def can_transition(instance: WorkflowInstance, event: Event) -> bool:
    return find_transition(instance, event) is not None


def apply_transition(
    instance: WorkflowInstance,
    event: Event,
    clock: Callable[[], datetime] = _utcnow,
) -> WorkflowInstance:
    """Fire event; returns the same instance when no transition matches.

    Callers must check can_transition() first, or compare current_state
    afterwards, to tell a no-op from a transition.
    """
    transition = find_transition(instance, event)
    if transition is None:
        return instance

    entry = HistoryEntry(
        from_state=transition.from_state,
        to_state=transition.to_state,
        at=clock(),
    )
    return replace(
        instance,
        current_state=transition.to_state,
        history=instance.history + (entry,),
        tasks=instance.tasks + (transition.task,),
    )


def try_transition(
    instance: WorkflowInstance,
    event: Event,
    clock: Callable[[], datetime] = _utcnow,
) -> Result[WorkflowInstance, str]:
    """Strict apply_transition(): Err when no transition fires."""
    if not can_transition(instance, event):
        return Err(f"No transition from '{instance.current_state}' on event '{event}'")
    return Ok(apply_transition(instance, event, clock))


def get_pending_tasks(instance: WorkflowInstance) -> list[TransitionTask]:
    """Copy of the accumulated task list."""
    return list(instance.tasks)


def assign_task(instance: WorkflowInstance, task: TransitionTask | dict) -> WorkflowInstance:
    """Append an ad-hoc task without changing state."""
    if not isinstance(task, TransitionTask):
        task = TransitionTask.model_validate(task)
    return replace(instance, tasks=instance.tasks + (task,))


def available_events(instance: WorkflowInstance) -> list[Event]:
    """Events that would fire from the current state, in declaration order."""
    events: list[Event] = []
    for transition in instance.definition.transitions:
        if transition.from_state == instance.current_state and transition.on not in events:
            events.append(transition.on)
    return events


def is_terminal(instance: WorkflowInstance) -> bool:
    """True when no declared event can fire from the current state."""
    return not any(can_transition(instance, event) for event in instance.definition.events)
