"""Workflow — pure tests for definition validation and instance transitions.

Tests cover:
    - Referential integrity: undeclared states/events/initial are rejected
    - Initial state selection
    - First-match transition firing, history and task accumulation
    - No-op semantics, strict try_transition, copy-on-write instances
    - Derived queries: available_events, is_terminal, get_pending_tasks
"""

from datetime import datetime, timezone

import pytest

from hyperroute.core.errors import UnknownStateError
from hyperroute.core.result import Err, Ok
from hyperroute.core.workflow import (
    TransitionTask,
    WorkflowDefinition,
    apply_transition,
    assign_task,
    available_events,
    can_transition,
    check_references,
    create_instance,
    find_transition,
    get_pending_tasks,
    is_terminal,
    try_transition,
    validate_workflow_definition,
)


def _task(assign="reviewer@example.com", message="Review it"):
    return {"assign": assign, "message": message}


def _document_definition() -> dict:
    return {
        "states": ["Draft", "Review", "Approved", "Rejected", "Archived"],
        "events": ["Submit", "Approve", "Reject", "Revise", "Archive"],
        "transitions": [
            {"from": "Draft", "to": "Review", "on": "Submit", "task": _task()},
            {"from": "Review", "to": "Approved", "on": "Approve", "task": _task("author")},
            {"from": "Review", "to": "Rejected", "on": "Reject", "task": _task("author")},
            {"from": "Rejected", "to": "Draft", "on": "Revise", "task": _task("author")},
            {"from": "Approved", "to": "Archived", "on": "Archive", "task": _task("admin")},
        ],
        "initial": "Draft",
    }


def _definition(raw=None) -> WorkflowDefinition:
    result = validate_workflow_definition(raw or _document_definition())
    assert isinstance(result, Ok), result
    return result.value


FIXED = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _clock():
    return FIXED


# --- Definition validation ----------------------------------------------------

def test_valid_definition_loads():
    definition = _definition()
    assert definition.states[0] == "Draft"
    assert len(definition.transitions) == 5
    assert definition.transitions[0].from_state == "Draft"


def test_undeclared_target_state_is_rejected():
    raw = _document_definition()
    raw["transitions"].append({"from": "Draft", "to": "Deleted", "on": "Submit", "task": _task()})
    result = validate_workflow_definition(raw)
    assert isinstance(result, Err)
    assert any("'Deleted' is not a declared state" in e for e in result.error)


def test_undeclared_event_is_rejected():
    raw = _document_definition()
    raw["transitions"][0]["on"] = "Publish"
    result = validate_workflow_definition(raw)
    assert isinstance(result, Err)
    assert result.error == ["transitions[0].on 'Publish' is not a declared event"]


def test_every_dangling_reference_is_reported():
    raw = {
        "states": ["A"],
        "events": ["go"],
        "transitions": [{"from": "X", "to": "Y", "on": "jump", "task": _task()}],
        "initial": "Z",
    }
    result = validate_workflow_definition(raw)
    assert isinstance(result, Err)
    assert len(result.error) == 4


def test_structural_errors_are_reported_per_field():
    raw = {"states": "Draft", "transitions": [{"from": "Draft", "task": {"assign": 1}}]}
    result = validate_workflow_definition(raw)
    assert isinstance(result, Err)
    joined = " | ".join(result.error)
    assert "states" in joined
    assert "transitions.0.to" in joined
    assert "transitions.0.on" in joined
    assert "transitions.0.task.message" in joined


def test_empty_states_are_rejected():
    result = validate_workflow_definition({"states": [], "events": []})
    assert isinstance(result, Err)


def test_non_object_definition_is_rejected():
    assert isinstance(validate_workflow_definition("nope"), Err)


def test_check_references_is_empty_for_valid_definition():
    assert check_references(_definition()) == []


def test_definition_round_trips_through_to_json():
    raw = _document_definition()
    assert _definition(raw).to_json() == raw


def test_integer_states_are_supported():
    definition = _definition({
        "states": [1, 2],
        "events": ["next"],
        "transitions": [{"from": 1, "to": 2, "on": "next", "task": _task()}],
    })
    instance = create_instance(definition)
    assert instance.current_state == 1
    assert apply_transition(instance, "next").current_state == 2


# --- Instances ----------------------------------------------------------------

def test_instance_starts_at_declared_initial():
    raw = _document_definition()
    raw["initial"] = "Review"
    assert create_instance(_definition(raw)).current_state == "Review"


def test_instance_defaults_to_first_state_without_initial():
    raw = _document_definition()
    del raw["initial"]
    assert create_instance(_definition(raw)).current_state == "Draft"


def test_instance_can_resume_declared_state():
    instance = create_instance(_definition(), "Approved")
    assert instance.current_state == "Approved"


def test_instance_rejects_undeclared_resume_state():
    with pytest.raises(UnknownStateError):
        create_instance(_definition(), "Published")


def test_instance_holds_its_own_copy_of_definition():
    definition = _definition()
    instance = create_instance(definition)
    assert instance.definition == definition
    assert instance.definition is not definition


def test_draft_submit_scenario():
    definition = _definition({
        "states": ["Draft", "Review"],
        "events": ["Submit"],
        "transitions": [{"from": "Draft", "to": "Review", "on": "Submit", "task": _task()}],
    })
    instance = create_instance(definition)
    assert instance.current_state == "Draft"
    assert can_transition(instance, "Submit")

    moved = apply_transition(instance, "Submit", clock=_clock)
    assert moved.current_state == "Review"
    assert len(moved.history) == 1
    assert moved.history[0].to_dict() == {
        "from": "Draft", "to": "Review", "at": FIXED.isoformat(),
    }
    assert get_pending_tasks(moved) == [TransitionTask(**_task())]


def test_apply_transition_does_not_mutate_original():
    instance = create_instance(_definition())
    moved = apply_transition(instance, "Submit")
    assert instance.current_state == "Draft"
    assert instance.history == ()
    assert moved is not instance


def test_unknown_event_is_a_noop():
    instance = create_instance(_definition())
    assert not can_transition(instance, "Approve")
    unchanged = apply_transition(instance, "Approve")
    assert unchanged is instance
    assert unchanged.current_state == "Draft"
    assert len(unchanged.history) == 0


def test_undeclared_event_is_also_inert():
    instance = create_instance(_definition())
    assert apply_transition(instance, "Explode") is instance


def test_first_matching_transition_wins():
    raw = _document_definition()
    raw["transitions"].insert(
        1, {"from": "Draft", "to": "Archived", "on": "Submit", "task": _task("nobody")},
    )
    instance = create_instance(_definition(raw))
    assert find_transition(instance, "Submit").to_state == "Review"
    assert apply_transition(instance, "Submit").current_state == "Review"


def test_history_and_tasks_accumulate_in_order():
    instance = create_instance(_definition())
    for event in ("Submit", "Reject", "Revise", "Submit", "Approve"):
        instance = apply_transition(instance, event)
    assert instance.current_state == "Approved"
    assert [h.to_state for h in instance.history] == [
        "Review", "Rejected", "Draft", "Review", "Approved",
    ]
    assert [t.assign for t in get_pending_tasks(instance)] == [
        "reviewer@example.com", "author", "author", "reviewer@example.com", "author",
    ]


def test_try_transition_returns_err_without_match():
    instance = create_instance(_definition())
    result = try_transition(instance, "Archive")
    assert isinstance(result, Err)
    assert "Draft" in result.error


def test_try_transition_returns_new_instance_on_match():
    result = try_transition(create_instance(_definition()), "Submit")
    assert isinstance(result, Ok)
    assert result.value.current_state == "Review"


def test_pending_tasks_is_a_copy_and_idempotent():
    instance = apply_transition(create_instance(_definition()), "Submit")
    first = get_pending_tasks(instance)
    first.clear()
    assert get_pending_tasks(instance) == get_pending_tasks(instance)
    assert len(get_pending_tasks(instance)) == 1


def test_assign_task_appends_without_state_change():
    instance = create_instance(_definition())
    updated = assign_task(instance, {"assign": "ops", "message": "Check formatting"})
    assert updated.current_state == "Draft"
    assert get_pending_tasks(updated) == [TransitionTask(assign="ops", message="Check formatting")]
    assert get_pending_tasks(instance) == []


def test_available_events_follow_declaration_order():
    instance = create_instance(_definition(), "Review")
    assert available_events(instance) == ["Approve", "Reject"]


def test_terminal_state_has_no_outgoing_events():
    assert is_terminal(create_instance(_definition(), "Archived"))
    assert not is_terminal(create_instance(_definition(), "Draft"))


def test_instance_to_dict_is_json_shaped():
    instance = apply_transition(create_instance(_definition()), "Submit", clock=_clock)
    data = instance.to_dict()
    assert data["current_state"] == "Review"
    assert data["available_events"] == ["Approve", "Reject"]
    assert data["tasks"] == [_task()]
