"""Validator Adapter — wraps pydantic (or any collaborator) into ValidationResult.

Invariants:
    - validate() NEVER raises for malformed input: mismatches become Err(list[str])
    - Err lists are non-empty, one human-readable entry per field-level problem
    - Ok carries the parsed/coerced value, not the raw input
    - A collaborator that raises is reported as Err, whatever the exception type

Design Decisions:
    - pydantic TypeAdapter as the default engine: one code path for models,
      annotations and pre-built adapters (ADR: single validation library)
    - Callables honour the {ok, value|errors} collaborator contract so any
      third-party validator can be plugged in without a pydantic dependency
"""

from collections.abc import Mapping
from functools import lru_cache
from typing import Any, get_origin

from pydantic import BaseModel, TypeAdapter, ValidationError

from hyperroute.core.result import Err, Ok, ValidationResult

# Generic schema for query strings and header maps
STRING_MAP: TypeAdapter[dict[str, str]] = TypeAdapter(dict[str, str])


def format_errors(exc: ValidationError) -> list[str]:
    """Flatten a pydantic ValidationError into 'field.path: message' strings."""
    messages = []
    for error in exc.errors():
        loc = ".".join(str(part) for part in error["loc"])
        messages.append(f"{loc}: {error['msg']}" if loc else error["msg"])
    return messages or [str(exc)]


@lru_cache(maxsize=256)
def _cached_adapter(schema: Any) -> TypeAdapter:
    return TypeAdapter(schema)


def _adapter_for(schema: Any) -> TypeAdapter:
    try:
        return _cached_adapter(schema)
    except TypeError:
        # unhashable annotation
        return TypeAdapter(schema)


def _is_model_class(schema: Any) -> bool:
    return (
        get_origin(schema) is None
        and isinstance(schema, type)
        and issubclass(schema, BaseModel)
    )


def _is_collaborator(schema: Any) -> bool:
    """Plain callables (not classes, not typing constructs) follow the collaborator contract."""
    return (
        callable(schema)
        and not isinstance(schema, type)
        and get_origin(schema) is None
    )


def _from_collaborator(outcome: Any) -> ValidationResult[Any]:
    """Normalize a collaborator's {ok, value|errors} answer."""
    if isinstance(outcome, (Ok, Err)):
        if isinstance(outcome, Err) and not isinstance(outcome.error, list):
            return Err([str(outcome.error)])
        return outcome

    if not isinstance(outcome, Mapping) or "ok" not in outcome:
        return Err(["Validator returned a malformed result"])

    if outcome["ok"]:
        return Ok(outcome.get("value"))

    errors = outcome.get("errors", outcome.get("error"))
    if isinstance(errors, str):
        errors = [errors]
    messages = [str(e) for e in errors or []]
    return Err(messages or ["Validation failed"])


def validate(schema: Any, value: Any) -> ValidationResult[Any]:
    """Validate value against schema; returns Ok(parsed) or Err(messages).

    Args:
        schema: pydantic model class, TypeAdapter, type annotation, or a
            callable returning {ok, value|errors}.
        value: Untrusted input (decoded JSON, query map, header map).
    """
    if isinstance(schema, TypeAdapter):
        adapter = schema
    elif _is_model_class(schema):
        try:
            return Ok(schema.model_validate(value))
        except ValidationError as exc:
            return Err(format_errors(exc))
    elif _is_collaborator(schema):
        try:
            return _from_collaborator(schema(value))
        except Exception as exc:
            return Err([str(exc) or type(exc).__name__])
    else:
        adapter = _adapter_for(schema)

    try:
        return Ok(adapter.validate_python(value))
    except ValidationError as exc:
        return Err(format_errors(exc))
