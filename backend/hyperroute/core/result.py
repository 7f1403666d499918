"""Result — tagged union for expected failures (validation, strict transitions).

Invariants:
    - A Result is exactly one of Ok(value) or Err(error), never both
    - Expected failures travel as Err values; they are never raised
    - handle_result() is exhaustive: an unknown variant raises TypeError

Design Decisions:
    - Two frozen dataclasses over a single class with a flag: match/case can
      destructure them (ADR: explicit sum types)
    - `ok` kept as an attribute so the wire-level {ok, value|error} shape
      round-trips through to_dict()
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E")
R = TypeVar("R")
U = TypeVar("U")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""
    value: T
    ok: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"ok": True, "value": self.value}


@dataclass(frozen=True)
class Err(Generic[E]):
    """Failed outcome carrying an error."""
    error: E
    ok: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"ok": False, "error": self.error}


Result = Ok[T] | Err[E]

# Validation failures are always a list of human-readable messages
ValidationResult = Ok[T] | Err[list[str]]


def is_ok(result: "Ok[Any] | Err[Any]") -> bool:
    """True for the Ok variant."""
    match result:
        case Ok():
            return True
        case Err():
            return False
    raise TypeError(f"Not a Result: {result!r}")


def map_result(result: "Ok[T] | Err[E]", fn: Callable[[T], U]) -> "Ok[U] | Err[E]":
    """Apply fn to the Ok value; Err passes through untouched."""
    match result:
        case Ok(value=value):
            return Ok(fn(value))
        case Err():
            return result
    raise TypeError(f"Not a Result: {result!r}")


def handle_result(
    result: "Ok[T] | Err[E]",
    ctx: Any,
    *,
    success: Callable[[T, Any], R],
    failure: Callable[[E, Any], R],
) -> R:
    """Dispatch to success(value, ctx) or failure(error, ctx)."""
    match result:
        case Ok(value=value):
            return success(value, ctx)
        case Err(error=error):
            return failure(error, ctx)
    raise TypeError(f"Non-exhaustive result handling for: {result!r}")
