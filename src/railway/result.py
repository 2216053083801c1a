"""
Result monad — the core of Railway-Oriented Programming.

A Result[T] is either Success(value: T) or Failure(error: FailureDescription).
The decode stages never raise into the pipeline: each one returns a Result and
the stages are chained with .flat_map(), so the first failure short-circuits
everything after it.

    ┌──────────┐ flat_map ┌─────────┐ flat_map ┌──────┐ flat_map ┌──────┐ flat_map ┌────────┐
    │  base45  │──────────│ inflate │──────────│ CBOR │──────────│ COSE │──────────│ mapper │──→ Result[T]
    └────┬─────┘          └────┬────┘          └──┬───┘          └──┬───┘          └───┬────┘
         │ Failure             │ Failure          │ Failure         │ Failure          │ Failure
         └─────────────────────┴──────────────────┴─────────────────┴──────────────────┴──→ Result[T]
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from railway.failure import ErrorCode, FailureDescription

T = TypeVar("T")
U = TypeVar("U")


class Result(Generic[T]):
    """
    Railway-Oriented Programming Result monad.

    Two possible states:
      - Success(value: T)  — the happy path
      - Failure(error: FailureDescription) — the error track

    Usage:
        >>> Result.success(42).map(lambda x: x * 2).value()
        84

        >>> result = Result.failure(ErrorCode.MALFORMED_CBOR, "unexpected end of input")
        >>> result.map(lambda x: x * 2).is_failure()
        True
    """

    # ──────────────────────── Introspection ────────────────────────

    def is_success(self) -> bool:
        return isinstance(self, Success)

    def is_failure(self) -> bool:
        return isinstance(self, Failure)

    def value(self) -> T:
        """
        Extract the success value. Raises ValueError if called on a Failure.

        Prefer match/case on Success and Failure for safe access.
        """
        match self:
            case Success(v):
                return v
            case Failure(err):
                raise ValueError(f"Cannot get value from a Failure: {err.message}")
        raise TypeError("unreachable")  # pragma: no cover

    def error(self) -> FailureDescription:
        """Extract the failure description. Raises ValueError if called on a Success."""
        match self:
            case Failure(err):
                return err
            case Success(v):
                raise ValueError(f"Cannot get error from a Success: {v!r}")
        raise TypeError("unreachable")  # pragma: no cover

    # ──────────────────────── Core Transformations ────────────────────────

    def map(self, mapper: Callable[[T], U]) -> Result[U]:
        """Transform the success value. Short-circuits on failure."""
        match self:
            case Success(v):
                return Success(mapper(v))
            case Failure(err):
                return Failure(err)
        raise TypeError("unreachable")  # pragma: no cover

    def flat_map(self, mapper: Callable[[T], Result[U]]) -> Result[U]:
        """
        Chain a Result-returning function. Short-circuits on failure.

        This is the KEY operator of ROP — it connects the decode stages.

            base45.decode(text).flat_map(inflater.inflate)
        """
        match self:
            case Success(v):
                return mapper(v)
            case Failure(err):
                return Failure(err)
        raise TypeError("unreachable")  # pragma: no cover

    # ──────────────────────── Side Effects ────────────────────────

    def peek(self, action: Callable[[T], Any]) -> Result[T]:
        """Execute a side effect on the success value (logging) without altering the Result."""
        match self:
            case Success(v):
                action(v)
        return self

    def peek_failure(self, action: Callable[[FailureDescription], Any]) -> Result[T]:
        """Execute a side effect on failure without altering the Result."""
        match self:
            case Failure(err):
                action(err)
        return self

    # ──────────────────────── Static Factories ────────────────────────

    @staticmethod
    def success(value: T) -> Result[T]:
        return Success(value)

    @staticmethod
    def failure_from(error: FailureDescription) -> Result[T]:
        return Failure(error)

    @staticmethod
    def failure(
        code: ErrorCode,
        message: str,
        details: Mapping[str, Any] | None = None,
        exception: Optional[BaseException] = None,
    ) -> Result[T]:
        """
        Create a failed Result with error code, message, locating details and exception.

            Result.failure(ErrorCode.MISSING_CLAIM, "v[0]: missing 'ci'", {"index": 0, "key": "ci"})
        """
        return Failure(FailureDescription.create(code, message, details, exception))

    # ──────────────────────── Dunder methods ────────────────────────

    def __repr__(self) -> str:
        match self:
            case Success(v):
                return f"Success({v!r})"
            case Failure(err):
                return f"Failure({err.code.value}: {err.message!r})"
        raise TypeError("unreachable")  # pragma: no cover

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Result):
            return NotImplemented
        match (self, other):
            case (Success(a), Success(b)):
                return a == b
            case (Failure(a), Failure(b)):
                return a.code == b.code and a.message == b.message
            case _:
                return False


@dataclass(frozen=True, slots=True)
class Success(Result[T]):
    """The success track — wraps a value of type T."""

    _value: T

    def __init__(self, value: T) -> None:
        if value is None:
            raise TypeError("Success value must not be None")
        object.__setattr__(self, "_value", value)

    def __repr__(self) -> str:
        return f"Success({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Success):
            return self._value == other._value
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("Success", self._value))


# Enable structural pattern matching: case Success(value)
Success.__match_args__ = ("_value",)


@dataclass(frozen=True, slots=True)
class Failure(Result[T]):
    """The failure track — wraps a FailureDescription."""

    _error: FailureDescription

    def __init__(self, error: FailureDescription) -> None:
        if error is None:
            raise TypeError("Failure error must not be None")
        object.__setattr__(self, "_error", error)

    def __repr__(self) -> str:
        return f"Failure({self._error.code.value}: {self._error.message!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Failure):
            return self._error.code == other._error.code and self._error.message == other._error.message
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("Failure", self._error.code, self._error.message))


# Enable structural pattern matching: case Failure(error)
Failure.__match_args__ = ("_error",)
