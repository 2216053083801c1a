"""
Decode errors — the exceptions raised inside the hand-written parsers.

The parsers (base45, CBOR, claims mapping) are ordinary recursive code, so
they signal problems by raising. Exceptions never cross an adapter boundary:
`capture()` converts a DecodeError into a Result.failure carrying the matching
ErrorCode and the locating details. Any other exception is a defect and
propagates unchanged.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, ClassVar, TypeVar

from railway import ErrorCode, FailureDescription, Result

T = TypeVar("T")


class DecodeError(Exception):
    """Base class for every failure of the decode pipeline."""

    code: ClassVar[ErrorCode]

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details: Mapping[str, Any] = details

    def to_failure(self) -> FailureDescription:
        return FailureDescription.create(self.code, self.message, self.details, self)


class InvalidBase45(DecodeError):
    code = ErrorCode.INVALID_BASE45


class InflateFailure(DecodeError):
    code = ErrorCode.INFLATE_FAILURE


class MalformedCbor(DecodeError):
    code = ErrorCode.MALFORMED_CBOR


class UnexpectedCoseShape(DecodeError):
    code = ErrorCode.UNEXPECTED_COSE_SHAPE


class MissingClaim(DecodeError):
    """A required key is absent. `index` is set when the key belongs to a record array element."""

    code = ErrorCode.MISSING_CLAIM

    def __init__(self, key: str, path: str, array: str | None = None, index: int | None = None) -> None:
        super().__init__(f"{path}: missing required claim {key!r}", key=key, path=path, array=array, index=index)
        self.key = key
        self.path = path
        self.array = array
        self.index = index


class TypeMismatch(DecodeError):
    code = ErrorCode.TYPE_MISMATCH

    def __init__(self, path: str, expected: str, actual: str) -> None:
        super().__init__(f"{path}: expected {expected}, got {actual}", path=path, expected=expected, actual=actual)
        self.path = path
        self.expected = expected
        self.actual = actual


def capture(computation: Callable[[], T]) -> Result[T]:
    """
    Run a raising computation and move a DecodeError onto the failure track.

        return capture(lambda: _decode_groups(text))
    """
    try:
        return Result.success(computation())
    except DecodeError as e:
        return Result.failure_from(e.to_failure())
