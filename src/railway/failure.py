"""
Failure description — structured error information for the failure track.

Every decode stage reports exactly one kind of failure, so the ErrorCode enum
is the closed error taxonomy of the decoder. The FailureDescription carries the
kind, a human-readable message, the originating exception and a `details`
mapping with the locating information (position, key, index, path, ...).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum, unique
from types import MappingProxyType
from typing import Any, Optional

_EMPTY: Mapping[str, Any] = MappingProxyType({})


@unique
class ErrorCode(Enum):
    """
    Structured error codes for the failure track, one per decode stage.

    Ordered by the stage that produces them:
      base45 → inflate → CBOR → COSE envelope → claims mapping
    """

    INVALID_BASE45 = "INVALID_BASE45"
    """Character outside the alphabet, dangling single character, group overflow."""

    INFLATE_FAILURE = "INFLATE_FAILURE"
    """Corrupt, truncated or oversized deflate stream."""

    MALFORMED_CBOR = "MALFORMED_CBOR"
    """Truncated buffer, reserved additional info, nesting/size bound exceeded."""

    UNEXPECTED_COSE_SHAPE = "UNEXPECTED_COSE_SHAPE"
    """Top-level value is not a 4-element COSE_Sign1 array of the right types."""

    MISSING_CLAIM = "MISSING_CLAIM"
    """A contractually required claim or record field is absent."""

    TYPE_MISMATCH = "TYPE_MISMATCH"
    """A claim is present but encoded with the wrong CBOR type."""


@dataclass(frozen=True, slots=True)
class FailureDescription:
    """
    Immutable failure descriptor carrying error code, message, details and exception.

    >>> desc = FailureDescription(ErrorCode.MISSING_CLAIM, "v[0]: missing 'ci'", {"key": "ci"})
    >>> desc.code
    <ErrorCode.MISSING_CLAIM: 'MISSING_CLAIM'>
    >>> desc.details["key"]
    'ci'
    """

    code: ErrorCode
    message: str
    details: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)
    exception: Optional[BaseException] = field(default=None, repr=False, compare=False)

    @staticmethod
    def create(
        code: ErrorCode,
        message: str,
        details: Mapping[str, Any] | None = None,
        exception: Optional[BaseException] = None,
    ) -> FailureDescription:
        """Build a description, freezing `details` into a read-only mapping."""
        frozen = MappingProxyType(dict(details)) if details else _EMPTY
        return FailureDescription(code=code, message=message, details=frozen, exception=exception)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"
