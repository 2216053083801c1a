"""
CBOR value tree — the structural result of decoding a CBOR buffer.

A single frozen dataclass with a `kind` discriminator (a tagged union, not a
class hierarchy): consumers dispatch with match/case on CborKind and the
payload type for each kind is fixed:

    INTEGER  int
    BYTES    bytes
    TEXT     str
    ARRAY    tuple[CborValue, ...]
    MAP      tuple[tuple[CborValue, CborValue], ...]   (encoding order kept)
    BOOL     bool
    NULL     None
    FLOAT    float
    TAG      CborValue                                 (`tag` holds the tag number)

The query helpers below never raise: they return None when the value is
absent or of another kind. Deciding that a missing value is an error is the
job of the claims mapper.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from typing import TypeAlias, Union


@unique
class CborKind(Enum):
    INTEGER = "integer"
    BYTES = "byte string"
    TEXT = "text string"
    ARRAY = "array"
    MAP = "map"
    BOOL = "bool"
    NULL = "null"
    FLOAT = "float"
    TAG = "tag"


CborPayload: TypeAlias = Union[
    int,
    bytes,
    str,
    tuple["CborValue", ...],
    tuple[tuple["CborValue", "CborValue"], ...],
    bool,
    None,
    float,
    "CborValue",
]


@dataclass(frozen=True, slots=True)
class CborValue:
    kind: CborKind
    value: CborPayload
    tag: int | None = None

    # ─────────────────────── Constructors ───────────────────────

    @staticmethod
    def integer(value: int) -> CborValue:
        return CborValue(CborKind.INTEGER, value)

    @staticmethod
    def byte_string(value: bytes) -> CborValue:
        return CborValue(CborKind.BYTES, value)

    @staticmethod
    def text(value: str) -> CborValue:
        return CborValue(CborKind.TEXT, value)

    @staticmethod
    def array(items: tuple[CborValue, ...]) -> CborValue:
        return CborValue(CborKind.ARRAY, items)

    @staticmethod
    def map(pairs: tuple[tuple[CborValue, CborValue], ...]) -> CborValue:
        return CborValue(CborKind.MAP, pairs)

    @staticmethod
    def boolean(value: bool) -> CborValue:
        return CborValue(CborKind.BOOL, value)

    @staticmethod
    def null() -> CborValue:
        return CborValue(CborKind.NULL, None)

    @staticmethod
    def floating(value: float) -> CborValue:
        return CborValue(CborKind.FLOAT, value)

    @staticmethod
    def tagged(tag: int, item: CborValue) -> CborValue:
        return CborValue(CborKind.TAG, item, tag=tag)

    def describe(self) -> str:
        """Short type name used in error messages."""
        if self.kind is CborKind.TAG:
            return f"tag({self.tag})"
        return self.kind.value


# ─────────────────────── Query helpers ───────────────────────


def as_int(value: CborValue | None) -> int | None:
    if value is not None and value.kind is CborKind.INTEGER:
        return value.value  # type: ignore[return-value]
    return None


def as_text(value: CborValue | None) -> str | None:
    if value is not None and value.kind is CborKind.TEXT:
        return value.value  # type: ignore[return-value]
    return None


def as_bytes(value: CborValue | None) -> bytes | None:
    if value is not None and value.kind is CborKind.BYTES:
        return value.value  # type: ignore[return-value]
    return None


def as_array(value: CborValue | None) -> tuple[CborValue, ...] | None:
    if value is not None and value.kind is CborKind.ARRAY:
        return value.value  # type: ignore[return-value]
    return None


def as_map(value: CborValue | None) -> tuple[tuple[CborValue, CborValue], ...] | None:
    if value is not None and value.kind is CborKind.MAP:
        return value.value  # type: ignore[return-value]
    return None


def untag(value: CborValue, tag: int) -> CborValue:
    """Strip any number of wrappers carrying the given tag number."""
    while value.kind is CborKind.TAG and value.tag == tag:
        value = value.value  # type: ignore[assignment]
    return value


def _key_matches(candidate: CborValue, key: int | str) -> bool:
    # bool is an int subclass; True must not find the integer key 1
    if isinstance(key, bool):
        return False
    if isinstance(key, int):
        return candidate.kind is CborKind.INTEGER and candidate.value == key
    return candidate.kind is CborKind.TEXT and candidate.value == key


def map_get(value: CborValue | None, key: int | str) -> CborValue | None:
    """
    Look up an integer or text key in a MAP value.

    Duplicate keys resolve last-wins: the pairs are scanned from the end.
    Returns None when `value` is not a map or the key is absent.
    """
    pairs = as_map(value)
    if pairs is None:
        return None
    for candidate, item in reversed(pairs):
        if _key_matches(candidate, key):
            return item
    return None
