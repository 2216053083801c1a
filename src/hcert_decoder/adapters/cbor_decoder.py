"""
CBOR decoder adapter — RFC 8949 bytes to a CborValue tree.

Adapter layer — implements the StructureDecoder port.

Single pass over a byte cursor. Each data item starts with one byte:

    major type (3 bits)  additional info (5 bits)
    0 unsigned int       0..23   value / length inline
    1 negative int       24..27  value / length in the next 1/2/4/8 bytes
    2 byte string        28..30  reserved (malformed)
    3 text string        31      indefinite length (2..5), break stop code (7)
    4 array
    5 map
    6 tag
    7 simple / float

Containers are decoded recursively. Two bounds protect against hostile input:
`max_depth` limits nesting (arrays, maps, tags) and `max_items` limits the
element count of any single container. A declared length is also checked
against the bytes left in the buffer before anything is allocated, since
every element needs at least one byte.
"""

from __future__ import annotations

import struct

import structlog
from railway.result import Result

from hcert_decoder.domain.cbor import CborValue
from hcert_decoder.domain.errors import MalformedCbor, capture

log = structlog.get_logger()

_BYTES, _TEXT, _ARRAY, _MAP, _SIMPLE = 2, 3, 4, 5, 7

_INDEFINITE = 31
_BREAK = 0xFF

_FLOAT_FORMATS = {25: ">e", 26: ">f", 27: ">d"}


class _Reader:
    """Byte cursor plus the recursive item parser. One instance per decode call."""

    __slots__ = ("_data", "_pos", "_max_depth", "_max_items")

    def __init__(self, data: bytes, max_depth: int, max_items: int) -> None:
        self._data = data
        self._pos = 0
        self._max_depth = max_depth
        self._max_items = max_items

    @property
    def position(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    # ─────────────────────── Primitives ───────────────────────

    def _take(self, count: int) -> bytes:
        if count > self.remaining:
            raise MalformedCbor(
                f"unexpected end of input at offset {self._pos}: need {count} bytes, {self.remaining} left",
                offset=self._pos,
            )
        chunk = self._data[self._pos:self._pos + count]
        self._pos += count
        return chunk

    def _argument(self, info: int, offset: int) -> int:
        if info < 24:
            return info
        if info <= 27:
            return int.from_bytes(self._take(1 << (info - 24)), "big")
        raise MalformedCbor(
            f"reserved additional information {info} at offset {offset}",
            offset=offset,
        )

    def _check_count(self, count: int, per_item: int, offset: int) -> None:
        if count > self._max_items:
            raise MalformedCbor(
                f"container at offset {offset} has {count} elements, limit is {self._max_items}",
                offset=offset,
            )
        if count * per_item > self.remaining:
            raise MalformedCbor(
                f"unexpected end of input: container at offset {offset} declares {count} elements "
                f"but only {self.remaining} bytes remain",
                offset=offset,
            )

    def _at_break(self) -> bool:
        if not self.remaining:
            raise MalformedCbor(
                f"unexpected end of input at offset {self._pos}: missing break",
                offset=self._pos,
            )
        if self._data[self._pos] == _BREAK:
            self._pos += 1
            return True
        return False

    # ─────────────────────── Items ───────────────────────

    def item(self, depth: int) -> CborValue:
        offset = self._pos
        if depth > self._max_depth:
            raise MalformedCbor(
                f"nesting deeper than {self._max_depth} levels at offset {offset}",
                offset=offset,
            )

        initial = self._take(1)[0]
        major, info = initial >> 5, initial & 0x1F

        if major == _SIMPLE:
            return self._simple(info, offset)
        if info == _INDEFINITE:
            return self._indefinite(major, depth, offset)

        argument = self._argument(info, offset)
        match major:
            case 0:
                return CborValue.integer(argument)
            case 1:
                return CborValue.integer(-1 - argument)
            case 2:
                return CborValue.byte_string(self._take(argument))
            case 3:
                return CborValue.text(self._utf8(self._take(argument), offset))
            case 4:
                self._check_count(argument, 1, offset)
                return CborValue.array(tuple(self.item(depth + 1) for _ in range(argument)))
            case 5:
                self._check_count(argument, 2, offset)
                return CborValue.map(
                    tuple((self.item(depth + 1), self.item(depth + 1)) for _ in range(argument))
                )
            case _:
                return CborValue.tagged(argument, self.item(depth + 1))

    def _indefinite(self, major: int, depth: int, offset: int) -> CborValue:
        if major in (_BYTES, _TEXT):
            chunks: list[bytes] = []
            while not self._at_break():
                chunk_offset = self._pos
                initial = self._take(1)[0]
                if initial >> 5 != major or initial & 0x1F == _INDEFINITE:
                    raise MalformedCbor(
                        f"invalid chunk at offset {chunk_offset} in indefinite-length string",
                        offset=chunk_offset,
                    )
                chunks.append(self._take(self._argument(initial & 0x1F, chunk_offset)))
                self._check_count(len(chunks), 0, offset)
            joined = b"".join(chunks)
            if major == _BYTES:
                return CborValue.byte_string(joined)
            return CborValue.text(self._utf8(joined, offset))

        if major == _ARRAY:
            items: list[CborValue] = []
            while not self._at_break():
                items.append(self.item(depth + 1))
                self._check_count(len(items), 0, offset)
            return CborValue.array(tuple(items))

        if major == _MAP:
            pairs: list[tuple[CborValue, CborValue]] = []
            while not self._at_break():
                key = self.item(depth + 1)
                pairs.append((key, self.item(depth + 1)))
                self._check_count(len(pairs), 0, offset)
            return CborValue.map(tuple(pairs))

        raise MalformedCbor(
            f"indefinite length is not allowed for major type {major} at offset {offset}",
            offset=offset,
        )

    def _simple(self, info: int, offset: int) -> CborValue:
        if info in _FLOAT_FORMATS:
            fmt = _FLOAT_FORMATS[info]
            return CborValue.floating(struct.unpack(fmt, self._take(struct.calcsize(fmt)))[0])
        if info == _INDEFINITE:
            raise MalformedCbor(f"unexpected break at offset {offset}", offset=offset)

        simple = self._argument(info, offset)
        if info == 24 and simple < 32:
            raise MalformedCbor(
                f"two-byte encoding of simple value {simple} at offset {offset}",
                offset=offset,
            )
        match simple:
            case 20:
                return CborValue.boolean(False)
            case 21:
                return CborValue.boolean(True)
            case 22 | 23:
                return CborValue.null()
            case _:
                raise MalformedCbor(
                    f"unassigned simple value {simple} at offset {offset}",
                    offset=offset,
                )

    @staticmethod
    def _utf8(raw: bytes, offset: int) -> str:
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedCbor(
                f"text string at offset {offset} is not valid UTF-8: {e.reason}",
                offset=offset,
            ) from e


def loads(data: bytes, max_depth: int = 64, max_items: int = 65536) -> CborValue:
    """Decode exactly one CBOR data item; trailing bytes are an error."""
    reader = _Reader(data, max_depth, max_items)
    value = reader.item(1)
    if reader.remaining:
        raise MalformedCbor(
            f"{reader.remaining} trailing bytes after data item at offset {reader.position}",
            offset=reader.position,
        )
    return value


class CborDecoder:
    """
    Parse a complete CBOR buffer into a CborValue tree.

    Implements the StructureDecoder port.
    """

    def __init__(self, max_depth: int = 64, max_items: int = 65536) -> None:
        self._max_depth = max_depth
        self._max_items = max_items

    def decode(self, data: bytes) -> Result[CborValue]:
        return capture(lambda: loads(data, self._max_depth, self._max_items)).peek(
            lambda value: log.debug("cbor.decoded", size=len(data), kind=value.describe())
        )
