"""
Base45 decoder adapter — RFC 9285 text to bytes.

Adapter layer — implements the TextDecoder port.

Every 3 characters c0 c1 c2 encode one 16-bit value

    n = c0 + 45·c1 + 45²·c2        → bytes (n // 256, n % 256)

and a trailing pair c0 c1 encodes a single byte n = c0 + 45·c1. A single
dangling character cannot encode anything and is rejected, as is any group
whose value does not fit its byte count (e.g. "GGW" = 65536).
"""

from __future__ import annotations

import structlog
from railway.result import Result

from hcert_decoder.domain.errors import InvalidBase45, capture

log = structlog.get_logger()

ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ $%*+-./:"

_VALUES: dict[str, int] = {char: index for index, char in enumerate(ALPHABET)}


def _value_at(text: str, position: int) -> int:
    try:
        return _VALUES[text[position]]
    except KeyError:
        raise InvalidBase45(
            f"character {text[position]!r} at position {position} is not in the base45 alphabet",
            position=position,
            character=text[position],
        ) from None


def b45decode(text: str) -> bytes:
    """Decode base45 text, raising InvalidBase45 on any malformed input."""
    if len(text) % 3 == 1:
        raise InvalidBase45(
            f"invalid length {len(text)}: a single trailing character cannot be decoded",
            length=len(text),
        )

    out = bytearray()
    full = len(text) - len(text) % 3
    for start in range(0, full, 3):
        n = _value_at(text, start) + _value_at(text, start + 1) * 45 + _value_at(text, start + 2) * 45 * 45
        if n > 0xFFFF:
            raise InvalidBase45(
                f"group {text[start:start + 3]!r} at position {start} overflows two bytes",
                position=start,
            )
        out += n.to_bytes(2, "big")

    if full < len(text):
        n = _value_at(text, full) + _value_at(text, full + 1) * 45
        if n > 0xFF:
            raise InvalidBase45(
                f"trailing group {text[full:]!r} at position {full} overflows one byte",
                position=full,
            )
        out.append(n)

    return bytes(out)


class Base45Decoder:
    """
    Decode base45 text into raw bytes.

    Implements the TextDecoder port.
    """

    def decode(self, text: str) -> Result[bytes]:
        return capture(lambda: b45decode(text)).peek(
            lambda data: log.debug("base45.decoded", chars=len(text), size=len(data))
        )
