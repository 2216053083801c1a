"""
Inflate adapter — deflate decompression with a bounded output size.

Adapter layer — implements the Decompressor port using zlib.

The payload is a deflate stream. Real HC1 tokens wrap it in a zlib header
(RFC 1950, two bytes such as 78 DA) and adler-32 trailer; bare RFC 1951
streams are accepted too. The header is recognised by its checksum property:
(CMF·256 + FLG) is a multiple of 31 and CMF names the deflate method.

The output grows chunk by chunk and is capped at `max_size`, so a small
token cannot expand into an unbounded allocation.
"""

from __future__ import annotations

import zlib

import structlog
from railway.result import Result

from hcert_decoder.domain.errors import InflateFailure, capture

log = structlog.get_logger()

_RAW_DEFLATE = -zlib.MAX_WBITS
_ZLIB = zlib.MAX_WBITS
_CHUNK = 16 * 1024


def has_zlib_header(data: bytes) -> bool:
    if len(data) < 2:
        return False
    cmf, flg = data[0], data[1]
    return cmf & 0x0F == 8 and cmf >> 4 <= 7 and (cmf << 8 | flg) % 31 == 0 and not flg & 0x20


def inflate(data: bytes, max_size: int) -> bytes:
    """Decompress `data`, raising InflateFailure on corruption, truncation or overflow."""
    wbits = _ZLIB if has_zlib_header(data) else _RAW_DEFLATE
    stream = zlib.decompressobj(wbits)
    out = bytearray()
    pending = data

    framing = "zlib" if wbits > 0 else "raw"

    try:
        while not stream.eof:
            chunk = stream.decompress(pending, _CHUNK)
            out += chunk
            if len(out) > max_size:
                raise InflateFailure(
                    f"decompressed payload exceeds {max_size} bytes",
                    limit=max_size,
                )
            pending = stream.unconsumed_tail
            if not chunk and not pending:
                break
    except zlib.error as e:
        raise InflateFailure(f"corrupt deflate stream: {e}", framing=framing) from e

    if not stream.eof:
        raise InflateFailure("truncated deflate stream", framing=framing)
    if stream.unused_data:
        log.warning("inflate.trailing_data", size=len(stream.unused_data))

    return bytes(out)


class InflateDecompressor:
    """
    Decompress the deflate payload carried by the token.

    Implements the Decompressor port.
    """

    def __init__(self, max_size: int = 1024 * 1024) -> None:
        self._max_size = max_size

    def inflate(self, data: bytes) -> Result[bytes]:
        return capture(lambda: inflate(data, self._max_size)).peek(
            lambda out: log.debug("inflate.complete", compressed=len(data), size=len(out))
        )
