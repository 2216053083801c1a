"""
COSE envelope adapter — unwrap COSE_Sign1 and decode the CWT payload.

Adapter layer — implements the EnvelopeExtractor port.

    COSE_Sign1 = #6.18([
        protected   : bstr,           ; serialized header map, not inspected
        unprotected : map,            ; not used
        payload     : bstr,           ; CBOR-encoded CWT claims
        signature   : bstr,           ; discarded — NOT verified
    ])

The tag 18 wrapper is optional: some issuers emit the bare array.
"""

from __future__ import annotations

import structlog
from railway.result import Result

from hcert_decoder.domain.cbor import CborKind, CborValue, as_array, as_bytes, untag
from hcert_decoder.domain.errors import UnexpectedCoseShape, capture
from hcert_decoder.domain.ports import StructureDecoder

log = structlog.get_logger()

COSE_SIGN1_TAG = 18

_SHAPE = (
    ("protected", CborKind.BYTES),
    ("unprotected", CborKind.MAP),
    ("payload", CborKind.BYTES),
    ("signature", CborKind.BYTES),
)


def payload_of(envelope: CborValue) -> bytes:
    """Return the payload byte string, raising UnexpectedCoseShape on a wrong envelope."""
    value = untag(envelope, COSE_SIGN1_TAG)
    items = as_array(value)
    if items is None:
        raise UnexpectedCoseShape(
            f"COSE_Sign1 must be an array, got {value.describe()}",
            actual=value.describe(),
        )
    if len(items) != len(_SHAPE):
        raise UnexpectedCoseShape(
            f"COSE_Sign1 must have {len(_SHAPE)} elements, got {len(items)}",
            arity=len(items),
        )
    for (name, kind), item in zip(_SHAPE, items):
        if item.kind is not kind:
            raise UnexpectedCoseShape(
                f"COSE_Sign1 {name} must be a {kind.value}, got {item.describe()}",
                element=name,
                expected=kind.value,
                actual=item.describe(),
            )
    return as_bytes(items[2])  # type: ignore[return-value]


class CoseEnvelopeExtractor:
    """
    Extract the claims tree from a decoded COSE_Sign1 structure.

    The payload byte string is re-decoded with the same CBOR decoder that
    produced the envelope, so the same bounds apply to both.
    """

    def __init__(self, decoder: StructureDecoder) -> None:
        self._decoder = decoder

    def extract(self, envelope: CborValue) -> Result[CborValue]:
        return (
            capture(lambda: payload_of(envelope))
            .peek(lambda payload: log.debug("cose.payload", size=len(payload)))
            .flat_map(self._decoder.decode)
        )
