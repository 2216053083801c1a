"""
Ports — Protocol-based interfaces for the decode stages.

These define WHAT the pipeline needs from each stage without specifying
HOW it's done. Following hexagonal architecture:

  Domain ← Ports (protocols) ← Adapters (implementations)

Each port is a Protocol (structural typing) so adapters satisfy
the contract simply by implementing the method — no inheritance.

Decode flow:
  1. TextDecoder         → base45 text to compressed bytes
  2. Decompressor        → deflate bytes to CBOR bytes
  3. StructureDecoder    → CBOR bytes to a CborValue tree
  4. EnvelopeExtractor   → COSE_Sign1 tree to the claims tree
  5. ClaimsMapper        → claims tree to HealthCertificateClaims
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from railway.result import Result

from hcert_decoder.domain.cbor import CborValue
from hcert_decoder.domain.models import HealthCertificateClaims


@runtime_checkable
class TextDecoder(Protocol):
    """Port: decode the text form of the token (prefix already removed) into bytes."""

    def decode(self, text: str) -> Result[bytes]: ...


@runtime_checkable
class Decompressor(Protocol):
    """Port: decompress the token bytes. Fails with INFLATE_FAILURE."""

    def inflate(self, data: bytes) -> Result[bytes]: ...


@runtime_checkable
class StructureDecoder(Protocol):
    """
    Port: parse one complete CBOR data item.

    The whole buffer must be consumed. Fails with MALFORMED_CBOR.
    """

    def decode(self, data: bytes) -> Result[CborValue]: ...


@runtime_checkable
class EnvelopeExtractor(Protocol):
    """
    Port: unwrap the COSE_Sign1 envelope and return the decoded claims tree.

    The signature is discarded, not verified.
    """

    def extract(self, envelope: CborValue) -> Result[CborValue]: ...


@runtime_checkable
class ClaimsMapper(Protocol):
    """Port: map the CWT claims tree onto the typed domain model."""

    def map_claims(self, claims: CborValue) -> Result[HealthCertificateClaims]: ...
