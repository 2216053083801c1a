"""
Pipeline — the ROP pipeline turning an HC1 token into typed claims.

Domain layer — this is PURE LOGIC. No side effects, no I/O.
Every stage is injected via a port (Protocol interface).

The pipeline connects stages via flat_map, forming a railway:

  strip_prefix(token)
    → decode(text)            base45
      → inflate(data)         deflate
        → decode(data)        CBOR → COSE_Sign1 tree
          → extract(tree)     payload → claims tree
            → map_claims()    claims tree → HealthCertificateClaims

Each stage returns Result[T]. Failures short-circuit automatically
through the ROP railway — the first failing stage decides the outcome.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from railway import ErrorCode
from railway.result import Result

from hcert_decoder.domain.models import Certificate, HealthCertificateClaims
from hcert_decoder.domain.ports import (
    ClaimsMapper,
    Decompressor,
    EnvelopeExtractor,
    StructureDecoder,
    TextDecoder,
)

log = structlog.get_logger()


def strip_prefix(token: str, prefix: str = "HC1:", require_prefix: bool = False) -> Result[str]:
    """
    Remove line terminators and the context identifier from the raw token.

    Only CR/LF are trimmed: a space is a valid base45 character.
    """
    text = token.rstrip("\r\n")
    if text.startswith(prefix):
        return Result.success(text[len(prefix):])
    if require_prefix:
        return Result.failure(
            ErrorCode.INVALID_BASE45,
            f"token must start with {prefix!r}",
            {"prefix": prefix},
        )
    return Result.success(text)


@dataclass(frozen=True, slots=True)
class DecodeStages:
    """The five stage adapters, wired once and reused for every token."""

    text_decoder: TextDecoder
    decompressor: Decompressor
    structure_decoder: StructureDecoder
    envelope: EnvelopeExtractor
    mapper: ClaimsMapper
    prefix: str = "HC1:"
    require_prefix: bool = False


def run_pipeline(token: str, stages: DecodeStages) -> Result[HealthCertificateClaims]:
    """
    Decode one token into HealthCertificateClaims.

    Chains all stages via flat_map — failures short-circuit automatically.

    Returns Result[HealthCertificateClaims] on success,
    or Result.failure with the error from the first failing stage.
    """
    return (
        strip_prefix(token, stages.prefix, stages.require_prefix)
        .flat_map(stages.text_decoder.decode)
        .flat_map(stages.decompressor.inflate)
        .flat_map(stages.structure_decoder.decode)
        .flat_map(stages.envelope.extract)
        .flat_map(stages.mapper.map_claims)
        .peek(
            lambda claims: log.debug(
                "pipeline.decoded",
                issuer=claims.issuer,
                records=claims.certificate.total_records,
            )
        )
        .peek_failure(lambda err: log.debug("pipeline.failed", code=err.code.value, error=err.message))
    )


def run_certificate_pipeline(token: str, stages: DecodeStages) -> Result[Certificate]:
    """Decode one token and keep only the certificate part of the claims."""
    return run_pipeline(token, stages).map(lambda claims: claims.certificate)
