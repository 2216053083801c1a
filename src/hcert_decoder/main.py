"""
Application entry point — wires the decode stages and runs the CLI.

Composition root: creates the concrete adapters from DecoderSettings and
injects them into the pipeline. This is the ONLY place where concrete
adapter classes are instantiated; everything else depends on Protocol ports.

Responsibilities:
  1. Configure structlog (console renderer on stderr, stdout stays clean for JSON)
  2. Load and validate configuration from environment
  3. Create the five stage adapters
  4. Expose the library entry points decode_token / decode_token_claims
  5. Run the `hcert-decode` command line: token in, JSON out
"""

from __future__ import annotations

import argparse
import logging
import sys

import structlog
from pydantic import ValidationError
from railway import LoggingExecutionContext
from railway.result import Result

from hcert_decoder import __version__
from hcert_decoder.adapters.base45 import Base45Decoder
from hcert_decoder.adapters.cbor_decoder import CborDecoder
from hcert_decoder.adapters.claims_mapper import CertificatePayloadMapper
from hcert_decoder.adapters.cose import CoseEnvelopeExtractor
from hcert_decoder.adapters.inflate import InflateDecompressor
from hcert_decoder.config import DecoderSettings
from hcert_decoder.domain.models import Certificate, HealthCertificateClaims
from hcert_decoder.pipeline import DecodeStages, run_certificate_pipeline, run_pipeline
from hcert_decoder.presentation import render_json


def configure_structlog(log_level: str = "INFO") -> None:
    """
    Configure structlog for human-readable console logging on stderr.

    Unknown level names fall back to INFO.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def create_stages(settings: DecoderSettings) -> DecodeStages:
    """Instantiate all stage adapters from the settings."""
    cbor = CborDecoder(max_depth=settings.max_depth, max_items=settings.max_items)
    return DecodeStages(
        text_decoder=Base45Decoder(),
        decompressor=InflateDecompressor(max_size=settings.max_inflated_size),
        structure_decoder=cbor,
        envelope=CoseEnvelopeExtractor(cbor),
        mapper=CertificatePayloadMapper(),
        prefix=settings.prefix,
        require_prefix=settings.require_prefix,
    )


def decode_token_claims(token: str, settings: DecoderSettings | None = None) -> Result[HealthCertificateClaims]:
    """Decode an HC1 token into the certificate plus its issuer / issued-at / expiry claims."""
    return run_pipeline(token, create_stages(settings or DecoderSettings()))


def decode_token(token: str, settings: DecoderSettings | None = None) -> Result[Certificate]:
    """
    Decode an HC1 token into a Certificate.

        result = decode_token("HC1:6BF...")
        if result.is_success():
            print(result.value().v[0].ci)

    The signature is not verified.
    """
    return run_certificate_pipeline(token, create_stages(settings or DecoderSettings()))


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="hcert-decode",
        description="Decode an EU Digital COVID Certificate (HC1:) token without verifying its signature.",
    )
    parser.add_argument("token", nargs="?", help="the HC1 token; read from stdin when omitted")
    parser.add_argument(
        "--claims",
        action="store_true",
        help="also print issuer, issued-at and expiry",
    )
    parser.add_argument("--compact", action="store_true", help="print JSON on a single line")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Decode one token and print it as JSON. Returns the process exit code."""
    args = _parse_args(argv)

    try:
        settings = DecoderSettings()
    except ValidationError as e:
        print(f"FATAL: Configuration error — {e}", file=sys.stderr)  # noqa: T201
        return 2

    configure_structlog(settings.log_level)
    log = structlog.get_logger()

    token = args.token if args.token is not None else sys.stdin.read()
    stages = create_stages(settings)
    ctx = LoggingExecutionContext(operation="DecodeToken", log_level=logging.DEBUG)
    result = ctx.execute(lambda: run_pipeline(token, stages))

    if result.is_failure():
        error = result.error()
        log.error("cli.decode_failed", code=error.code.value, error=error.message, details=dict(error.details))
        return 1

    claims = result.value()
    document = claims if args.claims else claims.certificate
    print(render_json(document, indent=None if args.compact else 2))  # noqa: T201
    return 0


if __name__ == "__main__":
    sys.exit(main())
