"""
Configuration — typed, validated decoder settings loaded from environment/.env.

Uses pydantic-settings to:
  - Load from environment variables prefixed with HCERT_ (HCERT_MAX_DEPTH, ...)
  - Fall back to a .env file
  - Validate types and bounds at construction

All limits exist to keep a hostile or corrupted token from exhausting memory
or stack: they bound the CBOR nesting depth, the element count of any single
array or map, and the size of the inflated payload. Real certificates are a
few hundred bytes with a nesting depth of about five, so the defaults are
generous.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the .env file relative to the project root (two levels above this file),
# so settings load correctly regardless of the working directory at runtime.
_ENV_FILE = Path(__file__).parent.parent.parent / ".env"


class DecoderSettings(BaseSettings):
    """
    Decoder settings.

    Load order (highest priority first):
      1. Keyword arguments (tests, library callers)
      2. Environment variables (HCERT_*)
      3. .env file
      4. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="HCERT_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    prefix: str = Field(default="HC1:", min_length=1, description="Context identifier in front of the base45 text")
    require_prefix: bool = Field(default=False, description="Reject tokens that lack the prefix")

    max_depth: int = Field(default=64, ge=1, le=256, description="Maximum CBOR nesting depth")
    max_items: int = Field(default=65536, ge=1, description="Maximum elements in one CBOR array or map")
    max_inflated_size: int = Field(
        default=1024 * 1024,
        ge=1,
        description="Maximum size in bytes of the decompressed payload",
    )

    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Reject names the logging module does not know."""
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value!r}")
        return level
