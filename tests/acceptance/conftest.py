"""
Acceptance test fixtures — the production stage wiring with default settings.
"""

from __future__ import annotations

import pytest

from hcert_decoder.config import DecoderSettings
from hcert_decoder.main import create_stages
from hcert_decoder.pipeline import DecodeStages


@pytest.fixture()
def settings(monkeypatch: pytest.MonkeyPatch) -> DecoderSettings:
    """Default settings, unaffected by HCERT_* variables of the calling shell."""
    for name in ("PREFIX", "REQUIRE_PREFIX", "MAX_DEPTH", "MAX_ITEMS", "MAX_INFLATED_SIZE", "LOG_LEVEL"):
        monkeypatch.delenv(f"HCERT_{name}", raising=False)
    return DecoderSettings()


@pytest.fixture()
def stages(settings: DecoderSettings) -> DecodeStages:
    """The real adapters, wired exactly as the command line wires them."""
    return create_stages(settings)
