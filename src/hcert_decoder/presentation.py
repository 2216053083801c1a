"""
Presentation — render decoded claims as JSON for the command line.

Field names go back to their schema spelling (`is_` → `is`), datetimes
become ISO-8601 strings and absent optional fields are left out, so the
output reads like the EU DCC JSON the certificate was issued from.
"""

from __future__ import annotations

import json
from dataclasses import fields, is_dataclass
from datetime import datetime
from typing import Any

from hcert_decoder.domain.models import Certificate, HealthCertificateClaims

_ALIASES = {"is_": "is"}


def to_display(value: Any) -> Any:
    """Convert a domain object into JSON-compatible builtins."""
    if is_dataclass(value) and not isinstance(value, type):
        return {
            _ALIASES.get(f.name, f.name): to_display(getattr(value, f.name))
            for f in fields(value)
            if getattr(value, f.name) is not None
        }
    if isinstance(value, (tuple, list)):
        return [to_display(item) for item in value]
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def render_json(value: Certificate | HealthCertificateClaims, indent: int | None = 2) -> str:
    return json.dumps(to_display(value), indent=indent, ensure_ascii=False)
