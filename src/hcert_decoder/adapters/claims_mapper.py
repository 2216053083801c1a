"""
Claims mapper adapter — CWT claims tree to the typed certificate model.

Adapter layer — implements the ClaimsMapper port.

CWT payload layout (integer keys):

    {
       1: issuer (tstr),
       4: expiration (NumericDate),
       6: issued at (NumericDate),
    -260: {                                   ; hcert
            1: {                              ; EU DCC, schema version 1
                "ver": tstr, "nam": {...}, "dob": tstr,
                "v": [...], "r": [...], "t": [...]
            }
          }
    }

The tree is navigated with the optional query helpers from the domain; this
module is the single place where an absent or mistyped value becomes an
error. Unknown keys are ignored. An absent record array is an empty tuple.

Claims 1, 4 and 6 are administrative: a value that cannot be read (a byte
string issuer, a NumericDate outside the datetime range) is logged and left
out, and the certificate is still returned. A NumericDate may be an integer
or a float (RFC 8392).
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import TypeVar

import structlog
from railway.result import Result

from hcert_decoder.domain.cbor import CborKind, CborValue, as_int, as_text, map_get
from hcert_decoder.domain.errors import MissingClaim, TypeMismatch, capture
from hcert_decoder.domain.models import (
    Certificate,
    HealthCertificateClaims,
    Name,
    RecoveryRecord,
    TestRecord,
    VaccineRecord,
)

log = structlog.get_logger()

T = TypeVar("T")

CWT_ISSUER = 1
CWT_EXPIRATION = 4
CWT_ISSUED_AT = 6
HCERT_CLAIM = -260
EU_DCC_V1 = 1


class _Fields:
    """Typed access to one CBOR map found at `path`."""

    __slots__ = ("_value", "_path", "_where", "_array", "_index")

    def __init__(
        self,
        value: CborValue,
        path: str,
        where: str | None = None,
        array: str | None = None,
        index: int | None = None,
    ) -> None:
        self._where = where or path
        if value.kind is not CborKind.MAP:
            raise TypeMismatch(self._where, CborKind.MAP.value, value.describe())
        self._value = value
        self._path = path
        self._array = array
        self._index = index

    def _child_path(self, key: int | str) -> str:
        if isinstance(key, int):
            return f"{self._path}[{key}]"
        return f"{self._path}.{key}" if self._path else key

    def _missing(self, key: int | str) -> MissingClaim:
        return MissingClaim(str(key), self._where, array=self._array, index=self._index)

    def _read(self, key: int | str, expected: CborKind, read: Callable[[CborValue], T | None]) -> T | None:
        item = map_get(self._value, key)
        if item is None:
            return None
        value = read(item)
        if value is None:
            raise TypeMismatch(self._child_path(key), expected.value, item.describe())
        return value

    def get(self, key: int | str, kind: CborKind) -> CborValue | None:
        return self._read(key, kind, lambda item: item if item.kind is kind else None)

    def require(self, key: int | str, kind: CborKind) -> CborValue:
        item = self.get(key, kind)
        if item is None:
            raise self._missing(key)
        return item

    def text(self, key: int | str) -> str:
        value = self._read(key, CborKind.TEXT, as_text)
        if value is None:
            raise self._missing(key)
        return value

    def optional_text(self, key: int | str) -> str | None:
        return self._read(key, CborKind.TEXT, as_text)

    def integer(self, key: int | str) -> int:
        value = self._read(key, CborKind.INTEGER, as_int)
        if value is None:
            raise self._missing(key)
        return value

    def nested(self, key: int | str) -> _Fields:
        return _Fields(self.require(key, CborKind.MAP), self._child_path(key))

    def records(self, key: str, build: Callable[[_Fields], T]) -> tuple[T, ...]:
        array = self.get(key, CborKind.ARRAY)
        if array is None:
            return ()
        return tuple(
            build(_Fields(element, f"{self._child_path(key)}[{index}]", array=key, index=index))
            for index, element in enumerate(array.value)  # type: ignore[arg-type]
        )


def _numeric_date(item: CborValue) -> datetime | None:
    if item.kind not in (CborKind.INTEGER, CborKind.FLOAT):
        return None
    try:
        return datetime.fromtimestamp(item.value, tz=UTC)  # type: ignore[arg-type]
    except (OverflowError, OSError, ValueError):
        return None


def _administrative(claims: CborValue, key: int, read: Callable[[CborValue], T | None]) -> T | None:
    item = map_get(claims, key)
    if item is None:
        return None
    value = read(item)
    if value is None:
        log.warning("mapper.ignored_claim", claim=key, actual=item.describe())
    return value


# ─────────────────────── Record builders ───────────────────────


def _name(fields: _Fields) -> Name:
    return Name(
        fnt=fields.text("fnt"),
        fn=fields.optional_text("fn"),
        gn=fields.optional_text("gn"),
        gnt=fields.optional_text("gnt"),
    )


def _vaccine(fields: _Fields) -> VaccineRecord:
    return VaccineRecord(
        tg=fields.text("tg"),
        vp=fields.text("vp"),
        mp=fields.text("mp"),
        ma=fields.text("ma"),
        dn=fields.integer("dn"),
        sd=fields.integer("sd"),
        dt=fields.text("dt"),
        co=fields.text("co"),
        is_=fields.text("is"),
        ci=fields.text("ci"),
    )


def _recovery(fields: _Fields) -> RecoveryRecord:
    return RecoveryRecord(
        tg=fields.text("tg"),
        fr=fields.text("fr"),
        co=fields.text("co"),
        is_=fields.text("is"),
        df=fields.text("df"),
        du=fields.text("du"),
        ci=fields.text("ci"),
    )


def _test(fields: _Fields) -> TestRecord:
    return TestRecord(
        tg=fields.text("tg"),
        tt=fields.text("tt"),
        sc=fields.text("sc"),
        tr=fields.text("tr"),
        co=fields.text("co"),
        is_=fields.text("is"),
        ci=fields.text("ci"),
        nm=fields.optional_text("nm"),
        ma=fields.optional_text("ma"),
        dr=fields.optional_text("dr"),
        tc=fields.optional_text("tc"),
    )


def _certificate(dcc: _Fields) -> Certificate:
    return Certificate(
        ver=dcc.text("ver"),
        nam=_name(dcc.nested("nam")),
        dob=dcc.text("dob"),
        v=dcc.records("v", _vaccine),
        r=dcc.records("r", _recovery),
        t=dcc.records("t", _test),
    )


def map_claims(claims: CborValue) -> HealthCertificateClaims:
    """Map the CWT claims map, raising MissingClaim / TypeMismatch on contract violations."""
    cwt = _Fields(claims, "claims")
    hcert = cwt.nested(HCERT_CLAIM)
    # record paths are reported relative to the DCC map: "v[0].dn", "nam.fnt"
    dcc = _Fields(hcert.require(EU_DCC_V1, CborKind.MAP), "", where=f"claims[{HCERT_CLAIM}][{EU_DCC_V1}]")
    return HealthCertificateClaims(
        certificate=_certificate(dcc),
        issuer=_administrative(claims, CWT_ISSUER, as_text),
        issued_at=_administrative(claims, CWT_ISSUED_AT, _numeric_date),
        expires_at=_administrative(claims, CWT_EXPIRATION, _numeric_date),
    )


class CertificatePayloadMapper:
    """
    Map a decoded CWT claims tree into HealthCertificateClaims.

    Implements the ClaimsMapper port.
    """

    def map_claims(self, claims: CborValue) -> Result[HealthCertificateClaims]:
        return capture(lambda: map_claims(claims)).peek(
            lambda mapped: log.debug(
                "mapper.complete",
                vaccinations=len(mapped.certificate.v),
                recoveries=len(mapped.certificate.r),
                tests=len(mapped.certificate.t),
            )
        )
