"""
Domain models — immutable data structures for the decoded health certificate.

These are pure value objects with no behavior. Field names are the short
codes of the EU DCC JSON schema (`tg`, `ci`, `dn`, ...) so a record can be
compared field-by-field with the schema documentation. The one exception is
the issuer code `is`, a Python keyword, held in the `is_` attribute; the
presentation layer writes it back out as `is`.

All models are frozen dataclasses (immutable) following functional principles.
Record sequences are tuples and are always present, possibly empty.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Name:
    """
    Person name (`nam`).

    `fnt` (ICAO 9303 transliterated surname) is the only mandatory part;
    certificates for people with a single name leave the others out.
    """

    fnt: str
    fn: str | None = None
    gn: str | None = None
    gnt: str | None = None


@dataclass(frozen=True, slots=True)
class VaccineRecord:
    """One vaccination event (an element of `v`)."""

    tg: str  # disease or agent targeted
    vp: str  # vaccine or prophylaxis
    mp: str  # medicinal product
    ma: str  # marketing authorization holder / manufacturer
    dn: int  # dose number
    sd: int  # total series of doses
    dt: str  # date of vaccination
    co: str  # country of vaccination
    is_: str  # certificate issuer
    ci: str  # unique certificate identifier


@dataclass(frozen=True, slots=True)
class RecoveryRecord:
    """One recovery statement (an element of `r`)."""

    tg: str
    fr: str  # date of first positive test result
    co: str
    is_: str
    df: str  # certificate valid from
    du: str  # certificate valid until
    ci: str


@dataclass(frozen=True, slots=True)
class TestRecord:
    """
    One test result (an element of `t`).

    `nm`/`ma` identify the test (NAAT vs. rapid antigen), so only one of them
    is normally present; `dr` and `tc` are optional in recent schema versions.
    """

    __test__ = False  # not a pytest test class

    tg: str
    tt: str  # type of test
    sc: str  # date/time of sample collection
    tr: str  # test result
    co: str
    is_: str
    ci: str
    nm: str | None = None  # NAAT test name
    ma: str | None = None  # rapid antigen test device identifier
    dr: str | None = None  # date/time of test result
    tc: str | None = None  # testing centre


@dataclass(frozen=True, slots=True)
class Certificate:
    """
    The EU DCC claims (`-260` → `1` in the CWT payload).

    Exactly one of v/r/t is normally non-empty, but that is not enforced here.
    """

    ver: str
    nam: Name
    dob: str
    v: tuple[VaccineRecord, ...] = field(default_factory=tuple)
    r: tuple[RecoveryRecord, ...] = field(default_factory=tuple)
    t: tuple[TestRecord, ...] = field(default_factory=tuple)

    @property
    def total_records(self) -> int:
        return len(self.v) + len(self.r) + len(self.t)


@dataclass(frozen=True, slots=True)
class HealthCertificateClaims:
    """
    The full CWT claims set: administrative claims plus the certificate.

    This is the aggregate returned by the claims mapper:
      CWT map → {1: iss, 4: exp, 6: iat, -260: {1: Certificate}}
    """

    certificate: Certificate
    issuer: str | None = None
    issued_at: datetime | None = None
    expires_at: datetime | None = None
