"""
Shared test fixtures and helpers for the hcert-decoder test suite.

Reference certificates mirror the Italian entries of the public EU DCC
conformance corpus (vaccination, recovery, test). Tokens are built the way an
issuer builds them: CBOR (cbor2) → COSE_Sign1 → zlib → base45 → "HC1:" prefix.
The signature bytes are filler; the decoder never checks them.
"""

from __future__ import annotations

import copy
import zlib
from collections.abc import Iterator
from typing import Any

import base45
import cbor2
import pytest
import structlog

from hcert_decoder.adapters.cbor_decoder import loads
from hcert_decoder.domain.cbor import CborValue

ISSUED_AT = 1620000000  # 2021-05-03T00:00:00Z
EXPIRES_AT = 1640000000  # 2021-12-20T11:33:20Z

# Issued by a GDHCN participant: a pointer-style CWT whose claims use text
# keys ("1", "4", "6", "-260") and whose hcert holds only an SHLink under "5".
GDHCN_POINTER_TOKEN = (
    "HC1:6BFOXNMG2N9HZBPYHQ3D69SO5D6%9L60JO DJS4L:P:R8LCDO%0AA3BI16TMVMJ3$C*2"
    "AL+J7AJENS:NK7VCECM:MQ0FE%JC5Y479D/*8G.CV3NV3OVLD86J:KE2HF86GX2BTLHA9A86"
    "GNY8XOIROBZQMQOB9MEBED:KE87B MH:8DZYK%KNU9O%UL75E2*KH42$T8CRJ.V89:GF-K8J"
    "VT$8LQN YVKY8$IV7/05T8::S%MV6J3$IV747ZIV7WN3$V8U8 IVNVG/U85VCEWVLTVUPVFC"
    "N.9FS0JE/8L-AXS8LMFLIF%57LSV$TFVZK%57NTV1IN1$VNVGHVVFWC9UVGYG8UVFGV%TFI3"
    "J5XK L0A/S3VGKJN5QN8$SAC71EN/6JU%8.YI3T8O8FPVNRT2OMNR3BBSNTGVCRNY83%%GEO"
    "0/933OJOLN4RVQJ0.H9PBL7EPYDK3I6.ROIAW231W/PUA16UEZ3IK6MABH53FW5909VRR91%"
    "MS*H9DMNCTNX7P0VYJH5 H7+SR/PTT89E7:TF3.EN$UF$B42SK72/QHR11U0VAY3C9JTB4MV"
    "VIB45TJ1XPU0U%*SBMRUS4*C5V.O+HEYBS930.80T5"
)

NAME = {
    "fnt": "DI<CAPRIO",
    "fn": "Di Caprio",
    "gnt": "MARILU<TERESA",
    "gn": "Marilù Teresa",
}

VACCINATION = {
    "ver": "1.0.0",
    "nam": NAME,
    "dob": "1977-06-16",
    "v": [
        {
            "tg": "840539006",
            "vp": "1119349007",
            "mp": "EU/1/20/1528",
            "ma": "ORG-100030215",
            "dn": 2,
            "sd": 2,
            "dt": "2021-04-10",
            "co": "IT",
            "is": "IT",
            "ci": "01ITE7300E1AB2A84C719004F103DCB1F70A#6",
        }
    ],
}

RECOVERY = {
    "ver": "1.0.0",
    "nam": NAME,
    "dob": "1977-06-16",
    "r": [
        {
            "tg": "840539006",
            "fr": "2021-04-10",
            "co": "IT",
            "is": "IT",
            "df": "2021-05-01",
            "du": "2021-10-28",
            "ci": "01ITA65E2BD36C9E4900B0273D2E7C92EEB9#1",
        }
    ],
}

TEST_RESULT = {
    "ver": "1.0.0",
    "nam": NAME,
    "dob": "1977-06-16",
    "t": [
        {
            "tg": "840539006",
            "tt": "LP6464-4",
            "nm": "Roche LightCycler qPCR",
            "ma": "1232",
            "sc": "2021-05-03T10:27:15Z",
            "dr": "2021-05-11T12:27:15Z",
            "tr": "260415000",
            "tc": "Policlinico Umberto I",
            "co": "IT",
            "is": "IT",
            "ci": "01IT053059F7676042D9BEE9F874C4901F9B#3",
        }
    ],
}


def b45encode(data: bytes) -> str:
    """base45 text for `data` (the library returns bytes in recent versions)."""
    encoded = base45.b45encode(data)
    return encoded.decode("ascii") if isinstance(encoded, bytes) else encoded


def raw_deflate(data: bytes) -> bytes:
    """Deflate without zlib framing."""
    compressor = zlib.compressobj(9, zlib.DEFLATED, -zlib.MAX_WBITS)
    return compressor.compress(data) + compressor.flush()


def claims_map(dcc: dict[str, Any], issuer: str = "IT") -> dict[int, Any]:
    return {1: issuer, 4: EXPIRES_AT, 6: ISSUED_AT, -260: {1: dcc}}


def cose_sign1(payload: bytes, tagged: bool = True) -> bytes:
    """Serialize a COSE_Sign1 envelope (ES256 header, dummy signature) around `payload`."""
    envelope = [cbor2.dumps({1: -7}), {4: bytes(range(8))}, payload, bytes(64)]
    return cbor2.dumps(cbor2.CBORTag(18, envelope) if tagged else envelope)


def build_token(
    dcc: dict[str, Any],
    *,
    tagged: bool = True,
    framing: str = "zlib",
    prefix: str = "HC1:",
) -> str:
    """Build a complete HC1 token for the given DCC claims."""
    raw = cose_sign1(cbor2.dumps(claims_map(dcc)), tagged=tagged)
    compressed = zlib.compress(raw, 9) if framing == "zlib" else raw_deflate(raw)
    return prefix + b45encode(compressed)


def tree(obj: Any) -> CborValue:
    """Encode a Python object with cbor2 and decode it back as a CborValue tree."""
    return loads(cbor2.dumps(obj))


def with_changes(dcc: dict[str, Any], array: str, **changes: Any) -> dict[str, Any]:
    """
    Copy of `dcc` whose first `array` element has fields replaced.

    A value of `...` removes the field instead.
    """
    changed = copy.deepcopy(dcc)
    record = changed[array][0]
    for key, value in changes.items():
        key = key.rstrip("_")
        if value is ...:
            record.pop(key, None)
        else:
            record[key] = value
    return changed


@pytest.fixture()
def vaccination_token() -> str:
    return build_token(VACCINATION)


@pytest.fixture()
def recovery_token() -> str:
    return build_token(RECOVERY)


@pytest.fixture()
def test_result_token() -> str:
    return build_token(TEST_RESULT)


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    """Undo configure_structlog() so a test's captured stderr is not reused."""
    yield
    structlog.reset_defaults()
