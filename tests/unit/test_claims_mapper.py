"""
Unit tests for the claims mapper adapter.

Claims trees are produced with cbor2 and decoded by our own CBOR decoder,
so the mapper sees exactly what the pipeline hands it.
"""

from __future__ import annotations

import copy
from datetime import UTC, datetime

import pytest
from railway import ErrorCode, ResultAssertions
from structlog.testing import capture_logs

from hcert_decoder.adapters.claims_mapper import CertificatePayloadMapper, map_claims
from hcert_decoder.domain.cbor import CborValue
from hcert_decoder.domain.errors import MissingClaim, TypeMismatch
from hcert_decoder.domain.models import Name, VaccineRecord
from tests.conftest import (
    EXPIRES_AT,
    ISSUED_AT,
    RECOVERY,
    TEST_RESULT,
    VACCINATION,
    claims_map,
    tree,
    with_changes,
)


@pytest.fixture()
def mapper() -> CertificatePayloadMapper:
    return CertificatePayloadMapper()


class TestMapVaccination:
    def test_maps_every_field(self, mapper: CertificatePayloadMapper) -> None:
        """
        GIVEN the reference vaccination claims
        WHEN mapped
        THEN header, name and the single vaccine record carry the exact values.
        """
        claims = ResultAssertions.assert_success(mapper.map_claims(tree(claims_map(VACCINATION))))
        certificate = claims.certificate

        assert certificate.ver == "1.0.0"
        assert certificate.dob == "1977-06-16"
        assert certificate.nam == Name(fnt="DI<CAPRIO", fn="Di Caprio", gn="Marilù Teresa", gnt="MARILU<TERESA")
        assert certificate.v == (
            VaccineRecord(
                tg="840539006",
                vp="1119349007",
                mp="EU/1/20/1528",
                ma="ORG-100030215",
                dn=2,
                sd=2,
                dt="2021-04-10",
                co="IT",
                is_="IT",
                ci="01ITE7300E1AB2A84C719004F103DCB1F70A#6",
            ),
        )
        assert certificate.r == ()
        assert certificate.t == ()

    def test_maps_cwt_header_claims(self) -> None:
        claims = map_claims(tree(claims_map(VACCINATION, issuer="DE")))
        assert claims.issuer == "DE"
        assert claims.issued_at == datetime.fromtimestamp(ISSUED_AT, tz=UTC)
        assert claims.expires_at == datetime.fromtimestamp(EXPIRES_AT, tz=UTC)

    def test_cwt_header_claims_are_optional(self) -> None:
        claims = map_claims(tree({-260: {1: VACCINATION}}))
        assert claims.issuer is None
        assert claims.issued_at is None
        assert claims.expires_at is None


class TestMapRecoveryAndTest:
    def test_maps_recovery_record(self) -> None:
        certificate = map_claims(tree(claims_map(RECOVERY))).certificate
        assert certificate.v == ()
        assert certificate.t == ()
        (record,) = certificate.r
        assert record.fr == "2021-04-10"
        assert record.df == "2021-05-01"
        assert record.du == "2021-10-28"
        assert record.ci == "01ITA65E2BD36C9E4900B0273D2E7C92EEB9#1"

    def test_maps_test_record_with_optional_fields(self) -> None:
        (record,) = map_claims(tree(claims_map(TEST_RESULT))).certificate.t
        assert record.tt == "LP6464-4"
        assert record.nm == "Roche LightCycler qPCR"
        assert record.tc == "Policlinico Umberto I"
        assert record.is_ == "IT"

    def test_absent_optional_test_fields_are_none(self) -> None:
        """
        GIVEN a rapid antigen test without nm, dr and tc
        WHEN mapped
        THEN the optional fields are None.
        """
        dcc = with_changes(TEST_RESULT, "t", nm=..., dr=..., tc=...)
        (record,) = map_claims(tree(claims_map(dcc))).certificate.t
        assert record.nm is None
        assert record.dr is None
        assert record.tc is None
        assert record.ma == "1232"


class TestTolerance:
    def test_unknown_keys_are_ignored(self) -> None:
        dcc = with_changes(VACCINATION, "v", extra="ignored")
        dcc["future"] = {"nested": [1, 2, 3]}
        claims = claims_map(dcc)
        claims[-260][2] = "other schema"
        claims[99] = b"\x00"
        (record,) = map_claims(tree(claims)).certificate.v
        assert record.dn == 2

    def test_multiple_records_keep_order(self) -> None:
        dcc = copy.deepcopy(VACCINATION)
        second = dict(dcc["v"][0], dn=3, ci="URN:UVCI:second")
        dcc["v"].append(second)
        records = map_claims(tree(claims_map(dcc))).certificate.v
        assert [record.dn for record in records] == [2, 3]
        assert records[1].ci == "URN:UVCI:second"

    def test_empty_record_array_maps_to_empty_tuple(self) -> None:
        dcc = dict(VACCINATION, v=[])
        assert map_claims(tree(claims_map(dcc))).certificate.v == ()

    def test_name_needs_only_standardised_surname(self) -> None:
        dcc = dict(VACCINATION, nam={"fnt": "DOE"})
        assert map_claims(tree(claims_map(dcc))).certificate.nam == Name(fnt="DOE")

    def test_duplicate_keys_resolve_last_wins(self) -> None:
        """
        GIVEN a DCC map that encodes "ver" twice
        WHEN mapped
        THEN the later value is used.
        """
        dcc = tree(VACCINATION)
        pairs = dcc.value + ((CborValue.text("ver"), CborValue.text("1.3.0")),)  # type: ignore[operator]
        claims = CborValue.map(
            ((CborValue.integer(-260), CborValue.map(((CborValue.integer(1), CborValue.map(pairs)),))),)
        )
        assert map_claims(claims).certificate.ver == "1.3.0"


class TestMissingClaim:
    @pytest.mark.parametrize("key", ["tg", "vp", "mp", "ma", "dn", "sd", "dt", "co", "is", "ci"])
    def test_missing_vaccine_field_names_array_index_and_key(
        self, mapper: CertificatePayloadMapper, key: str
    ) -> None:
        """
        GIVEN a vaccine record without one required field
        WHEN mapped
        THEN the failure is MISSING_CLAIM with array "v", index 0 and the key.
        """
        dcc = with_changes(VACCINATION, "v", **{key: ...})
        result = mapper.map_claims(tree(claims_map(dcc)))
        ResultAssertions.assert_failure(result, ErrorCode.MISSING_CLAIM)
        ResultAssertions.assert_failure_details(result, array="v", index=0, key=key)

    def test_missing_field_in_second_record_reports_its_index(self) -> None:
        dcc = copy.deepcopy(RECOVERY)
        dcc["r"].append({k: v for k, v in dcc["r"][0].items() if k != "du"})
        with pytest.raises(MissingClaim) as excinfo:
            map_claims(tree(claims_map(dcc)))
        assert (excinfo.value.array, excinfo.value.index, excinfo.value.key) == ("r", 1, "du")
        assert excinfo.value.path == "r[1]"

    @pytest.mark.parametrize("key", ["tg", "tt", "sc", "tr", "co", "is", "ci"])
    def test_missing_required_test_field(self, key: str) -> None:
        dcc = with_changes(TEST_RESULT, "t", **{key: ...})
        with pytest.raises(MissingClaim) as excinfo:
            map_claims(tree(claims_map(dcc)))
        assert excinfo.value.key == key
        assert excinfo.value.array == "t"

    @pytest.mark.parametrize("key", ["ver", "nam", "dob"])
    def test_missing_certificate_field_has_no_index(self, key: str) -> None:
        dcc = {k: v for k, v in VACCINATION.items() if k != key}
        with pytest.raises(MissingClaim) as excinfo:
            map_claims(tree(claims_map(dcc)))
        assert excinfo.value.key == key
        assert excinfo.value.index is None
        assert excinfo.value.path == "claims[-260][1]"

    def test_missing_standardised_surname(self) -> None:
        dcc = dict(VACCINATION, nam={"fn": "Doe"})
        with pytest.raises(MissingClaim) as excinfo:
            map_claims(tree(claims_map(dcc)))
        assert excinfo.value.key == "fnt"
        assert excinfo.value.path == "nam"

    def test_missing_hcert_claim(self, mapper: CertificatePayloadMapper) -> None:
        result = mapper.map_claims(tree({1: "IT", 4: EXPIRES_AT, 6: ISSUED_AT}))
        ResultAssertions.assert_failure(result, ErrorCode.MISSING_CLAIM)
        ResultAssertions.assert_failure_details(result, key="-260", path="claims")

    def test_missing_eu_dcc_schema_entry(self, mapper: CertificatePayloadMapper) -> None:
        result = mapper.map_claims(tree({1: "IT", -260: {2: VACCINATION}}))
        ResultAssertions.assert_failure(result, ErrorCode.MISSING_CLAIM)
        ResultAssertions.assert_failure_details(result, key="1", path="claims[-260]")


class TestTypeMismatch:
    def test_dose_number_as_text(self, mapper: CertificatePayloadMapper) -> None:
        """
        GIVEN dn encoded as the text "2"
        WHEN mapped
        THEN the failure is TYPE_MISMATCH at v[0].dn.
        """
        dcc = with_changes(VACCINATION, "v", dn="2")
        result = mapper.map_claims(tree(claims_map(dcc)))
        ResultAssertions.assert_failure(result, ErrorCode.TYPE_MISMATCH)
        ResultAssertions.assert_failure_details(result, path="v[0].dn", expected="integer", actual="text string")

    def test_bool_is_not_accepted_as_integer(self) -> None:
        dcc = with_changes(VACCINATION, "v", sd=True)
        with pytest.raises(TypeMismatch) as excinfo:
            map_claims(tree(claims_map(dcc)))
        assert excinfo.value.actual == "bool"

    def test_text_field_as_integer(self) -> None:
        dcc = with_changes(RECOVERY, "r", co=380)
        with pytest.raises(TypeMismatch) as excinfo:
            map_claims(tree(claims_map(dcc)))
        assert excinfo.value.path == "r[0].co"

    def test_present_optional_field_must_have_right_type(self) -> None:
        dcc = with_changes(TEST_RESULT, "t", nm=42)
        with pytest.raises(TypeMismatch) as excinfo:
            map_claims(tree(claims_map(dcc)))
        assert excinfo.value.path == "t[0].nm"

    def test_record_array_must_be_array(self) -> None:
        dcc = dict(VACCINATION, v={"0": VACCINATION["v"][0]})
        with pytest.raises(TypeMismatch) as excinfo:
            map_claims(tree(claims_map(dcc)))
        assert excinfo.value.path == "v"
        assert excinfo.value.expected == "array"

    def test_record_must_be_map(self) -> None:
        dcc = dict(VACCINATION, v=["not a record"])
        with pytest.raises(TypeMismatch) as excinfo:
            map_claims(tree(claims_map(dcc)))
        assert excinfo.value.path == "v[0]"

    def test_name_must_be_map(self) -> None:
        dcc = dict(VACCINATION, nam="DI CAPRIO")
        with pytest.raises(TypeMismatch) as excinfo:
            map_claims(tree(claims_map(dcc)))
        assert excinfo.value.path == "nam"

    def test_claims_must_be_map(self, mapper: CertificatePayloadMapper) -> None:
        result = mapper.map_claims(tree([1, 2, 3]))
        ResultAssertions.assert_failure(result, ErrorCode.TYPE_MISMATCH)
        ResultAssertions.assert_failure_details(result, path="claims")


class TestAdministrativeClaims:
    """Issuer, issue and expiry claims never make a certificate undecodable."""

    def test_fractional_expiry(self) -> None:
        """
        GIVEN an expiry NumericDate encoded as a float
        WHEN mapped
        THEN expires_at keeps the fractional second.
        """
        claims = claims_map(VACCINATION)
        claims[4] = 1640000000.5
        mapped = map_claims(tree(claims))
        assert mapped.expires_at == datetime.fromtimestamp(1640000000.5, tz=UTC)
        assert mapped.issued_at == datetime.fromtimestamp(ISSUED_AT, tz=UTC)

    def test_text_issued_at_is_ignored_with_warning(self, mapper: CertificatePayloadMapper) -> None:
        """
        GIVEN an issued-at claim holding the text "2021-05-03"
        WHEN mapped
        THEN the certificate decodes, issued_at is None and a warning names claim 6.
        """
        claims = claims_map(VACCINATION)
        claims[6] = "2021-05-03"
        with capture_logs() as logs:
            mapped = ResultAssertions.assert_success(mapper.map_claims(tree(claims)))

        assert mapped.issued_at is None
        assert mapped.certificate.v[0].ci == "01ITE7300E1AB2A84C719004F103DCB1F70A#6"
        warnings = [entry for entry in logs if entry["event"] == "mapper.ignored_claim"]
        assert len(warnings) == 1
        assert warnings[0]["log_level"] == "warning"
        assert (warnings[0]["claim"], warnings[0]["actual"]) == (6, "text string")

    def test_expiry_outside_datetime_range_is_ignored(self) -> None:
        claims = claims_map(VACCINATION)
        claims[4] = 2**62
        mapped = map_claims(tree(claims))
        assert mapped.expires_at is None
        assert mapped.issued_at == datetime.fromtimestamp(ISSUED_AT, tz=UTC)

    def test_millisecond_issued_at_is_ignored(self) -> None:
        """Some issuers write milliseconds; year 57600 is past datetime.max."""
        claims = claims_map(VACCINATION)
        claims[6] = 1755625612038
        assert map_claims(tree(claims)).issued_at is None

    def test_byte_string_issuer_is_ignored(self) -> None:
        claims = claims_map(VACCINATION)
        claims[1] = b"IT"
        mapped = map_claims(tree(claims))
        assert mapped.issuer is None
        assert mapped.expires_at == datetime.fromtimestamp(EXPIRES_AT, tz=UTC)

    def test_well_formed_claims_log_no_warning(self) -> None:
        with capture_logs() as logs:
            map_claims(tree(claims_map(VACCINATION)))
        assert not [entry for entry in logs if entry["event"] == "mapper.ignored_claim"]
