"""Tests for field normalization."""

import pytest

from src.prov.phone_import.domain.entities import ErrorCode, ImportRow
from src.prov.phone_import.domain.exceptions import (
    InvalidMacFormatError,
    InvalidNumberFormatError,
    MissingRequiredFieldError,
    UnknownVendorModelError,
)
from src.prov.phone_import.domain.normalizer import (
    FieldNormalizer,
    normalize_mac,
    parse_non_negative_int,
)


def row(**fields) -> ImportRow:
    values = {"mac": "AA-BB-CC-DD-EE-FF", "number": "101", "vendor": "yealink", "model": "T46S"}
    values.update(fields)
    return ImportRow(row_number=2, fields=values)


class TestNormalizeMac:
    @pytest.mark.parametrize(
        "value",
        [
            "AA-BB-CC-DD-EE-FF",
            "aa:bb:cc:dd:ee:ff",
            "aabb.ccdd.eeff",
            "AABBCCDDEEFF",
            " aa bb cc dd ee ff ",
        ],
    )
    def test_separator_styles_produce_same_mac(self, value):
        assert normalize_mac(value) == "AA:BB:CC:DD:EE:FF"

    def test_idempotent(self):
        once = normalize_mac("00-1b-44-11-3a-b7")
        assert normalize_mac(once) == once

    @pytest.mark.parametrize("value", ["not-a-mac", "AA:BB:CC", "AABBCCDDEEFF00", ""])
    def test_invalid_mac_raises(self, value):
        with pytest.raises(InvalidMacFormatError) as exc_info:
            normalize_mac(value)
        assert exc_info.value.code == ErrorCode.INVALID_MAC_FORMAT
        assert exc_info.value.field == "mac"


class TestParseNonNegativeInt:
    def test_parses_digits(self):
        assert parse_non_negative_int(" 0101 ") == 101

    @pytest.mark.parametrize("value", ["-1", "10a", "1.5", "", "١٢"])
    def test_rejects_non_integers(self, value):
        with pytest.raises(InvalidNumberFormatError):
            parse_non_negative_int(value)


class TestFieldNormalizer:
    def test_normalizes_valid_row(self, catalog):
        normalized = FieldNormalizer(catalog).normalize(
            row(vendor="Yealink", model="yealink t46s", user="alice", lines="2")
        )

        assert normalized.mac_address == "AA:BB:CC:DD:EE:FF"
        assert normalized.number == 101
        assert normalized.vendor == "yealink"
        assert normalized.model_id == "T46S"
        assert normalized.user == "alice"
        assert normalized.lines == 2

    def test_lines_default_to_one(self, catalog):
        assert FieldNormalizer(catalog).normalize(row()).lines == 1

    def test_missing_mac(self, catalog):
        with pytest.raises(MissingRequiredFieldError) as exc_info:
            FieldNormalizer(catalog).normalize(row(mac="  "))
        assert exc_info.value.field == "mac"

    def test_mac_checked_before_number(self, catalog):
        with pytest.raises(InvalidMacFormatError):
            FieldNormalizer(catalog).normalize(row(mac="not-a-mac", number="abc"))

    def test_invalid_number(self, catalog):
        with pytest.raises(InvalidNumberFormatError):
            FieldNormalizer(catalog).normalize(row(number="10x"))

    def test_unknown_model(self, catalog):
        with pytest.raises(UnknownVendorModelError):
            FieldNormalizer(catalog).normalize(row(model="T99"))

    def test_model_under_wrong_vendor_is_unknown(self, catalog):
        with pytest.raises(UnknownVendorModelError):
            FieldNormalizer(catalog).normalize(row(vendor="fanvil", model="T46S"))

    def test_expansion_module_is_not_importable(self, catalog):
        with pytest.raises(UnknownVendorModelError):
            FieldNormalizer(catalog).normalize(row(model="EXP50"))

    def test_zero_number_rejected_unless_model_allows_it(self, catalog):
        with pytest.raises(InvalidNumberFormatError, match="zero"):
            FieldNormalizer(catalog).normalize(row(number="0"))

        normalized = FieldNormalizer(catalog).normalize(row(number="0", vendor="fanvil", model="H5"))
        assert normalized.number == 0

    def test_zero_lines_rejected(self, catalog):
        with pytest.raises(InvalidNumberFormatError) as exc_info:
            FieldNormalizer(catalog).normalize(row(lines="0"))
        assert exc_info.value.field == "lines"
