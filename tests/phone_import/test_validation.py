"""Tests for row validation and in-file duplicate detection."""

from src.prov.phone_import.domain.entities import (
    DomainPolicy,
    ErrorCode,
    ImportRow,
    NormalizedRow,
)
from src.prov.phone_import.domain.validation import RowValidator, find_duplicates_in_file


def normalized(row_number=2, mac="AA:BB:CC:DD:EE:FF", number=101, **kwargs) -> NormalizedRow:
    values = dict(vendor="yealink", model_id="T46S", lines=1)
    values.update(kwargs)
    return NormalizedRow(row_number=row_number, mac_address=mac, number=number, **values)


class TestRowValidator:
    def test_valid_row(self, catalog):
        outcome = RowValidator(catalog).validate(normalized())
        assert outcome.is_valid
        assert outcome.row.number == 101

    def test_line_count_exceeded(self, catalog):
        outcome = RowValidator(catalog).validate(normalized(model_id="T31P", lines=3))

        assert not outcome.is_valid
        assert outcome.error.code == ErrorCode.LINE_COUNT_EXCEEDED
        assert "Max allowed: 2" in outcome.error.message

    def test_number_below_model_range(self, catalog):
        outcome = RowValidator(catalog).validate(normalized(number=42))

        assert outcome.error.code == ErrorCode.INVALID_NUMBER_FORMAT
        assert "out of range" in outcome.error.message

    def test_policy_requires_user(self, catalog):
        validator = RowValidator(catalog, DomainPolicy(name="office", require_user=True))

        assert validator.validate(normalized()).error.code == ErrorCode.MISSING_REQUIRED_FIELD
        assert validator.validate(normalized(user="alice")).is_valid

    def test_check_converts_normalization_failure(self, catalog):
        outcome = RowValidator(catalog).check(
            ImportRow(
                row_number=5,
                fields={"mac": "not-a-mac", "number": "101", "vendor": "yealink", "model": "T46S"},
            )
        )

        assert outcome.row_number == 5
        assert outcome.row is None
        assert outcome.error.code == ErrorCode.INVALID_MAC_FORMAT


class TestFindDuplicatesInFile:
    def test_first_occurrence_stays_valid(self, catalog):
        validator = RowValidator(catalog)
        outcomes = [
            validator.validate(normalized(2, mac="AA:BB:CC:DD:EE:01", number=101)),
            validator.validate(normalized(3, mac="AA:BB:CC:DD:EE:01", number=102)),
            validator.validate(normalized(4, mac="AA:BB:CC:DD:EE:03", number=101)),
        ]

        checked = find_duplicates_in_file(outcomes)

        assert checked[0].is_valid
        assert checked[1].error.code == ErrorCode.DUPLICATE_IN_FILE
        assert checked[1].error.field == "mac"
        assert "row 2" in checked[1].error.message
        assert checked[2].error.field == "number"

    def test_invalid_rows_pass_through(self, catalog):
        validator = RowValidator(catalog)
        outcomes = [
            validator.validate(normalized(2, model_id="T31P", lines=5)),
            validator.validate(normalized(3)),
        ]

        checked = find_duplicates_in_file(outcomes)

        assert checked[0].error.code == ErrorCode.LINE_COUNT_EXCEEDED
        assert checked[1].is_valid
