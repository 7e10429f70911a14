"""Business-rule validation for normalized rows.

Pure functions of the row, the model catalog and the domain policy.
Nothing here touches the registry.
"""

from typing import Optional

from .entities import (
    DomainPolicy,
    ErrorCode,
    ImportRow,
    NormalizedRow,
    RowError,
    ValidationOutcome,
)
from .exceptions import (
    InvalidNumberFormatError,
    LineCountExceededError,
    MissingRequiredFieldError,
    RowValidationError,
    UnknownVendorModelError,
)
from .normalizer import FieldNormalizer
from .ports import IModelCatalog


class RowValidator:
    """Apply cross-field rules to a row in isolation."""

    def __init__(self, catalog: IModelCatalog, policy: Optional[DomainPolicy] = None):
        self.catalog = catalog
        self.policy = policy or DomainPolicy()
        self.normalizer = FieldNormalizer(catalog)

    def validate(self, row: NormalizedRow) -> ValidationOutcome:
        """Validate a normalized row.

        Returns:
            ValidationOutcome, valid or carrying the first failing rule
        """
        try:
            self._check_rules(row)
        except RowValidationError as e:
            return ValidationOutcome.invalid(row.row_number, e.to_row_error())
        return ValidationOutcome.valid(row)

    def check(self, row: ImportRow) -> ValidationOutcome:
        """Normalize then validate a raw row."""
        try:
            normalized = self.normalizer.normalize(row)
        except RowValidationError as e:
            return ValidationOutcome.invalid(row.row_number, e.to_row_error())
        return self.validate(normalized)

    def _check_rules(self, row: NormalizedRow) -> None:
        if self.policy.require_user and not row.user:
            raise MissingRequiredFieldError("user")

        model = self.catalog.get(row.model_id)
        if model is None:
            raise UnknownVendorModelError(row.vendor, row.model_id)

        if row.lines > model.max_account_lines:
            raise LineCountExceededError(row.lines, model.max_account_lines)

        if row.number < model.min_number or (
            model.max_number is not None and row.number > model.max_number
        ):
            upper = model.max_number if model.max_number is not None else "any"
            raise InvalidNumberFormatError(
                str(row.number),
                reason=f"out of range {model.min_number}..{upper} for {model.id}",
            )


def find_duplicates_in_file(outcomes: list[ValidationOutcome]) -> list[ValidationOutcome]:
    """Reject rows repeating a MAC or an extension seen earlier in the file.

    The first occurrence stays valid. Outcomes must be in row order.
    """
    seen_macs: dict[str, int] = {}
    seen_numbers: dict[int, int] = {}
    checked: list[ValidationOutcome] = []

    for outcome in outcomes:
        row = outcome.row
        if row is None:
            checked.append(outcome)
            continue

        first = seen_macs.get(row.mac_address)
        field = "mac"
        if first is None:
            first = seen_numbers.get(row.number)
            field = "number"

        if first is not None:
            checked.append(
                ValidationOutcome.invalid(
                    row.row_number,
                    RowError(
                        code=ErrorCode.DUPLICATE_IN_FILE,
                        message=f"Duplicate {field} in file (first seen on row {first})",
                        field=field,
                    ),
                )
            )
            continue

        seen_macs[row.mac_address] = row.row_number
        seen_numbers[row.number] = row.row_number
        checked.append(outcome)

    return checked
