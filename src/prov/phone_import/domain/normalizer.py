"""Field normalization for imported rows.

Coerces raw cell text into typed, canonical values without judging
cross-field business rules (see validation.py for those).
"""

import re

from .entities import ImportRow, NormalizedRow
from .exceptions import (
    InvalidMacFormatError,
    InvalidNumberFormatError,
    MissingRequiredFieldError,
    UnknownVendorModelError,
)
from .ports import IModelCatalog

_NON_HEX = re.compile(r"[^0-9A-Fa-f]")


def normalize_mac(value: str) -> str:
    """Normalize a MAC address to XX:XX:XX:XX:XX:XX.

    Every non-hex character is stripped first, so any separator style
    ("AA-BB-..", "aabb.ccdd.eeff", "AABBCCDDEEFF") yields the same output.

    Raises:
        InvalidMacFormatError: If 12 hex digits do not remain
    """
    digits = _NON_HEX.sub("", value or "").upper()
    if len(digits) != 12:
        raise InvalidMacFormatError(value)
    return ":".join(digits[i : i + 2] for i in range(0, 12, 2))


def parse_non_negative_int(value: str, field: str = "number") -> int:
    """Parse cell text as a non-negative integer.

    Raises:
        InvalidNumberFormatError: On anything else
    """
    text = (value or "").strip()
    if not (text.isascii() and text.isdigit()):
        raise InvalidNumberFormatError(value, field=field)
    return int(text)


class FieldNormalizer:
    """Turns an ImportRow into a NormalizedRow.

    Fields are checked in column order: MAC, number, vendor/model. The
    first failure raises and short-circuits the remaining checks.
    """

    def __init__(self, catalog: IModelCatalog):
        self.catalog = catalog

    def normalize(self, row: ImportRow) -> NormalizedRow:
        """Normalize one row.

        Raises:
            RowValidationError: The first failing field's error
        """
        raw_mac = row.get("mac")
        if not raw_mac:
            raise MissingRequiredFieldError("mac")
        mac = normalize_mac(raw_mac)

        raw_number = row.get("number")
        if not raw_number:
            raise MissingRequiredFieldError("number")
        number = parse_non_negative_int(raw_number)

        vendor, model_name = row.get("vendor"), row.get("model")
        if not vendor:
            raise MissingRequiredFieldError("vendor")
        if not model_name:
            raise MissingRequiredFieldError("model")
        model = self.catalog.resolve(vendor, model_name)
        if model is None:
            raise UnknownVendorModelError(vendor, model_name)

        # Zero can only be judged once the model's numbering policy is known
        if number == 0 and not model.allow_zero_number:
            raise InvalidNumberFormatError(raw_number, reason=f"zero is not allowed for {model.id}")

        raw_lines = row.get("lines")
        lines = parse_non_negative_int(raw_lines, field="lines") if raw_lines else 1
        if lines == 0:
            raise InvalidNumberFormatError(raw_lines, reason="at least one line is required", field="lines")

        return NormalizedRow(
            row_number=row.row_number,
            mac_address=mac,
            number=number,
            vendor=model.vendor,
            model_id=model.id,
            user=row.get("user"),
            lines=lines,
            description=row.get("description"),
        )
