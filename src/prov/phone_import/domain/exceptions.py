"""Exception hierarchy for the phone import pipeline.

Exception Hierarchy:
    PhoneImportError (base)
    ├── StructuralError (abort the whole batch)
    │   ├── MalformedFileError
    │   └── MissingRequiredColumnsError
    ├── RowValidationError (isolated to one row)
    │   ├── InvalidMacFormatError
    │   ├── InvalidNumberFormatError
    │   ├── UnknownVendorModelError
    │   ├── MissingRequiredFieldError
    │   └── LineCountExceededError
    ├── CommitError (isolated to one row during commit)
    │   ├── IllegalActionForStatusError
    │   ├── StaleConflictStateError
    │   └── RegistryWriteError
    └── BatchNotFoundError

Conflicts are not errors and have no exception class.
"""

from typing import Any, Optional

from .entities import ErrorCode, RowError


class PhoneImportError(Exception):
    """Base exception for all phone import errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code
        details: Additional context as a dictionary
    """

    code: ErrorCode

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        field: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.field = field

    def to_row_error(self) -> RowError:
        return RowError(code=self.code, message=self.message, field=self.field)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code.value,
            "message": self.message,
            "field": self.field,
            "details": self.details,
        }


# ============================================
# Structural Errors
# ============================================


class StructuralError(PhoneImportError):
    """The uploaded file cannot be processed at all."""


class MalformedFileError(StructuralError):
    """The file cannot be opened as tabular data."""

    code = ErrorCode.MALFORMED_FILE


class MissingRequiredColumnsError(StructuralError):
    """One or more required header columns are absent."""

    code = ErrorCode.MISSING_REQUIRED_COLUMNS

    def __init__(self, names: list[str]):
        super().__init__(
            f"Missing required columns: {', '.join(names)}",
            details={"missing_columns": list(names)},
        )
        self.names = list(names)


# ============================================
# Row Validation Errors
# ============================================


class RowValidationError(PhoneImportError):
    """A single row failed normalization or validation."""


class InvalidMacFormatError(RowValidationError):
    code = ErrorCode.INVALID_MAC_FORMAT

    def __init__(self, value: str):
        super().__init__(
            f"Invalid MAC address: {value!r} (expected 12 hex digits)",
            field="mac",
        )


class InvalidNumberFormatError(RowValidationError):
    code = ErrorCode.INVALID_NUMBER_FORMAT

    def __init__(self, value: str, reason: str = "not a non-negative integer", field: str = "number"):
        super().__init__(f"Invalid {field}: {value!r} ({reason})", field=field)


class UnknownVendorModelError(RowValidationError):
    code = ErrorCode.UNKNOWN_VENDOR_MODEL

    def __init__(self, vendor: str, model: str):
        super().__init__(f"Unknown vendor/model: {vendor}/{model}", field="model")


class MissingRequiredFieldError(RowValidationError):
    code = ErrorCode.MISSING_REQUIRED_FIELD

    def __init__(self, field_name: str):
        super().__init__(f"Required field is empty: {field_name}", field=field_name)


class LineCountExceededError(RowValidationError):
    code = ErrorCode.LINE_COUNT_EXCEEDED

    def __init__(self, declared: int, maximum: int):
        super().__init__(
            f"Too many account lines: {declared}. Max allowed: {maximum}",
            details={"max": maximum},
            field="lines",
        )
        self.maximum = maximum


# ============================================
# Commit Errors
# ============================================


class CommitError(PhoneImportError):
    """Committing a single row failed."""


class IllegalActionForStatusError(CommitError):
    code = ErrorCode.ILLEGAL_ACTION_FOR_STATUS


class StaleConflictStateError(CommitError):
    """Registry state changed since the row was classified."""

    code = ErrorCode.STALE_CONFLICT_STATE


class RegistryWriteError(CommitError):
    """The registry rejected the write."""

    code = ErrorCode.REGISTRY_WRITE_FAILED


class BatchNotFoundError(PhoneImportError):
    """No classified batch with this id (never uploaded, or expired)."""

    code = ErrorCode.BATCH_NOT_FOUND

    def __init__(self, batch_id: str):
        super().__init__(f"Import batch not found or expired: {batch_id}")
        self.batch_id = batch_id
