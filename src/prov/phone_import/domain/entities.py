"""Domain entities for phone import.

These are pure domain objects with no infrastructure dependencies.
They represent the rows of an uploaded spreadsheet as they move through
extraction, normalization, validation, conflict resolution and commit.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional


class ErrorCode(str, Enum):
    """Machine-readable reasons a row, a file or a commit can fail."""

    # Structural (whole batch)
    MALFORMED_FILE = "malformed_file"
    MISSING_REQUIRED_COLUMNS = "missing_required_columns"

    # Row-level validation
    INVALID_MAC_FORMAT = "invalid_mac_format"
    INVALID_NUMBER_FORMAT = "invalid_number_format"
    UNKNOWN_VENDOR_MODEL = "unknown_vendor_model"
    MISSING_REQUIRED_FIELD = "missing_required_field"
    LINE_COUNT_EXCEEDED = "line_count_exceeded"
    DUPLICATE_IN_FILE = "duplicate_in_file"

    # Commit-time
    ILLEGAL_ACTION_FOR_STATUS = "illegal_action_for_status"
    STALE_CONFLICT_STATE = "stale_conflict_state"
    REGISTRY_WRITE_FAILED = "registry_write_failed"
    UNKNOWN_ROW = "unknown_row"
    BATCH_NOT_FOUND = "batch_not_found"


class RowStatus(str, Enum):
    """Classification of an uploaded row before any commit."""

    NEW = "new"  # Ready to import
    CONFLICT = "conflict"  # Collides with the registry, operator must choose
    ERROR = "error"  # Failed validation, never importable


class ConflictKind(str, Enum):
    """Why a row collides with existing registry state."""

    IDENTICAL_DUPLICATE = "identical_duplicate"  # Same MAC, nothing changed
    MAC_FIELD_MISMATCH = "mac_field_mismatch"  # Same MAC, different fields
    NUMBER_ALREADY_ASSIGNED = "number_already_assigned"  # Number held by another MAC


class ImportAction(str, Enum):
    """Operator decision for a classified row."""

    IMPORT = "import"
    OVERWRITE = "overwrite"
    SKIP = "skip"


class ResultStatus(str, Enum):
    """Outcome of committing a single row."""

    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class ColumnSpec:
    """A recognized spreadsheet column and the header spellings it accepts."""

    name: str
    aliases: tuple[str, ...] = ()
    required: bool = False

    def matches(self, header: str) -> bool:
        header = header.strip().lower()
        return header == self.name or header in self.aliases


@dataclass(frozen=True)
class HeaderSchema:
    """Ordered list of recognized columns."""

    columns: tuple[ColumnSpec, ...]

    @property
    def required_names(self) -> list[str]:
        return [c.name for c in self.columns if c.required]


DEFAULT_SCHEMA = HeaderSchema(
    columns=(
        ColumnSpec(
            "mac",
            aliases=("mac address", "mac_address", "macaddress", "mac-address"),
            required=True,
        ),
        ColumnSpec(
            "number",
            aliases=("extension", "ext", "phone number", "phone_number", "number"),
            required=True,
        ),
        ColumnSpec("vendor", aliases=("manufacturer",), required=True),
        ColumnSpec("model", aliases=("model id", "model_id", "model name"), required=True),
        ColumnSpec("user", aliases=("user name", "username", "assigned user")),
        ColumnSpec("lines", aliases=("line count", "line_count", "accounts")),
        ColumnSpec("description", aliases=("comment", "notes")),
    )
)


@dataclass(frozen=True)
class ImportRow:
    """A single non-empty line of the uploaded spreadsheet.

    ``fields`` maps canonical column names to the raw cell text.
    ``row_number`` is the 1-based spreadsheet line (header is line 1).
    """

    row_number: int
    fields: Mapping[str, str]

    def get(self, name: str) -> str:
        return (self.fields.get(name) or "").strip()


@dataclass(frozen=True)
class NormalizedRow:
    """An ImportRow with its fields coerced to typed, canonical values."""

    row_number: int
    mac_address: str  # XX:XX:XX:XX:XX:XX
    number: int
    vendor: str  # Catalog vendor id
    model_id: str  # Catalog model id
    user: str = ""
    lines: int = 1
    description: str = ""


@dataclass(frozen=True)
class RowError:
    """Why a row was rejected."""

    code: ErrorCode
    message: str
    field: Optional[str] = None

    def to_dict(self) -> dict:
        return {"code": self.code.value, "message": self.message, "field": self.field}


@dataclass(frozen=True)
class ValidationOutcome:
    """Either a valid NormalizedRow or the error that rejected the row."""

    row_number: int
    row: Optional[NormalizedRow] = None
    error: Optional[RowError] = None

    @classmethod
    def valid(cls, row: NormalizedRow) -> "ValidationOutcome":
        return cls(row_number=row.row_number, row=row)

    @classmethod
    def invalid(cls, row_number: int, error: RowError) -> "ValidationOutcome":
        return cls(row_number=row_number, error=error)

    @property
    def is_valid(self) -> bool:
        return self.error is None


@dataclass
class ClassifiedRow:
    """A row with its reconciliation verdict against the registry.

    For ``conflict`` rows, ``existing_device_id`` is the lookup key of the
    registry entity the row collides with and ``existing_version`` is the
    version observed at classification time.
    """

    row_number: int
    fields: dict[str, str] = field(default_factory=dict)
    normalized: Optional[NormalizedRow] = None
    status: RowStatus = RowStatus.NEW
    conflict_kind: Optional[ConflictKind] = None
    error: Optional[RowError] = None
    message: Optional[str] = None
    existing_device_id: Optional[int] = None
    existing_version: Optional[int] = None

    @property
    def mac_address(self) -> Optional[str]:
        return self.normalized.mac_address if self.normalized else None

    def same_verdict(self, other: "ClassifiedRow") -> bool:
        """Check whether two classifications of the same row agree."""
        return (
            self.status == other.status
            and self.conflict_kind == other.conflict_kind
            and self.existing_device_id == other.existing_device_id
            and self.existing_version == other.existing_version
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        n = self.normalized
        return {
            "row_number": self.row_number,
            "fields": dict(self.fields),
            "status": self.status.value,
            "conflict_kind": self.conflict_kind.value if self.conflict_kind else None,
            "error": self.error.to_dict() if self.error else None,
            "message": self.message,
            "existing_device_id": self.existing_device_id,
            "mac_address": n.mac_address if n else None,
            "number": n.number if n else None,
            "vendor": n.vendor if n else None,
            "model_id": n.model_id if n else None,
            "user": n.user if n else None,
            "lines": n.lines if n else None,
        }


@dataclass(frozen=True)
class ImportResult:
    """Outcome of one operator-submitted row."""

    row_number: int
    action: ImportAction
    status: ResultStatus
    error: Optional[RowError] = None
    device_id: Optional[int] = None

    @classmethod
    def success(
        cls, row_number: int, action: ImportAction, device_id: Optional[int] = None
    ) -> "ImportResult":
        return cls(row_number, action, ResultStatus.SUCCESS, device_id=device_id)

    @classmethod
    def failure(
        cls, row_number: int, action: ImportAction, error: RowError
    ) -> "ImportResult":
        return cls(row_number, action, ResultStatus.FAILURE, error=error)

    @property
    def succeeded(self) -> bool:
        return self.status == ResultStatus.SUCCESS

    def to_dict(self) -> dict:
        return {
            "row_number": self.row_number,
            "action": self.action.value,
            "status": self.status.value,
            "error": self.error.to_dict() if self.error else None,
            "device_id": self.device_id,
        }


@dataclass(frozen=True)
class BatchStats:
    """Row counts for one batch. ``skipped`` is a subset of ``success``."""

    total: int = 0
    new: int = 0
    conflict: int = 0
    error: int = 0
    success: int = 0
    skipped: int = 0

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "new": self.new,
            "conflict": self.conflict,
            "error": self.error,
            "success": self.success,
            "skipped": self.skipped,
        }


@dataclass(frozen=True)
class DeviceRecord:
    """A provisioned device as stored in the registry."""

    device_id: int
    domain: str
    mac_address: str
    number: int
    vendor: str
    model_id: str
    lines: int = 1
    user: str = ""
    description: str = ""
    version: int = 1

    def matches(self, row: NormalizedRow, domain: str) -> bool:
        """Check whether the compared fields equal the row's fields."""
        return (
            self.domain == domain
            and self.vendor.lower() == row.vendor.lower()
            and self.model_id.lower() == row.model_id.lower()
            and self.number == row.number
            and self.lines == row.lines
        )


@dataclass
class RegistrySnapshot:
    """Read-only view of the registry entities relevant to one batch.

    Keyed by MAC address, secondarily indexed by extension number.
    ``token`` identifies the registry revision the view was read at.
    """

    token: str
    domain: str
    by_mac: dict[str, DeviceRecord] = field(default_factory=dict)
    by_number: dict[int, DeviceRecord] = field(default_factory=dict)

    @classmethod
    def from_records(
        cls, token: str, domain: str, records: list[DeviceRecord]
    ) -> "RegistrySnapshot":
        snapshot = cls(token=token, domain=domain)
        for record in records:
            snapshot.by_mac[record.mac_address] = record
            if record.domain == domain:
                snapshot.by_number[record.number] = record
        return snapshot

    def find_by_mac(self, mac: str) -> Optional[DeviceRecord]:
        return self.by_mac.get(mac)

    def find_by_number(self, number: int) -> Optional[DeviceRecord]:
        return self.by_number.get(number)


@dataclass(frozen=True)
class DeviceModel:
    """A phone model from the vendor catalog, with its numbering policy."""

    id: str
    vendor: str
    name: str = ""
    type: str = "phone"
    max_account_lines: int = 1
    allow_zero_number: bool = False
    min_number: int = 0
    max_number: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "vendor": self.vendor,
            "name": self.name,
            "type": self.type,
            "max_account_lines": self.max_account_lines,
            "allow_zero_number": self.allow_zero_number,
            "min_number": self.min_number,
            "max_number": self.max_number,
        }


@dataclass(frozen=True)
class DomainPolicy:
    """Deployment policy for one domain (tenant)."""

    name: str = ""
    require_user: bool = False


@dataclass
class ImportBatch:
    """An uploaded, classified batch awaiting operator decisions."""

    batch_id: str
    domain: str
    snapshot_token: str
    rows: list[ClassifiedRow] = field(default_factory=list)
    results: dict[int, ImportResult] = field(default_factory=dict)
    filename: Optional[str] = None

    def get_row(self, row_number: int) -> Optional[ClassifiedRow]:
        for row in self.rows:
            if row.row_number == row_number:
                return row
        return None
