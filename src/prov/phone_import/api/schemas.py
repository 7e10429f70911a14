"""Pydantic schemas for API request/response validation."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..domain.entities import (
    BatchStats,
    ClassifiedRow,
    DeviceModel,
    ImportAction,
    ImportResult,
    RowError,
)


class RowErrorDTO(BaseModel):
    """Why a row was rejected or failed to commit."""

    code: str
    message: str
    field: Optional[str] = None

    @classmethod
    def from_entity(cls, error: Optional[RowError]) -> Optional["RowErrorDTO"]:
        if error is None:
            return None
        return cls(code=error.code.value, message=error.message, field=error.field)


class ClassifiedRowDTO(BaseModel):
    """A spreadsheet row with its classification."""

    row_number: int
    status: str  # new | conflict | error
    conflict_kind: Optional[str] = None
    message: Optional[str] = None
    error: Optional[RowErrorDTO] = None
    fields: dict[str, str] = Field(default_factory=dict)

    # Normalized values (valid rows only)
    mac_address: Optional[str] = None
    number: Optional[int] = None
    vendor: Optional[str] = None
    model_id: Optional[str] = None
    user: Optional[str] = None
    lines: Optional[int] = None

    # Registry entity the row collides with
    existing_device_id: Optional[int] = None

    @classmethod
    def from_entity(cls, row: ClassifiedRow) -> "ClassifiedRowDTO":
        data = row.to_dict()
        data["error"] = RowErrorDTO.from_entity(row.error)
        return cls(**data)


class BatchStatsDTO(BaseModel):
    """Row counts of a batch. ``skipped`` is included in ``success``."""

    total: int = 0
    new: int = 0
    conflict: int = 0
    error: int = 0
    success: int = 0
    skipped: int = 0

    @classmethod
    def from_entity(cls, stats: BatchStats) -> "BatchStatsDTO":
        return cls(**stats.to_dict())


class ImportResultDTO(BaseModel):
    """Outcome of one submitted row."""

    row_number: int
    action: str
    status: str  # success | failure
    error: Optional[RowErrorDTO] = None
    device_id: Optional[int] = None

    @classmethod
    def from_entity(cls, result: ImportResult) -> "ImportResultDTO":
        return cls(
            row_number=result.row_number,
            action=result.action.value,
            status=result.status.value,
            error=RowErrorDTO.from_entity(result.error),
            device_id=result.device_id,
        )


class UploadResponse(BaseModel):
    """Response from classifying an uploaded file."""

    batch_id: str
    domain: str
    snapshot_token: str
    rows: list[ClassifiedRowDTO] = Field(default_factory=list)
    stats: BatchStatsDTO = Field(default_factory=BatchStatsDTO)


class StructuralErrorResponse(BaseModel):
    """Body of a 400 response for a file that cannot be processed."""

    code: str
    message: str
    missing_columns: list[str] = Field(default_factory=list)


class RowDecision(BaseModel):
    """Operator decision for one row."""

    row_number: int = Field(..., ge=1)
    action: ImportAction


class CommitRequest(BaseModel):
    """Request to commit operator decisions for a batch."""

    decisions: list[RowDecision] = Field(..., min_length=1)

    @field_validator("decisions")
    @classmethod
    def row_numbers_unique(cls, v: list[RowDecision]) -> list[RowDecision]:
        seen: set[int] = set()
        for decision in v:
            if decision.row_number in seen:
                raise ValueError(f"Row {decision.row_number} appears more than once")
            seen.add(decision.row_number)
        return v


class CommitResponse(BaseModel):
    """Response from committing decisions."""

    batch_id: str
    results: list[ImportResultDTO] = Field(default_factory=list)
    stats: BatchStatsDTO = Field(default_factory=BatchStatsDTO)
    incomplete: bool = False


class BatchResponse(BaseModel):
    """Current state of a batch."""

    batch_id: str
    domain: str
    filename: Optional[str] = None
    snapshot_token: str
    rows: list[ClassifiedRowDTO] = Field(default_factory=list)
    results: list[ImportResultDTO] = Field(default_factory=list)
    stats: BatchStatsDTO = Field(default_factory=BatchStatsDTO)


class DeviceModelDTO(BaseModel):
    """Phone model from the vendor catalog."""

    id: str
    vendor: str
    name: str = ""
    type: str = "phone"
    max_account_lines: int = 1
    allow_zero_number: bool = False
    min_number: int = 0
    max_number: Optional[int] = None

    @classmethod
    def from_entity(cls, model: DeviceModel) -> "DeviceModelDTO":
        return cls(**model.to_dict())


class ModelsResponse(BaseModel):
    """Catalog listing."""

    models: list[DeviceModelDTO] = Field(default_factory=list)
    total: int = 0
