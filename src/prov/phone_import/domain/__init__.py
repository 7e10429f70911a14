"""Domain layer for phone import.

Contains:
- Entities: Core business objects
- Exceptions: Structural, row-level and commit-time errors
- Ports: Interface definitions for infrastructure adapters
- Normalizer, validation, conflict resolution and statistics (pure logic)
"""

from .conflicts import ConflictResolver
from .entities import (
    DEFAULT_SCHEMA,
    BatchStats,
    ClassifiedRow,
    ColumnSpec,
    ConflictKind,
    DeviceModel,
    DeviceRecord,
    DomainPolicy,
    ErrorCode,
    HeaderSchema,
    ImportAction,
    ImportBatch,
    ImportResult,
    ImportRow,
    NormalizedRow,
    RegistrySnapshot,
    ResultStatus,
    RowError,
    RowStatus,
    ValidationOutcome,
)
from .normalizer import FieldNormalizer, normalize_mac
from .ports import IBatchStore, IDeviceRegistry, IModelCatalog, IRowExtractor
from .stats import aggregate_stats
from .validation import RowValidator, find_duplicates_in_file

__all__ = [
    # Entities
    "DEFAULT_SCHEMA",
    "BatchStats",
    "ClassifiedRow",
    "ColumnSpec",
    "ConflictKind",
    "DeviceModel",
    "DeviceRecord",
    "DomainPolicy",
    "ErrorCode",
    "HeaderSchema",
    "ImportAction",
    "ImportBatch",
    "ImportResult",
    "ImportRow",
    "NormalizedRow",
    "RegistrySnapshot",
    "ResultStatus",
    "RowError",
    "RowStatus",
    "ValidationOutcome",
    # Logic
    "ConflictResolver",
    "FieldNormalizer",
    "RowValidator",
    "aggregate_stats",
    "find_duplicates_in_file",
    "normalize_mac",
    # Ports
    "IBatchStore",
    "IDeviceRegistry",
    "IModelCatalog",
    "IRowExtractor",
]
