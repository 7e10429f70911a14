"""Infrastructure adapters for phone import.

These adapters implement the port interfaces defined in the domain layer,
connecting the application to spreadsheets, the YAML vendor catalog,
PostgreSQL and the in-process batch store.
"""

from .excel_reader import ExtractedRows, OpenpyxlRowExtractor
from .memory_batch_store import InMemoryBatchStore
from .postgres_registry import PostgresDeviceRegistry
from .yaml_catalog import YamlModelCatalog

__all__ = [
    "ExtractedRows",
    "OpenpyxlRowExtractor",
    "InMemoryBatchStore",
    "PostgresDeviceRegistry",
    "YamlModelCatalog",
]
