"""Port interfaces for phone import.

These are abstract interfaces (ports) that define how the domain
interacts with external systems. Concrete implementations (adapters)
are provided in the adapters module.

This follows the Hexagonal Architecture pattern.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from .entities import (
    DeviceModel,
    DeviceRecord,
    HeaderSchema,
    ImportBatch,
    ImportResult,
    ImportRow,
    NormalizedRow,
    RegistrySnapshot,
)


class IRowExtractor(ABC):
    """Port for reading tabular uploads."""

    @abstractmethod
    def extract(self, file_content: bytes, schema: HeaderSchema) -> Iterable[ImportRow]:
        """Open an uploaded file and match its header against the schema.

        Args:
            file_content: Raw bytes of the uploaded file
            schema: Recognized columns and which of them are required

        Returns:
            A lazy, restartable iterable of ImportRow in file order

        Raises:
            MalformedFileError: If the file cannot be read as tabular data
            MissingRequiredColumnsError: If a required header is absent
        """
        ...


class IModelCatalog(ABC):
    """Port for the vendor/model catalog (read-only)."""

    @abstractmethod
    def resolve(self, vendor: str, model: str) -> Optional[DeviceModel]:
        """Find a model by vendor and model id or name, case-insensitively.

        Returns:
            DeviceModel if known, None otherwise
        """
        ...

    @abstractmethod
    def get(self, model_id: str) -> Optional[DeviceModel]:
        """Get a model by its catalog id."""
        ...

    @abstractmethod
    def list_models(self) -> list[DeviceModel]:
        """List all known phone models."""
        ...


class IDeviceRegistry(ABC):
    """Port for the device registry (system of record).

    Implementations provide their own transaction boundary: a create or an
    overwrite is atomic for one device and its line set.
    """

    @abstractmethod
    async def snapshot(
        self,
        domain: str,
        macs: list[str],
        numbers: list[int],
    ) -> RegistrySnapshot:
        """Read every device sharing one of the MACs, or one of the numbers
        within the domain, in a single consistent read.

        Args:
            domain: Domain (tenant) of the batch
            macs: Canonical MAC addresses of the batch rows
            numbers: Extension numbers of the batch rows

        Returns:
            RegistrySnapshot with the registry revision token
        """
        ...

    @abstractmethod
    async def find_by_mac(self, mac: str) -> Optional[DeviceRecord]:
        """Find a device by canonical MAC address."""
        ...

    @abstractmethod
    async def find_by_number(self, domain: str, number: int) -> Optional[DeviceRecord]:
        """Find the device holding an extension number in a domain."""
        ...

    @abstractmethod
    async def create(self, domain: str, row: NormalizedRow) -> DeviceRecord:
        """Create a device from a row.

        Raises:
            RegistryWriteError: If the registry rejects the write
        """
        ...

    @abstractmethod
    async def overwrite(
        self,
        device_id: int,
        expected_version: int,
        domain: str,
        row: NormalizedRow,
    ) -> DeviceRecord:
        """Replace an existing device's fields with the row's fields.

        Args:
            device_id: Identity of the existing device
            expected_version: Version observed when the row was classified
            domain: Domain (tenant) of the batch
            row: Replacement values

        Raises:
            StaleConflictStateError: If the device changed or disappeared
            RegistryWriteError: If the registry rejects the write
        """
        ...


class IBatchStore(ABC):
    """Port for keeping classified batches between upload and commit."""

    @abstractmethod
    async def save(self, batch: ImportBatch) -> None:
        ...

    @abstractmethod
    async def get(self, batch_id: str) -> Optional[ImportBatch]:
        """Get a batch, or None if unknown or expired."""
        ...

    @abstractmethod
    async def record_results(self, batch_id: str, results: list[ImportResult]) -> None:
        """Attach commit results to a stored batch."""
        ...
