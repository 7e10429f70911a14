"""Classify Upload use case.

This use case handles uploading a phone spreadsheet and producing a
per-row verdict against the device registry. Nothing is written to the
registry here.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Optional
from uuid import uuid4

from ..config import DomainPolicies
from ..domain.conflicts import ConflictResolver
from ..domain.entities import (
    DEFAULT_SCHEMA,
    BatchStats,
    ClassifiedRow,
    HeaderSchema,
    ImportBatch,
    ImportRow,
    ValidationOutcome,
)
from ..domain.exceptions import MalformedFileError
from ..domain.ports import IBatchStore, IDeviceRegistry, IModelCatalog, IRowExtractor
from ..domain.stats import aggregate_stats
from ..domain.validation import RowValidator, find_duplicates_in_file

logger = logging.getLogger(__name__)


@dataclass
class ClassificationResult:
    """Result of classifying an uploaded file."""

    batch_id: str
    domain: str
    snapshot_token: str
    rows: list[ClassifiedRow] = field(default_factory=list)
    stats: BatchStats = field(default_factory=BatchStats)


class ClassifyUploadUseCase:
    """Extract, normalize, validate and classify an uploaded spreadsheet.

    This use case:
    1. Extracts rows from the file (structural errors abort the batch)
    2. Normalizes and validates each row in isolation
    3. Rejects in-file duplicates of MAC or number
    4. Reads one registry snapshot for the whole batch
    5. Classifies each valid row as new or conflicting
    6. Stores the batch for the later commit call
    """

    def __init__(
        self,
        extractor: IRowExtractor,
        catalog: IModelCatalog,
        registry: IDeviceRegistry,
        batch_store: IBatchStore,
        policies: Optional[DomainPolicies] = None,
        max_workers: int = 4,
        schema: HeaderSchema = DEFAULT_SCHEMA,
    ):
        self.extractor = extractor
        self.catalog = catalog
        self.registry = registry
        self.batch_store = batch_store
        self.policies = policies or DomainPolicies()
        self.max_workers = max_workers
        self.schema = schema
        self.resolver = ConflictResolver()

    async def execute(
        self,
        file_content: bytes,
        domain: str,
        filename: Optional[str] = None,
    ) -> ClassificationResult:
        """Execute the use case.

        Args:
            file_content: Raw bytes of the uploaded file
            domain: Domain (tenant) the devices belong to
            filename: Optional filename for logging

        Returns:
            ClassificationResult with rows in spreadsheet order

        Raises:
            MalformedFileError: If the file is unreadable or has no data rows
            MissingRequiredColumnsError: If a required header is absent
        """
        logger.info(f"Classifying upload {filename or 'unknown'} for domain {domain}")

        # 1. Extract rows
        import_rows = list(self.extractor.extract(file_content, self.schema))
        if not import_rows:
            raise MalformedFileError("No data rows found in file")

        # 2. Normalize and validate
        validator = RowValidator(self.catalog, self.policies.effective_policy(domain))
        outcomes = self._validate_rows(import_rows, validator)

        # 3. In-file duplicates
        outcomes = find_duplicates_in_file(outcomes)

        # 4. One registry read for the batch
        valid_rows = [o.row for o in outcomes if o.row is not None]
        snapshot = await self.registry.snapshot(
            domain,
            macs=[r.mac_address for r in valid_rows],
            numbers=[r.number for r in valid_rows],
        )

        # 5. Classify
        fields_by_row = {r.row_number: dict(r.fields) for r in import_rows}
        classified = [
            self.resolver.classify_outcome(o, snapshot, fields_by_row.get(o.row_number))
            for o in outcomes
        ]

        # 6. Keep for commit
        batch = ImportBatch(
            batch_id=uuid4().hex,
            domain=domain,
            snapshot_token=snapshot.token,
            rows=classified,
            filename=filename,
        )
        await self.batch_store.save(batch)

        stats = aggregate_stats(classified)
        logger.info(
            f"Classified batch {batch.batch_id}: {stats.total} rows, "
            f"{stats.new} new, {stats.conflict} conflicts, {stats.error} errors"
        )

        return ClassificationResult(
            batch_id=batch.batch_id,
            domain=domain,
            snapshot_token=snapshot.token,
            rows=classified,
            stats=stats,
        )

    def _validate_rows(
        self,
        rows: list[ImportRow],
        validator: RowValidator,
    ) -> list[ValidationOutcome]:
        """Validate rows on a bounded thread pool, then restore row order."""
        if self.max_workers <= 1 or len(rows) < 2:
            return [validator.check(row) for row in rows]

        outcomes: list[ValidationOutcome] = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [pool.submit(validator.check, row) for row in rows]
            for future in as_completed(futures):
                outcomes.append(future.result())

        outcomes.sort(key=lambda o: o.row_number)
        return outcomes
