"""Commit Rows use case.

Applies operator decisions (import, overwrite, skip) to a previously
classified batch:

- Each row is committed independently; a failed row never rolls back
  the rows committed before it, and may be submitted again later
- Before writing, each row is re-classified against fresh registry
  state; if the verdict changed the row fails with STALE_CONFLICT_STATE
- At most one write is in flight per MAC address and per existing device
- Concurrency is bounded by ``max_concurrent`` (1 = sequential)
- A stop signal is checked between rows; remaining rows are not
  submitted and the result is marked incomplete
"""

import asyncio
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, Iterable, Optional

from ..domain.conflicts import ConflictResolver
from ..domain.entities import (
    BatchStats,
    ClassifiedRow,
    ErrorCode,
    ImportAction,
    ImportResult,
    RegistrySnapshot,
    RowError,
    RowStatus,
)
from ..domain.exceptions import (
    BatchNotFoundError,
    CommitError,
    IllegalActionForStatusError,
    StaleConflictStateError,
)
from ..domain.ports import IBatchStore, IDeviceRegistry
from ..domain.stats import aggregate_stats

logger = logging.getLogger(__name__)

ALLOWED_STATUS = {
    ImportAction.IMPORT: RowStatus.NEW,
    ImportAction.OVERWRITE: RowStatus.CONFLICT,
}


class KeyedLocks:
    """One asyncio.Lock per key, acquired in sorted order to avoid deadlocks.

    A key's lock lives only while some task holds or waits for it.
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, keys: Iterable[str]) -> AsyncIterator[None]:
        ordered = sorted(set(keys))
        for key in ordered:
            self._locks.setdefault(key, asyncio.Lock())
            self._users[key] = self._users.get(key, 0) + 1
        try:
            async with AsyncExitStack() as stack:
                for key in ordered:
                    await stack.enter_async_context(self._locks[key])
                yield
        finally:
            for key in ordered:
                self._users[key] -= 1
                if self._users[key] == 0:
                    del self._users[key]
                    del self._locks[key]


@dataclass
class CommitResult:
    """Result of committing operator decisions."""

    batch_id: str
    results: list[ImportResult] = field(default_factory=list)
    stats: BatchStats = field(default_factory=BatchStats)
    incomplete: bool = False

    @property
    def has_failures(self) -> bool:
        return any(not r.succeeded for r in self.results)


class ImportExecutor:
    """Commit a single classified row according to an operator action."""

    def __init__(self, registry: IDeviceRegistry, resolver: Optional[ConflictResolver] = None):
        self.registry = registry
        self.resolver = resolver or ConflictResolver()

    async def execute(
        self,
        row: ClassifiedRow,
        action: ImportAction,
        domain: str,
    ) -> ImportResult:
        """Apply an action to a row. Never raises for row-level failures.

        Returns:
            ImportResult, success or failure with the reason
        """
        try:
            device_id = await self._apply(row, action, domain)
        except CommitError as e:
            logger.warning(f"Row {row.row_number} {action.value} failed: {e.message}")
            return ImportResult.failure(row.row_number, action, e.to_row_error())
        except Exception as e:
            logger.exception(f"Row {row.row_number} {action.value} failed unexpectedly")
            return ImportResult.failure(
                row.row_number,
                action,
                RowError(
                    code=ErrorCode.REGISTRY_WRITE_FAILED,
                    message=f"Registry write failed: {type(e).__name__}",
                ),
            )

        return ImportResult.success(row.row_number, action, device_id)

    async def _apply(
        self,
        row: ClassifiedRow,
        action: ImportAction,
        domain: str,
    ) -> Optional[int]:
        if action == ImportAction.SKIP:
            return None

        required = ALLOWED_STATUS[action]
        if row.status != required or row.normalized is None:
            raise IllegalActionForStatusError(
                f"Action '{action.value}' is not allowed for a row with status "
                f"'{row.status.value}' (requires '{required.value}')"
            )

        await self._recheck(row, domain)

        if action == ImportAction.IMPORT:
            record = await self.registry.create(domain, row.normalized)
            logger.info(f"Row {row.row_number}: created device {record.device_id}")
            return record.device_id

        record = await self.registry.overwrite(
            row.existing_device_id,
            row.existing_version,
            domain,
            row.normalized,
        )
        logger.info(f"Row {row.row_number}: overwrote device {record.device_id}")
        return record.device_id

    async def _recheck(self, row: ClassifiedRow, domain: str) -> None:
        """Re-classify the row against current registry state.

        Raises:
            StaleConflictStateError: If the verdict differs from the stored one
        """
        normalized = row.normalized
        by_mac = await self.registry.find_by_mac(normalized.mac_address)
        by_number = await self.registry.find_by_number(domain, normalized.number)
        records = [r for r in (by_number, by_mac) if r is not None]

        fresh = self.resolver.classify(
            normalized, RegistrySnapshot.from_records("live", domain, records)
        )
        if not row.same_verdict(fresh):
            raise StaleConflictStateError(
                f"Registry changed since classification: row is now "
                f"{fresh.status.value}"
                + (f" ({fresh.conflict_kind.value})" if fresh.conflict_kind else ""),
                details={"previous": row.status.value, "current": fresh.status.value},
            )


class CommitRowsUseCase:
    """Commit operator-approved rows of a classified batch."""

    def __init__(
        self,
        registry: IDeviceRegistry,
        batch_store: IBatchStore,
        max_concurrent: int = 1,
        locks: Optional[KeyedLocks] = None,
    ):
        """Initialize the use case.

        Args:
            registry: Device registry to write to
            batch_store: Store holding the classified batch
            max_concurrent: Rows committed at the same time
            locks: Shared per-key locks (one per process)
        """
        self.registry = registry
        self.batch_store = batch_store
        self.max_concurrent = max(1, max_concurrent)
        self.locks = locks or KeyedLocks()
        self.executor = ImportExecutor(registry)

    async def execute(
        self,
        batch_id: str,
        decisions: list[tuple[int, ImportAction]],
        should_stop: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> CommitResult:
        """Execute the use case.

        Args:
            batch_id: Batch returned by the upload call
            decisions: (row_number, action) pairs
            should_stop: Optional async callable checked between rows

        Returns:
            CommitResult with per-row results and updated statistics

        Raises:
            BatchNotFoundError: If the batch is unknown or expired
        """
        batch = await self.batch_store.get(batch_id)
        if batch is None:
            raise BatchNotFoundError(batch_id)

        logger.info(f"Committing {len(decisions)} decisions for batch {batch_id}")

        semaphore = asyncio.Semaphore(self.max_concurrent)
        stopped = asyncio.Event()

        async def commit_one(row_number: int, action: ImportAction) -> Optional[ImportResult]:
            row = batch.get_row(row_number)
            if row is None:
                return ImportResult.failure(
                    row_number,
                    action,
                    RowError(code=ErrorCode.UNKNOWN_ROW, message=f"Row {row_number} is not in this batch"),
                )

            async with semaphore:
                if stopped.is_set():
                    return None
                if should_stop is not None and await should_stop():
                    logger.warning(f"Commit of batch {batch_id} stopped before row {row_number}")
                    stopped.set()
                    return None

                async with self.locks.hold(self._lock_keys(batch_id, row)):
                    previous = batch.results.get(row_number)
                    if previous is not None and previous.succeeded:
                        return ImportResult.failure(
                            row_number,
                            action,
                            RowError(
                                code=ErrorCode.ILLEGAL_ACTION_FOR_STATUS,
                                message=f"Row {row_number} was already committed",
                            ),
                        )
                    result = await self.executor.execute(row, action, batch.domain)
                    await self.batch_store.record_results(batch_id, [result])
                    return result

        ordered = sorted(decisions, key=lambda d: d[0])
        outcomes = await asyncio.gather(*(commit_one(n, a) for n, a in ordered))
        results = [r for r in outcomes if r is not None]

        stats = aggregate_stats(batch.rows, batch.results)
        commit = CommitResult(
            batch_id=batch_id,
            results=results,
            stats=stats,
            incomplete=stopped.is_set(),
        )

        failures = sum(1 for r in results if not r.succeeded)
        logger.info(
            f"Batch {batch_id}: {len(results) - failures} rows committed, {failures} failed"
            + (" (incomplete)" if commit.incomplete else "")
        )
        return commit

    @staticmethod
    def _lock_keys(batch_id: str, row: ClassifiedRow) -> list[str]:
        keys = [f"row:{batch_id}:{row.row_number}"]
        if row.mac_address:
            keys.append(f"mac:{row.mac_address}")
        if row.existing_device_id is not None:
            keys.append(f"device:{row.existing_device_id}")
        return keys
