"""In-memory batch store with TTL-based expiration.

Keeps classified batches between the upload and commit calls of one
operator session. Suitable for a single API server instance.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from ..domain.entities import ImportBatch, ImportResult
from ..domain.exceptions import BatchNotFoundError
from ..domain.ports import IBatchStore

logger = logging.getLogger(__name__)


class InMemoryBatchStore(IBatchStore):
    """Stores batches in a dict, expiring them after ``ttl_seconds``."""

    def __init__(self, ttl_seconds: int = 3600, clock: Callable[[], float] = time.monotonic):
        """Initialize the store.

        Args:
            ttl_seconds: Lifetime of a batch after its last save
            clock: Time source (seconds)
        """
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._batches: dict[str, tuple[ImportBatch, float]] = {}
        self._lock = asyncio.Lock()

    async def save(self, batch: ImportBatch) -> None:
        async with self._lock:
            self._purge_expired()
            self._batches[batch.batch_id] = (batch, self._clock() + self.ttl_seconds)
        logger.debug(f"Stored batch {batch.batch_id} ({len(batch.rows)} rows)")

    async def get(self, batch_id: str) -> Optional[ImportBatch]:
        async with self._lock:
            self._purge_expired()
            entry = self._batches.get(batch_id)
        return entry[0] if entry else None

    async def record_results(self, batch_id: str, results: list[ImportResult]) -> None:
        async with self._lock:
            self._purge_expired()
            entry = self._batches.get(batch_id)
            if entry is None:
                raise BatchNotFoundError(batch_id)
            batch, _ = entry
            for result in results:
                batch.results[result.row_number] = result
            self._batches[batch_id] = (batch, self._clock() + self.ttl_seconds)

    def _purge_expired(self) -> None:
        now = self._clock()
        expired = [k for k, (_, expires_at) in self._batches.items() if expires_at <= now]
        for batch_id in expired:
            del self._batches[batch_id]
        if expired:
            logger.info(f"Expired {len(expired)} import batches")
