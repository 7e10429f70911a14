"""Tests for the in-memory batch store."""

import pytest

from src.prov.phone_import.adapters.memory_batch_store import InMemoryBatchStore
from src.prov.phone_import.domain.entities import (
    ClassifiedRow,
    ImportAction,
    ImportBatch,
    ImportResult,
)
from src.prov.phone_import.domain.exceptions import BatchNotFoundError


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def batch(batch_id="b1") -> ImportBatch:
    return ImportBatch(
        batch_id=batch_id,
        domain="office.example.com",
        snapshot_token="rev-1",
        rows=[ClassifiedRow(row_number=2)],
    )


@pytest.mark.asyncio
async def test_save_and_get():
    store = InMemoryBatchStore()
    await store.save(batch())

    stored = await store.get("b1")

    assert stored.batch_id == "b1"
    assert await store.get("other") is None


@pytest.mark.asyncio
async def test_batches_expire():
    clock = FakeClock()
    store = InMemoryBatchStore(ttl_seconds=60, clock=clock)
    await store.save(batch())

    clock.now += 59
    assert await store.get("b1") is not None

    clock.now += 2
    assert await store.get("b1") is None


@pytest.mark.asyncio
async def test_record_results_extends_lifetime():
    clock = FakeClock()
    store = InMemoryBatchStore(ttl_seconds=60, clock=clock)
    await store.save(batch())

    clock.now += 50
    await store.record_results("b1", [ImportResult.success(2, ImportAction.SKIP)])
    clock.now += 50

    stored = await store.get("b1")
    assert stored.results[2].action == ImportAction.SKIP


@pytest.mark.asyncio
async def test_record_results_unknown_batch():
    store = InMemoryBatchStore()
    with pytest.raises(BatchNotFoundError):
        await store.record_results("missing", [])
