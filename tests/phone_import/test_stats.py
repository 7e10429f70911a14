"""Tests for batch statistics."""

from src.prov.phone_import.domain.entities import (
    ClassifiedRow,
    ErrorCode,
    ImportAction,
    ImportResult,
    RowError,
    RowStatus,
)
from src.prov.phone_import.domain.stats import aggregate_stats


def rows():
    return [
        ClassifiedRow(row_number=2, status=RowStatus.NEW),
        ClassifiedRow(row_number=3, status=RowStatus.NEW),
        ClassifiedRow(row_number=4, status=RowStatus.CONFLICT),
        ClassifiedRow(row_number=5, status=RowStatus.CONFLICT),
        ClassifiedRow(row_number=6, status=RowStatus.ERROR),
    ]


def test_counts_by_classification():
    stats = aggregate_stats(rows())

    assert stats.total == 5
    assert (stats.new, stats.conflict, stats.error, stats.success) == (2, 2, 1, 0)


def test_results_override_classification():
    failure = RowError(code=ErrorCode.REGISTRY_WRITE_FAILED, message="rejected")
    results = {
        2: ImportResult.success(2, ImportAction.IMPORT, device_id=10),
        3: ImportResult.failure(3, ImportAction.IMPORT, failure),
        4: ImportResult.success(4, ImportAction.SKIP),
    }

    stats = aggregate_stats(rows(), results)

    assert stats.new == 0
    assert stats.conflict == 1
    assert stats.error == 2
    assert stats.success == 2
    assert stats.skipped == 1


def test_rows_are_conserved():
    results = {5: ImportResult.success(5, ImportAction.OVERWRITE, device_id=1)}
    stats = aggregate_stats(rows(), results)
    assert stats.total == stats.new + stats.conflict + stats.error + stats.success


def test_results_for_unknown_rows_are_ignored():
    results = {99: ImportResult.success(99, ImportAction.IMPORT)}
    assert aggregate_stats(rows(), results) == aggregate_stats(rows())
