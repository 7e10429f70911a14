"""Batch statistics, always recomputed from the current rows."""

from typing import Mapping, Optional

from .entities import (
    BatchStats,
    ClassifiedRow,
    ImportAction,
    ImportResult,
    RowStatus,
)


def aggregate_stats(
    rows: list[ClassifiedRow],
    results: Optional[Mapping[int, ImportResult]] = None,
) -> BatchStats:
    """Count rows by their current status.

    A row with a commit result counts as success or error (failed commit);
    every other row counts by its classification. Hence
    ``total == new + conflict + error + success``.
    """
    results = results or {}
    counts = {"new": 0, "conflict": 0, "error": 0, "success": 0, "skipped": 0}

    for row in rows:
        result = results.get(row.row_number)
        if result is not None:
            if result.succeeded:
                counts["success"] += 1
                if result.action == ImportAction.SKIP:
                    counts["skipped"] += 1
            else:
                counts["error"] += 1
        elif row.status == RowStatus.NEW:
            counts["new"] += 1
        elif row.status == RowStatus.CONFLICT:
            counts["conflict"] += 1
        else:
            counts["error"] += 1

    return BatchStats(total=len(rows), **counts)
