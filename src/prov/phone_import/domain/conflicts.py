"""Conflict resolution against a registry snapshot.

Classification rules, first match wins:
1. No device with this MAC and none with this number -> NEW
2. Same MAC, identical compared fields -> CONFLICT(IDENTICAL_DUPLICATE)
3. Same MAC, differing fields -> CONFLICT(MAC_FIELD_MISMATCH)
4. Number held by a different MAC -> CONFLICT(NUMBER_ALREADY_ASSIGNED)

Identical duplicates still need the operator to confirm (overwrite or
skip) so a silent skip is never mistaken for a failure.
"""

from typing import Optional

from .entities import (
    ClassifiedRow,
    ConflictKind,
    NormalizedRow,
    RegistrySnapshot,
    RowStatus,
    ValidationOutcome,
)

IDENTICAL_DUPLICATE_MESSAGE = "already provisioned, no changes"


class ConflictResolver:
    """Classify validated rows against a read-only registry snapshot."""

    def classify(
        self,
        row: NormalizedRow,
        snapshot: RegistrySnapshot,
        fields: Optional[dict[str, str]] = None,
    ) -> ClassifiedRow:
        """Classify one valid row. Performs no writes."""
        classified = ClassifiedRow(
            row_number=row.row_number,
            fields=dict(fields or {}),
            normalized=row,
        )

        by_mac = snapshot.find_by_mac(row.mac_address)
        if by_mac is not None:
            classified.status = RowStatus.CONFLICT
            classified.existing_device_id = by_mac.device_id
            classified.existing_version = by_mac.version
            if by_mac.matches(row, snapshot.domain):
                classified.conflict_kind = ConflictKind.IDENTICAL_DUPLICATE
                classified.message = IDENTICAL_DUPLICATE_MESSAGE
            else:
                classified.conflict_kind = ConflictKind.MAC_FIELD_MISMATCH
                classified.message = (
                    f"MAC {row.mac_address} is already provisioned with different "
                    f"settings (device {by_mac.device_id}, number {by_mac.number})"
                )
            return classified

        by_number = snapshot.find_by_number(row.number)
        if by_number is not None:
            classified.status = RowStatus.CONFLICT
            classified.conflict_kind = ConflictKind.NUMBER_ALREADY_ASSIGNED
            classified.existing_device_id = by_number.device_id
            classified.existing_version = by_number.version
            classified.message = (
                f"Number {row.number} is already assigned to {by_number.mac_address}"
            )
            return classified

        classified.status = RowStatus.NEW
        classified.message = "Ready"
        return classified

    def classify_outcome(
        self,
        outcome: ValidationOutcome,
        snapshot: RegistrySnapshot,
        fields: Optional[dict[str, str]] = None,
    ) -> ClassifiedRow:
        """Classify a validation outcome. Errors never reach the registry rules."""
        if outcome.row is None:
            return ClassifiedRow(
                row_number=outcome.row_number,
                fields=dict(fields or {}),
                status=RowStatus.ERROR,
                error=outcome.error,
                message=outcome.error.message if outcome.error else None,
            )
        return self.classify(outcome.row, snapshot, fields)
