"""Shared fixtures for phone import tests."""

import io
from dataclasses import replace
from typing import Optional

import pytest
from openpyxl import Workbook

from src.prov.phone_import.adapters import InMemoryBatchStore, YamlModelCatalog
from src.prov.phone_import.domain.entities import (
    DeviceModel,
    DeviceRecord,
    NormalizedRow,
    RegistrySnapshot,
)
from src.prov.phone_import.domain.exceptions import RegistryWriteError, StaleConflictStateError
from src.prov.phone_import.domain.ports import IDeviceRegistry


class FakeDeviceRegistry(IDeviceRegistry):
    """Dict-backed registry with the same uniqueness and version rules as PostgreSQL."""

    def __init__(self, records: Optional[list[DeviceRecord]] = None):
        self.records: dict[int, DeviceRecord] = {}
        self.next_id = 1
        self.fail_on_macs: set[str] = set()
        self.writes: list[tuple[str, str]] = []
        for record in records or []:
            self.add(record)

    def add(self, record: DeviceRecord) -> DeviceRecord:
        self.records[record.device_id] = record
        self.next_id = max(self.next_id, record.device_id + 1)
        return record

    async def snapshot(self, domain, macs, numbers):
        wanted_macs, wanted_numbers = set(macs), set(numbers)
        matching = [
            r
            for r in self.records.values()
            if r.mac_address in wanted_macs or (r.domain == domain and r.number in wanted_numbers)
        ]
        return RegistrySnapshot.from_records(f"rev-{len(self.records)}", domain, matching)

    async def find_by_mac(self, mac):
        return next((r for r in self.records.values() if r.mac_address == mac), None)

    async def find_by_number(self, domain, number):
        return next(
            (r for r in self.records.values() if r.domain == domain and r.number == number),
            None,
        )

    async def create(self, domain: str, row: NormalizedRow) -> DeviceRecord:
        self.writes.append(("create", row.mac_address))
        if row.mac_address in self.fail_on_macs:
            raise RegistryWriteError(f"Registry rejected {row.mac_address}")
        if await self.find_by_mac(row.mac_address) or await self.find_by_number(domain, row.number):
            raise RegistryWriteError("Unique constraint violated")
        record = DeviceRecord(
            device_id=self.next_id,
            domain=domain,
            mac_address=row.mac_address,
            number=row.number,
            vendor=row.vendor,
            model_id=row.model_id,
            lines=row.lines,
            user=row.user,
            description=row.description,
        )
        return self.add(record)

    async def overwrite(self, device_id, expected_version, domain, row):
        self.writes.append(("overwrite", row.mac_address))
        current = self.records.get(device_id)
        if current is None or current.version != expected_version:
            raise StaleConflictStateError(f"Device {device_id} changed since classification")
        updated = replace(
            current,
            domain=domain,
            mac_address=row.mac_address,
            number=row.number,
            vendor=row.vendor,
            model_id=row.model_id,
            lines=row.lines,
            user=row.user,
            description=row.description,
            version=current.version + 1,
        )
        self.records[device_id] = updated
        return updated


def make_workbook(header: list, rows: list[list]) -> bytes:
    """Build an .xlsx file in memory."""
    wb = Workbook()
    ws = wb.active
    ws.append(header)
    for row in rows:
        ws.append(row)
    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    return output.getvalue()


def make_record(device_id=1, mac="AA:BB:CC:DD:EE:FF", number=101, **overrides) -> DeviceRecord:
    values = dict(
        device_id=device_id,
        domain="office.example.com",
        mac_address=mac,
        number=number,
        vendor="yealink",
        model_id="T46S",
        lines=1,
    )
    values.update(overrides)
    return DeviceRecord(**values)


@pytest.fixture
def catalog():
    return YamlModelCatalog(
        models=[
            DeviceModel(id="T46S", vendor="yealink", name="Yealink T46S", max_account_lines=16, min_number=100),
            DeviceModel(id="T31P", vendor="yealink", name="Yealink T31P", max_account_lines=2),
            DeviceModel(id="EXP50", vendor="yealink", name="Yealink EXP50", type="expansion-module"),
            DeviceModel(id="H5", vendor="fanvil", name="Fanvil H5", allow_zero_number=True),
        ],
        vendor_names={"yealink": "Yealink", "fanvil": "Fanvil"},
    )


@pytest.fixture
def registry():
    return FakeDeviceRegistry()


@pytest.fixture
def batch_store():
    return InMemoryBatchStore()
