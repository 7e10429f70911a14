"""Tests for the PostgreSQL registry adapter with a mocked connection pool."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.prov.phone_import.adapters.postgres_registry import PostgresDeviceRegistry
from src.prov.phone_import.domain.entities import NormalizedRow
from src.prov.phone_import.domain.exceptions import StaleConflictStateError


def phone_row(**overrides):
    row = {
        "id": 7,
        "domain": "office.example.com",
        "mac_address": "AA:BB:CC:DD:EE:FF",
        "phone_number": 101,
        "vendor": "yealink",
        "model_id": "T46S",
        "lines": 2,
        "user_name": "alice",
        "description": "",
        "version": 1,
    }
    row.update(overrides)
    return row


@pytest.fixture
def conn():
    conn = MagicMock()
    conn.fetchrow = AsyncMock()
    conn.fetch = AsyncMock(return_value=[])
    conn.execute = AsyncMock()
    conn.executemany = AsyncMock()
    return conn


@pytest.fixture
def pool(conn):
    pool = MagicMock()
    pool.acquire.return_value.__aenter__.return_value = conn
    return pool


def normalized(lines=2) -> NormalizedRow:
    return NormalizedRow(
        row_number=2,
        mac_address="AA:BB:CC:DD:EE:FF",
        number=101,
        vendor="yealink",
        model_id="T46S",
        user="alice",
        lines=lines,
    )


class TestPostgresDeviceRegistry:
    @pytest.mark.asyncio
    async def test_snapshot_builds_token_and_index(self, pool, conn):
        conn.fetchrow.return_value = {"total": 3, "versions": 5, "last_update": None}
        conn.fetch.return_value = [phone_row()]

        snapshot = await PostgresDeviceRegistry(pool).snapshot(
            "office.example.com", ["AA:BB:CC:DD:EE:FF"], [101]
        )

        assert snapshot.token == "3:5:-"
        assert snapshot.find_by_mac("AA:BB:CC:DD:EE:FF").device_id == 7
        assert snapshot.find_by_number(101).user == "alice"
        conn.transaction.assert_called_once_with(isolation="repeatable_read", readonly=True)

    @pytest.mark.asyncio
    async def test_create_writes_one_line_per_account(self, pool, conn):
        conn.fetchrow.return_value = phone_row()

        record = await PostgresDeviceRegistry(pool).create("office.example.com", normalized(lines=2))

        assert record.device_id == 7
        assert record.lines == 2
        lines = conn.executemany.await_args.args[1]
        assert lines == [(7, 1), (7, 2)]

    @pytest.mark.asyncio
    async def test_overwrite_with_old_version_is_stale(self, pool, conn):
        conn.fetchrow.return_value = None

        with pytest.raises(StaleConflictStateError):
            await PostgresDeviceRegistry(pool).overwrite(7, 1, "office.example.com", normalized())

        conn.execute.assert_not_awaited()
        conn.executemany.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_overwrite_replaces_lines(self, pool, conn):
        conn.fetchrow.return_value = phone_row(version=2, lines=1)

        record = await PostgresDeviceRegistry(pool).overwrite(
            7, 1, "office.example.com", normalized(lines=1)
        )

        assert record.version == 2
        conn.execute.assert_awaited_once_with("DELETE FROM phone_lines WHERE phone_id = $1", 7)
        assert conn.executemany.await_args.args[1] == [(7, 1)]
