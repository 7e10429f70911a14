"""PostgreSQL adapter for the device registry.

This adapter implements IDeviceRegistry using asyncpg against the
phones and phone_lines tables. Every write runs in its own transaction
so a device and its line set are committed together or not at all.
"""

import logging
from typing import Optional

import asyncpg

from ..domain.entities import DeviceRecord, NormalizedRow, RegistrySnapshot
from ..domain.exceptions import RegistryWriteError, StaleConflictStateError
from ..domain.ports import IDeviceRegistry

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS phones (
    id              SERIAL PRIMARY KEY,
    domain          TEXT NOT NULL,
    mac_address     TEXT NOT NULL UNIQUE,
    phone_number    INTEGER NOT NULL,
    vendor          TEXT NOT NULL,
    model_id        TEXT NOT NULL,
    lines           INTEGER NOT NULL DEFAULT 1,
    user_name       TEXT NOT NULL DEFAULT '',
    description     TEXT NOT NULL DEFAULT '',
    version         INTEGER NOT NULL DEFAULT 1,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
    UNIQUE (domain, phone_number)
);

CREATE TABLE IF NOT EXISTS phone_lines (
    id              SERIAL PRIMARY KEY,
    phone_id        INTEGER NOT NULL REFERENCES phones(id) ON DELETE CASCADE,
    type            TEXT NOT NULL DEFAULT 'line',
    number          INTEGER NOT NULL,
    account_number  INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_phone_lines_phone_id ON phone_lines(phone_id);
"""

_PHONE_COLUMNS = """
    id, domain, mac_address, phone_number, vendor, model_id,
    lines, user_name, description, version
"""


class PostgresDeviceRegistry(IDeviceRegistry):
    """PostgreSQL implementation of IDeviceRegistry."""

    def __init__(self, pool: asyncpg.Pool):
        """Initialize with database connection pool.

        Args:
            pool: asyncpg connection pool
        """
        self.pool = pool

    async def ensure_schema(self) -> None:
        """Create the registry tables if they do not exist."""
        async with self.pool.acquire() as conn:
            await conn.execute(SCHEMA_SQL)

    async def snapshot(
        self,
        domain: str,
        macs: list[str],
        numbers: list[int],
    ) -> RegistrySnapshot:
        """Read the relevant devices and the revision token in one transaction."""
        async with self.pool.acquire() as conn:
            async with conn.transaction(isolation="repeatable_read", readonly=True):
                revision = await conn.fetchrow(
                    """
                    SELECT COUNT(*) AS total,
                           COALESCE(SUM(version), 0) AS versions,
                           MAX(updated_at) AS last_update
                    FROM phones
                    """
                )
                rows = await conn.fetch(
                    f"""
                    SELECT {_PHONE_COLUMNS}
                    FROM phones
                    WHERE mac_address = ANY($1::text[])
                       OR (domain = $2 AND phone_number = ANY($3::int[]))
                    """,
                    macs,
                    domain,
                    numbers,
                )

        last_update = revision["last_update"].isoformat() if revision["last_update"] else "-"
        token = f"{revision['total']}:{revision['versions']}:{last_update}"
        records = [self._row_to_record(row) for row in rows]

        logger.info(f"Registry snapshot {token}: {len(records)} matching devices")
        return RegistrySnapshot.from_records(token, domain, records)

    async def find_by_mac(self, mac: str) -> Optional[DeviceRecord]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_PHONE_COLUMNS} FROM phones WHERE mac_address = $1",
                mac,
            )
        return self._row_to_record(row) if row else None

    async def find_by_number(self, domain: str, number: int) -> Optional[DeviceRecord]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_PHONE_COLUMNS} FROM phones WHERE domain = $1 AND phone_number = $2",
                domain,
                number,
            )
        return self._row_to_record(row) if row else None

    async def create(self, domain: str, row: NormalizedRow) -> DeviceRecord:
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    created = await conn.fetchrow(
                        f"""
                        INSERT INTO phones (
                            domain, mac_address, phone_number, vendor, model_id,
                            lines, user_name, description
                        )
                        VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                        RETURNING {_PHONE_COLUMNS}
                        """,
                        domain,
                        row.mac_address,
                        row.number,
                        row.vendor,
                        row.model_id,
                        row.lines,
                        row.user,
                        row.description,
                    )
                    await self._write_lines(conn, created["id"], row.lines)
        except asyncpg.UniqueViolationError as e:
            raise RegistryWriteError(
                f"Device with MAC {row.mac_address} or number {row.number} already exists",
                details={"constraint": e.constraint_name},
            )
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to create device {row.mac_address}: {e}")
            raise RegistryWriteError(f"Registry rejected device {row.mac_address}: {e}")

        return self._row_to_record(created)

    async def overwrite(
        self,
        device_id: int,
        expected_version: int,
        domain: str,
        row: NormalizedRow,
    ) -> DeviceRecord:
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    updated = await conn.fetchrow(
                        f"""
                        UPDATE phones SET
                            domain = $3,
                            mac_address = $4,
                            phone_number = $5,
                            vendor = $6,
                            model_id = $7,
                            lines = $8,
                            user_name = $9,
                            description = $10,
                            version = version + 1,
                            updated_at = now()
                        WHERE id = $1 AND version = $2
                        RETURNING {_PHONE_COLUMNS}
                        """,
                        device_id,
                        expected_version,
                        domain,
                        row.mac_address,
                        row.number,
                        row.vendor,
                        row.model_id,
                        row.lines,
                        row.user,
                        row.description,
                    )
                    if updated is None:
                        raise StaleConflictStateError(
                            f"Device {device_id} changed or was removed since classification",
                            details={"device_id": device_id, "expected_version": expected_version},
                        )
                    await conn.execute("DELETE FROM phone_lines WHERE phone_id = $1", device_id)
                    await self._write_lines(conn, device_id, row.lines)
        except asyncpg.UniqueViolationError as e:
            raise RegistryWriteError(
                f"Overwriting device {device_id} would duplicate an existing MAC or number",
                details={"constraint": e.constraint_name},
            )
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to overwrite device {device_id}: {e}")
            raise RegistryWriteError(f"Registry rejected overwrite of device {device_id}: {e}")

        return self._row_to_record(updated)

    @staticmethod
    async def _write_lines(conn: asyncpg.Connection, phone_id: int, count: int) -> None:
        """Create one account line per declared line, numbered from 1."""
        await conn.executemany(
            """
            INSERT INTO phone_lines (phone_id, type, number, account_number)
            VALUES ($1, 'line', $2, $2)
            """,
            [(phone_id, i) for i in range(1, count + 1)],
        )

    @staticmethod
    def _row_to_record(row: asyncpg.Record) -> DeviceRecord:
        """Convert database row to DeviceRecord."""
        return DeviceRecord(
            device_id=row["id"],
            domain=row["domain"],
            mac_address=row["mac_address"],
            number=row["phone_number"],
            vendor=row["vendor"],
            model_id=row["model_id"],
            lines=row["lines"],
            user=row["user_name"],
            description=row["description"],
            version=row["version"],
        )
