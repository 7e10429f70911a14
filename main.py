#!/usr/bin/env python3
"""Phone Import CLI.

Classifies a phone spreadsheet against the device registry from the
command line, prints a per-row report and optionally commits the rows
that are ready to import.

Environment Variables:
    - DATABASE_URL: PostgreSQL connection string (required)
    - CATALOG_DIR: Vendor/model catalog directory (default: config/vendors)
    - DOMAINS_CONFIG: System config with per-domain policies

Example Usage:
    $ python main.py phones.xlsx --domain office.example.com
    $ python main.py phones.csv --domain office.example.com --commit-new
    $ python main.py phones.xlsx --domain office.example.com --json report.json
"""
import argparse
import asyncio
import json
import sys
from datetime import datetime, timezone
from pathlib import Path

import asyncpg
from dotenv import load_dotenv

load_dotenv()

# Local imports
from src.prov.phone_import.adapters import (
    InMemoryBatchStore,
    OpenpyxlRowExtractor,
    PostgresDeviceRegistry,
    YamlModelCatalog,
)
from src.prov.phone_import.config import ImportConfig, load_domain_policies
from src.prov.phone_import.domain import ImportAction, RowStatus
from src.prov.phone_import.domain.exceptions import PhoneImportError
from src.prov.phone_import.use_cases import ClassifyUploadUseCase, CommitRowsUseCase


def print_report(rows) -> None:
    """Print one line per classified row."""
    print(f"{'Row':<6} {'Status':<10} {'MAC':<19} {'Number':<8} Detail")
    print("-" * 80)
    for row in rows:
        mac = row.mac_address or row.fields.get("mac", "")
        number = row.normalized.number if row.normalized else row.fields.get("number", "")
        detail = row.message or ""
        if row.conflict_kind:
            detail = f"[{row.conflict_kind.value}] {detail}"
        print(f"{row.row_number:<6} {row.status.value:<10} {mac:<19} {str(number):<8} {detail}")


async def run_import(args: argparse.Namespace) -> int:
    """Classify (and optionally commit) one file.

    Args:
        args: Parsed command-line arguments

    Returns:
        Process exit code
    """
    config = ImportConfig()
    exit_code = 0
    start_time = datetime.now(timezone.utc)
    print(f"[Main] Starting at {start_time.isoformat()}")

    if not config.database_url:
        print("[Main] DATABASE_URL is required")
        return 1

    content = Path(args.file).read_bytes()
    catalog = YamlModelCatalog.from_directory(args.catalog_dir or config.catalog_dir)
    policies = load_domain_policies(config.domains_config)

    pool = await asyncpg.create_pool(config.database_url, min_size=1, max_size=4)
    try:
        registry = PostgresDeviceRegistry(pool)
        await registry.ensure_schema()
        batch_store = InMemoryBatchStore()

        classify = ClassifyUploadUseCase(
            extractor=OpenpyxlRowExtractor(),
            catalog=catalog,
            registry=registry,
            batch_store=batch_store,
            policies=policies,
            max_workers=config.max_workers,
        )
        try:
            result = await classify.execute(content, args.domain, filename=Path(args.file).name)
        except PhoneImportError as e:
            print(f"[Main] {e.code.value}: {e.message}")
            return 2

        print_report(result.rows)
        print(f"\n[Main] {result.stats.to_dict()}")

        report = {
            "batch_id": result.batch_id,
            "rows": [r.to_dict() for r in result.rows],
            "stats": result.stats.to_dict(),
        }

        if args.commit_new:
            decisions = [
                (r.row_number, ImportAction.IMPORT)
                for r in result.rows
                if r.status == RowStatus.NEW
            ]
            print(f"\n[Main] Importing {len(decisions)} new rows")
            commit = CommitRowsUseCase(
                registry=registry,
                batch_store=batch_store,
                max_concurrent=config.commit_concurrency,
            )
            committed = await commit.execute(result.batch_id, decisions) if decisions else None
            if committed:
                for r in committed.results:
                    if not r.succeeded:
                        print(f"  Row {r.row_number}: {r.error.code.value} - {r.error.message}")
                print(f"[Main] {committed.stats.to_dict()}")
                report["results"] = [r.to_dict() for r in committed.results]
                report["stats"] = committed.stats.to_dict()
                if committed.has_failures:
                    exit_code = 3
    finally:
        await pool.close()

    if args.json:
        with open(args.json, "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2)
        print(f"[Main] Report saved to {args.json}")

    duration = (datetime.now(timezone.utc) - start_time).total_seconds()
    print(f"\n[Main] Completed in {duration:.1f} seconds")
    return exit_code


def main():
    parser = argparse.ArgumentParser(
        description="Classify a phone spreadsheet against the device registry",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py phones.xlsx --domain office.example.com
  python main.py phones.csv --domain office.example.com --commit-new
        """
    )
    parser.add_argument("file", help="Spreadsheet to import (.xlsx or .csv)")
    parser.add_argument("--domain", required=True, help="Domain the phones belong to")
    parser.add_argument(
        "--catalog-dir",
        metavar="DIR",
        help="Vendor/model catalog directory (overrides CATALOG_DIR)"
    )
    parser.add_argument(
        "--commit-new",
        action="store_true",
        help="Import every row classified as new (conflicts are left alone)"
    )
    parser.add_argument(
        "--json",
        metavar="FILE",
        help="Save the classification report to FILE"
    )

    args = parser.parse_args()
    sys.exit(asyncio.run(run_import(args)))


if __name__ == "__main__":
    main()
