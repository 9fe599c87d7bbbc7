#!/usr/bin/env python3
"""
Migration Runner for the Song Library PostgreSQL database.

Applies `NNN_name_up.sql` files from the bundled sql/ directory in order,
records each applied version with a checksum in schema_migrations, and rolls
back with the matching `_down.sql` file.
"""

import argparse
import asyncio
import hashlib
import sys
import time
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import asyncpg
import structlog

from .config import get_settings
from .logging_config import configure_logging

logger = structlog.get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "sql"
BOOTSTRAP_VERSION = "000_schema_migrations"


def calculate_checksum(file_path: Path) -> str:
    """SHA-256 checksum of a migration file"""
    return hashlib.sha256(file_path.read_bytes()).hexdigest()


def get_available_migrations(migrations_dir: Path = MIGRATIONS_DIR, direction: str = "up") -> List[Tuple[str, Path]]:
    """(version, path) pairs for migration files, sorted, bootstrap excluded"""
    suffix = f"_{direction}"
    migrations = sorted(migrations_dir.glob(f"*{suffix}.sql"))
    return [
        (m.stem[: -len(suffix)], m)
        for m in migrations
        if not m.name.startswith("000_")
    ]


def get_pending_migrations(
    applied: List[str],
    available: List[Tuple[str, Path]],
    target_version: Optional[str] = None,
) -> List[Tuple[str, Path]]:
    """Migrations not yet applied, up to and including target_version"""
    applied_set = set(applied)
    pending = []
    for version, path in available:
        if version not in applied_set:
            pending.append((version, path))
        if target_version and version == target_version:
            break
    return pending


class MigrationRunner:
    """Handles database migration execution and tracking"""

    def __init__(self, connection: asyncpg.Connection, migrations_dir: Path = MIGRATIONS_DIR):
        self.connection = connection
        self.migrations_dir = migrations_dir

    async def ensure_migrations_table(self) -> None:
        sql = (self.migrations_dir / f"{BOOTSTRAP_VERSION}_up.sql").read_text()
        await self.connection.execute(sql)

    async def get_applied_migrations(self) -> List[str]:
        rows = await self.connection.fetch(
            "SELECT version FROM schema_migrations ORDER BY applied_at, version"
        )
        return [row["version"] for row in rows]

    async def migrate_up(self, target_version: Optional[str] = None) -> List[str]:
        """Run forward migrations; returns the versions applied"""
        await self.ensure_migrations_table()
        applied = await self.get_applied_migrations()
        pending = get_pending_migrations(applied, get_available_migrations(self.migrations_dir), target_version)

        if not pending:
            logger.info("No migrations to run - database is up to date")
            return []

        logger.info("Applying migrations", versions=[version for version, _ in pending])
        for version, migration_file in pending:
            start_time = time.time()
            try:
                async with self.connection.transaction():
                    await self.connection.execute(migration_file.read_text())
                    execution_time = int((time.time() - start_time) * 1000)
                    await self.connection.execute(
                        """
                        INSERT INTO schema_migrations (version, checksum, execution_time_ms)
                        VALUES ($1, $2, $3)
                        ON CONFLICT (version) DO UPDATE SET
                            checksum = EXCLUDED.checksum,
                            execution_time_ms = EXCLUDED.execution_time_ms,
                            applied_at = CURRENT_TIMESTAMP
                        """,
                        version, calculate_checksum(migration_file), execution_time
                    )
            except asyncpg.PostgresError as e:
                logger.error("Failed to apply migration", version=version, error=str(e))
                raise
            logger.info("Applied migration", version=version, execution_time_ms=execution_time)

        return [version for version, _ in pending]

    async def migrate_down(self, target_version: str) -> List[str]:
        """Roll back every migration applied after target_version"""
        applied = await self.get_applied_migrations()

        to_rollback = []
        for version in reversed(applied):
            if version == target_version:
                break
            to_rollback.append(version)

        for version in to_rollback:
            rollback_file = self.migrations_dir / f"{version}_down.sql"
            if not rollback_file.exists():
                logger.warning("Rollback file not found", version=version, path=str(rollback_file))
                continue
            try:
                async with self.connection.transaction():
                    await self.connection.execute(rollback_file.read_text())
                    await self.connection.execute("DELETE FROM schema_migrations WHERE version = $1", version)
            except asyncpg.PostgresError as e:
                logger.error("Failed to roll back migration", version=version, error=str(e))
                raise
            logger.info("Rolled back migration", version=version)

        return to_rollback

    async def status(self) -> Dict[str, List[str]]:
        await self.ensure_migrations_table()
        applied = await self.get_applied_migrations()
        pending = get_pending_migrations(applied, get_available_migrations(self.migrations_dir))
        return {"applied": applied, "pending": [version for version, _ in pending]}


async def run_migrations(dsn: str, target_version: Optional[str] = None) -> List[str]:
    """Apply pending migrations against the database at dsn"""
    connection = await asyncpg.connect(dsn)
    try:
        return await MigrationRunner(connection).migrate_up(target_version)
    finally:
        await connection.close()


async def _run_command(args: argparse.Namespace, dsn: str) -> None:
    connection = await asyncpg.connect(dsn)
    try:
        runner = MigrationRunner(connection)
        if args.command == "up":
            await runner.migrate_up(args.version)
        elif args.command == "down":
            await runner.migrate_down(args.version)
        else:
            result = await runner.status()
            logger.info("Migration status", **result)
    finally:
        await connection.close()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Song Library Database Migration Runner")
    parser.add_argument("command", choices=["up", "down", "status"], help="Migration command to execute")
    parser.add_argument("--version", help="Target version for up/down migrations")
    args = parser.parse_args(argv)

    if args.command == "down" and not args.version:
        parser.error("down requires --version")

    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)
    logger.info("Connecting to database", **settings.safe_summary())

    try:
        asyncio.run(_run_command(args, settings.database_dsn))
    except (asyncpg.PostgresError, OSError) as e:
        logger.error("Migration command failed", command=args.command, error=str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
