"""
PostgreSQL document store adapter - Implements DocumentStore protocol.

This module provides the PostgreSQL implementation of the domain's
document store port using psycopg3 with raw SQL.

All collections share a single ``events`` table:

    id          TEXT PRIMARY KEY      store-assigned event id
    seq         BIGSERIAL             insertion order (tie-break)
    collection  TEXT                  EventKind value
    occurred_at TIMESTAMPTZ           store-assigned timestamp
    payload     JSONB                 caller data

Payload equality filters use JSONB containment (``payload @> %s``),
served by a GIN index.

Driver errors are re-raised as StoreUnavailable; the event store treats
them as a signal to answer from its in-memory tier.
"""

import logging
from pathlib import Path
from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import AsyncConnectionPool

from ezclip.domain.events import EventQuery
from ezclip.domain.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)


class PostgresDocumentStore:
    """
    Implements DocumentStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: AsyncConnectionPool) -> None:
        """
        Initialize store with connection pool.

        Args:
            pool: psycopg3 AsyncConnectionPool for database connections
        """
        self._pool = pool

    async def create(self, collection: str, record: dict[str, Any]) -> dict[str, Any]:
        """
        Insert one record.

        Args:
            collection: EventKind value
            record: Flattened event with "id" and "timestamp" keys

        Returns:
            The record as given

        Raises:
            StoreUnavailable: On any database error
        """
        payload = {k: v for k, v in record.items() if k not in ("id", "timestamp")}
        sql = """
            INSERT INTO events (id, collection, occurred_at, payload)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (id) DO NOTHING
        """

        try:
            async with self._pool.connection() as conn:
                await conn.execute(sql, (record["id"], collection, record["timestamp"], Jsonb(payload)))
        except psycopg.Error as e:
            raise StoreUnavailable(f"Insert into {collection} failed") from e
        return record

    async def list(
        self,
        collection: str,
        query: EventQuery,
        order: str = "desc",
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        List records of a collection matching every filter.

        Args:
            collection: EventKind value
            query: Date range and payload equality filters
            order: "desc" (newest first) or "asc"
            limit: Maximum number of rows, None for all

        Returns:
            Flattened records ({**payload, "id", "timestamp"})

        Raises:
            StoreUnavailable: On any database error
        """
        conditions = ["collection = %s"]
        params: list[Any] = [collection]
        if query.start is not None:
            conditions.append("occurred_at >= %s")
            params.append(query.start)
        if query.end is not None:
            conditions.append("occurred_at <= %s")
            params.append(query.end)
        if query.fields:
            conditions.append("payload @> %s")
            params.append(Jsonb(query.fields))

        direction = "ASC" if order == "asc" else "DESC"
        sql = (
            "SELECT id, occurred_at, payload FROM events"
            f" WHERE {' AND '.join(conditions)}"
            f" ORDER BY occurred_at {direction}, seq {direction}"
        )
        if limit is not None:
            sql += " LIMIT %s"
            params.append(limit)

        try:
            async with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                await cursor.execute(sql, params)
                rows = await cursor.fetchall()
        except psycopg.Error as e:
            raise StoreUnavailable(f"Query on {collection} failed") from e

        return [{**row["payload"], "id": row["id"], "timestamp": row["occurred_at"]} for row in rows]


async def run_migrations(pool: AsyncConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 AsyncConnectionPool instance
    """
    # Structure: ezclip/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            async with pool.connection() as conn:
                await conn.execute(sql_file.read_text())
            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
