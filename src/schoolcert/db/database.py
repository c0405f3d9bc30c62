"""Thin query helper over a psycopg connection pool.

Rows are returned as dicts (``psycopg.rows.dict_row``).  Connections
are borrowed per call and returned to the pool immediately, so the
helper is safe to share between request threads.
"""

from __future__ import annotations

import logging
from typing import Any

from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

log = logging.getLogger(__name__)


class Database:
    """Read-mostly access to PostgreSQL through a shared pool."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    @property
    def pool(self) -> ConnectionPool:
        return self._pool

    def fetch_one(self, sql: str, params: tuple | dict | None = None) -> dict | None:
        """Return the first row of *sql*, or ``None``."""
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
            cur.execute(sql, params)
            return cur.fetchone()

    def fetch_all(self, sql: str, params: tuple | dict | None = None) -> list[dict]:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
            cur.execute(sql, params)
            return cur.fetchall()

    def fetch_value(self, sql: str, params: tuple | dict | None = None) -> Any:  # noqa: ANN401
        """Return the first column of the first row, or ``None``."""
        with self._pool.connection() as conn, conn.cursor() as cur:
            cur.execute(sql, params)
            row = cur.fetchone()
            return row[0] if row is not None else None

    def close(self) -> None:
        log.info("Closing database pool")
        self._pool.close()
