from __future__ import annotations

import os
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import psycopg2
import psycopg2.errors
from psycopg2.extras import RealDictCursor

from ..models.config_models import DatabaseConfig

"""Keyed relational store over psycopg2.

Exposes the three primitives the pipeline needs (row-get, row-list,
statement-execute) plus INSERT ... RETURNING. Driver errors are translated:

- UniqueViolation -> UniqueConflictError (carries the constraint name so the
  username retry cascade can switch on it)
- any other psycopg2.Error -> StoreError

The connection runs in autocommit: every statement is its own upsert and a
batch is never wrapped in one transaction.
"""

__all__ = [
    "StoreError",
    "UniqueConflictError",
    "PgStore",
    "resolve_dsn",
    "connect",
]

SCHEMA_SQL_PATH = Path(__file__).parent / "schema.sql"

Params = Sequence[Any] | None


class StoreError(Exception):
    """Raised when a storage round-trip fails."""


class UniqueConflictError(StoreError):
    """Raised when a write violates a uniqueness constraint."""

    def __init__(self, message: str, constraint: str | None = None) -> None:
        super().__init__(message)
        self.constraint = constraint


def _translate(exc: psycopg2.Error) -> StoreError:
    message = str(exc).strip() or exc.__class__.__name__
    if isinstance(exc, psycopg2.errors.UniqueViolation):
        diag = getattr(exc, "diag", None)
        constraint = getattr(diag, "constraint_name", None) if diag is not None else None
        return UniqueConflictError(message, constraint=constraint)
    return StoreError(message)


class PgStore:
    """Thin statement runner returning rows as dicts."""

    def __init__(self, connection: Any) -> None:
        self._conn = connection

    @property
    def connection(self) -> Any:
        return self._conn

    def _run(self, sql: str, params: Params) -> Any:
        cur = self._conn.cursor(cursor_factory=RealDictCursor)
        try:
            cur.execute(sql, params)
        except psycopg2.Error as e:
            cur.close()
            raise _translate(e) from e
        return cur

    def get(self, sql: str, params: Params = None) -> dict[str, Any] | None:
        cur = self._run(sql, params)
        try:
            row = cur.fetchone()
        finally:
            cur.close()
        return dict(row) if row is not None else None

    def all(self, sql: str, params: Params = None) -> list[dict[str, Any]]:
        cur = self._run(sql, params)
        try:
            rows = cur.fetchall()
        finally:
            cur.close()
        return [dict(r) for r in rows]

    def execute(self, sql: str, params: Params = None) -> int:
        """Run a statement and return the affected row count."""
        cur = self._run(sql, params)
        try:
            return cur.rowcount
        finally:
            cur.close()

    def insert(self, sql: str, params: Params = None) -> dict[str, Any]:
        """Run an INSERT ... RETURNING statement and return the returned row."""
        row = self.get(sql, params)
        if row is None:
            raise StoreError("insert returned no row")
        return row

    def ensure_schema(self) -> None:
        """Create missing tables from the packaged schema.sql."""
        self.execute(SCHEMA_SQL_PATH.read_text(encoding="utf-8"))

    def close(self) -> None:
        try:
            self._conn.close()
        except psycopg2.Error:  # pragma: no cover
            pass


def resolve_dsn(db_cfg: DatabaseConfig) -> str:
    """Resolve a libpq DSN.

    Priority:
        1. DATABASE_URL / PGDSN environment variables
        2. database.dsn from config
        3. individual PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE,
           falling back to the matching config fields
    """
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


def connect(db_cfg: DatabaseConfig) -> PgStore:
    """Open an autocommit connection and wrap it in a PgStore."""
    try:
        conn = psycopg2.connect(resolve_dsn(db_cfg))
    except psycopg2.Error as e:
        raise StoreError(f"cannot connect to database: {e}") from e
    conn.autocommit = True
    return PgStore(conn)
