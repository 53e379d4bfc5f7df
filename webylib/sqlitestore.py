"""Wallet store backed by a single SQLite connection."""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from webylib.store import BackendError, ConstraintError, Store

__all__ = ["SCHEMA_SQL", "SqliteStore"]

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS wallet_metadata (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS unspent_outputs (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    secret_hash BLOB NOT NULL UNIQUE,
    secret      TEXT NOT NULL,
    amount      INTEGER NOT NULL,
    created_at  TEXT NOT NULL DEFAULT (datetime('now')),
    spent       INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_unspent_outputs_spent ON unspent_outputs(spent);

CREATE TABLE IF NOT EXISTS spent_hashes (
    id       INTEGER PRIMARY KEY AUTOINCREMENT,
    hash     BLOB NOT NULL UNIQUE,
    spent_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS walletdepths (
    chain_code TEXT PRIMARY KEY,
    depth      INTEGER NOT NULL
);
"""

_CLEAR_STATEMENTS = (
    "DELETE FROM wallet_metadata",
    "DELETE FROM unspent_outputs",
    "DELETE FROM spent_hashes",
    "DELETE FROM walletdepths",
)


class SqliteStore(Store):
    """Store over one SQLite connection, file-backed or in memory.

    The schema is applied on construction and is idempotent, so existing
    databases open unchanged. :meth:`atomic` runs its block inside a real
    transaction that is rolled back if the block raises.
    """

    def __init__(self, connection: sqlite3.Connection) -> None:
        # Transactions are managed explicitly via BEGIN/COMMIT/ROLLBACK.
        connection.isolation_level = None
        self._conn = connection
        self._lock = threading.RLock()
        try:
            with self._lock:
                self._conn.executescript(SCHEMA_SQL)
        except sqlite3.Error as exc:
            raise BackendError(f"schema_init: {exc}") from exc

    @classmethod
    def open(cls, path: str | Path) -> SqliteStore:
        """Open or create a database at ``path``."""
        try:
            conn = sqlite3.connect(str(path), check_same_thread=False)
        except sqlite3.Error as exc:
            raise BackendError(f"open: {exc}") from exc
        return cls(conn)

    @classmethod
    def open_in_memory(cls) -> SqliteStore:
        """Open a fresh in-memory database."""
        try:
            conn = sqlite3.connect(":memory:", check_same_thread=False)
        except sqlite3.Error as exc:
            raise BackendError(f"open_in_memory: {exc}") from exc
        return cls(conn)

    def close(self) -> None:
        """Close the underlying connection."""
        with self._lock:
            self._conn.close()

    def __enter__(self) -> SqliteStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _execute(self, op: str, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        try:
            with self._lock:
                return self._conn.execute(sql, params)
        except (sqlite3.Error, OverflowError) as exc:
            raise BackendError(f"{op}: {exc}") from exc

    def _fetchall(self, op: str, sql: str, params: tuple[Any, ...] = ()) -> list[Any]:
        try:
            with self._lock:
                return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise BackendError(f"{op}: {exc}") from exc

    def _fetchone(self, op: str, sql: str, params: tuple[Any, ...] = ()) -> Any:
        try:
            with self._lock:
                return self._conn.execute(sql, params).fetchone()
        except sqlite3.Error as exc:
            raise BackendError(f"{op}: {exc}") from exc

    def get_meta(self, key: str) -> str | None:
        row = self._fetchone(
            "get_meta", "SELECT value FROM wallet_metadata WHERE key = ?", (key,)
        )
        return None if row is None else row[0]

    def set_meta(self, key: str, value: str) -> None:
        self._execute(
            "set_meta",
            "INSERT OR REPLACE INTO wallet_metadata (key, value) VALUES (?, ?)",
            (key, value),
        )

    def get_all_meta(self) -> dict[str, str]:
        rows = self._fetchall(
            "get_all_meta", "SELECT key, value FROM wallet_metadata ORDER BY key"
        )
        return dict(rows)

    def insert_output(self, secret_hash: bytes, secret: str, amount: int) -> None:
        try:
            with self._lock:
                self._conn.execute(
                    "INSERT INTO unspent_outputs (secret_hash, secret, amount, spent) "
                    "VALUES (?, ?, ?, 0)",
                    (bytes(secret_hash), secret, amount),
                )
        except sqlite3.IntegrityError as exc:
            message = str(exc)
            if "UNIQUE" in message:
                raise ConstraintError(message) from exc
            raise BackendError(f"insert_output: {exc}") from exc
        except (sqlite3.Error, OverflowError) as exc:
            raise BackendError(f"insert_output: {exc}") from exc

    def mark_spent(self, secret_hash: bytes) -> None:
        self._execute(
            "mark_spent",
            "UPDATE unspent_outputs SET spent = 1 WHERE secret_hash = ?",
            (bytes(secret_hash),),
        )

    def insert_spent_hash(self, digest: bytes) -> None:
        self._execute(
            "insert_spent_hash",
            "INSERT OR IGNORE INTO spent_hashes (hash) VALUES (?)",
            (bytes(digest),),
        )

    def update_output_amount(self, secret_hash: bytes, new_amount: int) -> None:
        self._execute(
            "update_output_amount",
            "UPDATE unspent_outputs SET amount = ? WHERE secret_hash = ? AND spent = 0",
            (new_amount, bytes(secret_hash)),
        )

    def get_unspent(self) -> list[tuple[str, int]]:
        rows = self._fetchall(
            "get_unspent",
            "SELECT secret, amount FROM unspent_outputs WHERE spent = 0 "
            "ORDER BY amount DESC",
        )
        return [(secret, amount) for secret, amount in rows]

    def get_unspent_full(self) -> list[tuple[str, int, str]]:
        rows = self._fetchall(
            "get_unspent_full",
            "SELECT secret, amount, created_at FROM unspent_outputs WHERE spent = 0",
        )
        return [tuple(row) for row in rows]

    def get_all_outputs(self) -> list[tuple[str, int, str, int]]:
        rows = self._fetchall(
            "get_all_outputs",
            "SELECT secret, amount, created_at, spent FROM unspent_outputs ORDER BY id",
        )
        return [tuple(row) for row in rows]

    def get_spent_hashes_with_time(self) -> list[tuple[bytes, str]]:
        rows = self._fetchall(
            "get_spent_hashes_with_time",
            "SELECT hash, spent_at FROM spent_hashes ORDER BY id",
        )
        return [(bytes(digest), spent_at) for digest, spent_at in rows]

    def count_outputs(self) -> int:
        return self._fetchone("count_outputs", "SELECT COUNT(*) FROM unspent_outputs")[0]

    def count_unspent(self) -> int:
        return self._fetchone(
            "count_unspent", "SELECT COUNT(*) FROM unspent_outputs WHERE spent = 0"
        )[0]

    def count_spent_hashes(self) -> int:
        return self._fetchone("count_spent_hashes", "SELECT COUNT(*) FROM spent_hashes")[0]

    def sum_unspent(self) -> int:
        return self._fetchone(
            "sum_unspent",
            "SELECT COALESCE(SUM(amount), 0) FROM unspent_outputs WHERE spent = 0",
        )[0]

    def get_depth(self, chain: str) -> int:
        row = self._fetchone(
            "get_depth", "SELECT depth FROM walletdepths WHERE chain_code = ?", (chain,)
        )
        return 0 if row is None else row[0]

    def set_depth(self, chain: str, depth: int) -> None:
        if depth < 0:
            raise BackendError(f"set_depth: depth must be non-negative: {depth}")
        self._execute(
            "set_depth",
            "INSERT INTO walletdepths (chain_code, depth) VALUES (?, ?) "
            "ON CONFLICT(chain_code) DO UPDATE SET depth = excluded.depth",
            (chain, depth),
        )

    def get_all_depths(self) -> dict[str, int]:
        rows = self._fetchall(
            "get_all_depths", "SELECT chain_code, depth FROM walletdepths"
        )
        return dict(rows)

    def clear_all(self) -> None:
        with self._lock:
            for sql in _CLEAR_STATEMENTS:
                self._execute("clear_all", sql)

    @contextmanager
    def atomic(self) -> Iterator[SqliteStore]:
        """Run the block in a transaction; commit on success, roll back on error."""
        with self._lock:
            self._execute("begin", "BEGIN")
            try:
                yield self
            except BaseException:
                self._execute("rollback", "ROLLBACK")
                raise
            self._execute("commit", "COMMIT")