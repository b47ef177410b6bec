"""
SQLite implementation of SnapshotStore.

This module owns the on-disk key/value format for engine snapshots.

Threading
---------
sqlite3 connections are opened per call and never shared across threads.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import closing
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from ..clock import Clock, SystemClock
from ..data_models import datetime_to_iso_utc
from .api import SnapshotStore
from .errors import SnapshotIOError
from .schema import SCHEMA_V1, SCHEMA_VERSION


def _ensure_schema_version(conn: sqlite3.Connection) -> None:
    row = conn.execute("SELECT value FROM store_meta WHERE key = 'schema_version'").fetchone()
    if row is None:
        conn.execute(
            "INSERT INTO store_meta(key, value) VALUES('schema_version', ?)",
            (SCHEMA_VERSION,),
        )
        return
    if str(row["value"]) != SCHEMA_VERSION:
        raise SnapshotIOError(f"Unsupported snapshot schema version: {row['value']!r}")


@dataclass(frozen=True, slots=True)
class SqliteSnapshotStore(SnapshotStore):
    """
    SQLite-backed SnapshotStore.

    Parameters
    ----------
    db_path:
        Path to the SQLite database.
    clock:
        Source of the ``updated_at`` stamp written with each entry.

    Notes
    -----
    The database file is created if absent. The parent directory is created as
    needed. All entries of one save are written in a single transaction.
    """

    db_path: Path
    clock: Clock = field(default_factory=SystemClock)

    def __post_init__(self) -> None:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with self._transaction() as conn:
                conn.executescript(SCHEMA_V1)
                _ensure_schema_version(conn)
        except (OSError, sqlite3.Error) as exc:
            raise SnapshotIOError(f"Failed to open snapshot database: {self.db_path}") from exc

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _transaction(self) -> "_Transaction":
        return _Transaction(self._connect())

    def read_entries(self) -> Mapping[str, Any] | None:
        """See SnapshotStore.read_entries."""
        try:
            with self._transaction() as conn:
                rows = conn.execute("SELECT name, value FROM snapshot_entries").fetchall()
        except sqlite3.Error as exc:
            raise SnapshotIOError(f"Failed to read snapshot: {self.db_path}") from exc

        if not rows:
            return None

        entries: dict[str, Any] = {}
        for row in rows:
            name = str(row["name"])
            try:
                entries[name] = json.loads(row["value"])
            except json.JSONDecodeError as exc:
                raise SnapshotIOError(f"Invalid JSON in snapshot entry {name!r}") from exc
        return entries

    def write_entries(self, entries: Mapping[str, Any]) -> None:
        """See SnapshotStore.write_entries."""
        stamp = datetime_to_iso_utc(self.clock.now())
        try:
            encoded = [
                (name, json.dumps(value, sort_keys=True, ensure_ascii=False))
                for name, value in entries.items()
            ]
        except (TypeError, ValueError) as exc:
            raise SnapshotIOError("Snapshot entries are not JSON-serializable") from exc

        try:
            with self._transaction() as conn:
                conn.execute("DELETE FROM snapshot_entries")
                conn.executemany(
                    "INSERT INTO snapshot_entries(name, value, updated_at) VALUES(?, ?, ?)",
                    [(name, value, stamp) for name, value in encoded],
                )
        except sqlite3.Error as exc:
            raise SnapshotIOError(f"Failed to write snapshot: {self.db_path}") from exc

    def entry_names(self) -> list[str]:
        """Return the names of stored entries in sorted order."""
        with self._transaction() as conn:
            rows = conn.execute("SELECT name FROM snapshot_entries ORDER BY name ASC").fetchall()
        return [str(r["name"]) for r in rows]


class _Transaction:
    """Context manager that commits or rolls back, then always closes."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def __enter__(self) -> sqlite3.Connection:
        return self._conn

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        with closing(self._conn):
            if exc_type is None:
                self._conn.commit()
            else:
                self._conn.rollback()

