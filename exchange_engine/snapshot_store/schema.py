"""SQLite schema for SnapshotStore.

Notes
-----
The snapshot is a small key/value table: one row per named entry, the value a
JSON document. Rows are replaced wholesale on every save.
"""

from __future__ import annotations

SCHEMA_V1 = """
PRAGMA journal_mode = WAL;

CREATE TABLE IF NOT EXISTS store_meta (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS snapshot_entries (
    name       TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""

SCHEMA_VERSION = "1"
