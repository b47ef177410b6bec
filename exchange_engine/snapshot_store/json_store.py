"""
JSON-file implementation of SnapshotStore.

The whole snapshot is one JSON document whose top-level keys are the entry
names. Writes are atomic (temp file + replace) so a crash never leaves a
half-written snapshot behind.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from .api import SnapshotStore
from .errors import SnapshotIOError


@dataclass(frozen=True, slots=True)
class JsonWriteOptions:
    """Options controlling JSON serialization."""

    pretty: bool = True
    indent: int = 2
    sort_keys: bool = True
    ensure_ascii: bool = False


def write_json_atomic(
    json_path: Path,
    payload: Mapping[str, Any],
    *,
    options: JsonWriteOptions | None = None,
) -> None:
    """
    Write JSON atomically to disk.

    Raises
    ------
    SnapshotIOError
        If the payload cannot be serialized or the file cannot be written.
    """
    opts = options or JsonWriteOptions()
    json_path = json_path.expanduser()
    temp_path = json_path.with_suffix(json_path.suffix + ".tmp")

    try:
        json_path.parent.mkdir(parents=True, exist_ok=True)
        with temp_path.open("w", encoding="utf-8", newline="\n") as handle:
            if opts.pretty:
                json.dump(
                    payload,
                    handle,
                    indent=opts.indent,
                    sort_keys=opts.sort_keys,
                    ensure_ascii=opts.ensure_ascii,
                )
                handle.write("\n")
            else:
                json.dump(
                    payload,
                    handle,
                    separators=(",", ":"),
                    sort_keys=opts.sort_keys,
                    ensure_ascii=opts.ensure_ascii,
                )
        os.replace(temp_path, json_path)
    except (OSError, TypeError, ValueError) as exc:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise SnapshotIOError(f"Failed to write JSON: {json_path} ({exc!s})") from exc


def read_json_document(json_path: Path) -> Any:
    """
    Read and decode a JSON document.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    SnapshotIOError
        If the file cannot be read or is not valid JSON.
    """
    try:
        text = json_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise
    except OSError as exc:
        raise SnapshotIOError(f"Failed to read JSON: {json_path}") from exc

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise SnapshotIOError(f"Invalid JSON in {json_path}") from exc


@dataclass(frozen=True, slots=True)
class JsonFileSnapshotStore(SnapshotStore):
    """
    SnapshotStore backed by a single JSON document.

    Parameters
    ----------
    json_path:
        Path to the snapshot document. Created on first write.
    """

    json_path: Path

    def read_entries(self) -> Mapping[str, Any] | None:
        """See SnapshotStore.read_entries."""
        try:
            payload = read_json_document(self.json_path)
        except FileNotFoundError:
            return None
        if not isinstance(payload, dict):
            raise SnapshotIOError(f"Snapshot document must be a JSON object: {self.json_path}")
        return payload

    def write_entries(self, entries: Mapping[str, Any]) -> None:
        """See SnapshotStore.write_entries."""
        write_json_atomic(self.json_path, dict(entries))
