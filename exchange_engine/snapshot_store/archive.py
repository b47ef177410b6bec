"""
Portable snapshot archives.

An archive is a derived artifact: a self-describing JSON envelope holding the
snapshot entries, written either as plain JSON or zstandard-compressed JSON.
Archives are used for export/import between data roots; the live snapshot
always stays in the configured SnapshotStore.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Final, Mapping

import zstandard as zstd

from ..data_models import datetime_to_iso_utc
from .errors import SnapshotIOError, SnapshotValidationError
from .json_store import JsonWriteOptions, write_json_atomic

ARCHIVE_SCHEMA_VERSION: Final[str] = "bookswap_snapshot_v1"


class ArchiveFormat(str, Enum):
    """Supported archive formats."""

    JSON = "json"
    JSON_ZST = "json.zst"

    @classmethod
    def from_path(cls, path: Path) -> "ArchiveFormat":
        """
        Infer the archive format from a file name.

        Raises
        ------
        ValueError
            If the extension is not recognized.
        """
        lower = path.name.lower()
        if lower.endswith(".json.zst") or lower.endswith(".zst"):
            return cls.JSON_ZST
        if lower.endswith(".json"):
            return cls.JSON
        raise ValueError(f"Unsupported archive type: {path}")


@dataclass(frozen=True, slots=True)
class ArchiveResult:
    """
    Result of writing a snapshot archive.

    Attributes
    ----------
    format:
        Format actually used.
    archive_path:
        Path to the created archive file.
    """

    format: ArchiveFormat
    archive_path: Path


def _envelope(entries: Mapping[str, Any], exported_at: datetime) -> dict[str, Any]:
    return {
        "schema_version": ARCHIVE_SCHEMA_VERSION,
        "exported_at": datetime_to_iso_utc(exported_at),
        "entries": dict(entries),
    }


def write_snapshot_archive(
    *,
    entries: Mapping[str, Any],
    output_path: Path,
    exported_at: datetime,
    format: ArchiveFormat | None = None,
    overwrite: bool = False,
) -> ArchiveResult:
    """
    Write snapshot entries to a portable archive.

    Parameters
    ----------
    entries:
        Snapshot entries as produced by ``Snapshot.to_entries``.
    output_path:
        Target archive file path.
    exported_at:
        Timestamp recorded in the envelope.
    format:
        Archive format. Inferred from `output_path` when omitted.
    overwrite:
        If True, overwrite an existing file.

    Returns
    -------
    ArchiveResult
        Result describing the written archive.

    Raises
    ------
    ValueError
        If the format cannot be inferred or the target exists and
        `overwrite` is False.
    SnapshotIOError
        If the archive cannot be written.
    """
    output_path = output_path.expanduser().resolve()
    fmt = format or ArchiveFormat.from_path(output_path)

    if output_path.exists() and not overwrite:
        raise ValueError(f"Refusing to overwrite existing archive: {output_path}")

    payload = _envelope(entries, exported_at)

    if fmt is ArchiveFormat.JSON:
        write_json_atomic(output_path, payload, options=JsonWriteOptions(pretty=True))
        return ArchiveResult(format=fmt, archive_path=output_path)

    raw = json.dumps(payload, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
    temp_path = output_path.with_suffix(output_path.suffix + ".tmp")
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        cctx = zstd.ZstdCompressor()
        temp_path.write_bytes(cctx.compress(raw.encode("utf-8")))
        temp_path.replace(output_path)
    except OSError as exc:
        temp_path.unlink(missing_ok=True)
        raise SnapshotIOError(f"Failed to write archive: {output_path} ({exc!s})") from exc
    return ArchiveResult(format=fmt, archive_path=output_path)


def read_snapshot_archive(archive_path: Path) -> Mapping[str, Any]:
    """
    Read the snapshot entries stored in an archive.

    Parameters
    ----------
    archive_path:
        Path to a ``.json`` or ``.json.zst`` archive.

    Returns
    -------
    Mapping[str, Any]
        The decoded snapshot entries.

    Raises
    ------
    SnapshotIOError
        If the archive cannot be read or decompressed.
    SnapshotValidationError
        If the envelope is not a supported snapshot archive.
    """
    archive_path = archive_path.expanduser().resolve()
    try:
        fmt = ArchiveFormat.from_path(archive_path)
    except ValueError as exc:
        raise SnapshotIOError(str(exc)) from exc

    try:
        data = archive_path.read_bytes()
    except OSError as exc:
        raise SnapshotIOError(f"Failed to read archive: {archive_path}") from exc

    if fmt is ArchiveFormat.JSON_ZST:
        try:
            data = zstd.ZstdDecompressor().decompress(data)
        except zstd.ZstdError as exc:
            raise SnapshotIOError(f"Failed to decompress archive: {archive_path}") from exc

    try:
        payload = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise SnapshotIOError(f"Invalid JSON in archive: {archive_path}") from exc

    if not isinstance(payload, dict):
        raise SnapshotValidationError("Archive must contain a JSON object")
    schema_version = payload.get("schema_version")
    if schema_version != ARCHIVE_SCHEMA_VERSION:
        raise SnapshotValidationError(f"Unsupported archive schema_version: {schema_version!r}")
    entries = payload.get("entries")
    if not isinstance(entries, dict):
        raise SnapshotValidationError("Archive must contain an object 'entries'")
    return entries
