from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest
import zstandard as zstd

from engine_helpers import login_as, make_engine, register_owner, register_seeker
from exchange_engine.snapshot_store.archive import (
    ARCHIVE_SCHEMA_VERSION,
    ArchiveFormat,
    read_snapshot_archive,
    write_snapshot_archive,
)
from exchange_engine.snapshot_store.errors import SnapshotIOError, SnapshotValidationError

EXPORTED_AT = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


def _populated_engine():
    engine = make_engine()
    owner = register_owner(engine)
    book = engine.listings.add_listing("Dune", "Frank Herbert", "Springfield", "x").book
    register_seeker(engine)
    engine.conversations.send_message(owner.id, book.id, "borrow?", is_request=True)
    login_as(engine, owner)
    return engine


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("snap.json", ArchiveFormat.JSON),
        ("snap.JSON", ArchiveFormat.JSON),
        ("snap.json.zst", ArchiveFormat.JSON_ZST),
        ("snap.zst", ArchiveFormat.JSON_ZST),
    ],
)
def test_format_from_path(name: str, expected: ArchiveFormat) -> None:
    assert ArchiveFormat.from_path(Path(name)) is expected


def test_format_from_path_rejects_unknown_extension() -> None:
    with pytest.raises(ValueError, match="Unsupported archive type"):
        ArchiveFormat.from_path(Path("snap.tar"))


def test_json_archive_has_envelope(tmp_path: Path) -> None:
    path = tmp_path / "snap.json"

    result = write_snapshot_archive(entries={"users": []}, output_path=path, exported_at=EXPORTED_AT)

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert result.format is ArchiveFormat.JSON
    assert payload["schema_version"] == ARCHIVE_SCHEMA_VERSION
    assert payload["exported_at"] == "2026-03-01T09:30:00.000000Z"
    assert payload["entries"] == {"users": []}


def test_zst_archive_is_compressed_json(tmp_path: Path) -> None:
    path = tmp_path / "snap.json.zst"

    write_snapshot_archive(entries={"users": []}, output_path=path, exported_at=EXPORTED_AT)

    raw = zstd.ZstdDecompressor().decompress(path.read_bytes())
    assert json.loads(raw)["entries"] == {"users": []}
    assert read_snapshot_archive(path) == {"users": []}


def test_refuses_to_overwrite_without_flag(tmp_path: Path) -> None:
    path = tmp_path / "snap.json"
    path.write_text("keep me", encoding="utf-8")

    with pytest.raises(ValueError, match="Refusing to overwrite"):
        write_snapshot_archive(entries={}, output_path=path, exported_at=EXPORTED_AT)
    assert path.read_text(encoding="utf-8") == "keep me"

    write_snapshot_archive(entries={}, output_path=path, exported_at=EXPORTED_AT, overwrite=True)
    assert read_snapshot_archive(path) == {}


def test_rejects_foreign_schema(tmp_path: Path) -> None:
    path = tmp_path / "snap.json"
    path.write_text(json.dumps({"schema_version": "other", "entries": {}}), encoding="utf-8")

    with pytest.raises(SnapshotValidationError, match="schema_version"):
        read_snapshot_archive(path)


def test_rejects_corrupt_zst(tmp_path: Path) -> None:
    path = tmp_path / "snap.json.zst"
    path.write_bytes(b"definitely not zstd")

    with pytest.raises(SnapshotIOError):
        read_snapshot_archive(path)


def test_missing_archive_is_io_error(tmp_path: Path) -> None:
    with pytest.raises(SnapshotIOError):
        read_snapshot_archive(tmp_path / "absent.json")


@pytest.mark.parametrize("name", ["export.json", "export.json.zst"])
def test_engine_export_then_import_into_fresh_engine(tmp_path: Path, name: str) -> None:
    source = _populated_engine()
    archive = tmp_path / name

    source.export_archive(archive, exported_at=EXPORTED_AT)
    target = make_engine(seed_users=True)
    imported = target.import_archive(archive)

    assert imported == source.snapshot()
    assert target.snapshot() == source.snapshot()
    assert target.conversations.unread_count() == 1


def test_import_drops_session_for_unknown_user(tmp_path: Path) -> None:
    archive = tmp_path / "partial.json"
    session = {"id": "x", "name": "X", "email": "x@example.com", "password": "pw", "role": "seeker"}
    write_snapshot_archive(entries={"session": session}, output_path=archive, exported_at=EXPORTED_AT)
    engine = make_engine(seed_users=True)

    snapshot = engine.import_archive(archive)

    assert snapshot.users == ()
    assert snapshot.session is None


def test_failed_import_leaves_state_untouched(tmp_path: Path) -> None:
    engine = _populated_engine()
    before = engine.snapshot()
    archive = tmp_path / "bad.json"
    archive.write_text(json.dumps({"schema_version": ARCHIVE_SCHEMA_VERSION, "entries": {"users": 5}}))

    with pytest.raises(SnapshotValidationError):
        engine.import_archive(archive)

    assert engine.snapshot() == before


def test_export_into_blocked_directory_is_io_error(tmp_path: Path) -> None:
    engine = _populated_engine()
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory", encoding="utf-8")

    with pytest.raises(SnapshotIOError):
        engine.export_archive(blocker / "out.json", exported_at=EXPORTED_AT)
