from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from exchange_engine.engine import build_store, open_engine
from exchange_engine.logging_config import configure_logging
from exchange_engine.paths import DATA_ROOT_ENV_VAR, default_data_root, ensure_directories, resolve_paths
from exchange_engine.settings import EngineSettings, load_settings, save_settings, settings_from_payload
from exchange_engine.snapshot_store.errors import SnapshotIOError
from exchange_engine.snapshot_store.json_store import JsonFileSnapshotStore
from exchange_engine.snapshot_store.memory_store import MemorySnapshotStore
from exchange_engine.snapshot_store.sqlite_store import SqliteSnapshotStore


def test_env_var_overrides_data_root(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv(DATA_ROOT_ENV_VAR, str(tmp_path / "custom"))

    assert default_data_root() == tmp_path / "custom"


def test_xdg_data_home_is_used_on_posix(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv(DATA_ROOT_ENV_VAR, raising=False)
    monkeypatch.setattr("sys.platform", "linux")
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))

    assert default_data_root() == tmp_path / "bookswap"


def test_resolve_paths_layout_creates_nothing(tmp_path: Path) -> None:
    paths = resolve_paths(tmp_path / "root")

    assert paths.state_root == paths.data_root / "state"
    assert paths.sqlite_path.parent == paths.state_root
    assert paths.settings_path == paths.data_root / "settings.json"
    assert not paths.data_root.exists()

    ensure_directories(paths)
    assert paths.state_root.is_dir()
    assert paths.exports_root.is_dir()


def test_missing_settings_are_defaults(tmp_path: Path) -> None:
    assert load_settings(resolve_paths(tmp_path)) == EngineSettings.defaults()


def test_malformed_settings_fall_back(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    paths = resolve_paths(tmp_path)
    paths.settings_path.write_text("{broken", encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        settings = load_settings(paths)

    assert settings == EngineSettings.defaults()
    assert "malformed settings" in caplog.text


def test_invalid_fields_fall_back_individually() -> None:
    settings = settings_from_payload(
        {
            "storage_backend": "postgres",
            "seed_defaults": "yes",
            "cover_max_width": 320,
            "cover_max_height": -5,
            "cover_max_bytes": True,
            "log_level": "info",
        }
    )

    assert settings.storage_backend == "sqlite"
    assert settings.seed_defaults is True
    assert settings.cover_max_width == 320
    assert settings.cover_max_height == 900
    assert settings.cover_max_bytes == EngineSettings().cover_max_bytes
    assert settings.log_level == "INFO"


def test_save_then_load_settings(tmp_path: Path) -> None:
    paths = resolve_paths(tmp_path)
    settings = EngineSettings(storage_backend="json", seed_defaults=False, log_level="DEBUG")

    save_settings(paths, settings)

    assert json.loads(paths.settings_path.read_text(encoding="utf-8"))["storage_backend"] == "json"
    assert load_settings(paths) == settings


@pytest.mark.parametrize(
    ("backend", "expected"),
    [("sqlite", SqliteSnapshotStore), ("json", JsonFileSnapshotStore), ("memory", MemorySnapshotStore)],
)
def test_build_store_selects_backend(tmp_path: Path, backend: str, expected: type) -> None:
    paths = resolve_paths(tmp_path)

    assert isinstance(build_store(EngineSettings(storage_backend=backend), paths), expected)


def test_build_store_rejects_unknown_backend(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Unsupported storage backend"):
        build_store(EngineSettings(storage_backend="postgres"), resolve_paths(tmp_path))


def test_open_engine_applies_seed_setting(tmp_path: Path) -> None:
    paths = resolve_paths(tmp_path)

    seeded = open_engine(EngineSettings(storage_backend="memory"), paths)
    empty = open_engine(EngineSettings(storage_backend="memory", seed_defaults=False), paths)

    assert len(seeded.identity.users) == 2
    assert empty.identity.users == ()
    assert paths.state_root.is_dir()


def test_configure_logging_writes_log_file(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "bookswap.log"

    configure_logging("info", log_file)
    logging.getLogger("exchange_engine.test").info("hello from test")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert "hello from test" in log_file.read_text(encoding="utf-8")
    for handler in list(logging.getLogger().handlers):
        logging.getLogger().removeHandler(handler)
        handler.close()


def test_save_settings_into_blocked_root_is_io_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory", encoding="utf-8")

    with pytest.raises(SnapshotIOError):
        save_settings(resolve_paths(blocker / "root"), EngineSettings.defaults())
