from __future__ import annotations

from pathlib import Path

import pytest

import bookswap.cli as cli_module
from exchange_engine.errors import ExchangeError
from exchange_engine.paths import DataRootError
from exchange_engine.snapshot_store.errors import SnapshotIOError


def _root(tmp_path: Path) -> list[str]:
    return ["--data-root", str(tmp_path)]


def test_cli_returns_2_on_exchange_error(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str], tmp_path: Path
) -> None:
    def _boom(*_args: object, **_kwargs: object) -> None:
        raise ExchangeError("nope")

    monkeypatch.setattr(cli_module, "open_engine", _boom)

    rc = cli_module.main(["whoami", *_root(tmp_path)])
    out = capsys.readouterr().out
    assert rc == 2
    assert "ERROR: nope" in out


def test_cli_returns_2_on_snapshot_error(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str], tmp_path: Path
) -> None:
    def _boom(*_args: object, **_kwargs: object) -> None:
        raise SnapshotIOError("disk gone")

    monkeypatch.setattr(cli_module, "open_engine", _boom)

    rc = cli_module.main(["books", *_root(tmp_path)])
    assert rc == 2
    assert "ERROR: disk gone" in capsys.readouterr().out


def test_cli_requires_login_for_mutations(capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
    rc = cli_module.main(
        ["add", "--title", "Dune", "--author", "FH", "--location", "L", "--contact", "c", *_root(tmp_path)]
    )
    out = capsys.readouterr().out
    assert rc == 2
    assert "You must be logged in" in out


def test_cli_bad_login_returns_2(capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
    rc = cli_module.main(["login", "--email", "john@example.com", "--password", "wrong", *_root(tmp_path)])
    assert rc == 2
    assert "Invalid email or password" in capsys.readouterr().out


def test_cli_export_refuses_overwrite(capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
    target = tmp_path / "out.json"
    target.write_text("{}", encoding="utf-8")

    rc = cli_module.main(["export", str(target), *_root(tmp_path / "data")])
    assert rc == 2
    assert "Refusing to overwrite" in capsys.readouterr().out


def test_cli_export_into_blocked_directory_returns_2(
    capsys: pytest.CaptureFixture[str], tmp_path: Path
) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory", encoding="utf-8")

    rc = cli_module.main(["export", str(blocker / "out.json"), *_root(tmp_path / "data")])
    assert rc == 2
    assert "ERROR: Failed to write JSON" in capsys.readouterr().out


def test_cli_returns_2_when_data_root_unresolvable(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def _no_root(*_args: object, **_kwargs: object) -> None:
        raise DataRootError("Neither LOCALAPPDATA nor APPDATA environment variables are set.")

    monkeypatch.setattr(cli_module, "resolve_paths", _no_root)

    rc = cli_module.main(["whoami"])
    assert rc == 2
    assert "ERROR: Neither LOCALAPPDATA" in capsys.readouterr().out
