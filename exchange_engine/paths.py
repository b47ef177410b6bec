"""
Filesystem path policy for BookSwap runtime data.

This module is the single choke point for determining where the engine reads
and writes data:

- Runtime data lives under a BookSwap "data root".
- The live snapshot lives under ``<data_root>/state``.
- Exported archives default to ``<data_root>/exports``.
- Nothing here deletes files.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

DATA_ROOT_ENV_VAR = "BOOKSWAP_DATA_ROOT"


@dataclass(frozen=True, slots=True)
class ExchangePaths:
    """
    Concrete resolved paths for one data root.

    Attributes
    ----------
    data_root:
        Root directory for all BookSwap runtime data.
    state_root:
        Directory holding the live snapshot.
    exports_root:
        Default directory for exported snapshot archives.
    logs_root:
        Log files written by the command-line front end.
    settings_path:
        JSON settings document.
    sqlite_path:
        Snapshot database used by the ``sqlite`` backend.
    json_path:
        Snapshot document used by the ``json`` backend.
    """

    data_root: Path
    state_root: Path
    exports_root: Path
    logs_root: Path
    settings_path: Path
    sqlite_path: Path
    json_path: Path


class DataRootError(RuntimeError):
    """Raised when no usable data root can be determined."""


def default_data_root() -> Path:
    """
    Resolve the default data root.

    Preference order:
    1) ``BOOKSWAP_DATA_ROOT`` if set
    2) ``%LOCALAPPDATA%`` then ``%APPDATA%`` on Windows
    3) ``$XDG_DATA_HOME``
    4) ``~/.local/share``
    """
    override = os.environ.get(DATA_ROOT_ENV_VAR)
    if override:
        return Path(override).expanduser()

    if sys.platform.startswith("win"):
        for var in ("LOCALAPPDATA", "APPDATA"):
            value = os.environ.get(var)
            if value:
                return Path(value) / "bookswap"
        raise DataRootError("Neither LOCALAPPDATA nor APPDATA environment variables are set.")

    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg) / "bookswap"
    return Path.home() / ".local" / "share" / "bookswap"


def resolve_paths(data_root: Path | None = None) -> ExchangePaths:
    """
    Resolve all filesystem paths under a data root.

    Parameters
    ----------
    data_root:
        Optional override for the data root.

    Returns
    -------
    ExchangePaths
        Resolved paths. Nothing is created.
    """
    root = (data_root or default_data_root()).expanduser().resolve()
    state_root = root / "state"
    return ExchangePaths(
        data_root=root,
        state_root=state_root,
        exports_root=root / "exports",
        logs_root=root / "logs",
        settings_path=root / "settings.json",
        sqlite_path=state_root / "snapshot.sqlite",
        json_path=state_root / "snapshot.json",
    )


def ensure_directories(paths: ExchangePaths) -> None:
    """Create the directory structure if it does not already exist. Never deletes."""
    for directory in (paths.data_root, paths.state_root, paths.exports_root, paths.logs_root):
        directory.mkdir(parents=True, exist_ok=True)


def paths_as_text(paths: ExchangePaths) -> str:
    """Render ExchangePaths as a readable multi-line string."""
    lines: list[str] = []
    for key in (
        "data_root",
        "state_root",
        "exports_root",
        "logs_root",
        "settings_path",
        "sqlite_path",
        "json_path",
    ):
        lines.append(f"{key}: {getattr(paths, key)}")
    return "\n".join(lines)
