from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from .covers import MAX_COVER_BYTES, CoverOptions
from .paths import ExchangePaths
from .snapshot_store.json_store import write_json_atomic

logger = logging.getLogger(__name__)

STORAGE_BACKENDS = ("sqlite", "json", "memory")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True, slots=True)
class EngineSettings:
    """
    Persisted engine settings.

    Notes
    -----
    Settings select the storage backend and tune defaults. They never contain
    user data; users, listings and messages live only in the snapshot.
    """

    storage_backend: str = "sqlite"  # "sqlite" | "json" | "memory"
    seed_defaults: bool = True
    cover_max_width: int = 600
    cover_max_height: int = 900
    cover_max_bytes: int = MAX_COVER_BYTES
    log_level: str = "WARNING"

    @staticmethod
    def defaults() -> "EngineSettings":
        return EngineSettings()

    def cover_options(self) -> CoverOptions:
        """Return the cover limits described by these settings."""
        return CoverOptions(
            max_width=self.cover_max_width,
            max_height=self.cover_max_height,
            max_bytes=self.cover_max_bytes,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "storage_backend": self.storage_backend,
            "seed_defaults": self.seed_defaults,
            "cover_max_width": self.cover_max_width,
            "cover_max_height": self.cover_max_height,
            "cover_max_bytes": self.cover_max_bytes,
            "log_level": self.log_level,
        }


def _positive_int(value: object, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return default
    return value


def settings_from_payload(payload: object) -> EngineSettings:
    """
    Build settings from a decoded JSON payload.

    Invalid or missing fields fall back to their defaults one by one.
    """
    defaults = EngineSettings.defaults()
    if not isinstance(payload, dict):
        return defaults

    backend = payload.get("storage_backend", defaults.storage_backend)
    if backend not in STORAGE_BACKENDS:
        backend = defaults.storage_backend

    seed = payload.get("seed_defaults", defaults.seed_defaults)
    if not isinstance(seed, bool):
        seed = defaults.seed_defaults

    level = str(payload.get("log_level", defaults.log_level)).upper()
    if level not in LOG_LEVELS:
        level = defaults.log_level

    return EngineSettings(
        storage_backend=str(backend),
        seed_defaults=seed,
        cover_max_width=_positive_int(payload.get("cover_max_width"), defaults.cover_max_width),
        cover_max_height=_positive_int(payload.get("cover_max_height"), defaults.cover_max_height),
        cover_max_bytes=_positive_int(payload.get("cover_max_bytes"), defaults.cover_max_bytes),
        log_level=level,
    )


def load_settings(paths: ExchangePaths) -> EngineSettings:
    """
    Load settings from disk.

    Parameters
    ----------
    paths:
        Resolved data root paths.

    Returns
    -------
    EngineSettings
        Loaded settings, or defaults if missing/unreadable.
    """
    try:
        raw = paths.settings_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return EngineSettings.defaults()
    except OSError as exc:
        logger.warning("Could not read settings %s: %s", paths.settings_path, exc)
        return EngineSettings.defaults()

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("Ignoring malformed settings %s: %s", paths.settings_path, exc)
        return EngineSettings.defaults()
    return settings_from_payload(payload)


def save_settings(paths: ExchangePaths, settings: EngineSettings) -> None:
    """Persist settings atomically."""
    write_json_atomic(paths.settings_path, settings.to_dict())
