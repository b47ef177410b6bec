"""
Engine facade.

``ExchangeEngine`` is the object a UI collaborator holds. It owns one
:class:`ExchangeState`, wires it into the identity, listing and conversation
stores, and commits a snapshot through the persistence adapter after every
mutating operation.

Notes
-----
Commits run synchronously once an operation's mutations are complete. A
failed save is logged by the adapter and never reaches the caller.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from .clock import Clock, SystemClock
from .conversations import ConversationEngine
from .covers import CoverOptions
from .data_models import IdFactory, new_id
from .identity import IdentityStore
from .listings import ListingStore
from .paths import ExchangePaths, ensure_directories
from .settings import EngineSettings
from .snapshot_store.adapter import PersistenceAdapter
from .snapshot_store.api import SnapshotStore
from .snapshot_store.archive import (
    ArchiveFormat,
    ArchiveResult,
    read_snapshot_archive,
    write_snapshot_archive,
)
from .snapshot_store.json_store import JsonFileSnapshotStore
from .snapshot_store.memory_store import MemorySnapshotStore
from .snapshot_store.snapshot import Snapshot
from .snapshot_store.sqlite_store import SqliteSnapshotStore
from .state import ExchangeState

logger = logging.getLogger(__name__)


class ExchangeEngine:
    """
    One coherent engine instance over one snapshot.

    Parameters
    ----------
    persistence:
        Adapter used to load the initial state and save after each change.
    clock:
        Time source shared by all stores.
    id_factory:
        Identifier source shared by all stores.
    cover_options:
        Limits for embedded cover images.
    """

    def __init__(
        self,
        persistence: PersistenceAdapter,
        *,
        clock: Clock | None = None,
        id_factory: IdFactory = new_id,
        cover_options: CoverOptions | None = None,
    ) -> None:
        self._persistence = persistence
        self._clock = clock if clock is not None else SystemClock()
        self.state = ExchangeState(persistence.load())

        self.identity = IdentityStore(self.state, commit=self.commit, id_factory=id_factory)
        self.listings = ListingStore(
            self.state,
            self.identity,
            commit=self.commit,
            clock=self._clock,
            id_factory=id_factory,
            cover_options=cover_options,
        )
        self.conversations = ConversationEngine(
            self.state,
            self.identity,
            commit=self.commit,
            clock=self._clock,
            id_factory=id_factory,
        )

    @property
    def persistence(self) -> PersistenceAdapter:
        return self._persistence

    def commit(self) -> bool:
        """Save the current state. Returns False if the save failed (already logged)."""
        return self._persistence.save(self.state.snapshot())

    def snapshot(self) -> Snapshot:
        """Return an immutable copy of the current state."""
        return self.state.snapshot()

    def export_archive(
        self,
        output_path: Path,
        *,
        format: ArchiveFormat | None = None,
        overwrite: bool = False,
        exported_at: datetime | None = None,
    ) -> ArchiveResult:
        """
        Write the current state to a portable archive.

        Raises
        ------
        ValueError
            If the target exists and `overwrite` is False, or the format is unknown.
        SnapshotIOError
            If the archive cannot be written.
        """
        result = write_snapshot_archive(
            entries=self.snapshot().to_entries(),
            output_path=output_path,
            exported_at=exported_at or self._clock.now(),
            format=format,
            overwrite=overwrite,
        )
        logger.info("Exported snapshot to %s (%s)", result.archive_path, result.format.value)
        return result

    def import_archive(self, archive_path: Path) -> Snapshot:
        """
        Replace the whole state with the contents of an archive, then commit.

        The current state is left untouched if the archive cannot be read.

        Raises
        ------
        SnapshotIOError
            If the archive cannot be read.
        SnapshotValidationError
            If the archive content is malformed.
        """
        entries = read_snapshot_archive(archive_path)
        empty = Snapshot(users=(), books=(), messages=())
        snapshot = Snapshot.from_entries(entries, fallback=empty)
        self.state.load(snapshot)
        if self.state.session_id is not None and self.state.session_user() is None:
            self.state.session_id = None
        logger.info("Imported snapshot from %s", archive_path)
        self.commit()
        return self.state.snapshot()


def build_store(settings: EngineSettings, paths: ExchangePaths) -> SnapshotStore:
    """
    Construct the SnapshotStore selected by `settings`.

    Raises
    ------
    ValueError
        If the configured backend is unknown.
    """
    backend = settings.storage_backend
    if backend == "sqlite":
        return SqliteSnapshotStore(db_path=paths.sqlite_path)
    if backend == "json":
        return JsonFileSnapshotStore(json_path=paths.json_path)
    if backend == "memory":
        return MemorySnapshotStore()
    raise ValueError(f"Unsupported storage backend: {backend!r}")


def open_engine(
    settings: EngineSettings,
    paths: ExchangePaths,
    *,
    clock: Clock | None = None,
) -> ExchangeEngine:
    """
    Convenience constructor that ensures directories exist and loads the snapshot.

    Parameters
    ----------
    settings:
        Engine settings.
    paths:
        Resolved data root paths.
    clock:
        Optional time source.

    Returns
    -------
    ExchangeEngine
        Ready-to-use engine.
    """
    ensure_directories(paths)
    adapter = PersistenceAdapter(build_store(settings, paths), seed_users=settings.seed_defaults)
    return ExchangeEngine(adapter, clock=clock, cover_options=settings.cover_options())
