"""
Persistence adapter between the engine state and a SnapshotStore.

The adapter contains no business logic. It decodes stored entries into a
:class:`Snapshot` (falling back to documented defaults) and writes snapshots
back after every mutating engine operation.

Failure policy
--------------
- ``load`` propagates :class:`SnapshotError`; an unreadable store is a startup
  problem the caller must see.
- ``save`` never propagates. A failed save is logged and recorded in
  ``last_error``; the in-memory state remains authoritative.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from .api import SnapshotStore
from .errors import SnapshotError
from .snapshot import Snapshot

logger = logging.getLogger(__name__)


class PersistenceAdapter:
    """
    Load and save engine snapshots through a SnapshotStore.

    Parameters
    ----------
    store:
        Medium the snapshot is persisted to.
    seed_users:
        Whether the default snapshot contains the fixed seed accounts.
    """

    def __init__(self, store: SnapshotStore, *, seed_users: bool = True) -> None:
        self._store = store
        self._seed_users = seed_users
        self.last_error: SnapshotError | None = None

    @property
    def store(self) -> SnapshotStore:
        """Return the underlying store."""
        return self._store

    def load(self) -> Snapshot:
        """
        Reconstruct the last saved snapshot.

        Returns
        -------
        Snapshot
            The stored snapshot, or the defaults if nothing was saved yet.
            Entries missing from the store are filled from the defaults.

        Raises
        ------
        SnapshotIOError
            If the store cannot be read.
        SnapshotValidationError
            If stored content is malformed.
        """
        defaults = Snapshot.defaults(seed_users=self._seed_users)
        entries = self._store.read_entries()
        if entries is None:
            logger.info("No stored snapshot found; starting from defaults")
            return defaults

        snapshot = Snapshot.from_entries(entries, fallback=defaults)
        if snapshot.session is not None and snapshot.session.id not in snapshot.user_ids():
            logger.warning(
                "Stored session references unknown user %s; session dropped",
                snapshot.session.id,
            )
            snapshot = replace(snapshot, session=None)

        logger.debug(
            "Loaded snapshot: %d users, %d books, %d messages",
            len(snapshot.users),
            len(snapshot.books),
            len(snapshot.messages),
        )
        return snapshot

    def save(self, snapshot: Snapshot) -> bool:
        """
        Overwrite the stored snapshot.

        Parameters
        ----------
        snapshot:
            Snapshot to persist.

        Returns
        -------
        bool
            True if the write succeeded, False if it failed and was logged.
        """
        try:
            self._store.write_entries(snapshot.to_entries())
        except SnapshotError as exc:
            logger.exception("Failed to save snapshot; continuing with in-memory state")
            self.last_error = exc
            return False
        self.last_error = None
        return True
