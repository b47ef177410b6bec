"""In-memory SnapshotStore for tests and ephemeral engines."""

from __future__ import annotations

import copy
from typing import Any, Mapping

from .api import SnapshotStore


class MemorySnapshotStore(SnapshotStore):
    """
    SnapshotStore that keeps a deep copy of the last written entries.

    Attributes
    ----------
    writes:
        Number of successful writes, useful for asserting commit behavior.
    """

    def __init__(self, entries: Mapping[str, Any] | None = None) -> None:
        self._entries: dict[str, Any] | None = copy.deepcopy(dict(entries)) if entries else None
        self.writes = 0

    def read_entries(self) -> Mapping[str, Any] | None:
        """See SnapshotStore.read_entries."""
        if self._entries is None:
            return None
        return copy.deepcopy(self._entries)

    def write_entries(self, entries: Mapping[str, Any]) -> None:
        """See SnapshotStore.write_entries."""
        self._entries = copy.deepcopy(dict(entries))
        self.writes += 1
