"""
SnapshotStore public API.

This module defines the minimal persistence surface the engine is allowed to
call. The engine speaks in named entries of JSON-compatible values and must
not depend on the details of the underlying medium.

Notes
-----
- A snapshot consists of the entries named in :data:`ENTRY_NAMES`.
- An absent ``session`` entry means no active session.
- Writes overwrite the previous snapshot unconditionally.
"""

from __future__ import annotations

from typing import Any, Final, Mapping, Protocol

USERS_ENTRY: Final[str] = "users"
BOOKS_ENTRY: Final[str] = "books"
MESSAGES_ENTRY: Final[str] = "messages"
SESSION_ENTRY: Final[str] = "session"

ENTRY_NAMES: Final[tuple[str, ...]] = (USERS_ENTRY, BOOKS_ENTRY, MESSAGES_ENTRY, SESSION_ENTRY)


class SnapshotStore(Protocol):
    """
    Persistence API for engine snapshots.

    Implementations own the medium (SQLite, JSON file, memory). They perform no
    validation beyond decoding; interpreting entries belongs to the caller.
    """

    def read_entries(self) -> Mapping[str, Any] | None:
        """
        Return the stored entries.

        Returns
        -------
        Mapping[str, Any] | None
            Decoded entries keyed by name, or None if nothing was ever saved.

        Raises
        ------
        SnapshotIOError
            If the medium cannot be read or decoded.
        """
        raise NotImplementedError

    def write_entries(self, entries: Mapping[str, Any]) -> None:
        """
        Overwrite the stored snapshot with `entries`.

        Parameters
        ----------
        entries:
            JSON-serializable values keyed by entry name. Entries not present
            in the mapping are removed from the medium.

        Raises
        ------
        SnapshotIOError
            If the medium cannot be written.
        """
        raise NotImplementedError
