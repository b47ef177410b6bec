"""
Snapshot model: the complete persisted state of the engine.

A snapshot maps one-to-one onto the named entries of a SnapshotStore:

- ``users``    -> list of user records
- ``books``    -> list of book records
- ``messages`` -> list of message records
- ``session``  -> the active user record, absent when nobody is logged in
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Self, Sequence

from ..data_models import Book, Message, User, UserRole
from .api import BOOKS_ENTRY, ENTRY_NAMES, MESSAGES_ENTRY, SESSION_ENTRY, USERS_ENTRY
from .errors import SnapshotValidationError

logger = logging.getLogger(__name__)

SEED_USERS: tuple[User, ...] = (
    User(
        id="1",
        name="John Doe",
        email="john@example.com",
        secret="password123",
        phone="555-123-4567",
        role=UserRole.OWNER,
    ),
    User(
        id="2",
        name="Jane Smith",
        email="jane@example.com",
        secret="password123",
        phone="555-987-6543",
        role=UserRole.SEEKER,
    ),
)


def _decode_records(payload: Any, factory: Any, *, entry: str) -> tuple[Any, ...]:
    if not isinstance(payload, list):
        raise SnapshotValidationError(f"Snapshot entry {entry!r} must be a list")
    records = []
    for index, item in enumerate(payload):
        if not isinstance(item, Mapping):
            raise SnapshotValidationError(f"Snapshot entry {entry!r}[{index}] must be an object")
        try:
            records.append(factory(item))
        except (ValueError, TypeError) as exc:
            raise SnapshotValidationError(f"Invalid record in {entry!r}[{index}]: {exc}") from exc
    return tuple(records)


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Immutable point-in-time copy of all engine collections and the session."""

    users: tuple[User, ...]
    books: tuple[Book, ...]
    messages: tuple[Message, ...]
    session: User | None = None

    @classmethod
    def defaults(cls, *, seed_users: bool = True) -> Self:
        """
        Return the state used when nothing has been saved yet.

        Parameters
        ----------
        seed_users:
            If True, include the fixed seed owner and seeker accounts.
        """
        return cls(users=SEED_USERS if seed_users else (), books=(), messages=())

    @classmethod
    def from_entries(cls, entries: Mapping[str, Any], *, fallback: "Snapshot") -> Self:
        """
        Decode stored entries into a Snapshot.

        Parameters
        ----------
        entries:
            Decoded entries as returned by a SnapshotStore. Names outside
            ``ENTRY_NAMES`` are logged and ignored.
        fallback:
            Snapshot supplying any entry that is missing from `entries`.

        Raises
        ------
        SnapshotValidationError
            If an entry is present but malformed.
        """
        unknown = sorted(name for name in entries if name not in ENTRY_NAMES)
        if unknown:
            logger.warning("Ignoring unknown snapshot entries: %s", ", ".join(unknown))

        users = (
            _decode_records(entries[USERS_ENTRY], User.from_dict, entry=USERS_ENTRY)
            if USERS_ENTRY in entries
            else fallback.users
        )
        books = (
            _decode_records(entries[BOOKS_ENTRY], Book.from_dict, entry=BOOKS_ENTRY)
            if BOOKS_ENTRY in entries
            else fallback.books
        )
        messages = (
            _decode_records(entries[MESSAGES_ENTRY], Message.from_dict, entry=MESSAGES_ENTRY)
            if MESSAGES_ENTRY in entries
            else fallback.messages
        )

        session: User | None = None
        raw_session = entries.get(SESSION_ENTRY)
        if raw_session:
            if not isinstance(raw_session, Mapping):
                raise SnapshotValidationError("Snapshot entry 'session' must be an object")
            try:
                session = User.from_dict(raw_session)
            except (ValueError, TypeError) as exc:
                raise SnapshotValidationError(f"Invalid session record: {exc}") from exc

        return cls(users=users, books=books, messages=messages, session=session)

    def to_entries(self) -> dict[str, Any]:
        """Encode this snapshot as JSON-serializable named entries."""
        entries: dict[str, Any] = {
            USERS_ENTRY: [u.to_dict() for u in self.users],
            BOOKS_ENTRY: [b.to_dict() for b in self.books],
            MESSAGES_ENTRY: [m.to_dict() for m in self.messages],
        }
        if self.session is not None:
            entries[SESSION_ENTRY] = self.session.to_dict()
        return entries

    def user_ids(self) -> Sequence[str]:
        """Return user ids in registration order."""
        return [u.id for u in self.users]
