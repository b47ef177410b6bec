"""
Shared in-process engine state.

``ExchangeState`` is the single mutable snapshot that the identity, listing and
conversation stores operate on. It is created explicitly and passed to each
store; there is no module-level instance.

Only the stores mutate it. Readers receive tuples or lists copied from it.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Iterator

from .data_models import Book, Message, User
from .snapshot_store.snapshot import Snapshot

CommitHook = Callable[[], None]


class ExchangeState:
    """
    Mutable collections of users, books and messages plus the active session.

    Parameters
    ----------
    snapshot:
        Initial contents. Defaults to an empty state.
    """

    def __init__(self, snapshot: Snapshot | None = None) -> None:
        self.users: list[User] = []
        self.books: list[Book] = []
        self.messages: list[Message] = []
        self.session_id: str | None = None
        self.load(snapshot or Snapshot(users=(), books=(), messages=()))

    def load(self, snapshot: Snapshot) -> None:
        """Replace every collection and the session with `snapshot`."""
        self.users = list(snapshot.users)
        self.books = list(snapshot.books)
        self.messages = list(snapshot.messages)
        self.session_id = snapshot.session.id if snapshot.session is not None else None

    def snapshot(self) -> Snapshot:
        """Return an immutable copy of the current state."""
        return Snapshot(
            users=tuple(self.users),
            books=tuple(self.books),
            messages=tuple(self.messages),
            session=self.session_user(),
        )

    @contextmanager
    def atomic(self) -> Iterator["ExchangeState"]:
        """
        Apply a group of mutations all-or-nothing.

        On any exception inside the block the collections and session are
        restored to their state at entry and the exception is re-raised.
        """
        saved = (list(self.users), list(self.books), list(self.messages), self.session_id)
        try:
            yield self
        except BaseException:
            self.users, self.books, self.messages, self.session_id = saved
            raise

    def session_user(self) -> User | None:
        """Return the active user, or None."""
        if self.session_id is None:
            return None
        return self.find_user(self.session_id)

    def find_user(self, user_id: str) -> User | None:
        for user in self.users:
            if user.id == user_id:
                return user
        return None

    def find_book(self, book_id: str) -> Book | None:
        for book in self.books:
            if book.id == book_id:
                return book
        return None

    def find_message(self, message_id: str) -> Message | None:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None

    def replace_book(self, updated: Book) -> None:
        """Swap the stored book with the same id for `updated`, keeping its position."""
        for index, book in enumerate(self.books):
            if book.id == updated.id:
                self.books[index] = updated
                return
        raise KeyError(updated.id)

    def replace_message(self, updated: Message) -> None:
        """Swap the stored message with the same id for `updated`, keeping its position."""
        for index, message in enumerate(self.messages):
            if message.id == updated.id:
                self.messages[index] = updated
                return
        raise KeyError(updated.id)
