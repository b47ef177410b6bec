"""
Listing store: book listings offered by owners.

Authorization is re-checked inside every operation; callers' UI-level gating
is never trusted.

Notes
-----
``toggle_availability`` hard-fails without a session but silently ignores a
missing or foreign listing, while ``delete_listing`` fails in both cases. The
asymmetry is kept for behavioral parity.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from .clock import Clock, SystemClock
from .covers import CoverOptions, CoverSource, resolve_cover
from .data_models import Book, IdFactory, new_id
from .errors import CoverUploadFailedError, ForbiddenError, NotFoundOrForbiddenError
from .identity import IdentityStore
from .state import CommitHook, ExchangeState

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ListingResult:
    """
    Outcome of adding a listing.

    Attributes
    ----------
    book:
        The created listing.
    cover_error:
        Set when a supplied cover could not be resolved; the listing was
        created without a cover.
    """

    book: Book
    cover_error: CoverUploadFailedError | None = None


class ListingStore:
    """
    Create, toggle, delete and search listings over a shared state.

    Parameters
    ----------
    state:
        Shared engine state.
    identity:
        Identity store used to resolve the session.
    commit:
        Called after every successful mutation.
    clock:
        Source of listing timestamps.
    id_factory:
        Source of new listing identifiers.
    cover_options:
        Limits for embedded cover images.
    """

    def __init__(
        self,
        state: ExchangeState,
        identity: IdentityStore,
        *,
        commit: CommitHook,
        clock: Clock | None = None,
        id_factory: IdFactory = new_id,
        cover_options: CoverOptions | None = None,
    ) -> None:
        self._state = state
        self._identity = identity
        self._commit = commit
        self._clock = clock if clock is not None else SystemClock()
        self._new_id = id_factory
        self._cover_options = cover_options or CoverOptions()

    @property
    def listings(self) -> tuple[Book, ...]:
        """Return all listings in insertion order."""
        return tuple(self._state.books)

    def get_listing(self, book_id: str) -> Book | None:
        """Return the listing with `book_id`, or None."""
        return self._state.find_book(book_id)

    def listings_for_owner(self, owner_id: str) -> list[Book]:
        """Return the listings of one owner in insertion order."""
        return [b for b in self._state.books if b.owner_id == owner_id]

    def recent_listings(self, limit: int = 3) -> list[Book]:
        """Return up to `limit` listings, newest first."""
        ordered = sorted(self._state.books, key=lambda b: b.created_at, reverse=True)
        return ordered[: max(limit, 0)]

    def add_listing(
        self,
        title: str,
        author: str,
        location: str,
        contact: str,
        *,
        genre: str | None = None,
        cover: CoverSource | None = None,
    ) -> ListingResult:
        """
        Create a listing owned by the session user.

        Parameters
        ----------
        title, author, location, contact:
            Listing details.
        genre:
            Optional genre.
        cover:
            Optional cover image as a URL or raw bytes.

        Returns
        -------
        ListingResult
            The new listing and, if the cover could not be resolved, the
            cover error. A cover failure never prevents creation.

        Raises
        ------
        UnauthenticatedError
            If no session is active.
        ForbiddenError
            If the session user is not an owner.
        """
        owner = self._identity.require_session()
        if not owner.is_owner:
            raise ForbiddenError("Only book owners can add listings.")

        cover_url: str | None = None
        cover_error: CoverUploadFailedError | None = None
        if cover is not None:
            try:
                cover_url = resolve_cover(cover, options=self._cover_options)
            except CoverUploadFailedError as exc:
                logger.warning("Cover for new listing %r not stored: %s", title, exc)
                cover_error = exc

        book = Book(
            id=self._new_id(),
            title=title,
            author=author,
            genre=genre or None,
            location=location,
            contact=contact,
            owner_id=owner.id,
            owner_name=owner.name,
            available=True,
            cover_url=cover_url,
            created_at=self._clock.now(),
        )
        self._state.books.append(book)
        logger.info("Listing %s added by owner %s", book.id, owner.id)
        self._commit()
        return ListingResult(book=book, cover_error=cover_error)

    def toggle_availability(self, book_id: str) -> None:
        """
        Flip the available flag of a listing owned by the session user.

        Does nothing when the listing does not exist or belongs to someone else.

        Raises
        ------
        UnauthenticatedError
            If no session is active.
        """
        user = self._identity.require_session()
        book = self._state.find_book(book_id)
        if book is None or book.owner_id != user.id:
            return

        self._state.replace_book(replace(book, available=not book.available))
        self._commit()

    def delete_listing(self, book_id: str) -> Book:
        """
        Permanently remove a listing owned by the session user.

        Messages referring to the listing are kept; they carry their own copy
        of the title.

        Returns
        -------
        Book
            The removed listing.

        Raises
        ------
        UnauthenticatedError
            If no session is active.
        NotFoundOrForbiddenError
            If the listing does not exist or is owned by someone else.
        """
        user = self._identity.require_session()
        book = self._state.find_book(book_id)
        if book is None or book.owner_id != user.id:
            raise NotFoundOrForbiddenError("You can only delete your own books.")

        self._state.books = [b for b in self._state.books if b.id != book_id]
        logger.info("Listing %s deleted by owner %s", book_id, user.id)
        self._commit()
        return book

    def search(self, query: str) -> list[Book]:
        """
        Case-insensitive substring search over title, author, genre and location.

        A blank query matches every listing. Results keep insertion order.
        """
        if not query.strip():
            return list(self._state.books)
        needle = query.lower()
        return [b for b in self._state.books if b.matches(needle)]
