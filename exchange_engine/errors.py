"""
Domain exceptions for the exchange engine.

Notes
-----
Engine operations never raise generic exceptions for expected failures. Each
failure mode maps to one subclass of :class:`ExchangeError` carrying a stable
``kind`` string that UI collaborators may switch on.

Every failure leaves prior state unchanged.
"""

from __future__ import annotations

from typing import ClassVar


class ExchangeError(RuntimeError):
    """Base exception for all exchange engine domain failures."""

    kind: ClassVar[str] = "ExchangeError"


class UnauthenticatedError(ExchangeError):
    """Raised when an operation requires an active session and there is none."""

    kind = "Unauthenticated"


class ForbiddenError(ExchangeError):
    """Raised when the session lacks the role required by an operation."""

    kind = "Forbidden"


class NotFoundOrForbiddenError(ForbiddenError):
    """
    Raised when a target entity is missing or not owned by the session.

    The two cases are indistinguishable to the caller.
    """

    kind = "NotFoundOrForbidden"


class DuplicateEmailError(ExchangeError):
    """Raised when registering an email that already belongs to a user."""

    kind = "DuplicateEmail"


class InvalidCredentialsError(ExchangeError):
    """Raised when no user matches an email/secret pair."""

    kind = "InvalidCredentials"


class BookNotFoundError(ExchangeError):
    """Raised when a book id does not resolve to a listing."""

    kind = "BookNotFound"


class RequestNotFoundError(ExchangeError):
    """Raised when no acceptable request message exists for an id."""

    kind = "RequestNotFound"


class UserNotFoundError(ExchangeError):
    """Raised when a user id does not resolve to a registered user."""

    kind = "UserNotFound"


class CoverUploadFailedError(ExchangeError):
    """Raised when a cover image cannot be resolved to a storable form."""

    kind = "CoverUploadFailed"
