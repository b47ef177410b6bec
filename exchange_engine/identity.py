"""
Identity store: registered users and the single active session.

Credentials are compared as plain values. Format and strength checks belong to
the UI layer and are not performed here.
"""

from __future__ import annotations

import logging

from .data_models import IdFactory, User, UserRole, new_id
from .errors import DuplicateEmailError, InvalidCredentialsError, UnauthenticatedError
from .state import CommitHook, ExchangeState

logger = logging.getLogger(__name__)


class IdentityStore:
    """
    Registration, login and logout over a shared :class:`ExchangeState`.

    Parameters
    ----------
    state:
        Shared engine state.
    commit:
        Called after every successful mutation.
    id_factory:
        Source of new user identifiers.
    """

    def __init__(
        self,
        state: ExchangeState,
        *,
        commit: CommitHook,
        id_factory: IdFactory = new_id,
    ) -> None:
        self._state = state
        self._commit = commit
        self._new_id = id_factory

    @property
    def users(self) -> tuple[User, ...]:
        """Return all users in registration order."""
        return tuple(self._state.users)

    @property
    def current_user(self) -> User | None:
        """Return the user of the active session, or None."""
        return self._state.session_user()

    def get_user(self, user_id: str) -> User | None:
        """Return the user with `user_id`, or None."""
        return self._state.find_user(user_id)

    def require_session(self) -> User:
        """
        Return the active user.

        Raises
        ------
        UnauthenticatedError
            If no session is active.
        """
        user = self._state.session_user()
        if user is None:
            raise UnauthenticatedError("You must be logged in to do that.")
        return user

    def register(self, name: str, email: str, secret: str, phone: str, role: UserRole) -> User:
        """
        Create a user and make it the active session.

        Parameters
        ----------
        name:
            Display name.
        email:
            Email address; must not belong to any existing user (exact match).
        secret:
            Credential secret.
        phone:
            Contact phone number.
        role:
            Owner or seeker. Fixed for the life of the account.

        Returns
        -------
        User
            The newly registered user.

        Raises
        ------
        DuplicateEmailError
            If a user with `email` already exists.
        """
        if any(u.email == email for u in self._state.users):
            raise DuplicateEmailError("A user with this email already exists.")

        user = User(
            id=self._new_id(),
            name=name,
            email=email,
            secret=secret,
            phone=phone,
            role=UserRole(role),
        )
        self._state.users.append(user)
        self._state.session_id = user.id
        logger.info("Registered %s user %s", user.role.value, user.id)
        self._commit()
        return user

    def login(self, email: str, secret: str) -> bool:
        """
        Activate the session of the user matching `email` and `secret`.

        Returns
        -------
        bool
            True on success.

        Raises
        ------
        InvalidCredentialsError
            If no user matches both values. The session is left untouched.
        """
        for user in self._state.users:
            if user.email == email and user.secret == secret:
                self._state.session_id = user.id
                logger.info("User %s logged in", user.id)
                self._commit()
                return True
        logger.info("Rejected login attempt")
        raise InvalidCredentialsError("Invalid email or password.")

    def logout(self) -> None:
        """Clear the active session. Always succeeds."""
        self._state.session_id = None
        self._commit()
