"""
Conversation engine: messages between users about listings.

Messages are append-only. The only permitted change is the receiver marking a
message as read, and that change never reverts.

Accepting a request is the one compound operation in the engine: it reserves
the listing and appends an acceptance message to the requester inside
``ExchangeState.atomic()``, so readers observe both writes or neither.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from .clock import Clock, SystemClock
from .data_models import Conversation, IdFactory, Message, new_id
from .errors import BookNotFoundError, RequestNotFoundError, UserNotFoundError
from .identity import IdentityStore
from .state import CommitHook, ExchangeState

logger = logging.getLogger(__name__)

UNKNOWN_PARTNER_NAME = "Unknown"


def acceptance_text(book_title: str) -> str:
    """Return the content of the system-generated acceptance message."""
    return (
        f'Your request for "{book_title}" has been accepted! '
        "The book is now reserved for you. Reply here to arrange the exchange."
    )


class ConversationEngine:
    """
    Send, read and accept messages over a shared state.

    Parameters
    ----------
    state:
        Shared engine state.
    identity:
        Identity store used to resolve the session and partner names.
    commit:
        Called after every successful mutation.
    clock:
        Source of message timestamps.
    id_factory:
        Source of new message identifiers.
    """

    def __init__(
        self,
        state: ExchangeState,
        identity: IdentityStore,
        *,
        commit: CommitHook,
        clock: Clock | None = None,
        id_factory: IdFactory = new_id,
    ) -> None:
        self._state = state
        self._identity = identity
        self._commit = commit
        self._clock = clock if clock is not None else SystemClock()
        self._new_id = id_factory

    def send_message(
        self,
        receiver_id: str,
        book_id: str,
        content: str,
        is_request: bool = False,
    ) -> Message:
        """
        Send a message from the session user about a listing.

        Sending to oneself or about an unavailable listing is allowed.

        Parameters
        ----------
        receiver_id:
            Recipient user id.
        book_id:
            Listing the message is about.
        content:
            Message text.
        is_request:
            True for a borrow request.

        Returns
        -------
        Message
            The stored message (unread).

        Raises
        ------
        UnauthenticatedError
            If no session is active.
        BookNotFoundError
            If `book_id` does not resolve to a listing.
        UserNotFoundError
            If `receiver_id` does not resolve to a user.
        """
        sender = self._identity.require_session()
        book = self._state.find_book(book_id)
        if book is None:
            raise BookNotFoundError("That book is no longer listed.")
        if self._state.find_user(receiver_id) is None:
            raise UserNotFoundError("The recipient does not exist.")

        message = Message(
            id=self._new_id(),
            sender_id=sender.id,
            sender_name=sender.name,
            receiver_id=receiver_id,
            book_id=book.id,
            book_title=book.title,
            content=content,
            is_request=is_request,
            is_read=False,
            created_at=self._clock.now(),
        )
        self._state.messages.append(message)
        logger.info(
            "%s %s sent from %s to %s about listing %s",
            "Request" if is_request else "Message",
            message.id,
            sender.id,
            receiver_id,
            book.id,
        )
        self._commit()
        return message

    def messages_for_current_user(self) -> list[Message]:
        """Return every message the session user sent or received, insertion order."""
        user = self._identity.current_user
        if user is None:
            return []
        return [m for m in self._state.messages if m.involves(user.id)]

    def conversation_with(self, partner_id: str) -> list[Message]:
        """Return the messages between the session user and `partner_id`, oldest first."""
        user = self._identity.current_user
        if user is None:
            return []
        thread = [
            m
            for m in self._state.messages
            if m.involves(user.id) and m.partner_of(user.id) == partner_id
        ]
        return sorted(thread, key=lambda m: m.created_at)

    def conversations_for_current_user(self) -> list[Conversation]:
        """
        Group the session user's messages by the other participant.

        Returns
        -------
        list[Conversation]
            One entry per partner, most recent activity first. Book details
            come from the earliest message, last-message details from the most
            recent one. The partner name is taken from the latest incoming
            message; without one it is looked up in the identity store.
        """
        user = self._identity.current_user
        if user is None:
            return []

        groups: dict[str, list[Message]] = {}
        for message in self._state.messages:
            if message.involves(user.id):
                groups.setdefault(message.partner_of(user.id), []).append(message)

        conversations: list[Conversation] = []
        for partner_id, messages in groups.items():
            first = min(messages, key=lambda m: m.created_at)
            last = messages[0]
            for message in messages[1:]:
                if message.created_at > last.created_at:
                    last = message

            incoming = [m for m in messages if m.receiver_id == user.id and m.sender_id == partner_id]
            conversations.append(
                Conversation(
                    partner_id=partner_id,
                    partner_name=self._partner_name(partner_id, incoming),
                    book_id=first.book_id,
                    book_title=first.book_title,
                    last_message=last.content,
                    last_message_at=last.created_at,
                    unread_count=sum(1 for m in incoming if not m.is_read),
                    is_request=first.is_request,
                    message_count=len(messages),
                )
            )

        conversations.sort(key=lambda c: c.last_message_at, reverse=True)
        return conversations

    def _partner_name(self, partner_id: str, incoming: list[Message]) -> str:
        if incoming:
            latest = max(incoming, key=lambda m: m.created_at)
            return latest.sender_name
        partner = self._state.find_user(partner_id)
        if partner is not None:
            return partner.name
        return UNKNOWN_PARTNER_NAME

    def mark_as_read(self, message_id: str) -> None:
        """
        Mark a message read if the session user is its receiver.

        Otherwise does nothing. Calling it again has no further effect.

        Raises
        ------
        UnauthenticatedError
            If no session is active.
        """
        user = self._identity.require_session()
        message = self._state.find_message(message_id)
        if message is None or message.receiver_id != user.id or message.is_read:
            return
        self._state.replace_message(replace(message, is_read=True))
        self._commit()

    def mark_conversation_read(self, partner_id: str) -> int:
        """
        Mark every unread message from `partner_id` to the session user as read.

        Returns
        -------
        int
            Number of messages that changed.

        Raises
        ------
        UnauthenticatedError
            If no session is active.
        """
        user = self._identity.require_session()
        changed = 0
        for message in list(self._state.messages):
            if message.receiver_id == user.id and message.sender_id == partner_id and not message.is_read:
                self._state.replace_message(replace(message, is_read=True))
                changed += 1
        if changed:
            self._commit()
        return changed

    def unread_count(self) -> int:
        """Return the number of unread messages addressed to the session user (0 without one)."""
        user = self._identity.current_user
        if user is None:
            return 0
        return sum(1 for m in self._state.messages if m.receiver_id == user.id and not m.is_read)

    def accept_request(self, message_id: str) -> Message:
        """
        Accept a borrow request addressed to the session user.

        Reserves the listing (``available`` becomes False) and appends an
        acceptance message from the accepter to the requester. Both writes are
        applied together before the snapshot is committed.

        Parameters
        ----------
        message_id:
            Id of the request message.

        Returns
        -------
        Message
            The acceptance message.

        Raises
        ------
        UnauthenticatedError
            If no session is active.
        RequestNotFoundError
            If no request with that id is addressed to the session user.
        BookNotFoundError
            If the requested listing has since been deleted.
        """
        accepter = self._identity.require_session()
        request = self._state.find_message(message_id)
        if request is None or not request.is_request or request.receiver_id != accepter.id:
            raise RequestNotFoundError("No such request for you to accept.")

        book = self._state.find_book(request.book_id)
        if book is None:
            raise BookNotFoundError("The requested book is no longer listed.")

        acceptance = Message(
            id=self._new_id(),
            sender_id=accepter.id,
            sender_name=accepter.name,
            receiver_id=request.sender_id,
            book_id=book.id,
            book_title=book.title,
            content=acceptance_text(book.title),
            is_request=False,
            is_read=False,
            created_at=self._clock.now(),
        )

        with self._state.atomic() as state:
            state.replace_book(replace(book, available=False))
            state.messages.append(acceptance)

        logger.info(
            "Request %s accepted by %s; listing %s reserved for %s",
            request.id,
            accepter.id,
            book.id,
            request.sender_id,
        )
        self._commit()
        return acceptance
