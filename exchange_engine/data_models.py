"""Data models for the exchange engine.

This module defines the canonical, typed records owned by the engine: users,
book listings and messages, plus the derived conversation view.

Records are immutable; state changes replace a record with an updated copy via
:func:`dataclasses.replace`. Serialized keys follow the persisted snapshot
layout (camelCase), so existing snapshots restore verbatim.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Mapping, Self

IdFactory = Callable[[], str]


class UserRole(str, Enum):
    """Roles a user may hold. Fixed at registration."""

    OWNER = "owner"
    SEEKER = "seeker"


def new_id() -> str:
    """Return a new opaque identifier."""

    return uuid.uuid4().hex


def datetime_to_iso_utc(dt: datetime) -> str:
    """Serialize a datetime as a UTC ISO-8601 string.

    Parameters
    ----------
    dt
        A timezone-aware datetime.

    Returns
    -------
    str
        ISO-8601 UTC timestamp with microseconds and a ``Z`` suffix.

    Raises
    ------
    ValueError
        If `dt` is naive (has no timezone).
    """

    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    text = dt.astimezone(timezone.utc).isoformat(timespec="microseconds")
    return text.replace("+00:00", "Z")


def datetime_from_iso_utc(value: str) -> datetime:
    """Parse an ISO-8601 timestamp as an aware UTC datetime.

    Accepts a ``Z`` suffix or an explicit offset; naive values are taken as UTC.

    Raises
    ------
    ValueError
        If parsing fails.
    """

    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _require_keys(payload: Mapping[str, Any], keys: set[str], *, context: str) -> None:
    missing = keys.difference(payload.keys())
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ValueError(f"Missing required keys in {context}: {missing_str}")


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text else None


@dataclass(frozen=True, slots=True)
class User:
    """A registered user.

    Attributes
    ----------
    id:
        Opaque unique identifier.
    name:
        Display name.
    email:
        Unique email address, compared exactly.
    secret:
        Credential secret, stored and compared as a plain value.
    phone:
        Contact phone number.
    role:
        Owner or seeker.
    """

    id: str
    name: str
    email: str
    secret: str
    phone: str
    role: UserRole

    @property
    def is_owner(self) -> bool:
        """Return True if this user may manage listings."""
        return self.role is UserRole.OWNER

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Self:
        """Construct a :class:`User` from a persisted mapping."""

        _require_keys(payload, {"id", "name", "email", "password", "role"}, context="user")
        return cls(
            id=str(payload["id"]),
            name=str(payload["name"]),
            email=str(payload["email"]),
            secret=str(payload["password"]),
            phone=str(payload.get("phone", "")),
            role=UserRole(str(payload["role"])),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert this model to a JSON-serializable dict."""

        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "password": self.secret,
            "phone": self.phone,
            "role": self.role.value,
        }


@dataclass(frozen=True, slots=True)
class Book:
    """A book listing offered by an owner.

    ``owner_name`` is a snapshot of the owner's name at creation time.
    ``cover_url`` is either an http(s) URL or an embedded ``data:`` URL.
    """

    id: str
    title: str
    author: str
    location: str
    contact: str
    owner_id: str
    owner_name: str
    created_at: datetime
    available: bool = True
    genre: str | None = None
    cover_url: str | None = None

    def matches(self, needle: str) -> bool:
        """
        Return True if `needle` occurs in a searchable field.

        Parameters
        ----------
        needle:
            Lower-cased search text.
        """
        haystacks = [self.title, self.author, self.location]
        if self.genre:
            haystacks.append(self.genre)
        return any(needle in text.lower() for text in haystacks)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Self:
        """Construct a :class:`Book` from a persisted mapping."""

        _require_keys(
            payload,
            {"id", "title", "author", "location", "contact", "ownerId", "ownerName", "createdAt"},
            context="book",
        )
        return cls(
            id=str(payload["id"]),
            title=str(payload["title"]),
            author=str(payload["author"]),
            location=str(payload["location"]),
            contact=str(payload["contact"]),
            owner_id=str(payload["ownerId"]),
            owner_name=str(payload["ownerName"]),
            created_at=datetime_from_iso_utc(payload["createdAt"]),
            available=bool(payload.get("available", True)),
            genre=_optional_str(payload.get("genre")),
            cover_url=_optional_str(payload.get("coverUrl")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert this model to a JSON-serializable dict."""

        payload: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "location": self.location,
            "contact": self.contact,
            "ownerId": self.owner_id,
            "ownerName": self.owner_name,
            "available": self.available,
            "createdAt": datetime_to_iso_utc(self.created_at),
        }
        if self.genre is not None:
            payload["genre"] = self.genre
        if self.cover_url is not None:
            payload["coverUrl"] = self.cover_url
        return payload


@dataclass(frozen=True, slots=True)
class Message:
    """A message between two users about one listing.

    ``sender_name`` and ``book_title`` are captured at send time and stay
    readable after the listing is deleted.
    """

    id: str
    sender_id: str
    sender_name: str
    receiver_id: str
    book_id: str
    book_title: str
    content: str
    created_at: datetime
    is_request: bool = False
    is_read: bool = False

    def involves(self, user_id: str) -> bool:
        """Return True if `user_id` sent or received this message."""
        return self.sender_id == user_id or self.receiver_id == user_id

    def partner_of(self, user_id: str) -> str:
        """Return the id of the other participant, seen from `user_id`."""
        return self.sender_id if self.receiver_id == user_id else self.receiver_id

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Self:
        """Construct a :class:`Message` from a persisted mapping."""

        _require_keys(
            payload,
            {
                "id",
                "senderId",
                "senderName",
                "receiverId",
                "bookId",
                "bookTitle",
                "content",
                "createdAt",
            },
            context="message",
        )
        return cls(
            id=str(payload["id"]),
            sender_id=str(payload["senderId"]),
            sender_name=str(payload["senderName"]),
            receiver_id=str(payload["receiverId"]),
            book_id=str(payload["bookId"]),
            book_title=str(payload["bookTitle"]),
            content=str(payload["content"]),
            created_at=datetime_from_iso_utc(payload["createdAt"]),
            is_request=bool(payload.get("isRequest", False)),
            is_read=bool(payload.get("isRead", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert this model to a JSON-serializable dict."""

        return {
            "id": self.id,
            "senderId": self.sender_id,
            "senderName": self.sender_name,
            "receiverId": self.receiver_id,
            "bookId": self.book_id,
            "bookTitle": self.book_title,
            "content": self.content,
            "isRequest": self.is_request,
            "isRead": self.is_read,
            "createdAt": datetime_to_iso_utc(self.created_at),
        }


@dataclass(frozen=True, slots=True)
class Conversation:
    """
    Derived view of all messages between the session user and one partner.

    Attributes
    ----------
    partner_id:
        Id of the other participant.
    partner_name:
        Display name of the other participant.
    book_id:
        Listing referenced by the earliest message of the conversation.
    book_title:
        Denormalized title from the earliest message.
    last_message:
        Content of the most recent message.
    last_message_at:
        Timestamp of the most recent message.
    unread_count:
        Messages from the partner to the session user not yet read.
    is_request:
        Whether the earliest message was a borrow request.
    message_count:
        Number of messages in the conversation.
    """

    partner_id: str
    partner_name: str
    book_id: str
    book_title: str
    last_message: str
    last_message_at: datetime
    unread_count: int
    is_request: bool
    message_count: int
