from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from exchange_engine.data_models import (
    Book,
    Message,
    User,
    UserRole,
    datetime_from_iso_utc,
    datetime_to_iso_utc,
)


def test_loads_records_written_by_earlier_clients() -> None:
    book = Book.from_dict(
        {
            "id": "1700000000000",
            "title": "Dune",
            "author": "Frank Herbert",
            "location": "Springfield",
            "contact": "john@example.com",
            "ownerId": "1",
            "ownerName": "John Doe",
            "available": True,
            "createdAt": "2024-05-01T10:15:30.123Z",
        }
    )

    assert book.genre is None
    assert book.cover_url is None
    assert book.created_at == datetime(2024, 5, 1, 10, 15, 30, 123000, tzinfo=timezone.utc)


def test_message_flags_default_to_false() -> None:
    message = Message.from_dict(
        {
            "id": "m1",
            "senderId": "2",
            "senderName": "Jane Smith",
            "receiverId": "1",
            "bookId": "b1",
            "bookTitle": "Dune",
            "content": "hi",
            "createdAt": "2024-05-01T10:15:30Z",
        }
    )

    assert message.is_request is False
    assert message.is_read is False
    assert message.partner_of("1") == "2"
    assert message.partner_of("2") == "1"
    assert message.involves("1")
    assert not message.involves("3")


def test_user_serializes_secret_as_password() -> None:
    user = User(id="1", name="Ana", email="ana@example.com", secret="pw", phone="", role=UserRole.SEEKER)

    payload = user.to_dict()

    assert payload["password"] == "pw"
    assert payload["role"] == "seeker"
    assert User.from_dict(payload) == user
    assert not user.is_owner


def test_book_omits_unset_optional_fields() -> None:
    created = datetime(2026, 1, 1, tzinfo=timezone.utc)
    book = Book("b1", "Dune", "FH", "Springfield", "c", "1", "Ana", created)

    payload = book.to_dict()

    assert "genre" not in payload
    assert "coverUrl" not in payload
    assert Book.from_dict(payload) == book


def test_missing_keys_are_reported() -> None:
    with pytest.raises(ValueError, match="ownerId"):
        Book.from_dict({"id": "b1", "title": "t", "author": "a", "location": "l", "contact": "c"})


def test_iso_helpers_normalize_to_utc() -> None:
    local = datetime(2026, 1, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))

    assert datetime_to_iso_utc(local) == "2026-01-01T12:00:00.000000Z"
    assert datetime_from_iso_utc("2026-01-01T12:00:00") == datetime(2026, 1, 1, 12, tzinfo=timezone.utc)
    with pytest.raises(ValueError):
        datetime_to_iso_utc(datetime(2026, 1, 1))
