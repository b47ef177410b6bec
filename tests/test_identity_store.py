from __future__ import annotations

import pytest

from engine_helpers import register_owner, register_seeker
from exchange_engine.data_models import UserRole
from exchange_engine.engine import ExchangeEngine
from exchange_engine.errors import DuplicateEmailError, InvalidCredentialsError
from exchange_engine.snapshot_store.memory_store import MemorySnapshotStore


def test_register_creates_user_and_activates_session(engine: ExchangeEngine) -> None:
    user = register_owner(engine)

    assert engine.identity.users == (user,)
    assert engine.identity.current_user == user
    assert user.role is UserRole.OWNER


def test_duplicate_email_is_rejected_and_user_set_unchanged(engine: ExchangeEngine) -> None:
    first = register_owner(engine, email="same@example.com")

    with pytest.raises(DuplicateEmailError) as excinfo:
        register_seeker(engine, email="same@example.com")

    assert excinfo.value.kind == "DuplicateEmail"
    assert engine.identity.users == (first,)
    assert engine.identity.current_user == first


def test_email_uniqueness_is_case_sensitive(engine: ExchangeEngine) -> None:
    register_owner(engine, email="Case@example.com")
    register_seeker(engine, email="case@example.com")

    assert len(engine.identity.users) == 2


def test_login_requires_exact_email_and_secret(engine: ExchangeEngine) -> None:
    owner = register_owner(engine)
    engine.identity.logout()

    assert engine.identity.login(owner.email, owner.secret) is True
    assert engine.identity.current_user == owner


@pytest.mark.parametrize(
    ("email", "secret"),
    [
        ("alice@example.com", "wrong"),
        ("nobody@example.com", "s3cret"),
        ("ALICE@example.com", "s3cret"),
    ],
)
def test_failed_login_never_changes_session(engine: ExchangeEngine, email: str, secret: str) -> None:
    register_owner(engine)
    seeker = register_seeker(engine)

    with pytest.raises(InvalidCredentialsError) as excinfo:
        engine.identity.login(email, secret)

    assert engine.identity.current_user == seeker
    assert "Invalid email or password" in str(excinfo.value)


def test_logout_always_succeeds(engine: ExchangeEngine) -> None:
    engine.identity.logout()
    assert engine.identity.current_user is None

    register_owner(engine)
    engine.identity.logout()
    assert engine.identity.current_user is None


def test_each_identity_mutation_commits(engine: ExchangeEngine, memory_store: MemorySnapshotStore) -> None:
    owner = register_owner(engine)
    engine.identity.logout()
    engine.identity.login(owner.email, owner.secret)

    assert memory_store.writes == 3


def test_failed_operations_do_not_commit(engine: ExchangeEngine, memory_store: MemorySnapshotStore) -> None:
    register_owner(engine)
    writes = memory_store.writes

    with pytest.raises(DuplicateEmailError):
        register_owner(engine)
    with pytest.raises(InvalidCredentialsError):
        engine.identity.login("alice@example.com", "nope")

    assert memory_store.writes == writes
