"""
Shared builders for engine tests.

Engines built here are isolated: each gets its own in-memory snapshot store,
a stepping clock and sequential identifiers so that ordering and ids are
deterministic.
"""

from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone
from typing import Callable

from exchange_engine.clock import SteppingClock
from exchange_engine.data_models import User, UserRole
from exchange_engine.engine import ExchangeEngine
from exchange_engine.snapshot_store.adapter import PersistenceAdapter
from exchange_engine.snapshot_store.api import SnapshotStore
from exchange_engine.snapshot_store.memory_store import MemorySnapshotStore

START = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def sequential_ids(prefix: str = "id") -> Callable[[], str]:
    """Return an id factory producing ``prefix-1``, ``prefix-2``, ..."""
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


def make_engine(
    store: SnapshotStore | None = None,
    *,
    seed_users: bool = False,
) -> ExchangeEngine:
    """Build an engine over `store` (fresh memory store by default)."""
    adapter = PersistenceAdapter(store if store is not None else MemorySnapshotStore(), seed_users=seed_users)
    return ExchangeEngine(
        adapter,
        clock=SteppingClock(start=START, step=timedelta(minutes=1)),
        id_factory=sequential_ids(),
    )


def register_owner(engine: ExchangeEngine, name: str = "Alice Owner", email: str = "alice@example.com") -> User:
    return engine.identity.register(name, email, "s3cret", "555-0100", UserRole.OWNER)


def register_seeker(engine: ExchangeEngine, name: str = "Bob Seeker", email: str = "bob@example.com") -> User:
    return engine.identity.register(name, email, "hunter2", "555-0200", UserRole.SEEKER)


def login_as(engine: ExchangeEngine, user: User) -> None:
    engine.identity.login(user.email, user.secret)
