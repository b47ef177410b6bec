from __future__ import annotations

import pytest

from engine_helpers import make_engine
from exchange_engine.engine import ExchangeEngine
from exchange_engine.snapshot_store.memory_store import MemorySnapshotStore


@pytest.fixture
def memory_store() -> MemorySnapshotStore:
    return MemorySnapshotStore()


@pytest.fixture
def engine(memory_store: MemorySnapshotStore) -> ExchangeEngine:
    """A fresh engine with no users, backed by `memory_store`."""
    return make_engine(memory_store)
