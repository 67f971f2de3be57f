"""
Shared pytest fixtures for codewallet tests.

Provides an in-memory durable medium (optionally failing) and a
deterministic clock so timestamp ordering can be asserted.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from codewallet.errors import PersistenceError
from codewallet.persistence import Persistence
from codewallet.store import FragmentStore


class MemoryMedium:
    """Dict-backed KeyValueMedium. Set fail_reads/fail_writes to simulate outages."""

    def __init__(self, records: Optional[dict[str, str]] = None):
        self.records: dict[str, str] = dict(records or {})
        self.fail_reads = False
        self.fail_writes = False
        self.writes: list[str] = []

    def get(self, key: str) -> Optional[str]:
        if self.fail_reads:
            raise PersistenceError("simulated read failure")
        return self.records.get(key)

    def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise PersistenceError("simulated write failure")
        self.writes.append(key)
        self.records[key] = value

    def delete(self, key: str) -> bool:
        return self.records.pop(key, None) is not None

    def keys(self) -> list[str]:
        return sorted(self.records)

    def close(self) -> None:
        pass


class StepClock:
    """Returns a canonical timestamp one second later on every call."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, tzinfo=timezone.utc)):
        self._now = start

    def __call__(self) -> str:
        self._now += timedelta(seconds=1)
        return self._now.strftime("%Y-%m-%dT%H:%M:%S.%f")


@pytest.fixture
def medium():
    """A fresh, empty in-memory medium."""
    return MemoryMedium()


@pytest.fixture
def persistence(medium):
    return Persistence(medium)


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def store(persistence, clock):
    """An empty FragmentStore over the in-memory medium."""
    return FragmentStore(persistence, clock=clock)


def _check_invariants(store: FragmentStore) -> None:
    registered = store.tag_names()
    assert len(registered) == len(set(registered)), "duplicate tag names"
    for fragment in store.list_fragments():
        missing = set(fragment.tags) - set(registered)
        assert not missing, f"{fragment.id} carries unregistered tags {missing}"
        assert fragment.updated_at >= fragment.created_at
    assert set(store._colors) <= set(registered), "stale color entries"


@pytest.fixture
def check_invariants():
    """Assert registry, color and timestamp invariants on a store."""
    return _check_invariants
