import threading

import pytest

from sequential_planner import display
from sequential_planner.models import MemoryRecord, OperationDescriptor, SearchResult
from sequential_planner.registry import CapabilityRegistry


class FakeMemory:
    """Scripted semantic store recording every call."""

    def __init__(self, results=None, search_error=None, upsert_error=None):
        # results: collection -> [(key, score), ...] in the order the store returns them
        self.results = results or {}
        self.search_error = search_error
        self.upsert_error = upsert_error
        self.records = {}
        self.upserts = []
        self.gets = []
        self.searches = []
        self._lock = threading.Lock()

    def upsert(self, collection, key, embedding_text, description):
        if self.upsert_error is not None:
            raise self.upsert_error
        with self._lock:
            self.upserts.append((collection, key, embedding_text, description))
            self.records[(collection, key)] = MemoryRecord(
                collection=collection,
                key=key,
                embedding_text=embedding_text,
                description=description,
            )

    def get(self, collection, key):
        with self._lock:
            self.gets.append((collection, key))
            return self.records.get((collection, key))

    def search(self, collection, query, k, min_score):
        self.searches.append((collection, query, k, min_score))
        if self.search_error is not None:
            raise self.search_error
        return [SearchResult(key=key, score=score) for key, score in self.results.get(collection, [])]


@pytest.fixture(autouse=True)
def quiet_display():
    display.set_quiet(True)
    yield
    display.set_quiet(False)


@pytest.fixture
def fake_memory():
    return FakeMemory


@pytest.fixture
def small_registry():
    """A.op1 adds numbers, B.op2 sends email."""
    registry = CapabilityRegistry()
    registry.register(OperationDescriptor(group="A", name="op1", description="adds numbers"))
    registry.register(OperationDescriptor(group="B", name="op2", description="sends email"))
    return registry
