"""
Shared fixtures: a controllable clock, fake collaborators and both local stores.
"""

from datetime import datetime, timedelta, timezone

import pytest

from ecoscan.adapters.store.memory_store import MemoryStore
from ecoscan.adapters.store.sqlite_store import SqliteStore
from ecoscan.adapters.vision.base import ClassificationProvider
from ecoscan.orchestrator.contracts import ClassificationResult, WasteCategory
from ecoscan.services.status_store import StatusStore


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: int = 0, hours: int = 0):
        self.now = self.now + timedelta(days=days, hours=hours)


class FakeVision(ClassificationProvider):
    """Returns a fixed result, or raises a fixed error, without touching the network."""

    name = "fake"

    def __init__(self, result: ClassificationResult | None = None, error: Exception | None = None,
                 on_classify=None):
        self.result = result or ClassificationResult(
            item_name="Plastic bottle",
            category=WasteCategory.DRY_RECYCLABLE,
            confidence=0.8,
            disposal_tip="Rinse and clean before disposal.",
        )
        self.error = error
        self.on_classify = on_classify
        self.calls = []

    def classify(self, image_bytes: bytes) -> ClassificationResult:
        self.calls.append(image_bytes)
        if self.on_classify is not None:
            self.on_classify()
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def status() -> StatusStore:
    return StatusStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 10, 17, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def memory_store(status, clock) -> MemoryStore:
    return MemoryStore(status, clock=clock)


@pytest.fixture
def sqlite_store(status, clock, tmp_path) -> SqliteStore:
    return SqliteStore(status, path=str(tmp_path / "ecoscan.db"), clock=clock)


@pytest.fixture(params=["memory", "sqlite"])
def store(request, status, clock, tmp_path):
    if request.param == "memory":
        return MemoryStore(status, clock=clock)
    return SqliteStore(status, path=str(tmp_path / "progress.db"), clock=clock)


@pytest.fixture
def fake_vision() -> FakeVision:
    return FakeVision()


@pytest.fixture
def make_vision():
    """FakeVision factory for tests that need a custom result, error or hook."""
    return FakeVision
