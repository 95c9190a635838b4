"""Fixtures shared by the Cine Pulse test-suite."""

from __future__ import annotations

import pytest  # type: ignore

from cinepulse.storage import SQLiteContentStore

from .fakes import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(tmp_path, clock):
    store = SQLiteContentStore(str(tmp_path / "data"), clock=clock)
    store.initialize()
    yield store
    store.close()
