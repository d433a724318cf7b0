"""Shared fixtures: stores, a manual clock and an engine config."""

import pytest

from bunindex.engine_config import EngineConfig, EngineConfigParams
from bunindex.entry_store import EntryStore
from bunindex.scheduler import TickScheduler
from tests.fixtures.sample_entries import make_entry


@pytest.fixture
def scheduler() -> TickScheduler:
    return TickScheduler()


@pytest.fixture
def config(tmp_path) -> EngineConfig:
    return EngineConfig(EngineConfigParams(session_id="test", page_height=1000, page_margin=80, debounce_ms=500, logs_dir=tmp_path / "logs"))


@pytest.fixture
def store() -> EntryStore:
    return EntryStore()


@pytest.fixture
def abc_store() -> EntryStore:
    """A(2 pages), B(1 page), C(3 pages) in that order."""
    return EntryStore([make_entry("A", 2, 0), make_entry("B", 1, 1), make_entry("C", 3, 2)])
