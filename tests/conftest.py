"""Shared fixtures for Portfolio Engine tests."""

from pathlib import Path

import pytest

from portfolio_engine.api.portfolio_api import PortfolioAPI
from portfolio_engine.portfolio.clock import LogicalClock
from portfolio_engine.storage import MemoryStateStore, SQLiteStateStore, StateStore


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> StateStore:
    """State store for each backend."""
    if request.param == "memory":
        state_store = MemoryStateStore(admin="admin", protocol_fee_bps=25)
    else:
        state_store = SQLiteStateStore(
            str(tmp_path / "state.db"), admin="admin", protocol_fee_bps=25
        )
    yield state_store
    state_store.close()


@pytest.fixture
def clock() -> LogicalClock:
    """Clock starting at tick 1000."""
    return LogicalClock(start=1000)


@pytest.fixture
def api(store: StateStore, clock: LogicalClock) -> PortfolioAPI:
    """PortfolioAPI over each backend with default settings."""
    return PortfolioAPI(store=store, clock=clock)
