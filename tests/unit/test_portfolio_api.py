"""Unit tests for PortfolioAPI."""

from pathlib import Path

import pandas as pd
import pytest

from portfolio_engine.api.portfolio_api import PortfolioAPI, build_store
from portfolio_engine.portfolio.base import EngineSettings
from portfolio_engine.portfolio.clock import LogicalClock
from portfolio_engine.storage import MemoryStateStore, SQLiteStateStore
from portfolio_engine.utils.config import Config
from portfolio_engine.utils.exceptions import (
    ConfigurationError,
    InvalidPortfolioError,
    InvalidTokenIdError,
    NotAuthorizedError,
    UserStorageFailedError,
)


class TestPortfolioAPIInit:
    """Test cases for PortfolioAPI construction."""

    def test_defaults(self) -> None:
        """Test default construction uses a memory store at tick 0."""
        api = PortfolioAPI()

        assert isinstance(api.store, MemoryStateStore)
        assert api.clock.now() == 0
        assert api.get_admin() == "admin"
        assert api.get_protocol_fee() == 25

    def test_from_config_memory(self) -> None:
        """Test building a memory-backed API from config."""
        config = Config(
            {"storage": {"backend": "memory"}, "portfolio": {"admin": "root", "protocol_fee_bps": 40}}
        )
        api = PortfolioAPI.from_config(config)

        assert isinstance(api.store, MemoryStateStore)
        assert api.get_admin() == "root"
        assert api.get_protocol_fee() == 40

    def test_from_config_sqlite(self, tmp_path: Path) -> None:
        """Test building a SQLite-backed API from config."""
        db_path = tmp_path / "engine.db"
        config = Config({"storage": {"backend": "SQLite", "db_path": str(db_path)}})
        api = PortfolioAPI.from_config(config, clock=LogicalClock(start=5))

        assert isinstance(api.store, SQLiteStateStore)
        assert api.clock.now() == 5
        assert db_path.exists()
        api.close()

    def test_build_store_unknown_backend(self) -> None:
        """Test unknown backends raise ConfigurationError."""
        config = Config({"storage": {"backend": "redis"}})
        with pytest.raises(ConfigurationError, match="Unknown storage backend"):
            build_store(config, EngineSettings())

    def test_build_store_sqlite_without_path(self) -> None:
        """Test the sqlite backend needs a db_path."""
        config = Config({"storage": {"backend": "sqlite"}})
        with pytest.raises(ConfigurationError, match="db_path is required"):
            build_store(config, EngineSettings())


class TestPortfolioAPIOperations:
    """End-to-end operations over each backend."""

    def test_create_and_read(self, api: PortfolioAPI) -> None:
        """Test a created portfolio is visible through every read."""
        portfolio_id = api.create_portfolio(
            "alice", ["token-a", "token-b", "token-c"], [5000, 5000, 0]
        )

        portfolio = api.get_portfolio(portfolio_id)
        assert portfolio.owner == "alice"
        assert portfolio.slot_count == 3
        assert api.get_portfolio_asset(portfolio_id, 0).target_percentage == 5000
        assert api.get_portfolio_asset(portfolio_id, 1).target_percentage == 5000
        assert api.get_user_portfolios("alice") == [portfolio_id]

    def test_reads_for_unknown_ids(self, api: PortfolioAPI) -> None:
        """Test reads of unknown records return empty values."""
        assert api.get_portfolio(1) is None
        assert api.get_portfolio_asset(1, 0) is None
        assert api.get_user_portfolios("nobody") == []

    def test_rebalance_cycle(self, api: PortfolioAPI) -> None:
        """Test the due flag follows the 144-tick threshold across a rebalance."""
        portfolio_id = api.create_portfolio("alice", ["token-a", "token-b"], [6000, 4000])

        api.clock.advance(144)
        status = api.calculate_rebalance_amounts(portfolio_id)
        assert status.portfolio_id == portfolio_id
        assert status.total_value == 0
        assert status.needs_rebalance is False

        api.clock.advance(1)
        assert api.calculate_rebalance_amounts(portfolio_id).needs_rebalance is True

        api.rebalance_portfolio("alice", portfolio_id)
        assert api.get_portfolio(portfolio_id).last_rebalanced == api.clock.now()
        assert api.calculate_rebalance_amounts(portfolio_id).needs_rebalance is False

    def test_calculate_unknown_portfolio(self, api: PortfolioAPI) -> None:
        """Test the rebalance calculation fails for unknown portfolios."""
        with pytest.raises(InvalidPortfolioError):
            api.calculate_rebalance_amounts(99)

    def test_update_via_api(self, api: PortfolioAPI) -> None:
        """Test allocation updates and their owner check."""
        portfolio_id = api.create_portfolio("alice", ["token-a", "token-b"], [5000, 5000])

        api.update_portfolio_allocation("alice", portfolio_id, 1, 2500)
        assert api.get_portfolio_asset(portfolio_id, 1).target_percentage == 2500

        with pytest.raises(NotAuthorizedError):
            api.update_portfolio_allocation("bob", portfolio_id, 1, 100)
        with pytest.raises(InvalidTokenIdError):
            api.update_portfolio_allocation("alice", portfolio_id, 2, 100)

    def test_user_index_capacity(self, api: PortfolioAPI) -> None:
        """Test 20 portfolios per account, returned in creation order."""
        created = [
            api.create_portfolio("alice", ["token-a", "token-b"], [5000, 5000])
            for _ in range(20)
        ]

        with pytest.raises(UserStorageFailedError):
            api.create_portfolio("alice", ["token-a", "token-b"], [5000, 5000])
        assert api.get_user_portfolios("alice") == created

    def test_deactivate_and_fee(self, api: PortfolioAPI) -> None:
        """Test the added deactivate and fee operations."""
        portfolio_id = api.create_portfolio("alice", ["token-a", "token-b"], [5000, 5000])

        api.deactivate_portfolio("alice", portfolio_id)
        assert api.get_portfolio(portfolio_id).active is False

        api.set_protocol_fee("admin", 75)
        assert api.get_protocol_fee() == 75


class TestAllocationTable:
    """Test cases for get_allocation_table."""

    def test_table(self, api: PortfolioAPI) -> None:
        """Test the table lists every stored slot."""
        portfolio_id = api.create_portfolio(
            "alice", ["token-a", "token-b", "token-c"], [5000, 3000, 2000]
        )

        df = api.get_allocation_table(portfolio_id)

        assert isinstance(df, pd.DataFrame)
        assert df.index.name == "slot"
        assert list(df.index) == [0, 1, 2]
        assert list(df.columns) == [
            "token", "target_percentage", "target_weight", "current_amount",
        ]
        assert df.loc[1, "token"] == "token-b"
        assert df.loc[2, "target_weight"] == pytest.approx(0.2)
        assert df["current_amount"].sum() == 0

    def test_table_two_slot_mode(self) -> None:
        """Test only stored slots appear when two-slot initialization is used."""
        api = PortfolioAPI(settings=EngineSettings(materialize_all_slots=False))
        portfolio_id = api.create_portfolio(
            "alice", ["token-a", "token-b", "token-c"], [5000, 3000, 2000]
        )

        assert list(api.get_allocation_table(portfolio_id).index) == [0, 1]

    def test_table_unknown_portfolio(self, api: PortfolioAPI) -> None:
        """Test unknown portfolios raise InvalidPortfolioError."""
        with pytest.raises(InvalidPortfolioError):
            api.get_allocation_table(3)
