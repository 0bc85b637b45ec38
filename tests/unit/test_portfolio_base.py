"""Unit tests for portfolio records, clock and rebalance calculator."""

import pytest

from portfolio_engine.portfolio.base import AssetAllocation, Portfolio, RebalanceStatus
from portfolio_engine.portfolio.clock import LogicalClock
from portfolio_engine.portfolio.rebalance import RebalanceCalculator


class TestPortfolio:
    """Test cases for Portfolio dataclass."""

    def test_portfolio_creation(self) -> None:
        """Test creating a portfolio with defaults."""
        portfolio = Portfolio(owner="alice", created_at=10, last_rebalanced=10)

        assert portfolio.owner == "alice"
        assert portfolio.total_value == 0
        assert portfolio.active is True
        assert portfolio.slot_count == 0

    def test_slot_count_above_capacity(self) -> None:
        """Test slot_count cannot exceed 10."""
        with pytest.raises(ValueError, match="slot_count must be in"):
            Portfolio(owner="alice", created_at=0, last_rebalanced=0, slot_count=11)

    def test_negative_total_value(self) -> None:
        """Test total_value must be non-negative."""
        with pytest.raises(ValueError, match="total_value must be non-negative"):
            Portfolio(owner="alice", created_at=0, last_rebalanced=0, total_value=-1)


class TestAssetAllocation:
    """Test cases for AssetAllocation dataclass."""

    def test_allocation_creation(self) -> None:
        """Test creating an allocation."""
        allocation = AssetAllocation(target_percentage=2500, token="token-a")

        assert allocation.current_amount == 0
        assert allocation.target_weight == 0.25

    @pytest.mark.parametrize("value", [-1, 10001])
    def test_target_percentage_out_of_range(self, value: int) -> None:
        """Test target_percentage must be in [0, 10000]."""
        with pytest.raises(ValueError, match="target_percentage must be in"):
            AssetAllocation(target_percentage=value, token="token-a")

    def test_negative_amount(self) -> None:
        """Test current_amount must be non-negative."""
        with pytest.raises(ValueError, match="current_amount must be non-negative"):
            AssetAllocation(target_percentage=0, token="token-a", current_amount=-5)


class TestLogicalClock:
    """Test cases for LogicalClock."""

    def test_advance(self) -> None:
        """Test the clock moves forward."""
        clock = LogicalClock(start=100)

        assert clock.now() == 100
        assert clock.advance(44) == 144
        assert clock.advance() == 145

    def test_set_forward(self) -> None:
        """Test jumping forward."""
        clock = LogicalClock()
        clock.set(500)
        assert clock.now() == 500

    def test_never_moves_backwards(self) -> None:
        """Test the clock is monotonic."""
        clock = LogicalClock(start=10)

        with pytest.raises(ValueError, match="cannot move backwards"):
            clock.set(9)
        with pytest.raises(ValueError, match="ticks must be non-negative"):
            clock.advance(-1)


class TestRebalanceCalculator:
    """Test cases for RebalanceCalculator."""

    @pytest.fixture
    def portfolio(self) -> Portfolio:
        """Portfolio last rebalanced at tick 1000."""
        return Portfolio(
            owner="alice", created_at=900, last_rebalanced=1000, total_value=5000
        )

    @pytest.mark.parametrize(
        "elapsed, expected",
        [(0, False), (1, False), (143, False), (144, False), (145, True), (1000, True)],
    )
    def test_is_due(self, portfolio: Portfolio, elapsed: int, expected: bool) -> None:
        """Test a rebalance is due strictly after 144 ticks."""
        calculator = RebalanceCalculator()
        assert calculator.is_due(portfolio, 1000 + elapsed) is expected

    def test_custom_threshold(self, portfolio: Portfolio) -> None:
        """Test a configured threshold."""
        calculator = RebalanceCalculator(threshold=10)

        assert calculator.is_due(portfolio, 1010) is False
        assert calculator.is_due(portfolio, 1011) is True

    def test_status(self, portfolio: Portfolio) -> None:
        """Test the status carries id and total value."""
        status = RebalanceCalculator().status(7, portfolio, 1200)

        assert status == RebalanceStatus(
            portfolio_id=7, total_value=5000, needs_rebalance=True
        )

    def test_invalid_threshold(self) -> None:
        """Test a negative threshold is rejected."""
        with pytest.raises(ValueError, match="threshold must be >= 0"):
            RebalanceCalculator(threshold=-1)
