"""Data structures and limits for portfolio state management.

This module defines the records kept by the engine and the limits that
bound them.

Records:
- Portfolio: owner, timestamps, aggregate value, active flag, slot count
- AssetAllocation: one weighted slot of a portfolio
- RebalanceStatus: answer to "is this portfolio due for a rebalance?"

Percentages are integers in basis points (10000 = 100%). Timestamps are
ticks of the host's logical clock.
"""

from dataclasses import dataclass
from typing import Any, Optional

from portfolio_engine.utils.config import Config
from portfolio_engine.utils.exceptions import ConfigurationError

MAX_SLOTS = 10
MAX_USER_PORTFOLIOS = 20
MAX_PERCENTAGE = 10000
MIN_INITIAL_SLOTS = 2
REBALANCE_THRESHOLD = 144
DEFAULT_PROTOCOL_FEE_BPS = 25
DEFAULT_ADMIN = "admin"


@dataclass
class Portfolio:
    """Portfolio metadata as stored in the registry.

    Attributes:
        owner: Account that created the portfolio and may mutate it
        created_at: Tick at creation
        last_rebalanced: Tick of the last recorded rebalance
        total_value: Aggregate value in the base unit
        active: Whether the portfolio accepts rebalances
        slot_count: Number of occupied allocation slots
    """

    owner: str
    created_at: int
    last_rebalanced: int
    total_value: int = 0
    active: bool = True
    slot_count: int = 0

    def __post_init__(self):
        """Validate portfolio fields."""
        if not 0 <= self.slot_count <= MAX_SLOTS:
            raise ValueError(
                f"slot_count must be in [0, {MAX_SLOTS}], got {self.slot_count}"
            )
        if self.total_value < 0:
            raise ValueError(
                f"total_value must be non-negative, got {self.total_value}"
            )


@dataclass
class AssetAllocation:
    """Target and held amount for one slot of a portfolio.

    Attributes:
        target_percentage: Target weight in basis points
        current_amount: Quantity of the asset currently held
        token: Opaque reference to the external token contract
    """

    target_percentage: int
    token: str
    current_amount: int = 0

    def __post_init__(self):
        """Validate allocation fields."""
        if not 0 <= self.target_percentage <= MAX_PERCENTAGE:
            raise ValueError(
                f"target_percentage must be in [0, {MAX_PERCENTAGE}], "
                f"got {self.target_percentage}"
            )
        if self.current_amount < 0:
            raise ValueError(
                f"current_amount must be non-negative, got {self.current_amount}"
            )

    @property
    def target_weight(self) -> float:
        """Target percentage as a fraction of 1.0."""
        return self.target_percentage / MAX_PERCENTAGE


@dataclass
class RebalanceStatus:
    """Result of a rebalance-due calculation.

    Attributes:
        portfolio_id: Portfolio the status refers to
        total_value: Portfolio aggregate value at calculation time
        needs_rebalance: True when the threshold has been exceeded
    """

    portfolio_id: int
    total_value: int
    needs_rebalance: bool


@dataclass
class EngineSettings:
    """Limits and defaults applied by the engine.

    Configuration Parameters:
        max_slots: Allocation slots per portfolio (default 10)
        max_user_portfolios: Portfolios per account index (default 20)
        max_percentage: Upper bound for a percentage in basis points (default 10000)
        min_initial_slots: Tokens required on creation (default 2)
        rebalance_threshold: Ticks after which a rebalance is due (default 144)
        materialize_all_slots: Write every provided slot on creation, not
            only slots 0 and 1 (default True)
        protocol_fee_bps: Initial protocol fee (default 25)
        admin: Administrator account (default "admin")
    """

    max_slots: int = MAX_SLOTS
    max_user_portfolios: int = MAX_USER_PORTFOLIOS
    max_percentage: int = MAX_PERCENTAGE
    min_initial_slots: int = MIN_INITIAL_SLOTS
    rebalance_threshold: int = REBALANCE_THRESHOLD
    materialize_all_slots: bool = True
    protocol_fee_bps: int = DEFAULT_PROTOCOL_FEE_BPS
    admin: str = DEFAULT_ADMIN

    def __post_init__(self):
        self._validate()

    def _validate(self) -> None:
        """Validate settings against the hard limits of the data model."""
        if not 1 <= self.max_slots <= MAX_SLOTS:
            raise ConfigurationError(
                f"max_slots must be in [1, {MAX_SLOTS}], got {self.max_slots}"
            )
        if self.max_user_portfolios < 1:
            raise ConfigurationError(
                f"max_user_portfolios must be >= 1, got {self.max_user_portfolios}"
            )
        if not 1 <= self.max_percentage <= MAX_PERCENTAGE:
            raise ConfigurationError(
                f"max_percentage must be in [1, {MAX_PERCENTAGE}], "
                f"got {self.max_percentage}"
            )
        if not 1 <= self.min_initial_slots <= self.max_slots:
            raise ConfigurationError(
                f"min_initial_slots must be in [1, max_slots], "
                f"got {self.min_initial_slots}"
            )
        if self.rebalance_threshold < 0:
            raise ConfigurationError(
                f"rebalance_threshold must be >= 0, got {self.rebalance_threshold}"
            )
        if not 0 <= self.protocol_fee_bps <= self.max_percentage:
            raise ConfigurationError(
                f"protocol_fee_bps must be in [0, {self.max_percentage}], "
                f"got {self.protocol_fee_bps}"
            )
        if not self.admin:
            raise ConfigurationError("admin must be a non-empty account id")

    @classmethod
    def from_config(cls, config: Optional[Config] = None) -> "EngineSettings":
        """Build settings from the ``portfolio`` section of a Config.

        Missing keys keep their defaults.

        Raises:
            ConfigurationError: If a value is not usable
        """
        if config is None:
            return cls()

        section = config.get("portfolio", {}) or {}
        if not isinstance(section, dict):
            raise ConfigurationError("portfolio section must be a mapping")

        int_keys = [
            "max_slots",
            "max_user_portfolios",
            "max_percentage",
            "min_initial_slots",
            "rebalance_threshold",
            "protocol_fee_bps",
        ]
        kwargs = {}
        for key in int_keys:
            if key in section:
                try:
                    kwargs[key] = int(section[key])
                except (TypeError, ValueError) as e:
                    raise ConfigurationError(
                        f"portfolio.{key} must be an integer, got {section[key]!r}"
                    ) from e

        if "materialize_all_slots" in section:
            kwargs["materialize_all_slots"] = _parse_bool(
                "materialize_all_slots", section["materialize_all_slots"]
            )
        if "admin" in section:
            kwargs["admin"] = str(section["admin"])

        return cls(**kwargs)


_TRUE_STRINGS = {"true", "yes", "on", "1"}
_FALSE_STRINGS = {"false", "no", "off", "0"}


def _parse_bool(key: str, value: Any) -> bool:
    """Read a boolean setting, accepting the usual string spellings from env or YAML."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE_STRINGS:
            return True
        if normalized in _FALSE_STRINGS:
            return False
    raise ConfigurationError(f"portfolio.{key} must be a boolean, got {value!r}")
