"""User-friendly APIs for Portfolio Engine.

Components:
- PortfolioAPI: Portfolio creation, allocation updates, rebalancing and reads
- build_store: State store factory driven by configuration
"""

from portfolio_engine.api.portfolio_api import PortfolioAPI, build_store

__all__ = [
    "PortfolioAPI",
    "build_store",
]
