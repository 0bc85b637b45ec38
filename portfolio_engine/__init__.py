"""Portfolio Engine: owned portfolios of weighted asset allocations."""

__version__ = "0.1.0"
