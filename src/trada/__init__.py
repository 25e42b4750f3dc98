"""trada: daily market data and index-membership fetcher."""

__version__ = "0.1.0"
