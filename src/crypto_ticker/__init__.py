"""crypto-ticker: current and historical crypto prices backed by a time series."""

__version__ = "0.1.0"
