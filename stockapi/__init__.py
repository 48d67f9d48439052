"""Stock price aggregation and correlation service."""

__version__ = "0.1.0"
