"""Semantic and geo-aware public alert search."""

__version__ = "0.1.0"
