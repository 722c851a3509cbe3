"""Retention and eviction engine for the restaurant analytics store."""

__version__ = "0.1.0"
