"""Postboard: accounts and short posts over a single JSON document store."""

__version__ = "0.1.0"
