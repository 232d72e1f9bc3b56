"""Freight quote (cotações) API."""

__version__ = "2.1.0"
