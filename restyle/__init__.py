"""Extraction of inline presentation attributes into typed accessor modules."""

__version__ = "0.1.0"
