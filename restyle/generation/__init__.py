"""Accessor module generation and rewrites of the original source."""

from __future__ import annotations

from .builder import StyleFileBuilder, StyleFunction, StyleGroup
from .manipulations import ManipulationQueue

__all__ = ["ManipulationQueue", "StyleFileBuilder", "StyleFunction", "StyleGroup"]
