"""Parsing and deferred editing of TSX sources."""

from __future__ import annotations

from .parser import SourceParser, language_for_path
from .tree import SourceTree

__all__ = ["SourceParser", "SourceTree", "language_for_path"]
