"""Tree-sitter powered TSX/TypeScript parsing."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

import tree_sitter_typescript as tstypescript
from tree_sitter import Language, Parser

from .tree import SourceTree

_LANGUAGE_FACTORIES = {
    "tsx": tstypescript.language_tsx,
    "typescript": tstypescript.language_typescript,
}


def language_for_path(path: Path | str | None) -> str:
    """Pick the grammar for a file; JSX-capable unless it is plain TypeScript."""
    if path is None:
        return "tsx"
    lower = str(path).lower()
    if lower.endswith(".ts") or lower.endswith(".mts") or lower.endswith(".cts"):
        return "typescript"
    return "tsx"


class SourceParser:
    """Caches one tree-sitter parser per grammar."""

    def __init__(self) -> None:
        self._parsers: Dict[str, Parser] = {}

    def parser(self, language_key: str) -> Parser:
        parser = self._parsers.get(language_key)
        if parser is not None:
            return parser
        factory = _LANGUAGE_FACTORIES.get(language_key)
        if factory is None:
            raise ValueError(f"Unsupported language: {language_key}")
        parser = Parser(Language(factory()))
        self._parsers[language_key] = parser
        return parser

    def parse(
        self, source: str | bytes, path: Path | str | None = None, language: Optional[str] = None
    ) -> SourceTree:
        language_key = language or language_for_path(path)
        return SourceTree(source, self.parser(language_key), path=Path(path) if path else None)


__all__ = ["SourceParser", "language_for_path"]
