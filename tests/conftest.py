from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Callable

import pytest

from restyle.syntax import SourceParser, SourceTree
from tests._fixtures.project_builder import ProjectBuilder


@pytest.fixture
def project_builder(tmp_path: Path) -> ProjectBuilder:
    """Provide a reusable project builder rooted at the pytest tmp_path."""
    return ProjectBuilder(tmp_path)


@pytest.fixture(scope="session")
def source_parser() -> SourceParser:
    return SourceParser()


@pytest.fixture
def parse(source_parser: SourceParser) -> Callable[[str], SourceTree]:
    """Parse dedented TSX source into a SourceTree."""

    def _parse(source: str, path: str = "component.tsx") -> SourceTree:
        return source_parser.parse(textwrap.dedent(source).lstrip("\n"), Path(path))

    return _parse
