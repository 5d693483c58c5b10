"""Discovery of component sources per style."""

from __future__ import annotations

from fnmatch import fnmatchcase
from pathlib import Path
from typing import List, Sequence

from .config import RestyleConfig
from .logging import get_logger

logger = get_logger("scanner")

_PLACEHOLDER = "{component}"


def discover_components(config: RestyleConfig, style: str) -> List[str]:
    """Component names available for ``style``, honouring the include and exclude lists."""
    if config.components:
        names = list(dict.fromkeys(config.components))
    else:
        names = _scan_directory(config, style)
    return [name for name in names if not _is_excluded(name, config.exclude_components)]


def _scan_directory(config: RestyleConfig, style: str) -> List[str]:
    pattern = Path(config.paths.components.format(style=style, component=_PLACEHOLDER)).name
    if _PLACEHOLDER not in pattern:
        logger.warning("paths.components has no {component} placeholder in its file name; nothing to scan")
        return []
    prefix, suffix = pattern.split(_PLACEHOLDER, 1)
    directory = config.component_dir(style)
    if not directory.is_dir():
        logger.debug("No component directory for style %s at %s", style, directory)
        return []
    names: List[str] = []
    for path in sorted(directory.iterdir()):
        if not path.is_file():
            continue
        name = path.name
        if not name.startswith(prefix) or not name.endswith(suffix) or len(name) <= len(prefix) + len(suffix):
            continue
        names.append(name[len(prefix) : len(name) - len(suffix)])
    return names


def _is_excluded(name: str, patterns: Sequence[str]) -> bool:
    return any(fnmatchcase(name, pattern) for pattern in patterns)


__all__ = ["discover_components"]
