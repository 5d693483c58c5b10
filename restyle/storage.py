"""Output writing for rewritten components and accessor modules."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import List, Mapping

from .errors import WriteError
from .logging import get_logger

logger = get_logger("storage")


def write_text(path: Path, text: str) -> Path:
    """Write ``text`` to ``path``, creating parent directories."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise WriteError(path, str(exc)) from exc
    logger.debug("Wrote %s", path)
    return path


def write_outputs(outputs: Mapping[Path, str]) -> List[Path]:
    """Write all outputs concurrently and wait for every one of them.

    The first failure is raised once the remaining writes have finished.
    """
    if not outputs:
        return []
    written: List[Path] = []
    errors: List[WriteError] = []
    with ThreadPoolExecutor(max_workers=len(outputs)) as pool:
        futures = {pool.submit(write_text, Path(path), text): Path(path) for path, text in outputs.items()}
        for future in as_completed(futures):
            try:
                written.append(future.result())
            except WriteError as exc:
                logger.error("%s", exc)
                errors.append(exc)
    if errors:
        raise errors[0]
    return [Path(path) for path in outputs if Path(path) in written]


__all__ = ["write_outputs", "write_text"]
