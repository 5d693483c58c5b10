"""Logging utilities for restyle commands and extraction workers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, MutableMapping, Tuple

_LOGGER_NAME = "restyle"
_CONSOLE_FORMAT = "[restyle] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the restyle hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


class JobLogger(logging.LoggerAdapter):
    """Prefixes every message with the ``style/component`` being extracted."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        extra = self.extra or {}
        job = extra.get("job")
        return (f"{job}: {msg}" if job else msg), kwargs


def job_logger(name: str, style: str = "", component: str = "") -> JobLogger:
    job = f"{style}/{component}" if style and component else component or style
    return JobLogger(get_logger(name), {"job": job})


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Configure the restyle logger with console output and optional file sink."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = _reset(level)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


def configure_worker_logging(level: int) -> None:
    """Console-only logging for pool worker processes; the parent owns the file sink."""
    _reset(level)


def current_level() -> int:
    return logging.getLogger(_LOGGER_NAME).getEffectiveLevel()


def _reset(level: int) -> logging.Logger:
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers to avoid duplicate output when the CLI is invoked multiple times.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(stream_handler)
    return logger


__all__ = ["JobLogger", "configure_logging", "configure_worker_logging", "current_level", "get_logger", "job_logger"]
