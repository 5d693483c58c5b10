"""Exception taxonomy for style extraction."""

from __future__ import annotations

from pathlib import Path


class ExtractionError(RuntimeError):
    """Base class for failures raised while extracting styles."""


class ElementExtractionError(ExtractionError):
    """Failure that only invalidates the markup element being analysed."""

    def __init__(self, message: str, *, element: str | None = None) -> None:
        super().__init__(message)
        self.element = element


class NamingResolutionError(ElementExtractionError):
    """No enclosing root function could be named for a markup element."""


class UnresolvableBindingError(ElementExtractionError):
    """An attribute references a binding that is not visible at the root body."""


class GroupCollisionError(ExtractionError):
    """A style group received the same attribute twice; the file is abandoned."""


class WriteError(ExtractionError):
    """Writing one of the output files failed."""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(f"Failed to write {path}: {message}")
        self.path = path


class WorkerFailure(ExtractionError):
    """An isolated per-component task exited abnormally."""

    def __init__(self, style: str, component: str, message: str, exit_code: int = 1) -> None:
        super().__init__(f"{style}/{component}: {message}")
        self.style = style
        self.component = component
        self.message = message
        self.exit_code = exit_code


__all__ = [
    "ElementExtractionError",
    "ExtractionError",
    "GroupCollisionError",
    "NamingResolutionError",
    "UnresolvableBindingError",
    "WorkerFailure",
    "WriteError",
]
