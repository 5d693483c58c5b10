"""Core data models shared across restyle components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional


@dataclass(frozen=True)
class ImportRequirement:
    """An import the generated or rewritten module needs.

    Exactly one of ``name`` (a named import, possibly ``a as b``) or ``clause``
    (a default binding or ``* as ns`` namespace clause) is set.
    """

    module: str
    name: Optional[str] = None
    clause: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.name is None) == (self.clause is None):
            raise ValueError("ImportRequirement needs exactly one of name or clause")


@dataclass
class TypeInfo:
    """Textual type of a parameter plus the imports it depends on."""

    alternatives: List[str] = field(default_factory=list)
    is_optional: bool = False
    imports: List[ImportRequirement] = field(default_factory=list)

    @property
    def text(self) -> str:
        return " | ".join(self.alternatives)

    def add_alternative(self, text: str) -> None:
        if text and text not in self.alternatives:
            self.alternatives.append(text)

    def merge(self, other: "TypeInfo") -> None:
        for alternative in other.alternatives:
            self.add_alternative(alternative)
        self.is_optional = self.is_optional or other.is_optional
        for requirement in other.imports:
            if requirement not in self.imports:
                self.imports.append(requirement)


@dataclass
class Parameter:
    """Value passed from the root function into a style accessor."""

    source_name: str
    destination_name: Optional[str] = None
    type: Optional[TypeInfo] = None

    @property
    def name(self) -> str:
        return self.destination_name or self.source_name

    @property
    def is_renamed(self) -> bool:
        return bool(self.destination_name) and self.destination_name != self.source_name

    def argument(self) -> str:
        """Property assignment used when calling the accessor."""
        if not self.destination_name or self.destination_name == self.source_name:
            return self.source_name
        return f"{self.destination_name}: {self.source_name}"


@dataclass
class PropertyEntry:
    attribute_name: str
    value_text: str


@dataclass
class VariableHoist:
    """Module-scope declaration moved into the generated module."""

    name: str
    text: str
    exported: bool = False


class ManipulationPass(Enum):
    BEFORE_GENERATION = "before_generation"
    AFTER_GENERATION = "after_generation"


@dataclass
class Manipulation:
    """Deferred mutation of a source tree tagged with the pass it belongs to."""

    action: Callable[[], None]
    pass_: ManipulationPass
    label: str = ""


@dataclass(frozen=True)
class ExtractionJob:
    """Serializable descriptor of one (style, component) extraction."""

    project_root: str
    style: str
    component: str


@dataclass
class ExtractionResult:
    """Outputs produced for one job.

    ``accessor_source`` is None when nothing was extracted.
    """

    style: str
    component: str
    source: str
    accessor_source: Optional[str]
    output_path: Optional[Path] = None
    accessor_path: Optional[Path] = None
    functions: int = 0
    groups: int = 0
    skipped_elements: int = 0

    @property
    def changed(self) -> bool:
        return self.accessor_source is not None


@dataclass
class JobOutcome:
    """Completion record returned by a worker to the coordinator."""

    style: str
    component: str
    ok: bool
    functions: int = 0
    groups: int = 0
    skipped_elements: int = 0
    error: Optional[str] = None
    exit_code: int = 0


__all__ = [
    "ExtractionJob",
    "ExtractionResult",
    "ImportRequirement",
    "JobOutcome",
    "Manipulation",
    "ManipulationPass",
    "Parameter",
    "PropertyEntry",
    "TypeInfo",
    "VariableHoist",
]
