"""Static analysis of component sources: markup, roots, symbols and types."""

from __future__ import annotations

from .resolver import ElementLocation, RootFunction, RootResolver, is_wrapper_label
from .scanner import iter_markup_elements, presentation_attributes
from .symbols import ModuleSymbols, Project
from .types import TypeContext, TypeResolver

__all__ = [
    "ElementLocation",
    "ModuleSymbols",
    "Project",
    "RootFunction",
    "RootResolver",
    "TypeContext",
    "TypeResolver",
    "is_wrapper_label",
    "iter_markup_elements",
    "presentation_attributes",
]
