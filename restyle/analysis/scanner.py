"""Enumeration of markup elements and their attributes."""

from __future__ import annotations

from typing import Iterable, Iterator, List, Optional

from tree_sitter import Node

from ..constants import STYLE_ATTRIBUTES
from ..syntax import SourceTree

MARKUP_TYPES = ("jsx_opening_element", "jsx_self_closing_element")


def iter_markup_elements(tree: SourceTree) -> Iterator[Node]:
    """Opening and self-closing elements in document pre-order."""
    return tree.descendants(types=MARKUP_TYPES)


def element_attributes(element: Node) -> List[Node]:
    return [child for child in element.named_children if child.type == "jsx_attribute"]


def attribute_name(tree: SourceTree, attribute: Node) -> str:
    named = attribute.named_children
    return tree.text(named[0]) if named else ""


def attribute_value(attribute: Node) -> Optional[Node]:
    named = attribute.named_children
    return named[1] if len(named) > 1 else None


def tag_name(tree: SourceTree, element: Node) -> str:
    return tree.text(element.child_by_field_name("name"))


def find_attribute(tree: SourceTree, element: Node, name: str) -> Optional[Node]:
    for attribute in element_attributes(element):
        if attribute_name(tree, attribute) == name:
            return attribute
    return None


def presentation_attributes(
    tree: SourceTree, element: Node, allowed: Iterable[str] = STYLE_ATTRIBUTES
) -> List[Node]:
    """Presentation attributes of ``element`` in source order."""
    names = set(allowed)
    return [attribute for attribute in element_attributes(element) if attribute_name(tree, attribute) in names]


__all__ = [
    "MARKUP_TYPES",
    "attribute_name",
    "attribute_value",
    "element_attributes",
    "find_attribute",
    "iter_markup_elements",
    "presentation_attributes",
    "tag_name",
]
