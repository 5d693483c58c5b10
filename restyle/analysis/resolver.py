"""Root function and ancestor-label resolution for markup elements."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional

from tree_sitter import Node

from ..constants import FUNCTION_TYPES, GROUP_KEY_DELIMITER, LABEL_ATTRIBUTES, WRAPPER_SUFFIX
from ..errors import NamingResolutionError
from ..syntax import SourceTree
from .scanner import attribute_value, find_attribute, tag_name
from .symbols import string_value

_ASSIGNMENT_WRAPPERS = {
    "arguments",
    "call_expression",
    "parenthesized_expression",
    "as_expression",
    "satisfies_expression",
    "non_null_expression",
}


def is_wrapper_label(label: str) -> bool:
    """Default predicate for non-visual scope wrappers such as context providers."""
    return label.endswith(WRAPPER_SUFFIX)


@dataclass
class RootFunction:
    """Nearest nameable function-like declaration owning markup."""

    node: Node
    name: str

    @property
    def body(self) -> Optional[Node]:
        return self.node.child_by_field_name("body")

    @property
    def has_block_body(self) -> bool:
        body = self.body
        return body is not None and body.type == "statement_block"

    def statement_index(self, node: Node) -> Optional[int]:
        """Position of the body statement holding ``node``, comments not counted.

        None for expression bodies and for nodes outside the body.
        """
        body = self.body
        if body is None or body.type != "statement_block":
            return None
        if node.id == body.id or not SourceTree.is_ancestor(body, node):
            return None
        current = node
        while current.parent is not None and current.parent.id != body.id:
            current = current.parent
        statements = [child for child in body.named_children if child.type != "comment"]
        for index, statement in enumerate(statements):
            if statement.id == current.id:
                return index
        return None


@dataclass
class ElementLocation:
    root: RootFunction
    labels: List[str] = field(default_factory=list)

    @property
    def group_key(self) -> str:
        return GROUP_KEY_DELIMITER.join(self.labels)


class RootResolver:
    """Finds the owning root function and naming path of markup elements."""

    def __init__(self, tree: SourceTree, is_wrapper: Callable[[str], bool] = is_wrapper_label) -> None:
        self.tree = tree
        self.is_wrapper = is_wrapper

    def resolve(self, element: Node) -> ElementLocation:
        own_container = element.parent if element.type == "jsx_opening_element" else None
        ancestor_labels: List[str] = []
        for ancestor in SourceTree.ancestors(element):
            if ancestor.type == "jsx_element":
                if own_container is not None and ancestor.id == own_container.id:
                    continue
                opening = ancestor.child_by_field_name("open_tag")
                if opening is not None:
                    ancestor_labels.append(self.label(opening))
            elif ancestor.type in FUNCTION_TYPES:
                name = self.root_name(ancestor)
                if name:
                    root = RootFunction(node=ancestor, name=name)
                    return ElementLocation(root=root, labels=self._path(root, ancestor_labels, element))
        raise NamingResolutionError(
            "Could not determine style function name.",
            element=tag_name(self.tree, element),
        )

    def label(self, element: Node) -> str:
        for name in LABEL_ATTRIBUTES:
            attribute = find_attribute(self.tree, element, name)
            literal = string_value(self.tree, attribute_value(attribute)) if attribute is not None else None
            if literal:
                return literal
        return tag_name(self.tree, element)

    def root_name(self, function: Node) -> Optional[str]:
        name_node = function.child_by_field_name("name")
        if name_node is not None:
            return self.tree.text(name_node)
        current = function.parent
        while current is not None and current.type in _ASSIGNMENT_WRAPPERS:
            current = current.parent
        if current is not None and current.type == "variable_declarator":
            target = current.child_by_field_name("name")
            if target is not None and target.type == "identifier":
                return self.tree.text(target)
        return None

    def _path(self, root: RootFunction, ancestor_labels: List[str], element: Node) -> List[str]:
        own = self.label(element)
        labels = [label for label in reversed(ancestor_labels) if not self.is_wrapper(label)]
        if labels and labels[0] == root.name:
            labels = labels[1:]
        if not self.is_wrapper(own) or not labels:
            labels.append(own)
        return labels


__all__ = ["ElementLocation", "RootFunction", "RootResolver", "is_wrapper_label"]
