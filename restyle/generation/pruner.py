"""Removal of imports left without references after rewriting."""

from __future__ import annotations

from typing import List

from tree_sitter import Node

from ..analysis.symbols import DeclarationKind, ImportBinding, ModuleSymbols, import_bindings
from ..logging import get_logger
from ..syntax import SourceTree

logger = get_logger("pruner")


def prune_unused_imports(tree: SourceTree, symbols: ModuleSymbols | None = None) -> List[str]:
    """Queue deletion of unreferenced import bindings in ``tree``.

    Statements with no used binding are removed whole; otherwise only the unused
    bindings are dropped. Side-effect imports are kept. Returns the removed
    local names; the caller commits the tree.
    """
    table = symbols if symbols is not None and symbols.tree is tree else ModuleSymbols(tree)
    removed: List[str] = []
    for statement in table.import_statements:
        bindings = import_bindings(tree, statement)
        if not bindings:
            continue
        used = [binding for binding in bindings if _is_used(table, binding)]
        if len(used) == len(bindings):
            continue
        kept = {id(binding) for binding in used}
        removed.extend(binding.local for binding in bindings if id(binding) not in kept)
        if not used:
            tree.remove_statement(statement)
        else:
            tree.replace(statement, _rebuild(tree, statement, used))
    if removed:
        logger.debug("Pruned unused imports: %s", ", ".join(removed))
    return removed


def _is_used(symbols: ModuleSymbols, binding: ImportBinding) -> bool:
    declaration = next(
        (
            candidate
            for candidate in symbols.declarations.get(binding.local, [])
            if candidate.kind == DeclarationKind.IMPORT and candidate.node.id == binding.node.id
        ),
        None,
    )
    if declaration is None:
        return True
    for reference in symbols.references(declaration):
        if not any(ancestor.type == "import_statement" for ancestor in SourceTree.ancestors(reference)):
            return True
    return False


def _rebuild(tree: SourceTree, statement: Node, used: List[ImportBinding]) -> str:
    parts: List[str] = []
    named: List[str] = []
    for binding in used:
        if binding.kind == "default":
            parts.append(binding.local)
        elif binding.kind == "namespace":
            parts.append(f"* as {binding.local}")
        else:
            specifier = binding.node.parent
            named.append(tree.text(specifier) if specifier is not None else binding.local)
    if named:
        parts.append("{ " + ", ".join(named) + " }")
    type_only = any(child.type == "type" for child in statement.children)
    source = tree.text(statement.child_by_field_name("source"))
    terminator = ";" if tree.text(statement).rstrip().endswith(";") else ""
    return f"import {'type ' if type_only else ''}{', '.join(parts)} from {source}{terminator}"


__all__ = ["prune_unused_imports"]
