"""Project-wide symbol table: imports, declarations, exports and scopes."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Set, Tuple

from tree_sitter import Node

from ..config import DEFAULT_ALIASES
from ..constants import FUNCTION_TYPES
from ..models import ImportRequirement
from ..syntax import SourceParser, SourceTree

_RESOLVE_SUFFIXES = (".tsx", ".ts", ".d.ts", ".jsx", ".js")
_INDEX_FILES = ("index.tsx", "index.ts", "index.d.ts", "index.jsx", "index.js")
_STRIP_SUFFIXES = (".d.ts", ".tsx", ".ts", ".jsx", ".js")

_TRANSPARENT_WRAPPERS = {"export_statement", "ambient_declaration"}


class DeclarationKind(Enum):
    IMPORT = "import"
    PARAMETER = "parameter"
    VARIABLE = "variable"
    FUNCTION = "function"
    CLASS = "class"
    TYPE = "type"


class BindingKind(Enum):
    PLAIN = "plain"
    OBJECT = "object"
    REST = "rest"
    ARRAY = "array"


VALUE_KINDS = frozenset(
    {
        DeclarationKind.IMPORT,
        DeclarationKind.PARAMETER,
        DeclarationKind.VARIABLE,
        DeclarationKind.FUNCTION,
        DeclarationKind.CLASS,
    }
)
TYPE_KINDS = frozenset({DeclarationKind.IMPORT, DeclarationKind.TYPE, DeclarationKind.CLASS})


@dataclass
class ImportBinding:
    """One local name introduced by an import statement."""

    local: str
    module: str
    kind: str
    imported: str
    statement: Node
    node: Node
    specifier_text: str = ""

    def requirement(self, module: Optional[str] = None) -> ImportRequirement:
        target = module or self.module
        if self.kind == "named":
            return ImportRequirement(module=target, name=self.specifier_text or self.local)
        if self.kind == "namespace":
            return ImportRequirement(module=target, clause=f"* as {self.local}")
        return ImportRequirement(module=target, clause=self.local)


@dataclass
class Declaration:
    """A name bound somewhere in a source file."""

    name: str
    kind: DeclarationKind
    node: Node
    scope: Node
    statement: Optional[Node] = None
    declarator: Optional[Node] = None
    owner: Optional[Node] = None
    binding: BindingKind = BindingKind.PLAIN
    key: Optional[str] = None
    pattern: Optional[Node] = None
    import_binding: Optional[ImportBinding] = None
    exported: bool = False

    @property
    def is_module_scope(self) -> bool:
        return self.scope.type == "program"


def string_value(tree: SourceTree, node: Optional[Node]) -> Optional[str]:
    if node is None or node.type not in {"string", "template_string"}:
        return None
    text = tree.text(node)
    if len(text) >= 2 and text[0] in "\"'`" and text[-1] == text[0]:
        return text[1:-1]
    return None


def pattern_bindings(
    tree: SourceTree, pattern: Optional[Node]
) -> Iterator[Tuple[str, Node, BindingKind, Optional[str], Optional[Node]]]:
    """Yield ``(name, node, binding kind, property key, object pattern)`` for a binding pattern."""
    if pattern is None:
        return
    if pattern.type == "identifier":
        yield tree.text(pattern), pattern, BindingKind.PLAIN, None, None
    elif pattern.type == "assignment_pattern":
        yield from pattern_bindings(tree, pattern.child_by_field_name("left"))
    elif pattern.type == "object_pattern":
        for child in pattern.named_children:
            if child.type == "shorthand_property_identifier_pattern":
                name = tree.text(child)
                yield name, child, BindingKind.OBJECT, name, pattern
            elif child.type == "object_assignment_pattern":
                left = child.child_by_field_name("left")
                if left is not None and left.type == "shorthand_property_identifier_pattern":
                    name = tree.text(left)
                    yield name, left, BindingKind.OBJECT, name, pattern
                else:
                    yield from pattern_bindings(tree, left)
            elif child.type == "pair_pattern":
                key = _property_key(tree, child.child_by_field_name("key"))
                value = child.child_by_field_name("value")
                if value is not None and value.type == "assignment_pattern":
                    value = value.child_by_field_name("left")
                if value is not None and value.type == "identifier":
                    yield tree.text(value), value, BindingKind.OBJECT, key, pattern
                else:
                    yield from pattern_bindings(tree, value)
            elif child.type == "rest_pattern":
                for target in child.named_children:
                    if target.type == "identifier":
                        yield tree.text(target), target, BindingKind.REST, None, pattern
    elif pattern.type == "array_pattern":
        for child in pattern.named_children:
            for name, node, _kind, _key, _pattern in pattern_bindings(tree, child):
                yield name, node, BindingKind.ARRAY, None, None
    elif pattern.type == "rest_pattern":
        for target in pattern.named_children:
            if target.type == "identifier":
                yield tree.text(target), target, BindingKind.REST, None, None


def _property_key(tree: SourceTree, node: Optional[Node]) -> Optional[str]:
    if node is None:
        return None
    literal = string_value(tree, node)
    return literal if literal is not None else tree.text(node)


def import_bindings(tree: SourceTree, statement: Node) -> List[ImportBinding]:
    module = string_value(tree, statement.child_by_field_name("source"))
    if module is None:
        return []
    bindings: List[ImportBinding] = []
    for clause in statement.named_children:
        if clause.type != "import_clause":
            continue
        for child in clause.named_children:
            if child.type == "identifier":
                bindings.append(
                    ImportBinding(tree.text(child), module, "default", "default", statement, child)
                )
            elif child.type == "namespace_import":
                for target in child.named_children:
                    if target.type == "identifier":
                        bindings.append(
                            ImportBinding(tree.text(target), module, "namespace", "*", statement, target)
                        )
            elif child.type == "named_imports":
                for specifier in child.named_children:
                    if specifier.type != "import_specifier":
                        continue
                    name_node = specifier.child_by_field_name("name")
                    alias_node = specifier.child_by_field_name("alias")
                    local_node = alias_node or name_node
                    if local_node is None or name_node is None:
                        continue
                    text = tree.text(specifier)
                    if text.startswith("type "):
                        text = text[len("type ") :]
                    bindings.append(
                        ImportBinding(
                            tree.text(local_node),
                            module,
                            "named",
                            tree.text(name_node),
                            statement,
                            local_node,
                            specifier_text=text,
                        )
                    )
    return bindings


def statement_declarations(tree: SourceTree, statement: Node, scope: Node) -> Iterator[Declaration]:
    """Declarations introduced by one statement of a block or program."""
    outer = statement
    exported = False
    node = statement
    while node is not None and node.type in _TRANSPARENT_WRAPPERS:
        if node.type == "export_statement":
            exported = True
        inner = node.child_by_field_name("declaration")
        if inner is None:
            inner = next(
                (child for child in node.named_children if child.type not in {"comment", "decorator"}),
                None,
            )
            if inner is not None and inner.type not in _DECLARATION_TYPES and inner.type not in _TRANSPARENT_WRAPPERS:
                inner = None
        node = inner
    if node is None:
        return

    if node.type == "import_statement":
        for binding in import_bindings(tree, node):
            yield Declaration(
                name=binding.local,
                kind=DeclarationKind.IMPORT,
                node=binding.node,
                scope=scope,
                statement=outer,
                import_binding=binding,
            )
    elif node.type in {"lexical_declaration", "variable_declaration"}:
        for declarator in node.named_children:
            if declarator.type != "variable_declarator":
                continue
            for name, binding_node, kind, key, pattern in pattern_bindings(
                tree, declarator.child_by_field_name("name")
            ):
                yield Declaration(
                    name=name,
                    kind=DeclarationKind.VARIABLE,
                    node=binding_node,
                    scope=scope,
                    statement=outer,
                    declarator=declarator,
                    owner=declarator,
                    binding=kind,
                    key=key,
                    pattern=pattern,
                    exported=exported,
                )
    elif node.type in {"function_declaration", "generator_function_declaration", "function_signature"}:
        name_node = node.child_by_field_name("name")
        if name_node is not None:
            yield Declaration(
                name=tree.text(name_node),
                kind=DeclarationKind.FUNCTION,
                node=name_node,
                scope=scope,
                statement=outer,
                declarator=node,
                exported=exported,
            )
    elif node.type in {"class_declaration", "abstract_class_declaration", "enum_declaration"}:
        name_node = node.child_by_field_name("name")
        if name_node is not None:
            yield Declaration(
                name=tree.text(name_node),
                kind=DeclarationKind.CLASS,
                node=name_node,
                scope=scope,
                statement=outer,
                declarator=node,
                exported=exported,
            )
    elif node.type in {"interface_declaration", "type_alias_declaration"}:
        name_node = node.child_by_field_name("name")
        if name_node is not None:
            yield Declaration(
                name=tree.text(name_node),
                kind=DeclarationKind.TYPE,
                node=name_node,
                scope=scope,
                statement=outer,
                declarator=node,
                exported=exported,
            )


_DECLARATION_TYPES = {
    "lexical_declaration",
    "variable_declaration",
    "function_declaration",
    "generator_function_declaration",
    "function_signature",
    "class_declaration",
    "abstract_class_declaration",
    "enum_declaration",
    "interface_declaration",
    "type_alias_declaration",
}


def parameter_declarations(tree: SourceTree, function: Node) -> Iterator[Declaration]:
    single = function.child_by_field_name("parameter")
    if single is not None and single.type == "identifier":
        yield Declaration(
            name=tree.text(single),
            kind=DeclarationKind.PARAMETER,
            node=single,
            scope=function,
            owner=single,
        )
    parameters = function.child_by_field_name("parameters")
    if parameters is not None:
        for parameter in parameters.named_children:
            if parameter.type not in {"required_parameter", "optional_parameter"}:
                continue
            pattern = parameter.child_by_field_name("pattern")
            for name, node, kind, key, object_pattern in pattern_bindings(tree, pattern):
                yield Declaration(
                    name=name,
                    kind=DeclarationKind.PARAMETER,
                    node=node,
                    scope=function,
                    owner=parameter,
                    binding=kind,
                    key=key,
                    pattern=object_pattern,
                )
    if function.type in {"function_expression", "function"}:
        name_node = function.child_by_field_name("name")
        if name_node is not None:
            yield Declaration(
                name=tree.text(name_node),
                kind=DeclarationKind.FUNCTION,
                node=name_node,
                scope=function,
                declarator=function,
            )


class ModuleSymbols:
    """Import, declaration and export tables of one source file plus scope lookup."""

    def __init__(self, tree: SourceTree) -> None:
        self.tree = tree
        self.imports: Dict[str, ImportBinding] = {}
        self.import_statements: List[Node] = []
        self.declarations: Dict[str, List[Declaration]] = {}
        self.exports: Dict[str, str] = {}
        self.reexports: List[Tuple[str, Optional[Dict[str, str]]]] = []
        self._scopes: Dict[int, Dict[str, List[Declaration]]] = {}
        self._build()

    def _build(self) -> None:
        program = self.tree.root
        table = self._scope_table(program)
        self.declarations = table
        for statement in program.named_children:
            if statement.type == "import_statement":
                self.import_statements.append(statement)
            if statement.type == "export_statement":
                self._collect_exports(statement)
        for declarations in table.values():
            for declaration in declarations:
                if declaration.import_binding is not None:
                    self.imports[declaration.name] = declaration.import_binding
                if declaration.exported:
                    self.exports[declaration.name] = declaration.name

    def _collect_exports(self, statement: Node) -> None:
        tree = self.tree
        source = string_value(tree, statement.child_by_field_name("source"))
        children = statement.children
        if any(child.type == "default" for child in children):
            declaration = statement.child_by_field_name("declaration") or statement.child_by_field_name("value")
            name_node = declaration.child_by_field_name("name") if declaration is not None else None
            if declaration is not None and declaration.type == "identifier":
                self.exports["default"] = tree.text(declaration)
            elif name_node is not None:
                self.exports["default"] = tree.text(name_node)
            else:
                self.exports["default"] = "default"
            return
        clause = next((child for child in children if child.type == "export_clause"), None)
        if clause is not None:
            mapping: Dict[str, str] = {}
            for specifier in clause.named_children:
                if specifier.type != "export_specifier":
                    continue
                name_node = specifier.child_by_field_name("name")
                alias_node = specifier.child_by_field_name("alias")
                if name_node is None:
                    continue
                local = tree.text(name_node)
                exported = tree.text(alias_node) if alias_node is not None else local
                mapping[exported] = local
            if source is not None:
                self.reexports.append((source, mapping))
            else:
                self.exports.update(mapping)
            return
        if source is not None:
            namespace = next((child for child in children if child.type == "namespace_export"), None)
            if namespace is not None:
                names = [tree.text(child) for child in namespace.named_children if child.type == "identifier"]
                if names:
                    self.exports[names[-1]] = names[-1]
                return
            self.reexports.append((source, None))

    def module_declaration(self, name: str, kinds: Iterable[DeclarationKind] = VALUE_KINDS) -> Optional[Declaration]:
        allowed = set(kinds)
        for declaration in self.declarations.get(name, []):
            if declaration.kind in allowed:
                return declaration
        return None

    def resolve(
        self, node: Node, name: Optional[str] = None, kinds: Iterable[DeclarationKind] = VALUE_KINDS
    ) -> Optional[Declaration]:
        """Find the declaration visible from ``node`` for ``name`` (defaults to node text)."""
        lookup = name if name is not None else self.tree.text(node)
        allowed = set(kinds)
        scope: Optional[Node] = node.parent
        while scope is not None:
            for declaration in self._scope_table(scope).get(lookup, []):
                if declaration.kind in allowed:
                    return declaration
            scope = scope.parent
        return None

    def references(self, declaration: Declaration) -> Iterator[Node]:
        """Identifier nodes in this file that resolve to ``declaration``."""
        for node in self.tree.descendants(
            types=("identifier", "shorthand_property_identifier", "type_identifier")
        ):
            if node.id == declaration.node.id or self.tree.text(node) != declaration.name:
                continue
            kinds = TYPE_KINDS if node.type == "type_identifier" else VALUE_KINDS
            resolved = self.resolve(node, kinds=kinds)
            if resolved is not None and resolved.node.id == declaration.node.id:
                yield node

    def is_exported(self, name: str) -> bool:
        return name in self.exports.values() or name in self.exports

    def _scope_table(self, scope: Node) -> Dict[str, List[Declaration]]:
        cached = self._scopes.get(scope.id)
        if cached is not None:
            return cached
        table: Dict[str, List[Declaration]] = {}
        declarations: Iterable[Declaration] = ()
        if scope.type in FUNCTION_TYPES:
            declarations = parameter_declarations(self.tree, scope)
        elif scope.type in {"program", "statement_block", "class_body", "switch_body"}:
            declarations = (
                declaration
                for statement in scope.named_children
                for declaration in statement_declarations(self.tree, statement, scope)
            )
        for declaration in declarations:
            table.setdefault(declaration.name, []).append(declaration)
        self._scopes[scope.id] = table
        return table


@dataclass
class ResolvedDeclaration:
    tree: SourceTree
    declaration: Declaration


@dataclass
class Project:
    """Parsed files of one project, resolved lazily and cached for the whole run."""

    root: Path
    aliases: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_ALIASES))
    parser: SourceParser = field(default_factory=SourceParser)

    def __post_init__(self) -> None:
        self.root = Path(self.root).resolve()
        self._trees: Dict[Path, SourceTree] = {}
        self._symbols: Dict[int, ModuleSymbols] = {}

    def load(self, path: Path) -> SourceTree:
        resolved = Path(path).resolve()
        tree = self._trees.get(resolved)
        if tree is None:
            tree = self.parser.parse(resolved.read_bytes(), resolved)
            self._trees[resolved] = tree
        return tree

    def symbols(self, tree: SourceTree) -> ModuleSymbols:
        table = self._symbols.get(id(tree))
        if table is None or table.tree is not tree:
            table = ModuleSymbols(tree)
            self._symbols[id(tree)] = table
        return table

    def invalidate(self, tree: SourceTree) -> None:
        self._symbols.pop(id(tree), None)

    # Module resolution

    def resolve_module(self, from_path: Optional[Path], specifier: str) -> Optional[Path]:
        base_dir = Path(from_path).resolve().parent if from_path is not None else self.root
        if specifier.startswith("."):
            return self._resolve_file(base_dir / specifier)
        for prefix in sorted(self.aliases, key=len, reverse=True):
            if specifier.startswith(prefix):
                target = self.root / self.aliases[prefix] / specifier[len(prefix) :]
                return self._resolve_file(target)
        return self._resolve_package(base_dir, specifier)

    @staticmethod
    def _resolve_file(base: Path) -> Optional[Path]:
        base = Path(os.path.normpath(base))
        if base.is_file() and base.name.endswith(_RESOLVE_SUFFIXES):
            return base
        for suffix in _RESOLVE_SUFFIXES:
            candidate = base.with_name(base.name + suffix)
            if candidate.is_file():
                return candidate
        if base.is_dir():
            for index in _INDEX_FILES:
                candidate = base / index
                if candidate.is_file():
                    return candidate
        return None

    def _resolve_package(self, base_dir: Path, specifier: str) -> Optional[Path]:
        parts = specifier.split("/")
        count = 2 if specifier.startswith("@") and len(parts) > 1 else 1
        package = "/".join(parts[:count])
        subpath = "/".join(parts[count:])
        candidates = [package]
        types_name = package[1:].replace("/", "__") if package.startswith("@") else package
        candidates.append(f"@types/{types_name}")
        directory: Optional[Path] = base_dir
        while directory is not None:
            for name in candidates:
                package_dir = directory / "node_modules" / name
                if not package_dir.is_dir():
                    continue
                if subpath:
                    resolved = self._resolve_file(package_dir / subpath)
                else:
                    resolved = self._resolve_package_entry(package_dir)
                if resolved is not None:
                    return resolved
            if directory == self.root or directory.parent == directory:
                directory = None
            else:
                directory = directory.parent
        return None

    def _resolve_package_entry(self, package_dir: Path) -> Optional[Path]:
        manifest = package_dir / "package.json"
        if manifest.is_file():
            try:
                data = json.loads(manifest.read_text(encoding="utf-8"))
            except (OSError, ValueError):
                data = {}
            for key in ("types", "typings"):
                entry = data.get(key) if isinstance(data, dict) else None
                if isinstance(entry, str):
                    resolved = self._resolve_file(package_dir / entry)
                    if resolved is not None:
                        return resolved
        return self._resolve_file(package_dir / "index")

    def tree_for_module(self, from_tree: SourceTree, specifier: str) -> Optional[SourceTree]:
        path = self.resolve_module(from_tree.path, specifier)
        if path is None:
            return None
        try:
            return self.load(path)
        except OSError:
            return None

    # Cross-module lookup

    def exported_names(self, path: Path, _visited: Optional[Set[Path]] = None) -> Set[str]:
        visited = _visited if _visited is not None else set()
        resolved = Path(path).resolve()
        if resolved in visited:
            return set()
        visited.add(resolved)
        try:
            tree = self.load(resolved)
        except OSError:
            return set()
        symbols = self.symbols(tree)
        names = set(symbols.exports)
        for specifier, mapping in symbols.reexports:
            if mapping is not None:
                names.update(mapping)
                continue
            target = self.resolve_module(resolved, specifier)
            if target is not None:
                names.update(name for name in self.exported_names(target, visited) if name != "default")
        return names

    def find_declaration(
        self,
        tree: SourceTree,
        name: str,
        kinds: Iterable[DeclarationKind] = VALUE_KINDS,
    ) -> Optional[ResolvedDeclaration]:
        """Follow imports and re-exports from ``tree`` to the module declaring ``name``."""
        allowed = frozenset(kinds) | {DeclarationKind.IMPORT}
        visited: Set[Tuple[int, str]] = set()
        current_tree = tree
        current_name = name
        while (id(current_tree), current_name) not in visited:
            visited.add((id(current_tree), current_name))
            symbols = self.symbols(current_tree)
            declaration = symbols.module_declaration(current_name, allowed)
            if declaration is None:
                local = symbols.exports.get(current_name)
                if local is not None and local != current_name:
                    current_name = local
                    continue
                located = self._follow_reexports(current_tree, current_name, allowed, visited)
                return located
            binding = declaration.import_binding
            if binding is None:
                return ResolvedDeclaration(current_tree, declaration)
            target = self.tree_for_module(current_tree, binding.module)
            if target is None or binding.kind == "namespace":
                return ResolvedDeclaration(current_tree, declaration)
            current_tree = target
            current_name = binding.imported
        return None

    def _follow_reexports(
        self,
        tree: SourceTree,
        name: str,
        kinds: frozenset,
        visited: Set[Tuple[int, str]],
    ) -> Optional[ResolvedDeclaration]:
        for specifier, mapping in self.symbols(tree).reexports:
            if mapping is not None and name not in mapping:
                continue
            target = self.tree_for_module(tree, specifier)
            if target is None or (id(target), name) in visited:
                continue
            imported = mapping[name] if mapping is not None else name
            located = self.find_declaration(target, imported, kinds)
            if located is not None:
                return located
        return None


def module_specifier(from_path: Path, target: Path) -> str:
    """Relative import specifier from the module at ``from_path`` to ``target``."""
    target_str = str(target)
    for suffix in _STRIP_SUFFIXES:
        if target_str.endswith(suffix):
            target_str = target_str[: -len(suffix)]
            break
    if Path(target_str).name == "index":
        target_str = str(Path(target_str).parent)
    relative = os.path.relpath(target_str, start=str(Path(from_path).parent))
    relative = Path(relative).as_posix()
    if not relative.startswith("."):
        relative = f"./{relative}"
    return relative


__all__ = [
    "BindingKind",
    "Declaration",
    "DeclarationKind",
    "ImportBinding",
    "ModuleSymbols",
    "Project",
    "ResolvedDeclaration",
    "TYPE_KINDS",
    "VALUE_KINDS",
    "import_bindings",
    "module_specifier",
    "pattern_bindings",
    "string_value",
]
