"""Type rendering, point-of-use inference and import discovery for parameters."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

from tree_sitter import Node

from ..constants import CONTEXT_ACCESSORS, CONTEXT_FACTORIES, FALLBACK_TYPE, FRAMEWORK_MODULE
from ..logging import get_logger
from ..models import ImportRequirement, TypeInfo
from ..syntax import SourceTree
from .symbols import (
    TYPE_KINDS,
    VALUE_KINDS,
    BindingKind,
    Declaration,
    DeclarationKind,
    ImportBinding,
    Project,
    module_specifier,
    string_value,
)

TypeRef = Tuple[SourceTree, Node]

_COMPONENT_TYPE_WRAPPERS = {"FC", "FunctionComponent", "React.FC", "React.FunctionComponent"}
_PROPS_WRAPPER_CALLS = {"forwardRef", "React.forwardRef"}
_COMPARISON_OPERATORS = {"===", "!==", "==", "!=", "<", ">", "<=", ">=", "instanceof", "in"}
_CLIMB_TYPES = {"arguments", "call_expression", "parenthesized_expression", "as_expression", "satisfies_expression"}


def fallback_type() -> TypeInfo:
    return TypeInfo(alternatives=[FALLBACK_TYPE])


@dataclass
class TypeContext:
    """Where generated code lands, needed to compute import specifiers."""

    component: SourceTree
    accessor_path: Path
    output_path: Path
    hoisted: Set[str] = field(default_factory=set)


class TypeResolver:
    """Computes textual types and the cross-module imports they require."""

    def __init__(self, project: Project, context: TypeContext) -> None:
        self.project = project
        self.context = context
        self.pending_exports: Dict[int, Declaration] = {}
        self.logger = get_logger("types")

    # Rendering

    def resolve(self, tree: SourceTree, node: Optional[Node]) -> TypeInfo:
        """TypeInfo for a type node declared in ``tree``."""
        if node is None:
            return fallback_type()
        if node.type == "type_annotation":
            inner = _first_named(node)
            return self.resolve(tree, inner) if inner is not None else fallback_type()
        if node.type == "union_type":
            info = TypeInfo()
            for member in node.named_children:
                info.merge(self.resolve(tree, member))
            return info
        text = tree.text(node)
        if text == "undefined":
            return TypeInfo(alternatives=["undefined"], is_optional=True)
        if node.type == "generic_type":
            name_node = node.child_by_field_name("name")
            arguments = node.child_by_field_name("type_arguments")
            name = tree.text(name_node)
            imports = self.imports_for(tree, name_node) if name_node is not None else []
            rendered: List[str] = []
            for argument in arguments.named_children if arguments is not None else []:
                argument_info = self.resolve(tree, argument)
                rendered.append(argument_info.text)
                _extend(imports, argument_info.imports)
            return TypeInfo(alternatives=[f"{name}<{', '.join(rendered)}>"], imports=imports)
        return TypeInfo(alternatives=[text], imports=self.imports_for(tree, node))

    def imports_for(self, tree: SourceTree, node: Node) -> List[ImportRequirement]:
        """Imports needed by every name referenced inside a type node."""
        requirements: List[ImportRequirement] = []
        candidates = [node] + list(tree.descendants(node))
        type_parameters = _type_parameters_in_scope(tree, node)
        for candidate in candidates:
            name: Optional[str] = None
            kinds: Iterable[DeclarationKind] = TYPE_KINDS
            if candidate.type == "type_identifier":
                parent = candidate.parent
                if parent is not None and parent.type == "nested_type_identifier":
                    continue
                if parent is not None and parent.type == "type_parameter":
                    continue
                name = tree.text(candidate)
                if name in type_parameters:
                    continue
            elif candidate.type == "nested_type_identifier":
                name = _leftmost_identifier(tree, candidate.child_by_field_name("module"))
                kinds = VALUE_KINDS | TYPE_KINDS
            elif candidate.type == "type_query":
                name = _leftmost_identifier(tree, _first_named(candidate))
                kinds = VALUE_KINDS
            if not name:
                continue
            requirement = self.import_for_name(tree, name, kinds)
            if requirement is not None and requirement not in requirements:
                requirements.append(requirement)
        return requirements

    def import_for_name(
        self, tree: SourceTree, name: str, kinds: Iterable[DeclarationKind] = TYPE_KINDS
    ) -> Optional[ImportRequirement]:
        if tree is self.context.component and name in self.context.hoisted:
            return None
        symbols = self.project.symbols(tree)
        binding = symbols.imports.get(name)
        if binding is not None:
            return self.requirement_for_binding(tree, binding)
        declaration = symbols.module_declaration(name, kinds)
        if declaration is None:
            return None
        return self._requirement_for_local(tree, declaration)

    def requirement_for_binding(self, tree: SourceTree, binding: ImportBinding) -> ImportRequirement:
        """Re-target an import of ``tree`` so it is valid from the generated module."""
        specifier = binding.module
        if not specifier.startswith("."):
            return binding.requirement()
        target = self.project.resolve_module(tree.path, specifier)
        if target is not None and "node_modules" in target.parts:
            return binding.requirement(self._external_specifier(target, binding.imported))
        if target is None:
            base = tree.path.parent if tree.path is not None else self.project.root
            target = base / specifier
        return binding.requirement(module_specifier(self.context.accessor_path, target))

    def _requirement_for_local(self, tree: SourceTree, declaration: Declaration) -> ImportRequirement:
        name = declaration.name
        if tree.is_external and tree.path is not None:
            return ImportRequirement(module=self._external_specifier(tree.path, name), name=name)
        if tree is self.context.component:
            if not declaration.exported and not self.project.symbols(tree).is_exported(name):
                self.pending_exports[declaration.node.id] = declaration
            module = module_specifier(self.context.accessor_path, self.context.output_path)
            return ImportRequirement(module=module, name=name)
        target = tree.path if tree.path is not None else self.context.output_path
        if not self.project.symbols(tree).is_exported(name):
            self.logger.debug("%s is not exported from %s; generated import may not resolve", name, target)
        return ImportRequirement(module=module_specifier(self.context.accessor_path, target), name=name)

    def _external_specifier(self, declaring_path: Path, name: str) -> str:
        """Module specifier for a name declared inside an installed dependency."""
        component = self.context.component
        seen: Set[str] = set()
        for binding in self.project.symbols(component).imports.values():
            specifier = binding.module
            if specifier in seen:
                continue
            seen.add(specifier)
            target = self.project.resolve_module(component.path, specifier)
            if target is None:
                continue
            if _is_within(declaring_path, target.parent) and name in self.project.exported_names(target):
                return specifier
        package = package_from_path(declaring_path)
        if package is not None:
            return package
        return module_specifier(self.context.accessor_path, declaring_path)

    # Point-of-use inference

    def infer(self, tree: SourceTree, declaration: Declaration, _visited: Optional[Set[Tuple[int, int]]] = None) -> TypeInfo:
        """Type of a local binding as seen where it is referenced."""
        visited = _visited if _visited is not None else set()
        marker = (id(tree), declaration.node.id)
        if marker in visited:
            return fallback_type()
        visited.add(marker)

        if declaration.binding == BindingKind.PLAIN:
            reference = self.declared_type(tree, declaration)
            if reference is not None:
                info = self.resolve(*reference)
                if declaration.owner is not None and declaration.owner.type == "optional_parameter":
                    info.add_alternative("undefined")
                    info.is_optional = True
                return info
            if declaration.kind == DeclarationKind.VARIABLE and declaration.declarator is not None:
                value = declaration.declarator.child_by_field_name("value")
                inferred = self.expression_type(tree, value, visited) if value is not None else None
                if inferred is not None:
                    return inferred
            return fallback_type()

        base = self._pattern_base(tree, declaration, visited)
        if base is None:
            return fallback_type()
        if declaration.binding == BindingKind.OBJECT and declaration.key is not None:
            return self.member(base[0], base[1], declaration.key)
        if declaration.binding == BindingKind.REST:
            return self.rest_type(tree, declaration, base)
        return fallback_type()

    def rest_type(self, tree: SourceTree, declaration: Declaration, base: TypeRef) -> TypeInfo:
        info = self.resolve(*base)
        keys = sibling_keys(tree, declaration.pattern)
        if not keys or info.text == FALLBACK_TYPE:
            return TypeInfo(alternatives=[info.text], imports=list(info.imports))
        base_text = info.text if len(info.alternatives) == 1 else f"({info.text})"
        omitted = " | ".join(json.dumps(key) for key in keys)
        return TypeInfo(alternatives=[f"Omit<{base_text}, {omitted}>"], imports=list(info.imports))

    def declared_type(self, tree: SourceTree, declaration: Declaration) -> Optional[TypeRef]:
        """Annotation governing the pattern or name that introduced ``declaration``."""
        owner = declaration.owner
        if owner is None:
            return None
        annotation = owner.child_by_field_name("type")
        if annotation is not None:
            inner = _first_named(annotation) if annotation.type == "type_annotation" else annotation
            if inner is not None:
                return tree, inner
        if declaration.kind == DeclarationKind.PARAMETER:
            return self._contextual_parameter_type(tree, declaration)
        return None

    def _contextual_parameter_type(self, tree: SourceTree, declaration: Declaration) -> Optional[TypeRef]:
        function = declaration.scope
        parameters = function.child_by_field_name("parameters")
        if parameters is None or declaration.owner is None:
            return None
        formal = [child for child in parameters.named_children if child.type in {"required_parameter", "optional_parameter"}]
        index = next((i for i, child in enumerate(formal) if child.id == declaration.owner.id), -1)
        if index != 0:
            return None
        current = function.parent
        while current is not None and current.type in _CLIMB_TYPES:
            if current.type == "call_expression":
                callee = tree.text(current.child_by_field_name("function"))
                arguments = current.child_by_field_name("type_arguments")
                if callee in _PROPS_WRAPPER_CALLS and arguments is not None and len(arguments.named_children) > 1:
                    return tree, arguments.named_children[1]
            current = current.parent
        if current is not None and current.type == "variable_declarator":
            annotation = current.child_by_field_name("type")
            wrapped = _first_named(annotation) if annotation is not None else None
            if wrapped is not None and wrapped.type == "generic_type":
                name = tree.text(wrapped.child_by_field_name("name"))
                arguments = wrapped.child_by_field_name("type_arguments")
                if name in _COMPONENT_TYPE_WRAPPERS and arguments is not None and arguments.named_children:
                    return tree, arguments.named_children[0]
        return None

    def _pattern_base(self, tree: SourceTree, declaration: Declaration, visited: Set[Tuple[int, int]]) -> Optional[TypeRef]:
        reference = self.declared_type(tree, declaration)
        if reference is not None:
            return reference
        if declaration.kind == DeclarationKind.VARIABLE and declaration.declarator is not None:
            value = declaration.declarator.child_by_field_name("value")
            if value is not None:
                return self.expression_type_ref(tree, value, visited)
        return None

    def expression_type_ref(self, tree: SourceTree, node: Node, visited: Set[Tuple[int, int]]) -> Optional[TypeRef]:
        if node.type in {"parenthesized_expression", "non_null_expression", "await_expression"}:
            inner = _first_named(node)
            return self.expression_type_ref(tree, inner, visited) if inner is not None else None
        if node.type in {"as_expression", "satisfies_expression"}:
            named = node.named_children
            return (tree, named[1]) if len(named) > 1 else None
        if node.type == "call_expression":
            argument = self.context_argument(tree, node)
            if argument is not None:
                return self.context_value_type(tree, argument)
            return None
        if node.type == "identifier":
            declaration = self.project.symbols(tree).resolve(node)
            if declaration is None or declaration.binding != BindingKind.PLAIN:
                return None
            marker = (id(tree), declaration.node.id)
            if marker in visited:
                return None
            visited.add(marker)
            reference = self.declared_type(tree, declaration)
            if reference is not None:
                return reference
            if declaration.kind == DeclarationKind.VARIABLE and declaration.declarator is not None:
                value = declaration.declarator.child_by_field_name("value")
                if value is not None:
                    return self.expression_type_ref(tree, value, visited)
        return None

    def expression_type(self, tree: SourceTree, node: Node, visited: Optional[Set[Tuple[int, int]]] = None) -> Optional[TypeInfo]:
        """Best-effort type of an initializer or member expression."""
        visited = visited if visited is not None else set()
        if node.type == "member_expression":
            obj = node.child_by_field_name("object")
            prop = node.child_by_field_name("property")
            reference = self.expression_type_ref(tree, obj, visited) if obj is not None else None
            if reference is not None and prop is not None:
                return self.member(reference[0], reference[1], tree.text(prop))
            return None
        if node.type == "identifier":
            declaration = self.project.symbols(tree).resolve(node)
            if declaration is not None and declaration.kind in {DeclarationKind.PARAMETER, DeclarationKind.VARIABLE}:
                return self.infer(tree, declaration, visited)
            return None
        reference = self.expression_type_ref(tree, node, visited)
        if reference is not None:
            return self.resolve(*reference)
        if node.type in {"string", "template_string"}:
            return TypeInfo(alternatives=["string"])
        if node.type == "number":
            return TypeInfo(alternatives=["number"])
        if node.type in {"true", "false"}:
            return TypeInfo(alternatives=["boolean"])
        if node.type == "unary_expression":
            operator = tree.text(node.child_by_field_name("operator"))
            if operator == "!":
                return TypeInfo(alternatives=["boolean"])
            if operator == "typeof":
                return TypeInfo(alternatives=["string"])
        if node.type == "binary_expression":
            operator = tree.text(node.child_by_field_name("operator"))
            if operator in _COMPARISON_OPERATORS:
                return TypeInfo(alternatives=["boolean"])
        return None

    # Members

    def member(self, tree: SourceTree, type_node: Node, key: str) -> TypeInfo:
        """Type of property ``key`` of the type at ``type_node``."""
        found = self._find_member(tree, type_node, key, set())
        if found is not None:
            member_tree, signature = found
            annotation = signature.child_by_field_name("type")
            info = self.resolve(member_tree, annotation) if annotation is not None else fallback_type()
            if any(child.type == "?" for child in signature.children):
                info.add_alternative("undefined")
                info.is_optional = True
            return info
        base = self.resolve(tree, type_node)
        if base.text == FALLBACK_TYPE:
            return fallback_type()
        base_text = base.text if len(base.alternatives) == 1 else f"({base.text})"
        return TypeInfo(alternatives=[f"{base_text}[{json.dumps(key)}]"], is_optional=True, imports=list(base.imports))

    def _find_member(
        self, tree: SourceTree, node: Optional[Node], key: str, visited: Set[Tuple[int, int]]
    ) -> Optional[Tuple[SourceTree, Node]]:
        if node is None:
            return None
        if node.type in {"type_annotation", "parenthesized_type"}:
            return self._find_member(tree, _first_named(node), key, visited)
        if node.type in {"object_type", "interface_body"}:
            for signature in node.named_children:
                if signature.type != "property_signature":
                    continue
                name_node = signature.child_by_field_name("name")
                name = string_value(tree, name_node) or tree.text(name_node)
                if name == key:
                    return tree, signature
            return None
        if node.type == "intersection_type":
            for member in node.named_children:
                found = self._find_member(tree, member, key, visited)
                if found is not None:
                    return found
            return None
        if node.type in {"type_identifier", "generic_type"}:
            name_node = node.child_by_field_name("name") if node.type == "generic_type" else node
            if name_node is None or name_node.type != "type_identifier":
                return None
            located = self._type_declaration(tree, name_node)
            if located is None:
                return None
            declaring_tree, declaration = located
            marker = (id(declaring_tree), declaration.node.id)
            if marker in visited:
                return None
            visited.add(marker)
            declarator = declaration.declarator
            if declarator is None:
                return None
            if declarator.type == "interface_declaration":
                found = self._find_member(declaring_tree, declarator.child_by_field_name("body"), key, visited)
                if found is not None:
                    return found
                for clause in declarator.named_children:
                    if clause.type != "extends_type_clause":
                        continue
                    for parent_type in clause.named_children:
                        found = self._find_member(declaring_tree, parent_type, key, visited)
                        if found is not None:
                            return found
                return None
            if declarator.type == "type_alias_declaration":
                return self._find_member(declaring_tree, declarator.child_by_field_name("value"), key, visited)
        return None

    def _type_declaration(self, tree: SourceTree, name_node: Node) -> Optional[Tuple[SourceTree, Declaration]]:
        name = tree.text(name_node)
        declaration = self.project.symbols(tree).resolve(name_node, name, TYPE_KINDS)
        if declaration is not None and declaration.kind != DeclarationKind.IMPORT:
            return tree, declaration
        located = self.project.find_declaration(tree, name, TYPE_KINDS)
        if located is None or located.declaration.kind == DeclarationKind.IMPORT:
            return None
        return located.tree, located.declaration

    # Context values

    def context_argument(self, tree: SourceTree, call: Node) -> Optional[Node]:
        """First argument of a recognised context-accessor call, else None."""
        callee = call.child_by_field_name("function")
        if callee is None:
            return None
        symbols = self.project.symbols(tree)
        recognised = False
        if callee.type == "identifier" and tree.text(callee) in CONTEXT_ACCESSORS:
            binding = symbols.imports.get(tree.text(callee))
            recognised = binding is not None and binding.module == FRAMEWORK_MODULE
        elif callee.type == "member_expression":
            obj = callee.child_by_field_name("object")
            prop = callee.child_by_field_name("property")
            if obj is not None and obj.type == "identifier" and tree.text(prop) in CONTEXT_ACCESSORS:
                binding = symbols.imports.get(tree.text(obj))
                recognised = binding is not None and binding.module == FRAMEWORK_MODULE and binding.kind != "named"
        if not recognised:
            return None
        arguments = call.child_by_field_name("arguments")
        named = arguments.named_children if arguments is not None else []
        return named[0] if named else None

    def context_value_type(self, tree: SourceTree, argument: Node) -> Optional[TypeRef]:
        """Declared value type ``T`` of a context created with ``createContext<T>``."""
        if argument.type != "identifier":
            return None
        located = self.project.find_declaration(tree, tree.text(argument))
        if located is None or located.declaration.declarator is None:
            return None
        declaring_tree = located.tree
        value = located.declaration.declarator.child_by_field_name("value")
        if value is None or value.type != "call_expression":
            return None
        callee = declaring_tree.text(value.child_by_field_name("function"))
        if callee.rsplit(".", 1)[-1] not in CONTEXT_FACTORIES:
            self.logger.debug("%s is not created by a context factory", tree.text(argument))
            return None
        arguments = value.child_by_field_name("type_arguments")
        if arguments is None or not arguments.named_children:
            return None
        return declaring_tree, arguments.named_children[0]


def package_from_path(path: Path) -> Optional[str]:
    """Package name derived from the last ``node_modules`` segment of ``path``."""
    parts = list(Path(path).parts)
    if "node_modules" not in parts:
        return None
    index = len(parts) - 1 - parts[::-1].index("node_modules")
    rest = parts[index + 1 :]
    if not rest:
        return None
    if rest[0].startswith("@") and len(rest) > 1:
        package = f"{rest[0]}/{rest[1]}"
    else:
        package = rest[0]
    if package.startswith("@types/"):
        unscoped = package[len("@types/") :]
        package = "@" + unscoped.replace("__", "/", 1) if "__" in unscoped else unscoped
    return package


def sibling_keys(tree: SourceTree, pattern: Optional[Node]) -> List[str]:
    """Keys destructured explicitly next to a rest element."""
    keys: List[str] = []
    if pattern is None:
        return keys
    for child in pattern.named_children:
        key: Optional[str] = None
        if child.type == "shorthand_property_identifier_pattern":
            key = tree.text(child)
        elif child.type == "object_assignment_pattern":
            left = child.child_by_field_name("left")
            key = tree.text(left) if left is not None else None
        elif child.type == "pair_pattern":
            key_node = child.child_by_field_name("key")
            key = string_value(tree, key_node) or tree.text(key_node)
        if key and key not in keys:
            keys.append(key)
    return keys


def _first_named(node: Optional[Node]) -> Optional[Node]:
    if node is None:
        return None
    named = node.named_children
    return named[0] if named else None


def _leftmost_identifier(tree: SourceTree, node: Optional[Node]) -> Optional[str]:
    current = node
    while current is not None and current.type not in {"identifier", "type_identifier", "this"}:
        current = _first_named(current)
    return tree.text(current) if current is not None else None


def _type_parameters_in_scope(tree: SourceTree, node: Node) -> Set[str]:
    names: Set[str] = set()
    for ancestor in [node, *SourceTree.ancestors(node)]:
        parameters = ancestor.child_by_field_name("type_parameters")
        if parameters is None:
            continue
        for parameter in parameters.named_children:
            name_node = parameter.child_by_field_name("name")
            if name_node is not None:
                names.add(tree.text(name_node))
    return names


def _is_within(path: Path, directory: Path) -> bool:
    try:
        Path(path).resolve().relative_to(Path(directory).resolve())
    except ValueError:
        return False
    return True


def _extend(target: List[ImportRequirement], extra: Iterable[ImportRequirement]) -> None:
    for requirement in extra:
        if requirement not in target:
            target.append(requirement)


__all__ = ["TypeContext", "TypeRef", "TypeResolver", "fallback_type", "package_from_path", "sibling_keys"]
