"""Classification of identifiers referenced by presentation attributes."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from tree_sitter import Node

from ..constants import (
    HOIST_DEPTH,
    STYLES_LOCAL,
    VARIANT_HELPER_MODULE,
    VARIANT_HELPERS,
    VARIANT_PASSTHROUGH_KEYS,
    VARIANT_TYPE_UTILITY,
)
from ..errors import UnresolvableBindingError
from ..generation.builder import StyleFileBuilder, StyleFunction, StyleGroup
from ..logging import get_logger
from ..models import ImportRequirement, ManipulationPass, Parameter, TypeInfo, VariableHoist
from ..naming import is_identifier, style_function_name
from ..syntax import SourceTree
from .resolver import ElementLocation, RootFunction
from .scanner import attribute_name, attribute_value, tag_name
from .symbols import BindingKind, Declaration, DeclarationKind, Project, string_value
from .types import TypeResolver, fallback_type

_REFERENCE_TYPES = ("identifier", "shorthand_property_identifier")
_HOISTABLE_KINDS = {DeclarationKind.VARIABLE, DeclarationKind.FUNCTION, DeclarationKind.CLASS}
_ATTRIBUTE_TYPES = {"jsx_attribute", "jsx_expression"}


@dataclass
class ExtractedAttribute:
    name: str
    node: Node
    value: Node


@dataclass
class ElementAnalysis:
    """Everything one element contributes, held back until all its attributes succeed."""

    element: Node
    location: ElementLocation
    attributes: List[ExtractedAttribute] = field(default_factory=list)
    parameters: List[Parameter] = field(default_factory=list)
    refinements: Dict[str, TypeInfo] = field(default_factory=dict)
    hoists: List[Tuple[Declaration, VariableHoist]] = field(default_factory=list)
    imports: List[ImportRequirement] = field(default_factory=list)
    component_imports: List[ImportRequirement] = field(default_factory=list)
    reexports: List[str] = field(default_factory=list)
    rewrites: List[Tuple[Node, Parameter]] = field(default_factory=list)
    inject_nodes: List[Node] = field(default_factory=list)

    def add_parameter(self, parameter: Parameter) -> Parameter:
        for existing in self.parameters:
            if existing.source_name == parameter.source_name:
                return existing
        self.parameters.append(parameter)
        return parameter

    def parameter(self, name: str) -> Optional[Parameter]:
        for parameter in self.parameters:
            if name in (parameter.source_name, parameter.name):
                return parameter
        return None

    def add_import(self, requirement: ImportRequirement) -> None:
        if requirement not in self.imports:
            self.imports.append(requirement)


class AttributeAnalyzer:
    """Stages and commits the requirements of presentation attributes.

    Each attribute's identifiers are visited in four ordered passes: imports,
    root-visible bindings, module-scope declarations, then variant helpers.
    """

    def __init__(
        self,
        project: Project,
        tree: SourceTree,
        types: TypeResolver,
        builder: StyleFileBuilder,
        accessor_module: str,
    ) -> None:
        self.project = project
        self.tree = tree
        self.types = types
        self.builder = builder
        self.accessor_module = accessor_module
        self.logger = get_logger("attributes")
        self._removed_statements: Dict[int, List[Declaration]] = {}

    @property
    def symbols(self):
        return self.project.symbols(self.tree)

    # Staging

    def analyze(self, element: Node, location: ElementLocation, attributes: Iterable[Node]) -> ElementAnalysis:
        staged = ElementAnalysis(element=element, location=location)
        for attribute in attributes:
            value = attribute_value(attribute)
            if value is None:
                continue
            identifiers = [
                node
                for node in self.tree.descendants(attribute, types=_REFERENCE_TYPES)
                if node.parent is None or node.parent.type != "jsx_attribute"
            ]
            for classify in (
                self._classify_import,
                self._classify_binding,
                self._classify_module_declaration,
                self._classify_variant_helper,
            ):
                for identifier in identifiers:
                    classify(identifier, attribute, staged)
            staged.attributes.append(
                ExtractedAttribute(name=attribute_name(self.tree, attribute), node=attribute, value=value)
            )
        self._check_injection_order(staged)
        return staged

    def _check_injection_order(self, staged: ElementAnalysis) -> None:
        """The accessor call has to precede every body statement that reads its result."""
        root = staged.location.root
        use = root.statement_index(staged.element)
        if use is None:
            return
        function = self.builder.function_for_root(root.node)
        required = function.inject_index if function is not None else 0
        for node in staged.inject_nodes:
            index = root.statement_index(node)
            if index is not None:
                required = max(required, index + 1)
        first_use = use
        if function is not None and function.first_use is not None:
            first_use = min(first_use, function.first_use)
        if required > first_use:
            raise UnresolvableBindingError(
                f"styles of {root.name} would be read before the locals they depend on are declared",
                element=tag_name(self.tree, staged.element),
            )

    def _declaration(self, identifier: Node, attribute: Node) -> Optional[Declaration]:
        declaration = self.symbols.resolve(identifier)
        if declaration is None or SourceTree.is_ancestor(attribute, declaration.node):
            return None
        return declaration

    def _classify_import(self, identifier: Node, attribute: Node, staged: ElementAnalysis) -> None:
        declaration = self._declaration(identifier, attribute)
        if declaration is None or declaration.import_binding is None:
            return
        staged.add_import(self.types.requirement_for_binding(self.tree, declaration.import_binding))

    def _classify_binding(self, identifier: Node, attribute: Node, staged: ElementAnalysis) -> None:
        declaration = self._declaration(identifier, attribute)
        if declaration is None or declaration.is_module_scope:
            return
        if declaration.kind == DeclarationKind.IMPORT or declaration.kind == DeclarationKind.TYPE:
            return
        root = staged.location.root
        if not self._visible_at_root(declaration, root):
            raise UnresolvableBindingError(
                f"{declaration.name!r} is not visible at the top of {root.name}",
                element=tag_name(self.tree, staged.element),
            )

        parent = identifier.parent
        prop = parent.child_by_field_name("property") if parent is not None and parent.type == "member_expression" else None
        if (
            prop is not None
            and prop.type == "property_identifier"
            and declaration.binding == BindingKind.PLAIN
            and parent.child_by_field_name("object").id == identifier.id
        ):
            destination = self.tree.text(prop)
            inferred = self.types.expression_type(self.tree, parent)
            parameter = staged.add_parameter(
                Parameter(
                    source_name=self.tree.text(parent),
                    destination_name=destination,
                    type=inferred if inferred is not None else fallback_type(),
                )
            )
            staged.rewrites.append((parent, parameter))
        else:
            staged.add_parameter(
                Parameter(source_name=declaration.name, type=self.types.infer(self.tree, declaration))
            )
        if declaration.kind != DeclarationKind.PARAMETER:
            staged.inject_nodes.append(declaration.statement or declaration.node)

    @staticmethod
    def _visible_at_root(declaration: Declaration, root: RootFunction) -> bool:
        if declaration.scope.id == root.node.id:
            return True
        body = root.body
        return body is not None and declaration.scope.id == body.id

    def _classify_module_declaration(self, identifier: Node, attribute: Node, staged: ElementAnalysis) -> None:
        declaration = self._declaration(identifier, attribute)
        if declaration is None or not declaration.is_module_scope or declaration.kind not in _HOISTABLE_KINDS:
            return
        self._stage_hoist(declaration, [attribute], staged, depth=0, visited=set())

    def _stage_hoist(
        self,
        declaration: Declaration,
        excluded: List[Node],
        staged: ElementAnalysis,
        depth: int,
        visited: Set[int],
    ) -> None:
        if declaration.node.id in visited:
            return
        visited.add(declaration.node.id)

        exported = declaration.exported or self._referenced_elsewhere(declaration, excluded)
        hoist = VariableHoist(name=declaration.name, text=self._hoist_text(declaration), exported=exported)
        for staged_declaration, staged_hoist in staged.hoists:
            if staged_declaration.name == declaration.name:
                staged_hoist.exported = staged_hoist.exported or exported
                break
        else:
            staged.hoists.append((declaration, hoist))
        if exported:
            requirement = ImportRequirement(module=self.accessor_module, name=declaration.name)
            if requirement not in staged.component_imports:
                staged.component_imports.append(requirement)
        if declaration.exported and declaration.name not in staged.reexports:
            staged.reexports.append(declaration.name)

        initializer = self._initializer(declaration)
        if initializer is None:
            return
        statement = declaration.statement or declaration.declarator
        chain = excluded + ([statement] if statement is not None else [])
        for identifier in self.tree.descendants(initializer, types=_REFERENCE_TYPES):
            dependency = self.symbols.resolve(identifier)
            if dependency is None or SourceTree.is_ancestor(initializer, dependency.node):
                continue
            if dependency.import_binding is not None:
                staged.add_import(self.types.requirement_for_binding(self.tree, dependency.import_binding))
            elif dependency.is_module_scope and dependency.kind in _HOISTABLE_KINDS:
                if depth < HOIST_DEPTH:
                    self._stage_hoist(dependency, chain, staged, depth + 1, visited)
                elif dependency.node.id not in visited:
                    self.logger.warning(
                        "%s references %s beyond the hoisting depth; the generated module may not resolve it",
                        declaration.name,
                        dependency.name,
                    )

    def _initializer(self, declaration: Declaration) -> Optional[Node]:
        declarator = declaration.declarator
        if declarator is None:
            return None
        if declaration.kind == DeclarationKind.VARIABLE:
            return declarator.child_by_field_name("value")
        return declarator

    def _referenced_elsewhere(self, declaration: Declaration, excluded: List[Node]) -> bool:
        """True when a reference survives outside the declaring statement and ``excluded`` subtrees."""
        statement = declaration.statement or declaration.declarator
        boundaries = [node for node in [statement, *excluded] if node is not None]
        for reference in self.symbols.references(declaration):
            if any(SourceTree.is_ancestor(boundary, reference) for boundary in boundaries):
                continue
            return True
        return False

    def _hoist_text(self, declaration: Declaration) -> str:
        declarator = declaration.declarator
        if declarator is None:
            return self.tree.text(declaration.node)
        if declaration.kind == DeclarationKind.VARIABLE and declarator.parent is not None:
            keyword = self.tree.text(declarator.parent.children[0])
            return f"{keyword} {self.tree.text(declarator)}"
        return self.tree.text(declarator)

    def _classify_variant_helper(self, identifier: Node, attribute: Node, staged: ElementAnalysis) -> None:
        call = identifier.parent
        if call is None or call.type != "call_expression":
            return
        callee = call.child_by_field_name("function")
        if callee is None or callee.id != identifier.id:
            return
        declaration = self._declaration(identifier, attribute)
        if declaration is None or declaration.kind != DeclarationKind.VARIABLE or declaration.declarator is None:
            return
        value = declaration.declarator.child_by_field_name("value")
        if value is None or value.type != "call_expression":
            return
        if self.tree.text(value.child_by_field_name("function")) not in VARIANT_HELPERS:
            return

        arguments = call.child_by_field_name("arguments")
        options = arguments.named_children[0] if arguments is not None and arguments.named_children else None
        if options is None or options.type != "object":
            return
        function = self.builder.function_for_root(staged.location.root.node)
        helper = self.tree.text(identifier)
        for option in options.named_children:
            key, name = self._option_names(option)
            if not key or not name or key in VARIANT_PASSTHROUGH_KEYS:
                continue
            known = staged.parameter(name) or (function.parameter(name) if function is not None else None)
            if known is None:
                continue
            staged.refinements[known.source_name] = TypeInfo(
                alternatives=[f"{VARIANT_TYPE_UTILITY}<typeof {helper}>[{json.dumps(key)}]"],
                is_optional=True,
                imports=[ImportRequirement(module=VARIANT_HELPER_MODULE, name=VARIANT_TYPE_UTILITY)],
            )

    def _option_names(self, option: Node) -> Tuple[Optional[str], Optional[str]]:
        if option.type == "shorthand_property_identifier":
            name = self.tree.text(option)
            return name, name
        if option.type != "pair":
            return None, None
        key_node = option.child_by_field_name("key")
        key = string_value(self.tree, key_node) or self.tree.text(key_node)
        value = option.child_by_field_name("value")
        if value is None:
            return key, None
        if value.type == "identifier":
            return key, self.tree.text(value)
        if value.type == "member_expression":
            return key, self.tree.text(value)
        return key, None

    # Commit

    def commit(self, staged: ElementAnalysis) -> StyleGroup:
        """Fold a successful element analysis into the builder and queue its edits."""
        root = staged.location.root
        function = self.builder.function_for_root(root.node)
        if function is None:
            name = style_function_name(root.name)
            function = self.builder.get_or_create_function(
                name, root, force_unique=self.builder.function(name) is not None
            )
        group = function.create_group(staged.location.group_key, staged.element)
        for attribute in staged.attributes:
            group.reserve(attribute.name)

        parameters = {id(parameter): function.add_parameter(parameter) for parameter in staged.parameters}
        for name, type_info in staged.refinements.items():
            function.refine(name, type_info)
        for node in staged.inject_nodes:
            function.inject_after(node)
        function.record_use(staged.element)

        for declaration, hoist in staged.hoists:
            registered = self.builder.add_hoist(hoist)
            if registered is hoist:
                self._queue_hoist_removal(declaration)
        for requirement in staged.imports:
            self.builder.add_import(requirement)
        for requirement in staged.component_imports:
            self.builder.add_component_import(requirement)
        for name in staged.reexports:
            self.builder.add_reexport(name)

        queue = self.builder.manipulations
        # Destinations may still be renamed by later elements; read them when the pass runs.
        for node, parameter in staged.rewrites:
            target = parameters.get(id(parameter), parameter)
            queue.add(
                lambda node=node, target=target: self.tree.replace(node, target.name),
                ManipulationPass.BEFORE_GENERATION,
                f"rewrite {self.tree.text(node)}",
            )
        for attribute in staged.attributes:
            queue.add(
                lambda attribute=attribute: group.add_property(attribute.name, self.tree.render_node(attribute.value)),
                ManipulationPass.BEFORE_GENERATION,
                f"capture {attribute.name}",
            )
        queue.add(
            lambda: self._rewrite_element(staged, function, group),
            ManipulationPass.AFTER_GENERATION,
            f"rewrite element {group.key}",
        )
        return group

    def _rewrite_element(self, staged: ElementAnalysis, function: StyleFunction, group: StyleGroup) -> None:
        local = function.local_name or STYLES_LOCAL
        access = f"{local}.{group.key}" if is_identifier(group.key) else f"{local}[{json.dumps(group.key)}]"
        spread = f"{{...{access}}}"
        removed = {attribute.node.id for attribute in staged.attributes}
        present = [child for child in staged.element.named_children if child.type in _ATTRIBUTE_TYPES]
        first = present[0]
        if first.id in removed:
            self.tree.insert(first.start_byte, spread)
            self.tree.delete_range(first.start_byte, first.end_byte)
        else:
            self.tree.insert(first.start_byte, f"{spread} ")
        for attribute in staged.attributes:
            if attribute.node.id == first.id:
                continue
            previous = attribute.node.prev_sibling
            start = previous.end_byte if previous is not None else attribute.node.start_byte
            self.tree.delete_range(start, attribute.node.end_byte)

    def _queue_hoist_removal(self, declaration: Declaration) -> None:
        statement = declaration.statement or declaration.declarator
        if statement is None:
            return
        pending = self._removed_statements.get(statement.id)
        if pending is not None:
            pending.append(declaration)
            return
        self._removed_statements[statement.id] = [declaration]
        self.builder.manipulations.add(
            lambda: self._remove_hoisted(statement),
            ManipulationPass.AFTER_GENERATION,
            f"remove {declaration.name}",
        )

    def _remove_hoisted(self, statement: Node) -> None:
        declarations = self._removed_statements.get(statement.id, [])
        declarators = [declaration.declarator for declaration in declarations if declaration.declarator is not None]
        first = declarators[0] if declarators else None
        if first is None or first.type != "variable_declarator" or first.parent is None:
            self.tree.remove_statement(statement)
            return
        lexical = first.parent
        hoisted = {declarator.id for declarator in declarators}
        kept = [child for child in lexical.named_children if child.type == "variable_declarator" and child.id not in hoisted]
        if not kept:
            self.tree.remove_statement(statement)
            return
        keyword = self.tree.text(lexical.children[0])
        terminator = ";" if self.tree.text(lexical).endswith(";") else ""
        rendered = ", ".join(self.tree.render_node(declarator) for declarator in kept)
        self.tree.replace(lexical, f"{keyword} {rendered}{terminator}")


__all__ = ["AttributeAnalyzer", "ElementAnalysis", "ExtractedAttribute"]
