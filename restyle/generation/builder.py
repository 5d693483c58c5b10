"""Accumulates style functions, groups, hoists and imports for one file."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from tree_sitter import Node

from ..analysis.resolver import RootFunction
from ..errors import GroupCollisionError
from ..models import ImportRequirement, Parameter, PropertyEntry, TypeInfo, VariableHoist
from ..naming import pascal_case
from .manipulations import ManipulationQueue


@dataclass
class StyleGroup:
    """Properties extracted from one markup element."""

    key: str
    element: Optional[Node] = None
    properties: List[PropertyEntry] = field(default_factory=list)
    _reserved: List[str] = field(default_factory=list, repr=False)

    def reserve(self, attribute_name: str) -> None:
        if attribute_name in self._reserved:
            raise GroupCollisionError(f"Group {self.key!r} already has a {attribute_name!r} entry")
        self._reserved.append(attribute_name)

    def add_property(self, attribute_name: str, value_text: str) -> PropertyEntry:
        if any(entry.attribute_name == attribute_name for entry in self.properties):
            raise GroupCollisionError(f"Group {self.key!r} already has a {attribute_name!r} entry")
        if attribute_name not in self._reserved:
            self._reserved.append(attribute_name)
        entry = PropertyEntry(attribute_name=attribute_name, value_text=value_text)
        self.properties.append(entry)
        return entry


@dataclass
class StyleFunction:
    """Accessor generated for one root function."""

    name: str
    root: RootFunction
    parameters: List[Parameter] = field(default_factory=list)
    groups: List[StyleGroup] = field(default_factory=list)
    inject_index: int = 0
    first_use: Optional[int] = None
    local_name: Optional[str] = None

    @property
    def accessor_name(self) -> str:
        return f"get{pascal_case(self.name)}"

    @property
    def props_name(self) -> str:
        return f"{pascal_case(self.name)}Props"

    @property
    def all_optional(self) -> bool:
        return all(parameter.type is None or parameter.type.is_optional for parameter in self.parameters)

    def parameter(self, name: str) -> Optional[Parameter]:
        """Parameter whose source or destination name is ``name``."""
        for parameter in self.parameters:
            if parameter.source_name == name:
                return parameter
        for parameter in self.parameters:
            if parameter.name == name:
                return parameter
        return None

    def add_parameter(self, parameter: Parameter) -> Parameter:
        """Add ``parameter`` unless one with the same source name exists.

        Destination names stay unique. A plain identifier keeps its name, since
        captured values reference it verbatim; a renamed member access that
        clashes with it moves to ``name2``, ``name3``...
        """
        for existing in self.parameters:
            if existing.source_name == parameter.source_name:
                if existing.type is None and parameter.type is not None:
                    existing.type = parameter.type
                return existing
        clash = next((existing for existing in self.parameters if existing.name == parameter.name), None)
        self.parameters.append(parameter)
        if clash is not None:
            renamed = parameter if parameter.is_renamed else clash
            renamed.destination_name = self._unique_name(renamed.name)
        return parameter

    def _unique_name(self, base: str) -> str:
        taken = {parameter.name for parameter in self.parameters}
        counter = 2
        while f"{base}{counter}" in taken:
            counter += 1
        return f"{base}{counter}"

    def refine(self, name: str, type_info: TypeInfo) -> bool:
        parameter = self.parameter(name)
        if parameter is None:
            return False
        parameter.type = type_info
        return True

    def group(self, key: str) -> Optional[StyleGroup]:
        for group in self.groups:
            if group.key == key:
                return group
        return None

    def create_group(self, key: str, element: Optional[Node] = None) -> StyleGroup:
        """New group named ``key``, suffixed ``key2``, ``key3``... on collision."""
        candidate = key
        counter = 2
        while self.group(candidate) is not None:
            candidate = f"{key}{counter}"
            counter += 1
        group = StyleGroup(key=candidate, element=element)
        self.groups.append(group)
        return group

    def inject_after(self, node: Node) -> None:
        """Make sure the accessor call is placed after the statement holding ``node``."""
        index = self.root.statement_index(node)
        if index is not None:
            self.inject_index = max(self.inject_index, index + 1)

    def record_use(self, element: Node) -> None:
        """Remember the earliest body statement that reads the accessor result."""
        index = self.root.statement_index(element)
        if index is not None and (self.first_use is None or index < self.first_use):
            self.first_use = index


class StyleFileBuilder:
    """Collects everything the code generator needs for one component file."""

    def __init__(self) -> None:
        self.functions: List[StyleFunction] = []
        self.hoists: Dict[str, VariableHoist] = {}
        self.hoisted_names: Set[str] = set()
        self.imports: List[ImportRequirement] = []
        self.component_imports: List[ImportRequirement] = []
        self.reexports: List[str] = []
        self.manipulations = ManipulationQueue()

    def function(self, name: str) -> Optional[StyleFunction]:
        for function in self.functions:
            if function.name == name:
                return function
        return None

    def function_for_root(self, root: Node) -> Optional[StyleFunction]:
        for function in self.functions:
            if function.root.node.id == root.id:
                return function
        return None

    def get_or_create_function(self, name: str, root: RootFunction, force_unique: bool = False) -> StyleFunction:
        existing = self.function(name)
        if existing is not None and not force_unique:
            return existing
        candidate = name
        counter = 2
        while self.function(candidate) is not None:
            candidate = f"{name}{counter}"
            counter += 1
        function = StyleFunction(name=candidate, root=root)
        self.functions.append(function)
        return function

    def add_hoist(self, hoist: VariableHoist) -> VariableHoist:
        """Register a hoisted declaration once; the export flag is sticky."""
        existing = self.hoists.get(hoist.name)
        if existing is not None:
            existing.exported = existing.exported or hoist.exported
            return existing
        self.hoists[hoist.name] = hoist
        self.hoisted_names.add(hoist.name)
        return hoist

    def add_import(self, requirement: ImportRequirement) -> None:
        if requirement not in self.imports:
            self.imports.append(requirement)

    def add_component_import(self, requirement: ImportRequirement) -> None:
        if requirement not in self.component_imports:
            self.component_imports.append(requirement)

    def add_reexport(self, name: str) -> None:
        if name not in self.reexports:
            self.reexports.append(name)

    def style_imports(self) -> List[ImportRequirement]:
        """Imports of the generated module: collected ones first, then parameter types."""
        requirements: List[ImportRequirement] = []
        for requirement in self.imports:
            if requirement not in requirements:
                requirements.append(requirement)
        for function in self.functions:
            for parameter in function.parameters:
                for requirement in parameter.type.imports if parameter.type is not None else []:
                    if requirement not in requirements:
                        requirements.append(requirement)
        return requirements

    @property
    def group_count(self) -> int:
        return sum(len(function.groups) for function in self.functions)

    def discard_empty(self) -> None:
        """Drop groups without properties and functions without groups."""
        for function in self.functions:
            function.groups = [group for group in function.groups if group.properties]
        self.functions = [function for function in self.functions if function.groups]


__all__ = ["StyleFileBuilder", "StyleFunction", "StyleGroup"]
