"""Accessor module rendering and rewrites of the original component."""

from __future__ import annotations

import json
from collections import OrderedDict
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from jinja2 import Environment, FileSystemLoader
from tree_sitter import Node

from ..constants import ACCESSOR_OBJECT, STYLES_LOCAL
from ..logging import get_logger
from ..models import ImportRequirement, ManipulationPass
from ..syntax import SourceTree
from .builder import StyleFileBuilder, StyleFunction

TEMPLATE_NAME = "accessor_module.ts.j2"
_QUOTES = ("\"", "'", "`")


def render_import_lines(requirements: Iterable[ImportRequirement], terminator: str = "") -> List[str]:
    """Group requirements by module into valid import statements.

    A statement carries at most one default binding, written first, followed
    by either one namespace clause or the named imports. Further defaults and
    namespaces of the same module get statements of their own.
    """
    grouped: "OrderedDict[str, Dict[str, List[str]]]" = OrderedDict()
    for requirement in requirements:
        entry = grouped.setdefault(requirement.module, {"defaults": [], "namespaces": [], "names": []})
        if requirement.clause is not None:
            kind = "namespaces" if requirement.clause.startswith("*") else "defaults"
            if requirement.clause not in entry[kind]:
                entry[kind].append(requirement.clause)
        elif requirement.name is not None and requirement.name not in entry["names"]:
            entry["names"].append(requirement.name)
    lines: List[str] = []
    for module, entry in grouped.items():
        defaults, namespaces, names = entry["defaults"], entry["namespaces"], entry["names"]
        while defaults or namespaces or names:
            parts: List[str] = []
            if defaults:
                parts.append(defaults.pop(0))
            if namespaces:
                parts.append(namespaces.pop(0))
            elif names:
                parts.append("{ " + ", ".join(names) + " }")
                names = []
            lines.append(f"import {', '.join(parts)} from {json.dumps(module)}{terminator}")
    return lines


def property_value(text: str) -> str:
    """Expression for a captured attribute value: literals verbatim, interpolations unwrapped."""
    value = text.strip()
    if value.startswith(_QUOTES):
        return value
    if value.startswith("{") and value.endswith("}"):
        return value[1:-1].strip()
    return value


def _create_env() -> Environment:
    loader = FileSystemLoader(str(Path(__file__).with_name("templates")))
    return Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True)


class CodeGenerator:
    """Emits the accessor module and queues the rewrites of the original source."""

    def __init__(
        self,
        tree: SourceTree,
        builder: StyleFileBuilder,
        accessor_module: str,
        env: Optional[Environment] = None,
    ) -> None:
        self.tree = tree
        self.builder = builder
        self.accessor_module = accessor_module
        self._env = env or _create_env()
        self.logger = get_logger("generator")

    @property
    def terminator(self) -> str:
        """Statement terminator matching the original's import style."""
        for statement in self.tree.root.named_children:
            if statement.type == "import_statement":
                return ";" if self.tree.text(statement).rstrip().endswith(";") else ""
        return ""

    # Accessor module

    def render_module(self) -> str:
        template = self._env.get_template(TEMPLATE_NAME)
        hoists = []
        seen_texts: Set[str] = set()
        for hoist in self.builder.hoists.values():
            if hoist.text in seen_texts:
                continue
            seen_texts.add(hoist.text)
            hoists.append({"text": hoist.text, "exported": hoist.exported})
        text = template.render(
            imports=render_import_lines(self.builder.style_imports()),
            interfaces=[self._interface(function) for function in self.builder.functions if function.parameters],
            hoists=hoists,
            accessor_object=ACCESSOR_OBJECT,
            functions=[self._accessor(function) for function in self.builder.functions],
        )
        return text.strip() + "\n"

    def _interface(self, function: StyleFunction) -> Dict[str, object]:
        fields = []
        for parameter in function.parameters:
            type_info = parameter.type
            fields.append(
                {
                    "name": parameter.name,
                    "optional": type_info is not None and type_info.is_optional,
                    "type": type_info.text if type_info is not None and type_info.alternatives else "any",
                }
            )
        return {"name": function.props_name, "fields": fields}

    def _accessor(self, function: StyleFunction) -> Dict[str, object]:
        signature = ""
        parameters = function.parameters
        if parameters:
            names = ", ".join(parameter.name for parameter in parameters)
            signature = f"{{ {names} }}: {function.props_name}"
            if function.all_optional:
                signature += " = {}"
        groups = [
            {
                "key": json.dumps(group.key),
                "properties": [
                    {"name": entry.attribute_name, "value": property_value(entry.value_text)}
                    for entry in group.properties
                ],
            }
            for group in function.groups
        ]
        return {"accessor": function.accessor_name, "signature": signature, "groups": groups}

    # Original source

    def queue_rewrites(self, exports: Iterable[Node] = ()) -> None:
        """Queue import insertion, missing exports and one accessor call per root.

        Injections are queued last so they render the element rewrites queued
        during analysis.
        """
        queue = self.builder.manipulations
        for function in self.builder.functions:
            function.local_name = self._local_name(function)
        for statement in exports:
            queue.add(
                lambda statement=statement: self.tree.insert(statement.start_byte, "export "),
                ManipulationPass.AFTER_GENERATION,
                "export local type",
            )
        queue.add(self._insert_imports, ManipulationPass.AFTER_GENERATION, "component imports")
        for function in self.builder.functions:
            queue.add(
                lambda function=function: self._inject(function),
                ManipulationPass.AFTER_GENERATION,
                f"inject {function.accessor_name}",
            )

    def _local_name(self, function: StyleFunction) -> str:
        taken = {
            self.tree.text(node)
            for node in self.tree.descendants(function.root.node, types=("identifier", "shorthand_property_identifier_pattern"))
        }
        taken.update(
            self.tree.text(statement.child_by_field_name("name"))
            for statement in self.tree.root.named_children
            if statement.child_by_field_name("name") is not None
        )
        candidate = STYLES_LOCAL
        counter = 2
        while candidate in taken:
            candidate = f"{STYLES_LOCAL}{counter}"
            counter += 1
        return candidate

    def _call(self, function: StyleFunction) -> str:
        arguments = [parameter.argument() for parameter in function.parameters]
        argument_list = "{ " + ", ".join(arguments) + " }" if arguments else ""
        local = function.local_name or STYLES_LOCAL
        return f"const {local} = {ACCESSOR_OBJECT}.{function.accessor_name}({argument_list}){self.terminator}"

    def _inject(self, function: StyleFunction) -> None:
        body = function.root.body
        if body is None:
            self.logger.warning("%s has no body; accessor call not injected", function.root.name)
            return
        code = self._call(function)
        unit = self.tree.indent_unit
        if body.type == "statement_block":
            statements = [child for child in body.named_children if child.type != "comment"]
            index = min(function.inject_index, len(statements))
            if index == 0:
                indent = (
                    self.tree.line_indent(statements[0].start_byte)
                    if statements
                    else self.tree.line_indent(function.root.node.start_byte) + unit
                )
                self.tree.insert(body.start_byte + 1, f"\n{indent}{code}")
            else:
                anchor = statements[index - 1]
                self.tree.insert(anchor.end_byte, f"\n{self.tree.line_indent(anchor.start_byte)}{code}")
            return
        indent = self.tree.line_indent(function.root.node.start_byte)
        inner = indent + unit
        rendered = self.tree.render_node(body)
        self.tree.replace(body, f"{{\n{inner}{code}\n{inner}return {rendered}{self.terminator}\n{indent}}}")

    def _insert_imports(self) -> None:
        terminator = self.terminator
        requirements = [ImportRequirement(module=self.accessor_module, name=ACCESSOR_OBJECT)]
        requirements.extend(self.builder.component_imports)
        lines = render_import_lines(requirements, terminator)
        if self.builder.reexports:
            lines.append(f"export {{ {', '.join(self.builder.reexports)} }}{terminator}")
        block = "\n".join(lines)

        statements = self.tree.root.named_children
        imports = [statement for statement in statements if statement.type == "import_statement"]
        if imports:
            self.tree.insert(imports[-1].end_byte, f"\n{block}")
            return
        directives = []
        for statement in statements:
            if statement.type == "expression_statement" and statement.named_children and statement.named_children[0].type == "string":
                directives.append(statement)
                continue
            if statement.type != "comment":
                break
        if directives:
            self.tree.insert(directives[-1].end_byte, f"\n\n{block}")
        else:
            self.tree.insert(0, f"{block}\n\n")


__all__ = ["CodeGenerator", "TEMPLATE_NAME", "property_value", "render_import_lines"]
