"""Tests for restyle.generation.generator."""

from __future__ import annotations

from typing import Callable

from restyle.analysis.resolver import RootResolver
from restyle.analysis.scanner import iter_markup_elements
from restyle.generation.builder import StyleFileBuilder
from restyle.generation.generator import CodeGenerator, property_value, render_import_lines
from restyle.models import ImportRequirement, ManipulationPass, Parameter, TypeInfo, VariableHoist
from restyle.syntax import SourceTree

ACCESSOR_MODULE = "@/registry/styles/new-york/card"


def _builder_for(tree: SourceTree, function_name: str) -> StyleFileBuilder:
    element = next(iter_markup_elements(tree))
    location = RootResolver(tree).resolve(element)
    builder = StyleFileBuilder()
    function = builder.get_or_create_function(function_name, location.root)
    group = function.create_group(location.group_key, element)
    group.add_property("className", '"x"')
    return builder


def _generate(tree: SourceTree, builder: StyleFileBuilder) -> str:
    builder.manipulations.run(ManipulationPass.BEFORE_GENERATION)
    generator = CodeGenerator(tree, builder, ACCESSOR_MODULE)
    generator.queue_rewrites()
    builder.manipulations.run(ManipulationPass.AFTER_GENERATION)
    return tree.commit()


def test_render_import_lines_groups_by_module() -> None:
    lines = render_import_lines(
        [
            ImportRequirement(module="react", name="useMemo"),
            ImportRequirement(module="clsx", clause="clsx"),
            ImportRequirement(module="react", clause="* as React"),
            ImportRequirement(module="react", name="useMemo"),
            ImportRequirement(module="react", name="type FC"),
        ],
        terminator=";",
    )

    assert lines == [
        'import * as React from "react";',
        'import { useMemo, type FC } from "react";',
        'import clsx from "clsx";',
    ]


def test_render_import_lines_puts_default_before_namespace() -> None:
    lines = render_import_lines(
        [
            ImportRequirement(module="react", clause="* as R"),
            ImportRequirement(module="react", clause="React"),
            ImportRequirement(module="react", clause="* as Other"),
            ImportRequirement(module="react", name="useMemo"),
            ImportRequirement(module="clsx", clause="clsx"),
            ImportRequirement(module="clsx", name="type ClassValue"),
        ]
    )

    assert lines == [
        'import React, * as R from "react"',
        'import * as Other from "react"',
        'import { useMemo } from "react"',
        'import clsx, { type ClassValue } from "clsx"',
    ]


def test_property_value_unwraps_interpolations() -> None:
    assert property_value('"rounded-md border"') == '"rounded-md border"'
    assert property_value("{cn(base, className)}") == "cn(base, className)"
    assert property_value("{{ margin: 0 }}") == "{ margin: 0 }"


def test_render_module_emits_interfaces_hoists_and_accessors(parse: Callable[..., SourceTree]) -> None:
    tree = parse(
        """
        export function Card({ size }: { size?: "sm" }) {
          return <div className={cx(size)} />
        }
        """
    )
    builder = _builder_for(tree, "cardStyles")
    function = builder.functions[0]
    function.groups[0].properties.clear()
    function.groups[0].add_property("className", "{cx(base, size)}")
    function.add_parameter(Parameter(source_name="size", type=TypeInfo(alternatives=['"sm"', "undefined"], is_optional=True)))
    builder.add_import(ImportRequirement(module="clsx", name="clsx as cx"))
    builder.add_hoist(VariableHoist(name="base", text='const base = "p-4"', exported=True))

    module = CodeGenerator(tree, builder, ACCESSOR_MODULE).render_module()

    assert module.startswith('import { clsx as cx } from "clsx"\n')
    assert 'export interface CardStylesProps {\n  size?: "sm" | undefined\n}' in module
    assert 'export const base = "p-4"' in module
    assert "export const styling = {\n  getCardStyles({ size }: CardStylesProps = {}) {\n    return {\n" in module
    assert '      "div": {\n        className: cx(base, size),\n      },\n' in module
    assert module.endswith("}\n")


def test_accessor_without_parameters_has_empty_signature(parse: Callable[..., SourceTree]) -> None:
    tree = parse("function Card() {\n  return <div className=\"x\" />\n}\n")
    builder = _builder_for(tree, "cardStyles")

    module = CodeGenerator(tree, builder, ACCESSOR_MODULE).render_module()

    assert "interface" not in module
    assert "  getCardStyles() {\n" in module


def test_injects_call_at_start_of_block_body(parse: Callable[..., SourceTree]) -> None:
    tree = parse(
        """
        import { cx } from "clsx";

        export function Card() {
          return <div className="x" />;
        }
        """
    )
    builder = _builder_for(tree, "cardStyles")

    source = _generate(tree, builder)

    assert source.startswith(
        'import { cx } from "clsx";\nimport { styling } from "@/registry/styles/new-york/card";\n'
    )
    assert "export function Card() {\n  const styles = styling.getCardStyles();\n  return" in source


def test_expression_body_becomes_block(parse: Callable[..., SourceTree]) -> None:
    tree = parse(
        """
        export const Badge = () => (
          <span className="x" />
        )
        """
    )
    builder = _builder_for(tree, "badgeStyles")

    source = _generate(tree, builder)

    assert source.startswith('import { styling } from "@/registry/styles/new-york/card"\n\nexport const Badge = () => {\n')
    assert "  const styles = styling.getBadgeStyles()\n  return (\n" in source
    assert source.rstrip().endswith(")\n}")


def test_imports_follow_directives(parse: Callable[..., SourceTree]) -> None:
    tree = parse(
        """
        "use client"

        export function Card() {
          return <div className="x" />
        }
        """
    )
    builder = _builder_for(tree, "cardStyles")
    builder.add_reexport("Tone")

    source = _generate(tree, builder)

    assert source.startswith(
        '"use client"\n\nimport { styling } from "@/registry/styles/new-york/card"\nexport { Tone }\n'
    )


def test_styles_local_avoids_existing_names(parse: Callable[..., SourceTree]) -> None:
    tree = parse(
        """
        export function Card({ styles }) {
          return <div className="x" style={styles} />
        }
        """
    )
    builder = _builder_for(tree, "cardStyles")

    source = _generate(tree, builder)

    assert "const styles2 = styling.getCardStyles()" in source
