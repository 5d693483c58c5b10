"""Tests for restyle.analysis.symbols."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from restyle.analysis.symbols import (
    BindingKind,
    DeclarationKind,
    ModuleSymbols,
    module_specifier,
)
from restyle.models import ImportRequirement
from restyle.syntax import SourceTree
from tests._fixtures.project_builder import ProjectBuilder


def test_import_bindings_cover_every_clause_form(parse: Callable[..., SourceTree]) -> None:
    tree = parse(
        """
        import React, { useMemo as memo, type FC } from "react"
        import * as Icons from "lucide-react"
        import "./globals.css"
        """
    )

    symbols = ModuleSymbols(tree)

    assert set(symbols.imports) == {"React", "memo", "FC", "Icons"}
    assert symbols.imports["memo"].imported == "useMemo"
    assert symbols.imports["memo"].requirement() == ImportRequirement(module="react", name="useMemo as memo")
    assert symbols.imports["FC"].requirement() == ImportRequirement(module="react", name="FC")
    assert symbols.imports["Icons"].requirement() == ImportRequirement(module="lucide-react", clause="* as Icons")
    assert symbols.imports["React"].requirement() == ImportRequirement(module="react", clause="React")
    assert len(symbols.import_statements) == 3


def test_module_declarations_and_exports(parse: Callable[..., SourceTree]) -> None:
    tree = parse(
        """
        const base = "p-4", { tone, ...rest } = theme
        export interface CardProps { size?: string }
        export function Card() {}
        function Hidden() {}
        export { Hidden as Shown }
        export default Card
        """
    )

    symbols = ModuleSymbols(tree)

    assert symbols.module_declaration("base").kind == DeclarationKind.VARIABLE
    assert symbols.module_declaration("tone").binding == BindingKind.OBJECT
    assert symbols.module_declaration("rest").binding == BindingKind.REST
    assert symbols.module_declaration("CardProps") is None
    assert symbols.module_declaration("CardProps", {DeclarationKind.TYPE}).exported
    assert symbols.exports["Shown"] == "Hidden"
    assert symbols.exports["default"] == "Card"
    assert symbols.is_exported("Card")
    assert symbols.is_exported("Hidden")
    assert not symbols.is_exported("base")


def test_resolve_honours_nested_scopes(parse: Callable[..., SourceTree]) -> None:
    tree = parse(
        """
        const size = "lg"
        function Card({ size }) {
          const items = list.map((size) => size)
          return size
        }
        """
    )
    symbols = ModuleSymbols(tree)
    references = [node for node in tree.descendants(types=("identifier",)) if tree.text(node) == "size"]
    returned = references[-1]
    in_callback = references[-2]

    outer = symbols.resolve(returned)
    inner = symbols.resolve(in_callback)

    assert outer.kind == DeclarationKind.PARAMETER
    assert outer.binding == BindingKind.OBJECT
    assert outer.scope.type == "function_declaration"
    assert inner.scope.type == "arrow_function"
    assert len(list(symbols.references(outer))) == 1


def test_project_resolves_aliases_and_packages(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {
            "lib/utils.ts": "export function cn() {}\n",
            "node_modules/ui-kit/package.json": '{"types": "dist/index.d.ts"}',
            "node_modules/ui-kit/dist/index.d.ts": "export declare const x: number\n",
            "node_modules/@types/scoped__pkg/index.d.ts": "export declare const y: number\n",
            "registry/new-york/ui/card.tsx": "export {}\n",
        }
    )
    project = project_builder.project()
    root = project.root
    card = root / "registry/new-york/ui/card.tsx"

    assert project.resolve_module(card, "@/lib/utils") == root / "lib/utils.ts"
    assert project.resolve_module(card, "../../../lib/utils") == root / "lib/utils.ts"
    assert project.resolve_module(card, "ui-kit") == root / "node_modules/ui-kit/dist/index.d.ts"
    assert project.resolve_module(card, "@scoped/pkg") == root / "node_modules/@types/scoped__pkg/index.d.ts"
    assert project.resolve_module(card, "./missing") is None


def test_find_declaration_follows_imports_and_reexports(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {
            "lib/index.ts": 'export * from "./tokens"\nexport { Tone as Shade } from "./tone"\n',
            "lib/tokens.ts": 'export const spacing = "p-4"\n',
            "lib/tone.ts": 'export type Tone = "light" | "dark"\n',
            "card.tsx": 'import { spacing, Shade } from "./lib"\n',
        }
    )
    project = project_builder.project()
    card = project.load(project.root / "card.tsx")

    spacing = project.find_declaration(card, "spacing")
    shade = project.find_declaration(card, "Shade", {DeclarationKind.TYPE})

    assert spacing.tree.path == project.root / "lib/tokens.ts"
    assert spacing.declaration.kind == DeclarationKind.VARIABLE
    assert shade.tree.path == project.root / "lib/tone.ts"
    assert shade.declaration.name == "Tone"
    assert project.exported_names(project.root / "lib/index.ts") == {"spacing", "Shade"}


def test_module_specifier_is_relative_without_suffix() -> None:
    accessor = Path("/p/registry/styles/new-york/card.tsx")

    assert module_specifier(accessor, Path("/p/registry/ui/new-york/card.tsx")) == "../../ui/new-york/card"
    assert module_specifier(accessor, Path("/p/registry/styles/new-york/tokens.ts")) == "./tokens"
    assert module_specifier(accessor, Path("/p/registry/styles/new-york/theme/index.tsx")) == "./theme"
    assert module_specifier(accessor, Path("/p/types/ui.d.ts")) == "../../../types/ui"
