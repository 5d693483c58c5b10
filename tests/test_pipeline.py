"""Tests for restyle.pipeline."""

from __future__ import annotations

import pytest

from restyle.analysis.symbols import Project
from restyle.errors import ExtractionError, GroupCollisionError
from restyle.models import ExtractionResult
from restyle.pipeline import extract_component, extract_source
from tests._fixtures.project_builder import ProjectBuilder

ACCESSOR_MODULE = "@/registry/styles/new-york/card"


def _extract(project_builder: ProjectBuilder, name: str, source: str, **kwargs: object) -> ExtractionResult:
    project_builder.component(name, source)
    return extract_component(project_builder.config(), "new-york", name, **kwargs)


def test_extracts_attribute_into_accessor_module(project_builder: ProjectBuilder) -> None:
    result = _extract(
        project_builder,
        "card",
        """
        import * as React from "react"
        import { cx } from "@/lib/utils"

        export function Card(props) {
          return <div className={cx(props.size)} />
        }
        """,
    )

    assert result.changed
    assert result.functions == 1
    assert result.groups == 1
    assert result.accessor_source == (
        'import { cx } from "@/lib/utils"\n'
        "\n"
        "export interface CardStylesProps {\n"
        "  size: any\n"
        "}\n"
        "\n"
        "export const styling = {\n"
        "  getCardStyles({ size }: CardStylesProps) {\n"
        "    return {\n"
        '      "div": {\n'
        "        className: cx(size),\n"
        "      },\n"
        "    }\n"
        "  },\n"
        "}\n"
    )
    assert result.source == (
        'import { styling } from "@/registry/styles/new-york/card"\n'
        "\n"
        "export function Card(props) {\n"
        "  const styles = styling.getCardStyles({ size: props.size })\n"
        "  return <div {...styles.div} />\n"
        "}\n"
    )
    assert project_builder.read("registry/ui/new-york/card.tsx") == result.source
    assert project_builder.read("registry/styles/new-york/card.tsx") == result.accessor_source
    assert "className" in project_builder.read("registry/new-york/ui/card.tsx")


def test_extraction_is_idempotent(project_builder: ProjectBuilder) -> None:
    first = _extract(
        project_builder,
        "card",
        """
        export function Card({ className }) {
          return <div className={className} style={{ gap: 4 }} />
        }
        """,
        write=False,
    )
    project = Project(root=project_builder.path())
    tree = project.parser.parse(first.source, project_builder.path() / "registry/ui/new-york/card.tsx")

    second = extract_source(
        project,
        tree,
        accessor_path=project_builder.path() / "registry/styles/new-york/card.tsx",
        output_path=project_builder.path() / "registry/ui/new-york/card.tsx",
        accessor_module=ACCESSOR_MODULE,
    )

    assert '      "div": {\n        className: className,\n        style: { gap: 4 },\n      },\n' in first.accessor_source
    assert "<div {...styles.div} />" in first.source
    assert not second.changed
    assert second.source == first.source


def test_shared_module_variable_is_hoisted_once_and_exported(project_builder: ProjectBuilder) -> None:
    result = _extract(
        project_builder,
        "card",
        """
        import { cn } from "@/lib/utils"

        const base = "rounded-md border"

        export function Card() {
          return (
            <div className={cn(base, "p-4")}>
              <p className={base} />
            </div>
          )
        }
        """,
    )

    accessor = result.accessor_source
    assert accessor.count("const base") == 1
    assert 'export const base = "rounded-md border"\n' in accessor
    assert '      "div:p": {\n        className: base,\n      },\n' in accessor
    assert "const base" not in result.source
    assert "<div {...styles.div}>" in result.source
    assert '<p {...styles["div:p"]} />' in result.source
    assert 'import { styling } from "@/registry/styles/new-york/card"\n' in result.source
    assert "@/lib/utils" not in result.source


def test_variant_helper_parameters_use_variant_props(project_builder: ProjectBuilder) -> None:
    result = _extract(
        project_builder,
        "button",
        """
        import { cva, type VariantProps } from "class-variance-authority"

        const buttonVariants = cva("inline-flex", {
          variants: { size: { sm: "h-8", lg: "h-10" } },
        })

        export function Button({ size }) {
          return <button className={buttonVariants({ size })} />
        }
        """,
    )

    accessor = result.accessor_source
    assert accessor.startswith('import { cva, VariantProps } from "class-variance-authority"\n')
    assert '  size?: VariantProps<typeof buttonVariants>["size"]\n' in accessor
    assert '\nconst buttonVariants = cva("inline-flex", {' in accessor
    assert "export const buttonVariants" not in accessor
    assert "getButtonStyles({ size }: ButtonStylesProps = {})" in accessor
    assert "const buttonVariants" not in result.source
    assert "class-variance-authority" not in result.source
    assert "const styles = styling.getButtonStyles({ size })" in result.source


def test_context_bindings_are_passed_after_their_declaration(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {
            "registry/new-york/ui/theme.tsx": """
                import { createContext } from "react"
                export interface Theme {
                  tone: "light" | "dark"
                }
                export const ThemeContext = createContext<Theme>({ tone: "light" })
            """,
        }
    )

    result = _extract(
        project_builder,
        "panel",
        """
        import * as React from "react"
        import { ThemeContext } from "./theme"

        export function Panel() {
          const { tone } = React.useContext(ThemeContext)
          return <div className={tone} />
        }
        """,
    )

    assert '  tone: "light" | "dark"\n' in result.accessor_source
    assert (
        "  const { tone } = React.useContext(ThemeContext)\n"
        "  const styles = styling.getPanelStyles({ tone })\n"
        "  return <div {...styles.div} />\n"
    ) in result.source
    assert 'import * as React from "react"\n' in result.source


def test_element_with_nested_binding_is_skipped(project_builder: ProjectBuilder) -> None:
    result = _extract(
        project_builder,
        "list",
        """
        export function List({ items }) {
          return (
            <ul className="list">
              {items.map((item) => (
                <li className={item} />
              ))}
            </ul>
          )
        }
        """,
    )

    assert result.skipped_elements == 1
    assert result.groups == 1
    assert '      "ul": {\n        className: "list",\n      },\n' in result.accessor_source
    assert "<ul {...styles.ul}>" in result.source
    assert "<li className={item} />" in result.source


def test_module_level_markup_is_left_alone(project_builder: ProjectBuilder) -> None:
    source = 'export const icon = <svg className="h-4 w-4" />\n'

    result = _extract(project_builder, "icon", source)

    assert not result.changed
    assert result.skipped_elements == 1
    assert result.source == source
    assert not (project_builder.path() / "registry/styles/new-york/icon.tsx").exists()
    assert project_builder.read("registry/ui/new-york/icon.tsx") == source


def test_duplicate_attribute_aborts_the_file(project_builder: ProjectBuilder) -> None:
    with pytest.raises(GroupCollisionError):
        _extract(
            project_builder,
            "card",
            """
            export function Card() {
              return <div className="a" className="b" />
            }
            """,
        )

    assert not (project_builder.path() / "registry/ui/new-york/card.tsx").exists()


def test_expression_bodied_forward_ref(project_builder: ProjectBuilder) -> None:
    result = _extract(
        project_builder,
        "input",
        """
        import * as React from "react"

        export interface InputProps {
          size?: "sm" | "lg"
        }

        const Input = React.forwardRef<HTMLInputElement, InputProps>(({ size, ...props }, ref) => (
          <input className={size} ref={ref} {...props} />
        ))
        Input.displayName = "Input"

        export { Input }
        """,
    )

    assert '  size?: "sm" | "lg" | undefined\n' in result.accessor_source
    assert "getInputStyles({ size }: InputStylesProps = {})" in result.accessor_source
    assert (
        "=> {\n"
        "  const styles = styling.getInputStyles({ size })\n"
        "  return (\n"
        "  <input {...styles.input} ref={ref} {...props} />\n"
        ")\n"
        "})\n"
    ) in result.source


def test_local_types_are_exported_and_imported(project_builder: ProjectBuilder) -> None:
    result = _extract(
        project_builder,
        "banner",
        """
        type Tone = "info" | "warn"

        export function Banner({ tone }: { tone: Tone }) {
          return <div className={tone} />
        }
        """,
    )

    assert result.accessor_source.startswith('import { Tone } from "../../ui/new-york/banner"\n')
    assert "  tone: Tone\n" in result.accessor_source
    assert result.source.startswith('import { styling } from "@/registry/styles/new-york/banner"\n')
    assert 'export type Tone = "info" | "warn"\n' in result.source


def test_rest_bindings_omit_destructured_keys(project_builder: ProjectBuilder) -> None:
    result = _extract(
        project_builder,
        "box",
        """
        interface BoxProps {
          tone: string
          padding: number
        }

        export function Box({ tone, ...rest }: BoxProps) {
          return <div style={rest} />
        }
        """,
    )

    assert 'import { BoxProps } from "../../ui/new-york/box"\n' in result.accessor_source
    assert '  rest: Omit<BoxProps, "tone">\n' in result.accessor_source
    assert "        style: rest,\n" in result.accessor_source
    assert "export interface BoxProps {" in result.source
    assert "const styles = styling.getBoxStyles({ rest })" in result.source


def test_imported_types_are_retargeted(project_builder: ProjectBuilder) -> None:
    project_builder.write({"registry/new-york/ui/button.tsx": 'export type Size = "sm" | "lg"\n'})

    result = _extract(
        project_builder,
        "chip",
        """
        import { Size } from "./button"

        export function Chip({ size }: { size: Size }) {
          return <span className={size} />
        }
        """,
    )

    assert result.accessor_source.startswith('import { Size } from "../../new-york/ui/button"\n')
    assert 'import { Size } from "./button"\n' in result.source


def test_partially_hoisted_declaration_keeps_other_declarators(project_builder: ProjectBuilder) -> None:
    result = _extract(
        project_builder,
        "card",
        """
        const base = "p-4", label = "Card"

        export function Card() {
          return <div className={base} aria-label={label} />
        }
        """,
    )

    assert '\nconst base = "p-4"\n' in result.accessor_source
    assert 'const label = "Card"\n' in result.source
    assert "base" not in result.source
    assert "<div {...styles.div} aria-label={label} />" in result.source


def test_missing_component_raises(project_builder: ProjectBuilder) -> None:
    with pytest.raises(ExtractionError):
        extract_component(project_builder.config(), "new-york", "ghost")


def test_exported_module_variable_is_reexported(project_builder: ProjectBuilder) -> None:
    result = _extract(
        project_builder,
        "card",
        """
        export const base = "p-4"

        export function Card() {
          return <div className={base} />
        }
        """,
    )

    assert 'export const base = "p-4"\n' in result.accessor_source
    assert result.source.startswith(
        'import { styling, base } from "@/registry/styles/new-york/card"\nexport { base }\n'
    )
    assert "export const base" not in result.source


def test_element_before_a_dependency_is_skipped(project_builder: ProjectBuilder) -> None:
    result = _extract(
        project_builder,
        "card",
        """
        export function Card() {
          const header = <h1 className="title" />
          const tone = useTone()
          return <div className={tone}>{header}</div>
        }
        """,
    )

    assert result.skipped_elements == 1
    assert result.groups == 1
    assert (
        "export function Card() {\n"
        "  const styles = styling.getCardStyles()\n"
        "  const header = <h1 {...styles.h1} />\n"
        "  const tone = useTone()\n"
        "  return <div className={tone}>{header}</div>\n"
        "}\n"
    ) in result.source
    assert result.source.index("const styles") < result.source.index("styles.h1")


def test_same_member_name_on_different_objects(project_builder: ProjectBuilder) -> None:
    result = _extract(
        project_builder,
        "card",
        """
        export function Card(props) {
          const state = useCardState()
          return <div className={props.size} style={{ width: state.size }} />
        }
        """,
    )

    assert "getCardStyles({ size, size2 }: CardStylesProps" in result.accessor_source
    assert "        className: size,\n" in result.accessor_source
    assert "        style: { width: size2 },\n" in result.accessor_source
    assert (
        "  const state = useCardState()\n"
        "  const styles = styling.getCardStyles({ size: props.size, size2: state.size })\n"
        "  return <div {...styles.div} />\n"
    ) in result.source


def test_default_and_namespace_imports_share_one_statement(project_builder: ProjectBuilder) -> None:
    result = _extract(
        project_builder,
        "card",
        """
        import React, * as R from "react"
        import clsx from "clsx"

        export function Card() {
          return <div className={clsx(R.version, React.version)} />
        }
        """,
    )

    assert result.accessor_source.startswith('import clsx from "clsx"\nimport React, * as R from "react"\n\n')
    assert "        className: clsx(R.version, React.version),\n" in result.accessor_source


def test_sibling_elements_with_the_same_label_get_numbered_keys(project_builder: ProjectBuilder) -> None:
    result = _extract(
        project_builder,
        "badge",
        """
        export function Badge() {
          return (
            <div className="row">
              <span className="a" />
              <span className="b" />
            </div>
          )
        }
        """,
    )

    assert result.groups == 3
    assert '      "div:span": {\n        className: "a",\n      },\n' in result.accessor_source
    assert '      "div:span2": {\n        className: "b",\n      },\n' in result.accessor_source
    assert '<span {...styles["div:span"]} />' in result.source
    assert '<span {...styles["div:span2"]} />' in result.source
    assert "<div {...styles.div}>" in result.source
