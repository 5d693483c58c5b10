"""Tests for restyle.syntax.tree."""

from __future__ import annotations

from typing import Callable

import pytest

from restyle.syntax import SourceTree, language_for_path


def test_language_for_path_picks_grammar() -> None:
    assert language_for_path("card.tsx") == "tsx"
    assert language_for_path("types.d.ts") == "typescript"
    assert language_for_path(None) == "tsx"


def test_edits_are_deferred_until_commit(parse: Callable[..., SourceTree]) -> None:
    tree = parse('const a = "x"\n')
    value = next(tree.descendants(types=("string",)))

    tree.replace(value, '"y"')

    assert tree.source_text == 'const a = "x"\n'
    assert tree.has_edits
    assert tree.commit() == 'const a = "y"\n'
    assert not tree.has_edits
    assert tree.root.type == "program"


def test_inner_edit_is_dropped_by_wider_replacement(parse: Callable[..., SourceTree]) -> None:
    tree = parse("foo(bar)\n")
    statement = tree.root.named_children[0]
    argument = next(node for node in tree.descendants(types=("identifier",)) if tree.text(node) == "bar")

    tree.replace(argument, "baz")
    tree.replace(statement, "qux()")

    assert tree.commit() == "qux()\n"


def test_render_applies_inner_edits(parse: Callable[..., SourceTree]) -> None:
    tree = parse("foo(bar)\n")
    statement = tree.root.named_children[0]
    argument = next(node for node in tree.descendants(types=("identifier",)) if tree.text(node) == "bar")

    tree.replace(argument, "baz")
    rendered = tree.render_node(statement)
    tree.replace(statement, f"[{rendered}]")

    assert rendered == "foo(baz)"
    assert tree.commit() == "[foo(baz)]\n"


def test_insertions_at_same_offset_keep_order(parse: Callable[..., SourceTree]) -> None:
    tree = parse("b\n")

    tree.insert(0, "a")
    tree.insert(0, "-")

    assert tree.commit() == "a-b\n"


def test_overlapping_replacements_are_rejected(parse: Callable[..., SourceTree]) -> None:
    tree = parse("0123456789\n")

    tree.replace_range(0, 5, "x")
    tree.replace_range(3, 8, "y")

    with pytest.raises(ValueError):
        tree.commit()


def test_remove_statement_eats_the_line(parse: Callable[..., SourceTree]) -> None:
    tree = parse(
        """
        import a from "a"
        import b from "b"
        const c = 1
        """
    )
    second = tree.root.named_children[1]

    tree.remove_statement(second)

    assert tree.commit() == 'import a from "a"\nconst c = 1\n'


def test_indentation_helpers(parse: Callable[..., SourceTree]) -> None:
    tree = parse(
        """
        function Card() {
          return null
        }
        """
    )
    statement = next(tree.descendants(types=("return_statement",)))

    assert tree.indent_unit == "  "
    assert tree.line_indent(statement.start_byte) == "  "
    assert tree.is_ancestor(tree.root, statement)


def test_indent_unit_follows_first_indented_line(parse: Callable[..., SourceTree]) -> None:
    assert parse("const a = <b />\n").indent_unit == "  "
    assert parse("function Card() {\n\treturn null\n}\n").indent_unit == "\t"
