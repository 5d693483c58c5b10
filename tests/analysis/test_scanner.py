"""Tests for restyle.analysis.scanner."""

from __future__ import annotations

from typing import Callable

from restyle.analysis.scanner import (
    attribute_name,
    iter_markup_elements,
    presentation_attributes,
    tag_name,
)
from restyle.syntax import SourceTree


def test_iter_markup_elements_in_document_order(parse: Callable[..., SourceTree]) -> None:
    tree = parse(
        """
        export function Card() {
          return (
            <div className="card">
              <Header.Title />
              <p style={{ margin: 0 }}>text</p>
            </div>
          )
        }
        """
    )

    elements = list(iter_markup_elements(tree))

    assert [tag_name(tree, element) for element in elements] == ["div", "Header.Title", "p"]


def test_presentation_attributes_filters_and_keeps_order(parse: Callable[..., SourceTree]) -> None:
    tree = parse('const el = <div id="root" style={s} onClick={go} className="a" />\n')
    element = next(iter_markup_elements(tree))

    attributes = presentation_attributes(tree, element)

    assert [attribute_name(tree, attribute) for attribute in attributes] == ["style", "className"]
