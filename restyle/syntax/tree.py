"""Source tree with deferred, offset-based edits."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from tree_sitter import Node, Parser, Tree


@dataclass
class _Edit:
    start: int
    end: int
    text: bytes
    seq: int

    @property
    def is_insertion(self) -> bool:
        return self.start == self.end

    def within(self, start: int, end: int) -> bool:
        if self.is_insertion:
            return start < self.start < end
        return start <= self.start and self.end <= end

    def covers(self, other: "_Edit") -> bool:
        """True when ``other`` lies inside this replacement and is superseded by it."""
        if self.is_insertion or other is self:
            return False
        if other.start == self.start and other.end == self.end:
            return other.seq < self.seq
        return other.within(self.start, self.end)


class SourceTree:
    """Owns the bytes and parse tree of one file.

    Mutations are recorded against the original byte offsets and applied in
    a single :meth:`commit`. Until then every node stays valid, so analysis
    can keep reading the original tree while edits accumulate. An edit that
    lies inside a later, wider replacement is dropped on commit; the wider
    replacement is expected to carry the rendered inner text.
    """

    def __init__(self, source: str | bytes, parser: Parser, path: Optional[Path] = None) -> None:
        self.path = path
        self._parser = parser
        self._source = source.encode("utf-8") if isinstance(source, str) else source
        self._tree: Tree = parser.parse(self._source)
        self._edits: List[_Edit] = []
        self._seq = 0

    @property
    def root(self) -> Node:
        return self._tree.root_node

    @property
    def source(self) -> bytes:
        return self._source

    @property
    def source_text(self) -> str:
        return self._source.decode("utf-8")

    @property
    def has_edits(self) -> bool:
        return bool(self._edits)

    @property
    def is_external(self) -> bool:
        return self.path is not None and "node_modules" in self.path.parts

    def text(self, node: Optional[Node]) -> str:
        if node is None:
            return ""
        return self._source[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")

    # Traversal helpers

    def descendants(self, node: Optional[Node] = None, types: Optional[Iterable[str]] = None) -> Iterator[Node]:
        """Pre-order walk below ``node`` (exclusive), optionally filtered by type."""
        wanted = set(types) if types is not None else None
        start = node if node is not None else self.root
        stack = list(reversed(start.children))
        while stack:
            current = stack.pop()
            if wanted is None or current.type in wanted:
                yield current
            stack.extend(reversed(current.children))

    @staticmethod
    def ancestors(node: Node) -> Iterator[Node]:
        current = node.parent
        while current is not None:
            yield current
            current = current.parent

    @staticmethod
    def is_ancestor(outer: Node, inner: Node) -> bool:
        """True when ``outer`` is ``inner`` or one of its ancestors."""
        current: Optional[Node] = inner
        while current is not None:
            if current.id == outer.id:
                return True
            current = current.parent
        return False

    def line_indent(self, position: int) -> str:
        line_start = self._source.rfind(b"\n", 0, position) + 1
        index = line_start
        while index < len(self._source) and self._source[index : index + 1] in (b" ", b"\t"):
            index += 1
        return self._source[line_start:index].decode("utf-8")

    @property
    def indent_unit(self) -> str:
        for line in self._source.splitlines():
            if line.startswith(b"\t"):
                return "\t"
            if line.startswith(b" "):
                break
        return "  "

    # Deferred edits

    def replace(self, node: Node, text: str) -> None:
        self.replace_range(node.start_byte, node.end_byte, text)

    def replace_range(self, start: int, end: int, text: str) -> None:
        if start > end:
            raise ValueError(f"Invalid edit range {start}..{end}")
        for edit in self._edits:
            if edit.start == start and edit.end == end and edit.text == text.encode("utf-8"):
                return
        self._seq += 1
        self._edits.append(_Edit(start, end, text.encode("utf-8"), self._seq))

    def insert(self, position: int, text: str) -> None:
        self.replace_range(position, position, text)

    def delete_range(self, start: int, end: int) -> None:
        self.replace_range(start, end, "")

    def remove_statement(self, node: Node) -> None:
        """Delete a statement together with the line break that follows it."""
        end = node.end_byte
        while end < len(self._source) and self._source[end : end + 1] in (b" ", b"\t"):
            end += 1
        if self._source[end : end + 1] == b"\r":
            end += 1
        if self._source[end : end + 1] == b"\n":
            end += 1
        start = node.start_byte
        line_start = self._source.rfind(b"\n", 0, start) + 1
        if not self._source[line_start:start].strip():
            start = line_start
        self.delete_range(start, end)

    def render(self, start: int, end: int) -> str:
        """Text of ``start..end`` with the pending edits strictly inside it applied."""
        inner = [edit for edit in self._edits if edit.within(start, end)]
        return self._apply(inner, start, end).decode("utf-8")

    def render_node(self, node: Node) -> str:
        return self.render(node.start_byte, node.end_byte)

    def commit(self) -> str:
        """Apply every pending edit, re-parse and return the new text."""
        if self._edits:
            self._source = self._apply(self._edits, 0, len(self._source))
            self._tree = self._parser.parse(self._source)
            self._edits = []
        return self.source_text

    def _apply(self, edits: List[_Edit], start: int, end: int) -> bytes:
        effective = [edit for edit in edits if not any(other.covers(edit) for other in edits)]
        effective.sort(key=lambda edit: (edit.start, 0 if edit.is_insertion else 1, edit.seq))
        chunks: List[bytes] = []
        cursor = start
        for edit in effective:
            if edit.start < cursor:
                raise ValueError(f"Overlapping edits at byte {edit.start}")
            chunks.append(self._source[cursor : edit.start])
            chunks.append(edit.text)
            cursor = edit.end
        chunks.append(self._source[cursor:end])
        return b"".join(chunks)


__all__ = ["SourceTree"]
