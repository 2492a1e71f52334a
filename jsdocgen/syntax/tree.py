"""Mutable documentable-node model shared by syntax providers and the core.

A unit is stored as a list of segments: plain source text interleaved with
documentable nodes, each of which holds its own segments. Text is always
rendered from segments, so attaching or removing documentation on one node
never shifts the offsets another node depends on.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple, Union

from ..models import DeclarationKind, DocumentationBlock
from .jsdoc import render_jsdoc

Segment = Union[str, "DocumentableNode"]


class DocumentableNode:
    """A syntax element able to carry documentation blocks."""

    def __init__(
        self,
        syntax_type: str,
        segments: Sequence[Segment],
        *,
        kind: Optional[DeclarationKind] = None,
        docs: Optional[Sequence[DocumentationBlock]] = None,
        indent: str = "",
    ) -> None:
        self.syntax_type = syntax_type
        self.kind = kind
        self.indent = indent
        self.segments: List[Segment] = list(segments)
        self._docs: List[DocumentationBlock] = list(docs or [])

    def __repr__(self) -> str:
        preview = self.text.splitlines()[0] if self.text else ""
        return f"DocumentableNode({self.syntax_type!r}, {preview[:40]!r})"

    @property
    def docs(self) -> List[DocumentationBlock]:
        """Attached documentation blocks in source order (a copy)."""
        return list(self._docs)

    @property
    def children(self) -> List["DocumentableNode"]:
        return [segment for segment in self.segments if isinstance(segment, DocumentableNode)]

    @property
    def text(self) -> str:
        """Source text of the node without its leading documentation."""
        return "".join(
            segment if isinstance(segment, str) else segment.full_text for segment in self.segments
        )

    @property
    def bare_text(self) -> str:
        """Source text with documentation stripped from this node and every descendant."""
        return "".join(
            segment if isinstance(segment, str) else segment.bare_text for segment in self.segments
        )

    @property
    def full_text(self) -> str:
        """Source text including leading documentation blocks."""
        return self._render_docs() + self.text

    def add_doc(self, block: DocumentationBlock) -> None:
        self._docs.append(block)

    def remove_doc(self, index: int = 0) -> Optional[DocumentationBlock]:
        if not self._docs or index >= len(self._docs):
            return None
        return self._docs.pop(index)

    def walk(self) -> Iterator[Tuple["DocumentableNode", int]]:
        """Yield ``(node, depth)`` depth-first pre-order; this node has depth 0."""
        stack: List[Tuple[DocumentableNode, int]] = [(self, 0)]
        while stack:
            node, depth = stack.pop()
            yield node, depth
            for child in reversed(node.children):
                stack.append((child, depth + 1))

    def descendants(self) -> List["DocumentableNode"]:
        return [node for node, depth in self.walk() if depth > 0]

    def _render_docs(self) -> str:
        parts: List[str] = []
        for block in self._docs:
            parts.append(block.raw if block.raw is not None else render_jsdoc(block, self.indent))
            parts.append(block.trailing if block.trailing is not None else "\n" + self.indent)
        return "".join(parts)


class SourceUnit:
    """A parsed source file (or transient snippet) made of segments."""

    def __init__(
        self,
        path: Path | str,
        segments: Sequence[Segment],
        *,
        is_external: bool = False,
    ) -> None:
        self.path = Path(path)
        self.segments: List[Segment] = list(segments)
        self.is_external = is_external
        self.original_text = self.text

    def __repr__(self) -> str:
        return f"SourceUnit({str(self.path)!r})"

    @property
    def text(self) -> str:
        return "".join(
            segment if isinstance(segment, str) else segment.full_text for segment in self.segments
        )

    @property
    def is_modified(self) -> bool:
        return self.text != self.original_text

    @property
    def top_level_nodes(self) -> List[DocumentableNode]:
        return [segment for segment in self.segments if isinstance(segment, DocumentableNode)]

    def documentable_nodes(self) -> List[DocumentableNode]:
        """All documentable nodes, depth-first pre-order in source order."""
        nodes: List[DocumentableNode] = []
        for top in self.top_level_nodes:
            nodes.extend(node for node, _ in top.walk())
        return nodes

    def descendants_of_kind(self, kind: DeclarationKind) -> List[DocumentableNode]:
        return [node for node in self.documentable_nodes() if node.kind is kind]

    def declarations_of_kind(self, kind: DeclarationKind) -> List[DocumentableNode]:
        """Top-level declarations of ``kind``; nested ones belong to their enclosing node."""
        return [node for node in self.top_level_nodes if node.kind is kind]


__all__ = ["DocumentableNode", "Segment", "SourceUnit"]
