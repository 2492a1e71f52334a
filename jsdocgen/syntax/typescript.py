"""Tree-sitter powered TypeScript/JavaScript syntax provider."""

from __future__ import annotations

import asyncio
import glob
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from ..logging import get_logger
from ..models import DeclarationKind, SerializedSourceFile
from .jsdoc import is_jsdoc_comment, parse_jsdoc
from .tree import DocumentableNode, Segment, SourceUnit

SUPPORTED_SUFFIXES = (".ts", ".tsx", ".mts", ".cts", ".js", ".jsx", ".mjs", ".cjs")
_RESOLVE_SUFFIXES = (".ts", ".tsx", ".d.ts", ".mts", ".cts", ".js", ".jsx", ".mjs", ".cjs")
_TSX_SUFFIXES = {".tsx", ".jsx", ".js", ".mjs", ".cjs"}

_KIND_BY_TYPE: Dict[str, DeclarationKind] = {
    "function_declaration": DeclarationKind.FUNCTION,
    "generator_function_declaration": DeclarationKind.FUNCTION,
    "function_signature": DeclarationKind.FUNCTION,
    "class_declaration": DeclarationKind.CLASS,
    "abstract_class_declaration": DeclarationKind.CLASS,
    "interface_declaration": DeclarationKind.INTERFACE,
    "enum_declaration": DeclarationKind.ENUM,
    "type_alias_declaration": DeclarationKind.TYPE_ALIAS,
    "lexical_declaration": DeclarationKind.VARIABLE_STATEMENT,
    "variable_declaration": DeclarationKind.VARIABLE_STATEMENT,
}

_MEMBER_TYPES = {
    "method_definition",
    "method_signature",
    "abstract_method_signature",
    "public_field_definition",
    "property_signature",
    "construct_signature",
    "enum_assignment",
    "internal_module",
    "module",
}

_WRAPPER_TYPES = {"export_statement", "ambient_declaration", "expression_statement"}

_NodeKey = Tuple[int, int, str]


def minify_source(text: str) -> str:
    """Strip indentation, trailing whitespace and blank lines."""
    return "\n".join(line.strip() for line in text.splitlines() if line.strip())


class TypeScriptProvider:
    """Parses TypeScript/JavaScript files into documentable-node trees."""

    def __init__(self) -> None:
        self._languages = {
            "typescript": Language(tree_sitter_typescript.language_typescript()),
            "tsx": Language(tree_sitter_typescript.language_tsx()),
        }
        self._parsers: Dict[str, Parser] = {}
        self._units: Dict[Path, SourceUnit] = {}
        self.logger = get_logger("syntax.typescript")

    # ------------------------------------------------------------------
    # Loading and persistence

    def load_units(self, patterns: Sequence[str], root: Path | str = ".") -> List[SourceUnit]:
        """Expand glob patterns relative to ``root`` and parse every match."""
        root_path = Path(root).expanduser().resolve()
        seen: Set[Path] = set()
        units: List[SourceUnit] = []
        for pattern in patterns:
            full_pattern = pattern if Path(pattern).is_absolute() else str(root_path / pattern)
            for match in sorted(glob.glob(full_pattern, recursive=True)):
                path = Path(match).resolve()
                if path in seen or not path.is_file():
                    continue
                if not path.name.endswith(SUPPORTED_SUFFIXES) or "node_modules" in path.parts:
                    continue
                seen.add(path)
                units.append(self.parse_file(path))
        self.logger.debug("Loaded %d source unit(s) from %d pattern(s)", len(units), len(patterns))
        return units

    def parse_file(self, path: Path) -> SourceUnit:
        text = path.read_text(encoding="utf-8")
        unit = self.parse_text(text, path, is_external="node_modules" in path.parts)
        self._units[path] = unit
        return unit

    def reload(self, unit: SourceUnit) -> SourceUnit:
        return self.parse_file(unit.path)

    def parse_snippet(self, text: str, suffix: str = ".tsx") -> SourceUnit:
        """Parse a transient snippet such as a generation-service response."""
        return self.parse_text(text, Path(f"snippet{suffix}"))

    def parse_text(self, text: str, path: Path, *, is_external: bool = False) -> SourceUnit:
        source = text.encode("utf-8")
        tree = self._parser_for(path).parse(source)
        root = tree.root_node
        segments = self._segments(source, root, set(), 0, len(source))
        return SourceUnit(path, segments, is_external=is_external)

    async def save(self, unit: SourceUnit) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, _write_text, unit.path, unit.text)
        self.logger.debug("Saved %s", unit.path)

    # ------------------------------------------------------------------
    # Source context

    def minify(self, unit: SourceUnit) -> SerializedSourceFile:
        return SerializedSourceFile(source_code=minify_source(unit.text), file_path=str(unit.path))

    def referenced_units(self, unit: SourceUnit) -> List[SourceUnit]:
        """Return in-project units imported by ``unit``; external libraries are skipped."""
        source = unit.text.encode("utf-8")
        tree = self._parser_for(unit.path).parse(source)
        referenced: List[SourceUnit] = []
        seen: Set[Path] = set()
        for specifier in self._import_specifiers(tree.root_node, source):
            path = self._resolve_specifier(unit.path, specifier)
            if path is None or path in seen or "node_modules" in path.parts:
                continue
            seen.add(path)
            cached = self._units.get(path)
            try:
                referenced.append(cached if cached is not None else self.parse_file(path))
            except (OSError, UnicodeDecodeError) as exc:
                self.logger.debug("Skipping unreadable reference %s: %s", path, exc)
        return [item for item in referenced if not item.is_external]

    # ------------------------------------------------------------------
    # Tree construction

    def _parser_for(self, path: Path) -> Parser:
        language_key = "tsx" if path.suffix in _TSX_SUFFIXES else "typescript"
        parser = self._parsers.get(language_key)
        if parser is None:
            parser = Parser(self._languages[language_key])
            self._parsers[language_key] = parser
        return parser

    def _segments(
        self, source: bytes, owner: Node, own: Set[_NodeKey], start: int, end: int
    ) -> List[Segment]:
        segments: List[Segment] = []
        cursor = start
        for docs, span, decl in self._find_documentables(source, owner, own):
            node_start = docs[0].start_byte if docs else span.start_byte
            if node_start > cursor:
                segments.append(_decode(source[cursor:node_start]))
            segments.append(self._build_node(source, docs, span, decl))
            cursor = span.end_byte
        if cursor < end:
            segments.append(_decode(source[cursor:end]))
        return segments

    def _build_node(
        self, source: bytes, docs: List[Node], span: Node, decl: Node
    ) -> DocumentableNode:
        own = {_key(item) for item in _wrapper_chain(span, decl)}
        body = self._segments(source, span, own, span.start_byte, span.end_byte)
        blocks = []
        for index, comment in enumerate(docs):
            next_start = docs[index + 1].start_byte if index + 1 < len(docs) else span.start_byte
            block = parse_jsdoc(_decode(source[comment.start_byte : comment.end_byte]))
            block.trailing = _decode(source[comment.end_byte : next_start])
            blocks.append(block)
        first_start = docs[0].start_byte if docs else span.start_byte
        return DocumentableNode(
            decl.type,
            body,
            kind=_kind_of(decl),
            docs=blocks,
            indent=_line_indent(source, first_start),
        )

    def _find_documentables(
        self, source: bytes, owner: Node, own: Set[_NodeKey]
    ) -> Iterator[Tuple[List[Node], Node, Node]]:
        pending: List[Node] = []
        for child in owner.children:
            if child.type == "comment":
                text = source[child.start_byte : child.end_byte].decode("utf-8", errors="ignore")
                if not is_jsdoc_comment(text):
                    pending = []
                    continue
                if pending and not _only_whitespace(source, pending[-1].end_byte, child.start_byte):
                    pending = []
                pending.append(child)
                continue
            if _key(child) in own:
                yield from self._find_documentables(source, child, own)
                pending = []
                continue
            decl = _documentable(child, owner)
            if decl is not None:
                attached = pending if pending and _only_whitespace(
                    source, pending[-1].end_byte, child.start_byte
                ) else []
                yield attached, child, decl
            else:
                yield from self._find_documentables(source, child, own)
            pending = []

    # ------------------------------------------------------------------
    # Imports

    @staticmethod
    def _import_specifiers(root: Node, source: bytes) -> Iterable[str]:
        for child in root.children:
            if child.type not in {"import_statement", "export_statement"}:
                continue
            source_node = child.child_by_field_name("source")
            if source_node is None:
                continue
            raw = source[source_node.start_byte : source_node.end_byte].decode("utf-8", errors="ignore")
            specifier = raw.strip().strip("'\"`")
            if specifier:
                yield specifier

    @staticmethod
    def _resolve_specifier(origin: Path, specifier: str) -> Optional[Path]:
        if not specifier.startswith("."):
            return None
        base = (origin.parent / specifier).resolve()
        candidates = [base] if base.suffix in SUPPORTED_SUFFIXES else []
        stem = base.with_suffix("") if base.suffix in {".js", ".jsx", ".mjs", ".cjs"} else base
        candidates.extend(Path(f"{stem}{suffix}") for suffix in _RESOLVE_SUFFIXES)
        candidates.extend(base / f"index{suffix}" for suffix in _RESOLVE_SUFFIXES)
        for candidate in candidates:
            if candidate.is_file():
                return candidate
        return None


def _documentable(child: Node, parent: Node) -> Optional[Node]:
    """Return the declaration node documented by ``child`` (which may wrap it)."""
    if child.type in _WRAPPER_TYPES:
        inner = child.child_by_field_name("declaration")
        if inner is None:
            inner = next(
                (item for item in child.named_children if item.type in _KIND_BY_TYPE or item.type in _MEMBER_TYPES),
                None,
            )
        if inner is None:
            return None
        if child.type == "expression_statement" and inner.type != "internal_module":
            return None
        return _documentable(inner, child)
    if child.type in {"lexical_declaration", "variable_declaration"} and parent.type.startswith("for"):
        return None
    if child.type in _KIND_BY_TYPE or child.type in _MEMBER_TYPES:
        return child
    if child.type == "property_identifier" and parent.type == "enum_body":
        return child
    return None


def _wrapper_chain(span: Node, decl: Node) -> List[Node]:
    """Nodes from ``span`` down to ``decl`` (a single node when they coincide)."""
    chain = [span]
    current = span
    while _key(current) != _key(decl):
        step = next(
            (
                item
                for item in current.named_children
                if item.start_byte <= decl.start_byte and item.end_byte >= decl.end_byte
            ),
            None,
        )
        if step is None:
            chain.append(decl)
            break
        chain.append(step)
        current = step
    return chain


def _kind_of(decl: Node) -> Optional[DeclarationKind]:
    return _KIND_BY_TYPE.get(decl.type)


def _key(node: Node) -> _NodeKey:
    return (node.start_byte, node.end_byte, node.type)


def _only_whitespace(source: bytes, start: int, end: int) -> bool:
    return not source[start:end].strip()


def _line_indent(source: bytes, offset: int) -> str:
    line_start = source.rfind(b"\n", 0, offset) + 1
    prefix = source[line_start:offset]
    return _decode(prefix) if not prefix.strip() else ""


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def _write_text(path: Path, text: str) -> None:
    path.write_text(text, encoding="utf-8")


__all__ = ["SUPPORTED_SUFFIXES", "TypeScriptProvider", "minify_source"]
