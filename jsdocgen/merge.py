"""Reconciles generated documentation blocks with the blocks already in source."""

from __future__ import annotations

from dataclasses import replace
from typing import List, Optional, Sequence

from .logging import get_logger
from .models import DocTag, DocumentationBlock, InsertMode, JSDocOptions
from .syntax.tree import DocumentableNode

_LOGGER = get_logger("merge")


def filter_block(block: DocumentationBlock, options: JSDocOptions) -> Optional[DocumentationBlock]:
    """Apply tag filters and visibility flags; return None for a void result.

    A non-empty allow-list wins over the deny-list.
    """
    tags: List[DocTag] = list(block.tags)
    if options.allowed_tags:
        tags = [tag for tag in tags if tag.name in options.allowed_tags]
    elif options.disabled_tags:
        tags = [tag for tag in tags if tag.name not in options.disabled_tags]

    description = block.description if options.is_show_description else ""
    if not options.is_show_tags:
        tags = []

    if not description.strip() and not tags:
        return None
    return DocumentationBlock(description=description, tags=tags)


def documentable_pairs(
    target: DocumentableNode,
    generated: Sequence[DocumentableNode],
    *,
    match_source_text: bool = True,
) -> List[tuple[DocumentableNode, int, DocumentableNode]]:
    """Pair the pre-order enumeration of ``target`` with ``generated`` by index.

    Returns ``(target_node, depth, generated_node)`` triples. With
    ``match_source_text`` a pair is kept only when both sides have the same
    code once documentation is stripped and whitespace is collapsed.
    """
    pairs = []
    for index, (node, depth) in enumerate(target.walk()):
        if index >= len(generated):
            break
        candidate = generated[index]
        if match_source_text and _normalise(node.bare_text) != _normalise(candidate.bare_text):
            _LOGGER.debug(
                "Skipping %s at position %d: generated code does not match the source",
                node.syntax_type,
                index,
            )
            continue
        pairs.append((node, depth, candidate))
    return pairs


def apply_documentation(
    target: DocumentableNode,
    generated: Sequence[DocumentableNode],
    options: JSDocOptions,
) -> None:
    """Merge documentation from ``generated`` nodes into ``target`` and its descendants.

    ``generated`` must be the documentable nodes of the parsed service response
    in depth-first pre-order, so position ``i`` lines up with the ``i``-th node
    of ``target.walk()``. ``target`` is mutated in place.
    """
    for node, depth, candidate in documentable_pairs(
        target, generated, match_source_text=options.match_source_text
    ):
        if options.depth is not None and depth > options.depth:
            continue
        blocks = [
            filtered
            for filtered in (filter_block(block, options) for block in candidate.docs)
            if filtered is not None
        ]
        if options.mode is InsertMode.REPLACE:
            _replace_docs(node, blocks, options)
        else:
            _append_docs(node, blocks, options)


def _replace_docs(
    node: DocumentableNode, blocks: Sequence[DocumentationBlock], options: JSDocOptions
) -> None:
    node.remove_doc(0)
    if not blocks:
        return
    _attach(node, blocks[0], options)


def _append_docs(
    node: DocumentableNode, blocks: Sequence[DocumentationBlock], options: JSDocOptions
) -> None:
    existing = node.docs
    candidates = [block for index, block in enumerate(blocks) if index >= len(existing)]
    if not candidates:
        return
    _attach(node, candidates[0], options)


def _attach(node: DocumentableNode, block: DocumentationBlock, options: JSDocOptions) -> None:
    # Only one generated block per node is ever attached.
    framed = bool(block.description.strip())
    if framed and options.prefix_description:
        node.add_doc(DocumentationBlock(description=options.prefix_description))
    node.add_doc(replace(block, raw=None, trailing=None))
    if framed and options.postfix_description:
        node.add_doc(DocumentationBlock(description=options.postfix_description))


def _normalise(text: str) -> str:
    return " ".join(text.split())


__all__ = ["apply_documentation", "documentable_pairs", "filter_block"]
