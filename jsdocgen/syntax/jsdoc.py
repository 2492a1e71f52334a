"""Parsing and rendering of ``/** ... */`` documentation comments."""

from __future__ import annotations

import re
from typing import List

from ..models import DocTag, DocumentationBlock

_TAG_LINE = re.compile(r"^@(?P<name>[A-Za-z_][\w.-]*)\s?(?P<text>.*)$")


def is_jsdoc_comment(text: str) -> bool:
    """Return True for block comments that open with ``/**`` (but not ``/**/``)."""
    return text.startswith("/**") and text.endswith("*/") and not text.startswith("/**/")


def parse_jsdoc(text: str) -> DocumentationBlock:
    """Parse a JSDoc comment into description and tags, keeping the raw text."""
    if not is_jsdoc_comment(text):
        raise ValueError("Not a JSDoc comment")
    body = text[3:-2]
    lines = [_strip_gutter(line) for line in body.splitlines()]

    description_lines: List[str] = []
    tags: List[DocTag] = []
    current_name: str | None = None
    current_text: List[str] = []

    for line in lines:
        match = _TAG_LINE.match(line.strip())
        if match:
            if current_name is not None:
                tags.append(DocTag(current_name, _join(current_text)))
            current_name = match.group("name")
            current_text = [match.group("text")]
        elif current_name is not None:
            current_text.append(line)
        else:
            description_lines.append(line)

    if current_name is not None:
        tags.append(DocTag(current_name, _join(current_text)))

    return DocumentationBlock(description=_join(description_lines), tags=tags, raw=text)


def render_jsdoc(block: DocumentationBlock, indent: str = "") -> str:
    """Render a block as a multi-line JSDoc comment aligned to ``indent``."""
    content: List[str] = []
    description = block.description.strip("\n")
    if description.strip():
        content.extend(line.rstrip() for line in description.splitlines())
    if block.tags:
        if content:
            content.append("")
        for tag in block.tags:
            tag_lines = f"@{tag.name} {tag.text}".rstrip().splitlines() or [f"@{tag.name}"]
            content.extend(line.rstrip() for line in tag_lines)

    rendered = ["/**"]
    for line in content:
        rendered.append(f"{indent} * {line}" if line else f"{indent} *")
    rendered.append(f"{indent} */")
    return "\n".join(rendered)


def _strip_gutter(line: str) -> str:
    stripped = line.strip()
    if stripped.startswith("*"):
        stripped = stripped[1:]
        if stripped.startswith(" "):
            stripped = stripped[1:]
    return stripped.rstrip()


def _join(lines: List[str]) -> str:
    return "\n".join(lines).strip()


__all__ = ["is_jsdoc_comment", "parse_jsdoc", "render_jsdoc"]
