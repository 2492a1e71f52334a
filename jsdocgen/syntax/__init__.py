"""Syntax model and TypeScript provider."""

from .jsdoc import is_jsdoc_comment, parse_jsdoc, render_jsdoc
from .tree import DocumentableNode, SourceUnit
from .typescript import TypeScriptProvider

__all__ = [
    "DocumentableNode",
    "SourceUnit",
    "TypeScriptProvider",
    "is_jsdoc_comment",
    "parse_jsdoc",
    "render_jsdoc",
]
