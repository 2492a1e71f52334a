"""Core data models shared across jsdocgen components."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


class DeclarationKind(str, Enum):
    """Top-level declaration kinds that can be sent for documentation."""

    FUNCTION = "FunctionDeclaration"
    CLASS = "ClassDeclaration"
    ENUM = "EnumDeclaration"
    INTERFACE = "InterfaceDeclaration"
    TYPE_ALIAS = "TypeAliasDeclaration"
    VARIABLE_STATEMENT = "VariableStatement"

    @classmethod
    def parse(cls, value: object) -> "DeclarationKind":
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for kind in cls:
            if text in (kind.value, kind.name, kind.name.lower()):
                return kind
        raise ValueError(f"Unknown declaration kind '{value}'")


class InsertMode(Enum):
    """How freshly generated documentation is combined with existing blocks."""

    REPLACE = 0
    APPEND = 1

    @classmethod
    def parse(cls, value: object) -> "InsertMode":
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value)
        text = str(value).strip().lower()
        if text in {"replacemode", "replace", "0"}:
            return cls.REPLACE
        if text in {"appendmode", "append", "1"}:
            return cls.APPEND
        raise ValueError(f"Unknown insert mode '{value}'")

    @property
    def label(self) -> str:
        return "ReplaceMode" if self is InsertMode.REPLACE else "AppendMode"


@dataclass(frozen=True)
class DocTag:
    """A single ``@name text`` entry of a documentation block."""

    name: str
    text: str = ""


@dataclass
class DocumentationBlock:
    """Structured form of one ``/** ... */`` comment.

    ``raw`` and ``trailing`` carry the original comment text and the whitespace
    that followed it in the source so untouched blocks render byte-for-byte.
    They never take part in equality.
    """

    description: str = ""
    tags: List[DocTag] = field(default_factory=list)
    raw: Optional[str] = field(default=None, compare=False, repr=False)
    trailing: Optional[str] = field(default=None, compare=False, repr=False)

    @property
    def is_void(self) -> bool:
        return not self.description.strip() and not self.tags


_OPTION_ALIASES: Dict[str, str] = {
    "mode": "mode",
    "isShowJSDocDescription": "is_show_description",
    "is_show_jsdoc_description": "is_show_description",
    "show_description": "is_show_description",
    "isShowJSDocTags": "is_show_tags",
    "is_show_jsdoc_tags": "is_show_tags",
    "show_tags": "is_show_tags",
    "allowedJSDocTags": "allowed_tags",
    "allowed_jsdoc_tags": "allowed_tags",
    "disabledJSDocTags": "disabled_tags",
    "disabled_jsdoc_tags": "disabled_tags",
    "prefixDescription": "prefix_description",
    "postfixDescription": "postfix_description",
    "matchSourceText": "match_source_text",
}


@dataclass(frozen=True)
class JSDocOptions:
    """Resolved documentation options for one declaration kind."""

    mode: InsertMode = InsertMode.APPEND
    is_show_description: bool = True
    is_show_tags: bool = True
    allowed_tags: tuple[str, ...] = ()
    disabled_tags: tuple[str, ...] = ()
    disabled: bool = False
    prefix_description: str = ""
    postfix_description: str = ""
    depth: Optional[int] = None
    match_source_text: bool = True

    @classmethod
    def from_mapping(cls, *layers: Optional[Mapping[str, Any]]) -> "JSDocOptions":
        """Build options from raw mappings; later layers override earlier ones."""
        known = {item.name for item in fields(cls)}
        values: Dict[str, Any] = {}
        for layer in layers:
            if not layer:
                continue
            for key, value in layer.items():
                name = _OPTION_ALIASES.get(key, key)
                if name not in known:
                    raise ValueError(f"Unknown JSDoc option '{key}'")
                values[name] = value
        if "mode" in values:
            values["mode"] = InsertMode.parse(values["mode"])
        for name in ("allowed_tags", "disabled_tags"):
            if name in values:
                raw = values[name] or ()
                values[name] = tuple(str(item) for item in ([raw] if isinstance(raw, str) else raw))
        if values.get("depth") is not None:
            values["depth"] = int(values["depth"])
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.label,
            "isShowJSDocDescription": self.is_show_description,
            "isShowJSDocTags": self.is_show_tags,
            "allowedJSDocTags": list(self.allowed_tags),
            "disabledJSDocTags": list(self.disabled_tags),
            "disabled": self.disabled,
            "prefixDescription": self.prefix_description,
            "postfixDescription": self.postfix_description,
            "depth": self.depth,
            "matchSourceText": self.match_source_text,
        }


@dataclass(frozen=True)
class SerializedSourceFile:
    """Minified file content sent to the generation service as context."""

    source_code: str
    file_path: str

    def to_payload(self) -> Dict[str, str]:
        return {"sourceCode": self.source_code, "filePath": self.file_path}


@dataclass(frozen=True)
class GenerationRequest:
    """Arguments of one generation-service call."""

    code_snippet: str
    source_file: SerializedSourceFile
    referenced_source_files: tuple[SerializedSourceFile, ...] = ()

    def to_payload(self) -> Dict[str, Any]:
        return {
            "codeSnippet": self.code_snippet,
            "sourceFile": self.source_file.to_payload(),
            "referencedSourceFiles": [item.to_payload() for item in self.referenced_source_files],
        }


__all__ = [
    "DeclarationKind",
    "DocTag",
    "DocumentationBlock",
    "GenerationRequest",
    "InsertMode",
    "JSDocOptions",
    "SerializedSourceFile",
]
