"""Scripted generation services used by pipeline and retry tests."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple

from jsdocgen.models import DeclarationKind, GenerationRequest

Responder = Callable[[DeclarationKind, GenerationRequest], str]


def document_with(description: str) -> Responder:
    """Answer every call with the snippet preceded by a single JSDoc block."""

    def _respond(_kind: DeclarationKind, request: GenerationRequest) -> str:
        return f"/**\n * {description}\n */\n{request.code_snippet}"

    return _respond


class ScriptedService:
    """Generation service that records calls and answers through ``responder``."""

    def __init__(self, responder: Optional[Responder] = None) -> None:
        self.responder = responder or document_with("Generated docs.")
        self.calls: List[Tuple[DeclarationKind, GenerationRequest, Optional[Dict[str, object]]]] = []

    @property
    def snippets(self) -> List[str]:
        return [request.code_snippet for _, request, _ in self.calls]

    async def _answer(self, kind, request, service_options):
        self.calls.append((kind, request, service_options))
        return self.responder(kind, request)

    async def create_jsdoc_function(self, request, service_options=None):
        return await self._answer(DeclarationKind.FUNCTION, request, service_options)

    async def create_jsdoc_class(self, request, service_options=None):
        return await self._answer(DeclarationKind.CLASS, request, service_options)

    async def create_jsdoc_enum(self, request, service_options=None):
        return await self._answer(DeclarationKind.ENUM, request, service_options)

    async def create_jsdoc_interface(self, request, service_options=None):
        return await self._answer(DeclarationKind.INTERFACE, request, service_options)

    async def create_jsdoc_type_alias(self, request, service_options=None):
        return await self._answer(DeclarationKind.TYPE_ALIAS, request, service_options)

    async def create_jsdoc_variable_statement(self, request, service_options=None):
        return await self._answer(DeclarationKind.VARIABLE_STATEMENT, request, service_options)


__all__ = ["ScriptedService", "document_with"]
