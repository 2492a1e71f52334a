"""Generation service backed by a local chat model."""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, TemplateNotFound

from ..errors import GenerationServiceError, InvalidServiceResponseError
from ..generation.service import ServiceOptions
from ..logging import get_logger
from ..models import DeclarationKind, GenerationRequest
from .runner import ChatMessage, LLMRunner

_FENCE = re.compile(r"```[\w+-]*[ \t]*\n(?P<code>.*?)```", re.DOTALL)

_TEMPLATE_NAMES: Dict[DeclarationKind, str] = {
    DeclarationKind.FUNCTION: "function",
    DeclarationKind.CLASS: "class",
    DeclarationKind.ENUM: "enum",
    DeclarationKind.INTERFACE: "interface",
    DeclarationKind.TYPE_ALIAS: "type-alias",
    DeclarationKind.VARIABLE_STATEMENT: "variable-statement",
}

_KIND_LABELS: Dict[DeclarationKind, str] = {
    DeclarationKind.FUNCTION: "function",
    DeclarationKind.CLASS: "class",
    DeclarationKind.ENUM: "enum",
    DeclarationKind.INTERFACE: "interface",
    DeclarationKind.TYPE_ALIAS: "type alias",
    DeclarationKind.VARIABLE_STATEMENT: "variable statement",
}


def extract_code(reply: str) -> str:
    """Return the first fenced code block of ``reply`` (or the reply itself)."""
    match = _FENCE.search(reply)
    code = match.group("code") if match else reply
    return code.strip("\n") + "\n"


class LLMGenerationService:
    """Renders a per-kind prompt and asks a local model to add JSDoc comments."""

    def __init__(
        self,
        runner: LLMRunner,
        *,
        templates_dir: Path | None = None,
        include_context: bool = True,
    ) -> None:
        self.runner = runner
        self.include_context = include_context
        self._env = self._create_env(templates_dir)
        self.logger = get_logger("llm.service")

    async def create_jsdoc_function(
        self, request: GenerationRequest, service_options: ServiceOptions = None
    ) -> str:
        return await self._generate(DeclarationKind.FUNCTION, request, service_options)

    async def create_jsdoc_class(
        self, request: GenerationRequest, service_options: ServiceOptions = None
    ) -> str:
        return await self._generate(DeclarationKind.CLASS, request, service_options)

    async def create_jsdoc_enum(
        self, request: GenerationRequest, service_options: ServiceOptions = None
    ) -> str:
        return await self._generate(DeclarationKind.ENUM, request, service_options)

    async def create_jsdoc_interface(
        self, request: GenerationRequest, service_options: ServiceOptions = None
    ) -> str:
        return await self._generate(DeclarationKind.INTERFACE, request, service_options)

    async def create_jsdoc_type_alias(
        self, request: GenerationRequest, service_options: ServiceOptions = None
    ) -> str:
        return await self._generate(DeclarationKind.TYPE_ALIAS, request, service_options)

    async def create_jsdoc_variable_statement(
        self, request: GenerationRequest, service_options: ServiceOptions = None
    ) -> str:
        return await self._generate(DeclarationKind.VARIABLE_STATEMENT, request, service_options)

    def build_messages(
        self,
        kind: DeclarationKind,
        request: GenerationRequest,
        service_options: Optional[Dict[str, Any]] = None,
    ) -> List[ChatMessage]:
        options = dict(service_options or {})
        system = self._env.get_template("system.j2").render(options=options)
        try:
            template = self._env.get_template(f"kinds/{_TEMPLATE_NAMES[kind]}.j2")
        except TemplateNotFound:
            template = self._env.get_template("kinds/default.j2")
        prompt = template.render(
            request=request,
            kind_label=_KIND_LABELS[kind],
            include_context=self.include_context,
            options=options,
        )
        return [ChatMessage("system", system.strip()), ChatMessage("user", prompt.strip())]

    async def _generate(
        self, kind: DeclarationKind, request: GenerationRequest, service_options: ServiceOptions
    ) -> str:
        messages = self.build_messages(kind, request, service_options)
        loop = asyncio.get_running_loop()
        try:
            reply = await loop.run_in_executor(None, self.runner.run, messages)
        except RuntimeError as exc:
            raise GenerationServiceError(str(exc)) from exc
        if not isinstance(reply, str) or not reply.strip():
            raise InvalidServiceResponseError(f"Model returned no code for {_KIND_LABELS[kind]}")
        return extract_code(reply)

    @staticmethod
    def _create_env(templates_dir: Path | None) -> Environment:
        directories = []
        if templates_dir:
            directories.append(str(templates_dir))
        directories.append(str(Path(__file__).with_name("templates")))
        loader = FileSystemLoader(directories)
        return Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True)


__all__ = ["LLMGenerationService", "extract_code"]
