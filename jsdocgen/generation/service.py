"""Interface of documentation generation services."""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, runtime_checkable

from ..errors import InvalidServiceResponseError
from ..models import DeclarationKind, GenerationRequest

ServiceOptions = Optional[Dict[str, Any]]


@runtime_checkable
class GenerationService(Protocol):
    """One async operation per documentable declaration kind.

    Each operation receives the node's code snippet with its source context and
    returns the same code annotated with JSDoc comments.
    """

    async def create_jsdoc_function(
        self, request: GenerationRequest, service_options: ServiceOptions = None
    ) -> str:
        ...

    async def create_jsdoc_class(
        self, request: GenerationRequest, service_options: ServiceOptions = None
    ) -> str:
        ...

    async def create_jsdoc_enum(
        self, request: GenerationRequest, service_options: ServiceOptions = None
    ) -> str:
        ...

    async def create_jsdoc_interface(
        self, request: GenerationRequest, service_options: ServiceOptions = None
    ) -> str:
        ...

    async def create_jsdoc_type_alias(
        self, request: GenerationRequest, service_options: ServiceOptions = None
    ) -> str:
        ...

    async def create_jsdoc_variable_statement(
        self, request: GenerationRequest, service_options: ServiceOptions = None
    ) -> str:
        ...


KIND_HANDLERS: Dict[DeclarationKind, str] = {
    DeclarationKind.FUNCTION: "create_jsdoc_function",
    DeclarationKind.CLASS: "create_jsdoc_class",
    DeclarationKind.ENUM: "create_jsdoc_enum",
    DeclarationKind.INTERFACE: "create_jsdoc_interface",
    DeclarationKind.TYPE_ALIAS: "create_jsdoc_type_alias",
    DeclarationKind.VARIABLE_STATEMENT: "create_jsdoc_variable_statement",
}


async def generate_for_kind(
    service: GenerationService,
    kind: DeclarationKind,
    request: GenerationRequest,
    service_options: ServiceOptions = None,
) -> str:
    """Dispatch ``request`` to the operation registered for ``kind``."""
    operation = getattr(service, KIND_HANDLERS[kind])
    result = await operation(request, service_options)
    if not isinstance(result, str):
        raise InvalidServiceResponseError(
            f"{KIND_HANDLERS[kind]} returned {type(result).__name__}, expected source text"
        )
    return result


__all__ = ["GenerationService", "KIND_HANDLERS", "ServiceOptions", "generate_for_kind"]
