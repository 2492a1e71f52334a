"""HTTP client for a remote JSDoc generation service."""

from __future__ import annotations

import asyncio
import json
import os
from typing import Any, Dict, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..errors import GenerationServiceError, InvalidServiceResponseError
from ..logging import get_logger
from ..models import GenerationRequest
from .service import ServiceOptions

ENV_SERVICE_URL_KEYS = ("JSDOCGEN_SERVICE_URL", "JS_DOC_GENERATOR_SERVICE")


class HttpGenerationService:
    """Posts code snippets to ``<base_url>/<kind>`` and returns the annotated code.

    The service answers ``{"data": {"code": "..."}}``; a bare ``{"code": ...}``
    body is accepted as well.
    """

    def __init__(self, base_url: str | None = None, *, timeout: float = 60.0) -> None:
        resolved = base_url or _first_env_value(ENV_SERVICE_URL_KEYS)
        if not resolved:
            raise GenerationServiceError(
                "No generation service URL configured; set service.url or "
                "JSDOCGEN_SERVICE_URL."
            )
        self.base_url = resolved.rstrip("/")
        self.timeout = timeout
        self.logger = get_logger("generation.http")

    async def create_jsdoc_function(
        self, request: GenerationRequest, service_options: ServiceOptions = None
    ) -> str:
        return await self._post("function", request, service_options)

    async def create_jsdoc_class(
        self, request: GenerationRequest, service_options: ServiceOptions = None
    ) -> str:
        return await self._post("class", request, service_options)

    async def create_jsdoc_enum(
        self, request: GenerationRequest, service_options: ServiceOptions = None
    ) -> str:
        return await self._post("enum", request, service_options)

    async def create_jsdoc_interface(
        self, request: GenerationRequest, service_options: ServiceOptions = None
    ) -> str:
        return await self._post("interface", request, service_options)

    async def create_jsdoc_type_alias(
        self, request: GenerationRequest, service_options: ServiceOptions = None
    ) -> str:
        return await self._post("type-alias", request, service_options)

    async def create_jsdoc_variable_statement(
        self, request: GenerationRequest, service_options: ServiceOptions = None
    ) -> str:
        return await self._post("variable-statement", request, service_options)

    async def _post(
        self, route: str, request: GenerationRequest, service_options: ServiceOptions
    ) -> str:
        payload: Dict[str, Any] = request.to_payload()
        payload["aiServiceOptions"] = dict(service_options or {})
        endpoint = f"{self.base_url}/{route}"
        self.logger.debug("POST %s", endpoint)
        loop = asyncio.get_running_loop()
        body = await loop.run_in_executor(None, self._send, endpoint, payload)
        return _extract_code(body, route)

    def _send(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        data = json.dumps(payload).encode("utf-8")
        http_request = Request(
            endpoint,
            data=data,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with urlopen(http_request, timeout=self.timeout) as response:  # type: ignore[arg-type]
                raw = response.read()
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore") if hasattr(exc, "read") else ""
            message = detail.strip() or exc.reason
            raise GenerationServiceError(
                f"Generation service failed with status {exc.code}: {message}"
            ) from exc
        except URLError as exc:
            raise GenerationServiceError(f"Generation service unreachable: {exc.reason}") from exc

        try:
            parsed = json.loads(raw.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise InvalidServiceResponseError("Generation service returned invalid JSON") from exc
        if not isinstance(parsed, dict):
            raise InvalidServiceResponseError("Generation service returned a non-object body")
        return parsed


def _extract_code(body: Dict[str, Any], route: str) -> str:
    container: Optional[object] = body.get("data", body)
    code = container.get("code") if isinstance(container, dict) else None
    if not isinstance(code, str):
        raise InvalidServiceResponseError(f"Generation service response for '{route}' has no code")
    return code


def _first_env_value(keys: Sequence[str]) -> str | None:
    for key in keys:
        value = os.getenv(key)
        if value:
            return value
    return None


__all__ = ["ENV_SERVICE_URL_KEYS", "HttpGenerationService"]
