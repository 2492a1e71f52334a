"""Chat-completions runner for local, OpenAI-compatible model servers."""

from __future__ import annotations

import ipaddress
import json
import os
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.parse import urlparse
from urllib.request import Request, urlopen

_AUTO_BASE_URL = object()
_AUTO_API_KEY = object()


@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str


@dataclass
class ChatRequest:
    """A single chat-completions call."""

    messages: List[ChatMessage]
    model: str
    temperature: Optional[float]
    max_tokens: Optional[int]
    base_url: str
    api_key: Optional[str]
    request_timeout: Optional[float]


class LLMRunner:
    """Sends chat messages to a local model server and returns the reply text.

    Only loopback and local-network hosts are accepted as ``base_url``; source
    code never leaves the machine.
    """

    DEFAULT_MODEL = "ai/qwen2.5-coder:7B-Q4_K_M"
    DEFAULT_BASE_URL = "http://localhost:12434/engines/v1"
    ENV_MODEL_KEYS = ("JSDOCGEN_LLM_MODEL", "OPENAI_MODEL")
    ENV_BASE_URL_KEYS = ("JSDOCGEN_LLM_BASE_URL", "OPENAI_BASE_URL")
    ENV_API_KEY_KEYS = ("JSDOCGEN_LLM_API_KEY", "OPENAI_API_KEY")

    def __init__(
        self,
        model: str | None = None,
        *,
        base_url: str | object = _AUTO_BASE_URL,
        temperature: Optional[float] = 0.1,
        max_tokens: Optional[int] = None,
        api_key: str | None | object = _AUTO_API_KEY,
        request_timeout: Optional[float] = 120.0,
        transport: Callable[[ChatRequest], str] | None = None,
    ) -> None:
        self.model = model or _first_env_value(self.ENV_MODEL_KEYS) or self.DEFAULT_MODEL
        self.base_url = self._resolve_base_url(base_url)
        self.temperature = temperature
        self.max_tokens = max_tokens
        if api_key is _AUTO_API_KEY:
            api_key = _first_env_value(self.ENV_API_KEY_KEYS)
        self.api_key: Optional[str] = api_key  # type: ignore[assignment]
        self.request_timeout = request_timeout
        self._transport = transport or self._http_transport

    def run(self, messages: Sequence[ChatMessage]) -> str:
        """Run one chat completion and return the assistant's reply."""
        request = ChatRequest(
            messages=list(messages),
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            base_url=self.base_url,
            api_key=self.api_key,
            request_timeout=self.request_timeout,
        )
        return self._transport(request)

    @staticmethod
    def _http_transport(request: ChatRequest) -> str:
        endpoint = f"{request.base_url}/chat/completions"
        payload: dict[str, object] = {
            "model": request.model,
            "messages": [{"role": item.role, "content": item.content} for item in request.messages],
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens

        headers = {"Content-Type": "application/json"}
        if request.api_key:
            headers["Authorization"] = f"Bearer {request.api_key}"
        http_request = Request(
            endpoint, data=json.dumps(payload).encode("utf-8"), headers=headers, method="POST"
        )

        try:
            with urlopen(http_request, timeout=request.request_timeout or 120.0) as response:  # type: ignore[arg-type]
                raw = response.read()
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore") if hasattr(exc, "read") else ""
            raise RuntimeError(
                f"LLM request failed with status {exc.code}: {detail.strip() or exc.reason}"
            ) from exc
        except URLError as exc:
            raise RuntimeError(f"LLM request failed: {exc.reason}") from exc

        try:
            body = json.loads(raw.decode("utf-8"))
        except json.JSONDecodeError as exc:
            raise RuntimeError("LLM server returned invalid JSON") from exc

        content = _extract_content(body)
        if not content:
            raise RuntimeError("LLM server returned an empty response")
        return content.strip()

    def _resolve_base_url(self, base_url: str | object) -> str:
        if base_url is _AUTO_BASE_URL or not base_url:
            base_url = _first_env_value(self.ENV_BASE_URL_KEYS) or self.DEFAULT_BASE_URL
        normalized = str(base_url).rstrip("/")
        host = urlparse(normalized).hostname
        if host is not None and not _is_local_host(host):
            raise RuntimeError(
                f"Remote base_url '{base_url}' is not permitted. Configure a local model server."
            )
        return normalized


def _extract_content(payload: object) -> str:
    if not isinstance(payload, dict):
        return ""
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message")
    if isinstance(message, dict) and isinstance(message.get("content"), str):
        return message["content"]
    text = choices[0].get("text")
    return text if isinstance(text, str) else ""


def _is_local_host(host: str) -> bool:
    lowered = host.lower()
    if lowered in {"localhost", "0.0.0.0", "model-runner.docker.internal", "host.docker.internal"}:
        return True
    if lowered.endswith((".local", ".localdomain")):
        return True
    try:
        return ipaddress.ip_address(lowered).is_loopback
    except ValueError:
        return False


def _first_env_value(keys: Sequence[str]) -> str | None:
    for key in keys:
        value = os.getenv(key)
        if value:
            return value
    return None


__all__ = ["ChatMessage", "ChatRequest", "LLMRunner"]
