"""Tests for the local LLM runner."""

from __future__ import annotations

import json
from urllib.error import URLError

import pytest

from jsdocgen.llm.runner import ChatMessage, LLMRunner


class FakeResponse:
    def __init__(self, payload):
        self._payload = payload

    def read(self):
        return json.dumps(self._payload).encode("utf-8")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def test_llm_runner_constructs_request() -> None:
    captured = {}

    def fake_transport(request):
        captured["messages"] = request.messages
        captured["model"] = request.model
        captured["temperature"] = request.temperature
        captured["max_tokens"] = request.max_tokens
        captured["base_url"] = request.base_url
        captured["api_key"] = request.api_key
        captured["request_timeout"] = request.request_timeout
        return "response"

    runner = LLMRunner(
        model="custom-model",
        base_url="http://127.0.0.1:8080/v1/",
        api_key=None,
        temperature=0.15,
        max_tokens=256,
        request_timeout=42.0,
        transport=fake_transport,
    )
    messages = [ChatMessage("system", "be terse"), ChatMessage("user", "document this")]
    result = runner.run(messages)

    assert result == "response"
    assert captured == {
        "messages": messages,
        "model": "custom-model",
        "temperature": 0.15,
        "max_tokens": 256,
        "base_url": "http://127.0.0.1:8080/v1",
        "api_key": None,
        "request_timeout": 42.0,
    }


def test_llm_runner_http_posts_payload(monkeypatch) -> None:
    captured = {}

    def fake_urlopen(request, timeout=None):
        captured["url"] = request.full_url
        captured["headers"] = {k.lower(): v for k, v in request.header_items()}
        captured["payload"] = json.loads(request.data.decode("utf-8"))
        captured["timeout"] = timeout
        return FakeResponse({"choices": [{"message": {"content": "  /** Adds. */\n"}}]})

    monkeypatch.setattr("jsdocgen.llm.runner.urlopen", fake_urlopen)

    runner = LLMRunner(
        model="ai/smollm2:360M-Q4_K_M",
        base_url="http://localhost:12434/engines/v1/",
        api_key="local-key",
        temperature=0.05,
        max_tokens=128,
        request_timeout=25.0,
    )
    result = runner.run([ChatMessage("system", "Document code."), ChatMessage("user", "add()")])

    assert result == "/** Adds. */"
    assert captured["url"] == "http://localhost:12434/engines/v1/chat/completions"
    headers = captured["headers"]
    assert headers["content-type"] == "application/json"
    assert headers["authorization"] == "Bearer local-key"
    payload = captured["payload"]
    assert payload["model"] == "ai/smollm2:360M-Q4_K_M"
    assert payload["messages"] == [
        {"role": "system", "content": "Document code."},
        {"role": "user", "content": "add()"},
    ]
    assert payload["temperature"] == 0.05
    assert payload["max_tokens"] == 128
    assert captured["timeout"] == 25.0


def test_llm_runner_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("JSDOCGEN_LLM_MODEL", "env-model")
    monkeypatch.setenv("JSDOCGEN_LLM_BASE_URL", "http://host.docker.internal:11434/v1")
    monkeypatch.setenv("JSDOCGEN_LLM_API_KEY", "env-key")

    runner = LLMRunner()

    assert runner.model == "env-model"
    assert runner.base_url == "http://host.docker.internal:11434/v1"
    assert runner.api_key == "env-key"


def test_llm_runner_rejects_remote_hosts() -> None:
    with pytest.raises(RuntimeError, match="not permitted"):
        LLMRunner(base_url="https://api.example.com/v1")


def test_llm_runner_reports_unreachable_server(monkeypatch) -> None:
    def fake_urlopen(request, timeout=None):
        raise URLError("connection refused")

    monkeypatch.setattr("jsdocgen.llm.runner.urlopen", fake_urlopen)
    runner = LLMRunner(base_url="http://localhost:1/v1", api_key=None)

    with pytest.raises(RuntimeError, match="connection refused"):
        runner.run([ChatMessage("user", "hi")])


def test_llm_runner_rejects_empty_reply(monkeypatch) -> None:
    monkeypatch.setattr(
        "jsdocgen.llm.runner.urlopen",
        lambda request, timeout=None: FakeResponse({"choices": []}),
    )
    runner = LLMRunner(base_url="http://localhost:1/v1", api_key=None)

    with pytest.raises(RuntimeError, match="empty response"):
        runner.run([ChatMessage("user", "hi")])
