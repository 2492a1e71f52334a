"""Configuration loading for jsdocgen (.jsdocgen.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .hashing import DEFAULT_HASH_ALGORITHM
from .models import DeclarationKind, JSDocOptions
from .stores.persistence import DEFAULT_CACHE_DIR, DEFAULT_NAMESPACE

CONFIG_FILENAME = ".jsdocgen.yml"
DEFAULT_FILES = ["src/**/*.ts", "src/**/*.tsx"]


class ConfigError(RuntimeError):
    """Raised when the configuration file is missing or cannot be parsed."""


@dataclass
class ServiceConfig:
    """Remote generation service settings."""

    url: Optional[str] = None
    timeout: float = 60.0
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LLMConfig:
    """Local model settings; when present the LLM service replaces the HTTP service."""

    model: Optional[str] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    request_timeout: Optional[float] = None


@dataclass
class CacheConfig:
    dir: str = DEFAULT_CACHE_DIR
    namespace: str = DEFAULT_NAMESPACE
    hash: str = DEFAULT_HASH_ALGORITHM
    disabled: bool = False


@dataclass
class LintConfig:
    command: List[str] = field(default_factory=list)


@dataclass
class JsdocgenConfig:
    """Represents the settings defined in .jsdocgen.yml."""

    root: Path
    files: List[str] = field(default_factory=lambda: list(DEFAULT_FILES))
    service: ServiceConfig = field(default_factory=ServiceConfig)
    llm: Optional[LLMConfig] = None
    kinds: List[DeclarationKind] = field(default_factory=list)
    jsdoc: Dict[str, Any] = field(default_factory=dict)
    detail: Dict[DeclarationKind, Dict[str, Any]] = field(default_factory=dict)
    cache: CacheConfig = field(default_factory=CacheConfig)
    retries: int = 1
    rate_limit_ms: Optional[float] = None
    lint: Optional[LintConfig] = None


def load_config(config_path: Path) -> JsdocgenConfig:
    """Load configuration from disk; a missing file is an error."""
    config_file = _resolve_config_path(config_path)
    if not config_file.exists():
        raise ConfigError(f"No {CONFIG_FILENAME} found at {config_file}")
    root = config_file.parent.resolve()

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file.name} must contain a mapping at the root")

    files = _as_str_list(data.get("files")) or list(DEFAULT_FILES)

    service_data = _as_dict(data.get("service"))
    service = ServiceConfig(
        url=_as_str(service_data.get("url")),
        timeout=_as_float(service_data.get("timeout")) or 60.0,
        options=_as_dict(service_data.get("options")),
    )

    llm_data = _as_dict(data.get("llm"))
    llm = None
    if llm_data:
        llm = LLMConfig(
            model=_as_str(llm_data.get("model")),
            base_url=_as_str(llm_data.get("base_url")),
            api_key=_as_str(llm_data.get("api_key")),
            temperature=_as_float(llm_data.get("temperature")),
            max_tokens=_as_int(llm_data.get("max_tokens")),
            request_timeout=_as_float(llm_data.get("request_timeout")),
        )

    generation_data = _as_dict(data.get("generation"))
    kinds = [_parse_kind(item) for item in _as_str_list(generation_data.get("kinds"))]
    jsdoc = _as_dict(generation_data.get("jsdoc"))
    _validate_jsdoc(jsdoc, "generation.jsdoc")

    detail: Dict[DeclarationKind, Dict[str, Any]] = {}
    for key, value in _as_dict(data.get("detail")).items():
        kind = _parse_kind(key)
        kind_jsdoc = _as_dict(_as_dict(value).get("jsdoc"))
        _validate_jsdoc(kind_jsdoc, f"detail.{key}.jsdoc")
        detail[kind] = kind_jsdoc

    cache_data = _as_dict(data.get("cache"))
    cache = CacheConfig(
        dir=_as_str(cache_data.get("dir")) or DEFAULT_CACHE_DIR,
        namespace=_as_str(cache_data.get("namespace")) or DEFAULT_NAMESPACE,
        hash=_as_str(cache_data.get("hash")) or DEFAULT_HASH_ALGORITHM,
        disabled=_as_bool(cache_data.get("disabled")) or False,
    )

    retries = _as_int(data.get("retries"))
    if retries is None:
        retries = 1
    if retries < 1:
        raise ConfigError("retries must be at least 1")

    rate_limit_ms = _as_float(data.get("rate_limit_ms"))
    if rate_limit_ms is not None and rate_limit_ms < 0:
        raise ConfigError("rate_limit_ms must not be negative")

    lint_data = _as_dict(data.get("lint"))
    lint = None
    if lint_data:
        raw_command = lint_data.get("command")
        command = raw_command.split() if isinstance(raw_command, str) else _as_str_list(raw_command)
        if command:
            lint = LintConfig(command=command)

    return JsdocgenConfig(
        root=root,
        files=files,
        service=service,
        llm=llm,
        kinds=kinds,
        jsdoc=jsdoc,
        detail=detail,
        cache=cache,
        retries=retries,
        rate_limit_ms=rate_limit_ms,
        lint=lint,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _parse_kind(value: Any) -> DeclarationKind:
    try:
        return DeclarationKind.parse(value)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc


def _validate_jsdoc(mapping: Dict[str, Any], where: str) -> None:
    try:
        JSDocOptions.from_mapping(mapping)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {where}: {exc}") from exc


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "CacheConfig",
    "ConfigError",
    "JsdocgenConfig",
    "LLMConfig",
    "LintConfig",
    "ServiceConfig",
    "load_config",
]
