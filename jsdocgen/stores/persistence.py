"""JSON file persistence for node cache entries."""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..hashing import DEFAULT_HASH_ALGORITHM, ContentHasher

CACHE_KEY = "CACHE_KEY"
DEFAULT_NAMESPACE = "jsdocgen"
DEFAULT_CACHE_DIR = ".cache"
_CACHE_VERSION = 1


class CacheState(str, Enum):
    MISSING = "missing"
    LOADED = "loaded"
    CORRUPT = "corrupt"


@dataclass
class CacheSnapshot:
    """Raw entries read from storage together with how the read went."""

    entries: List[Dict[str, Any]] = field(default_factory=list)
    state: CacheState = CacheState.MISSING
    detail: Optional[str] = None


class JsonCachePersistence:
    """Stores a flat list of cache entries in a single JSON document.

    The document lives at ``<base_path>/<namespace>/<hash(CACHE_KEY)>.json``.
    """

    def __init__(
        self,
        base_path: Path | str = DEFAULT_CACHE_DIR,
        *,
        namespace: str = DEFAULT_NAMESPACE,
        hash_algorithm: str = DEFAULT_HASH_ALGORITHM,
    ) -> None:
        self.base_path = Path(base_path).expanduser().resolve()
        self.namespace = namespace
        self.hash_algorithm = hash_algorithm
        key_digest = ContentHasher(hash_algorithm).hash(f"{namespace}:{CACHE_KEY}")
        self.path = self.base_path / namespace / f"{key_digest}.json"

    async def load(self) -> CacheSnapshot:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._read)

    async def save(self, entries: List[Dict[str, Any]]) -> Path:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._write, entries)

    # ------------------------------------------------------------------
    # Internal helpers

    def _read(self) -> CacheSnapshot:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return CacheSnapshot(state=CacheState.MISSING)
        except (OSError, UnicodeDecodeError) as exc:
            return CacheSnapshot(state=CacheState.CORRUPT, detail=f"unreadable file: {exc}")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            return CacheSnapshot(state=CacheState.CORRUPT, detail=f"invalid JSON: {exc}")
        if not isinstance(data, dict) or data.get("version") != _CACHE_VERSION:
            return CacheSnapshot(state=CacheState.CORRUPT, detail="unexpected document version")
        entries = data.get("entries")
        if not isinstance(entries, list):
            return CacheSnapshot(state=CacheState.CORRUPT, detail="entries is not a list")
        return CacheSnapshot(entries=entries, state=CacheState.LOADED)

    def _write(self, entries: List[Dict[str, Any]]) -> Path:
        payload = {"version": _CACHE_VERSION, "entries": entries}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return self.path


__all__ = [
    "CACHE_KEY",
    "CacheSnapshot",
    "CacheState",
    "DEFAULT_CACHE_DIR",
    "DEFAULT_NAMESPACE",
    "JsonCachePersistence",
]
