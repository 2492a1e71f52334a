"""Content-addressed cache of documented nodes."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from ..errors import CacheError
from ..hashing import ContentHasher
from ..logging import get_logger
from ..models import JSDocOptions
from .persistence import CacheSnapshot, CacheState

_FILE_KEY = "fileSourceCodeHash"
_NODE_KEY = "nodeSourceCodeHash"
_OPTIONS_KEY = "jsDocOptions"


class CachePersistence(Protocol):
    async def load(self) -> CacheSnapshot:
        ...

    async def save(self, entries: List[Dict[str, Any]]) -> Path:
        ...


class CacheStore:
    """Maps file-content hashes to the node-content hashes documented under them.

    Any change to a file's text moves all of its nodes into a new, empty
    bucket, so every node in that file is regenerated.
    """

    def __init__(self, persistence: CachePersistence, hasher: Optional[ContentHasher] = None) -> None:
        self._persistence = persistence
        self._hasher = hasher or ContentHasher()
        self._entries: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.logger = get_logger("stores.node_cache")

    def __len__(self) -> int:
        return sum(len(nodes) for nodes in self._entries.values())

    async def load(self) -> List[Dict[str, Any]]:
        """Read persisted entries; a missing or unreadable cache loads as empty."""
        snapshot = await self._persistence.load()
        self._entries = {}
        if snapshot.state is CacheState.MISSING:
            self.logger.info("No node cache found; starting cold")
            return []
        if snapshot.state is CacheState.CORRUPT:
            self.logger.warning(
                "Node cache is unreadable (%s); every node will be regenerated", snapshot.detail
            )
            return []

        skipped = 0
        for raw in snapshot.entries:
            if not _valid_entry(raw):
                skipped += 1
                continue
            metadata = {key: value for key, value in raw.items() if key not in (_FILE_KEY, _NODE_KEY)}
            self._entries.setdefault(raw[_FILE_KEY], {})[raw[_NODE_KEY]] = metadata
        if skipped:
            self.logger.warning("Ignored %d malformed node cache entr(y/ies)", skipped)
        self.logger.info("Loaded %d node cache entr(y/ies)", len(self))
        return self.entries()

    def is_cached(self, file_text: str, node_text: str, options: Optional[JSDocOptions] = None) -> bool:
        bucket = self._entries.get(self._hasher.hash(file_text))
        if not bucket:
            return False
        metadata = bucket.get(self._hasher.hash(node_text))
        if metadata is None:
            return False
        stored_options = metadata.get(_OPTIONS_KEY)
        if options is not None and stored_options is not None:
            return stored_options == options.to_dict()
        return True

    def record(self, file_text: str, node_text: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        file_hash = self._hasher.hash(file_text)
        node_hash = self._hasher.hash(node_text)
        self._entries.setdefault(file_hash, {})[node_hash] = dict(metadata or {})

    def clear(self) -> None:
        self._entries.clear()

    def entries(self) -> List[Dict[str, Any]]:
        """Flatten the two-level map into persisted entry records."""
        flat: List[Dict[str, Any]] = []
        for file_hash, nodes in self._entries.items():
            for node_hash, metadata in nodes.items():
                flat.append({_FILE_KEY: file_hash, _NODE_KEY: node_hash, **metadata})
        return flat

    async def save(self) -> Path:
        entries = self.entries()
        try:
            path = await self._persistence.save(entries)
        except OSError as exc:
            raise CacheError(f"Failed to write node cache: {exc}") from exc
        self.logger.info("Saved %d node cache entr(y/ies) to %s", len(entries), path)
        return path


def _valid_entry(raw: object) -> bool:
    if not isinstance(raw, dict):
        return False
    file_hash = raw.get(_FILE_KEY)
    node_hash = raw.get(_NODE_KEY)
    if not isinstance(file_hash, str) or not isinstance(node_hash, str):
        return False
    options = raw.get(_OPTIONS_KEY)
    return options is None or isinstance(options, dict)


__all__ = ["CachePersistence", "CacheStore"]
