"""Persistent stores used by jsdocgen runs."""

from .node_cache import CacheStore
from .persistence import CacheSnapshot, CacheState, JsonCachePersistence

__all__ = ["CacheSnapshot", "CacheState", "CacheStore", "JsonCachePersistence"]
