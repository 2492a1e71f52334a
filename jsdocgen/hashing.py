"""Content hashing used to address cache entries."""

from __future__ import annotations

import hashlib

DEFAULT_HASH_ALGORITHM = "sha1"


class ContentHasher:
    """Deterministic text digests; collision resistance is for cache correctness only."""

    def __init__(self, algorithm: str = DEFAULT_HASH_ALGORITHM) -> None:
        if algorithm not in hashlib.algorithms_available:
            raise ValueError(f"Unsupported hash algorithm '{algorithm}'")
        # shake_* digests need an explicit length.
        if hashlib.new(algorithm, usedforsecurity=False).digest_size == 0:
            raise ValueError(f"Variable-length hash algorithm '{algorithm}' is not supported")
        self.algorithm = algorithm

    def hash(self, text: str) -> str:
        if not isinstance(text, str):
            raise TypeError(f"Expected str to hash, got {type(text).__name__}")
        digest = hashlib.new(self.algorithm, usedforsecurity=False)
        digest.update(text.encode("utf-8"))
        return digest.hexdigest()


def content_hash(text: str, algorithm: str = DEFAULT_HASH_ALGORITHM) -> str:
    """Return the hex digest of ``text``."""
    return ContentHasher(algorithm).hash(text)


__all__ = ["ContentHasher", "DEFAULT_HASH_ALGORITHM", "content_hash"]
