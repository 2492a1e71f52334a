"""Exception types raised by the jsdocgen core."""

from __future__ import annotations

from typing import List, Sequence


class JsdocgenError(RuntimeError):
    """Base class for jsdocgen failures."""


class GenerationServiceError(JsdocgenError):
    """Raised when a call to the documentation generation service fails."""


class InvalidServiceResponseError(GenerationServiceError):
    """Raised when the generation service answers with something other than source text."""


class AllNodesFailedError(JsdocgenError):
    """Raised (or reported) when every node of a unit of work failed."""

    def __init__(self, errors: Sequence[BaseException], message: str | None = None) -> None:
        self.errors: List[BaseException] = list(errors)
        super().__init__(
            message
            or f"All {len(self.errors)} documentation task(s) failed; nothing to save"
        )


class CacheError(JsdocgenError):
    """Raised when the node cache cannot be persisted."""


class LintError(JsdocgenError):
    """Raised when the post-processing linter fails."""


__all__ = [
    "AllNodesFailedError",
    "CacheError",
    "GenerationServiceError",
    "InvalidServiceResponseError",
    "JsdocgenError",
    "LintError",
]
