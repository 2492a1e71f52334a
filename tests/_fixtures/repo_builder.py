"""Helper utilities for constructing temporary TypeScript projects in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Mapping

import yaml


class ProjectBuilder:
    """Utility for writing source files and configuration into a throwaway project."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "project"
        self.root.mkdir()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into the project."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def write_config(self, data: Mapping[str, object]) -> Path:
        path = self.root / ".jsdocgen.yml"
        path.write_text(yaml.safe_dump(dict(data), sort_keys=False), encoding="utf-8")
        return path

    def read(self, relative: str) -> str:
        return (self.root / relative).read_text(encoding="utf-8")

    def path(self, relative: str = "") -> Path:
        """Return the project root path or a path inside it."""
        return self.root / relative if relative else self.root


__all__ = ["ProjectBuilder"]
