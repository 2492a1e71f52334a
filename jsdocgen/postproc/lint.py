"""Post-processing linters run over saved source files."""

from __future__ import annotations

import asyncio
import shlex
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from ..errors import LintError
from ..logging import get_logger


class Linter(Protocol):
    async def lint(self, paths: Sequence[Path]) -> None:
        ...


class CommandLinter:
    """Runs an external fixer such as ``npx eslint --fix`` over the given files."""

    def __init__(self, command: Sequence[str] | str, *, cwd: Optional[Path] = None) -> None:
        args = shlex.split(command) if isinstance(command, str) else list(command)
        if not args:
            raise ValueError("Lint command must not be empty")
        self.command: List[str] = args
        self.cwd = cwd
        self.logger = get_logger("postproc.lint")

    async def lint(self, paths: Sequence[Path]) -> None:
        if not paths:
            return
        args = [*self.command, *(str(path) for path in paths)]
        self.logger.debug("Running %s", " ".join(args))
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                cwd=str(self.cwd) if self.cwd else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise LintError(f"Unable to locate lint executable '{self.command[0]}'") from exc
        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="ignore").strip() or stdout.decode(
                "utf-8", errors="ignore"
            ).strip()
            raise LintError(
                f"Lint command exited with status {process.returncode}: {message or 'no output'}"
            )


__all__ = ["CommandLinter", "Linter"]
