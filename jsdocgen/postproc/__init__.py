"""Post-processing steps applied to saved sources."""

from .lint import CommandLinter, Linter

__all__ = ["CommandLinter", "Linter"]
