"""Exception hierarchy for alloc-checker.

Effect conflicts are never exceptions: they are diagnostics (see
alloc_checker.reporting). These cover the tool itself failing.
"""

from __future__ import annotations

from pathlib import Path


class AllocCheckerError(Exception):
    """Base class for all alloc-checker errors."""


class FrontendError(AllocCheckerError):
    """A source file could not be turned into IR."""

    def __init__(self, file: str, reason: str, line: int | None = None) -> None:
        self.file = file
        self.reason = reason
        self.line = line
        where = f"{file}:{line}" if line else file
        super().__init__(f"{where}: {reason}")


class ConfigError(AllocCheckerError):
    """Configuration could not be loaded or failed validation."""

    def __init__(self, source: Path | str, reason: str) -> None:
        self.source = str(source)
        self.reason = reason
        super().__init__(f"{source}: {reason}")
