"""IR (Intermediate Representation) package for alloc-checker.

Provides:
    load_program(workspace, py_files, config) -> (Program, skipped files)
"""

from __future__ import annotations

import logging
from pathlib import Path

from alloc_checker.config import CheckerConfig
from alloc_checker.errors import FrontendError
from alloc_checker.ir.program import Program
from alloc_checker.ir.python_frontend import ModuleInfo, build_program, parse_module
from alloc_checker.models import SkippedFile

log = logging.getLogger(__name__)


def load_program(
    workspace: Path,
    py_files: list[Path],
    config: CheckerConfig | None = None,
) -> tuple[Program, list[SkippedFile]]:
    """Build a Program from a list of Python files.

    Args:
        workspace: Root directory (for computing relative paths).
        py_files: List of Python file paths to analyze.
        config: Checker configuration.

    Returns:
        The linked Program and the files that could not be parsed.
    """
    config = config or CheckerConfig()
    modules: list[ModuleInfo] = []
    skipped: list[SkippedFile] = []

    for fpath in py_files:
        rel = fpath.relative_to(workspace).as_posix()
        try:
            source = fpath.read_text(errors="replace")
            modules.append(parse_module(source, rel, config))
        except FrontendError as exc:
            log.warning("Skipping %s", exc)
            skipped.append(SkippedFile(file=rel, reason=exc.reason))
        except OSError as exc:
            log.warning("Cannot read %s: %s", rel, exc)
            skipped.append(SkippedFile(file=rel, reason=str(exc)))

    program = build_program(modules, config)
    log.info(
        "Program built: %d classes from %d files (%d skipped)",
        len(program), len(modules), len(skipped),
    )
    return program, skipped


__all__ = ["load_program", "Program"]
