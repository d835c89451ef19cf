"""Shared utilities for alloc-checker."""

from __future__ import annotations

import fnmatch
from pathlib import Path


def snippet(source: str, lineno: int, max_len: int = 160) -> str:
    """Return the source line at lineno (1-based), stripped and truncated."""
    lines = source.splitlines()
    if 0 < lineno <= len(lines):
        return lines[lineno - 1].strip()[:max_len]
    return ""

# Directories to skip during file discovery
SKIP_DIRS = {
    ".git", "__pycache__", "node_modules", "venv", ".venv", "env",
    ".tox", ".mypy_cache", ".pytest_cache", ".ruff_cache", "dist",
    "build", ".eggs", ".nox", ".ipynb_checkpoints",
}

# Maximum file size to read (skip generated monsters)
MAX_FILE_SIZE = 2 * 1024 * 1024  # 2 MB


def discover_py_files(workspace: Path, exclude: list[str] | None = None) -> list[Path]:
    """Walk workspace for .py files, skipping ignored dirs, excluded globs and large files."""
    if workspace.is_file():
        return [workspace] if workspace.suffix == ".py" else []

    files: list[Path] = []
    for item in sorted(workspace.rglob("*.py")):
        if item.is_dir():
            continue
        rel = item.relative_to(workspace)
        if any(part in SKIP_DIRS or part.endswith(".egg-info") for part in rel.parts):
            continue
        if exclude and any(fnmatch.fnmatch(rel.as_posix(), pat) for pat in exclude):
            continue
        try:
            if item.stat().st_size > MAX_FILE_SIZE:
                continue
        except OSError:
            continue
        files.append(item)
    return files
