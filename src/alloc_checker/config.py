"""Checker configuration.

Looked up in order: an explicit file, ``[tool.alloc-checker]`` in
pyproject.toml, ``.alloc-checker.yaml`` in the project root, defaults.
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from alloc_checker.effects.lattice import Effect
from alloc_checker.errors import ConfigError

log = logging.getLogger(__name__)

YAML_CONFIG_NAME = ".alloc-checker.yaml"
PYPROJECT_TABLE = "alloc-checker"

# Builtins that never allocate a new object of their own
DEFAULT_NON_ALLOCATING_BUILTINS = [
    "len", "isinstance", "issubclass", "id", "hash", "callable",
    "getattr", "hasattr", "setattr", "delattr", "print", "iter", "next",
    "abs", "min", "max", "bool", "ord", "chr", "divmod", "round",
]

# Builtins that construct a new object
DEFAULT_ALLOCATING_BUILTINS = [
    "list", "dict", "set", "frozenset", "tuple", "bytearray", "bytes",
    "object", "str", "memoryview", "range", "enumerate", "zip",
    "map", "filter", "sorted", "reversed",
]


class CheckerConfig(BaseModel):
    debug_spew: bool = False
    suppression_key: str = "alloceffect"
    unresolved_call_effect: Effect = Effect.MAY_ALLOC
    non_allocating_builtins: list[str] = Field(
        default_factory=lambda: list(DEFAULT_NON_ALLOCATING_BUILTINS),
    )
    allocating_builtins: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOCATING_BUILTINS),
    )
    exclude: list[str] = Field(default_factory=list)   # glob patterns, relative to the project


def load_config(project_path: Path, explicit: Path | None = None) -> CheckerConfig:
    """Load configuration for a project.

    Args:
        project_path: File or directory being checked.
        explicit: A YAML or TOML config file that overrides discovery.

    Raises:
        ConfigError: The file is unreadable or does not validate.
    """
    if explicit is not None:
        return _from_file(explicit)

    root = project_path if project_path.is_dir() else project_path.parent
    pyproject = root / "pyproject.toml"
    if pyproject.is_file():
        data = _read_toml(pyproject)
        table = data.get("tool", {}).get(PYPROJECT_TABLE)
        if table is not None:
            log.debug("Using [tool.%s] from %s", PYPROJECT_TABLE, pyproject)
            return _validate(table, pyproject)

    yaml_path = root / YAML_CONFIG_NAME
    if yaml_path.is_file():
        log.debug("Using %s", yaml_path)
        return _validate(_read_yaml(yaml_path), yaml_path)

    return CheckerConfig()


def _from_file(path: Path) -> CheckerConfig:
    if not path.is_file():
        raise ConfigError(path, "config file not found")
    if path.suffix == ".toml":
        data = _read_toml(path)
        # a pyproject.toml passed explicitly: use its tool table
        data = data.get("tool", {}).get(PYPROJECT_TABLE, data)
        return _validate(data, path)
    return _validate(_read_yaml(path), path)


def _read_toml(path: Path) -> dict:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(path, str(exc)) from exc


def _read_yaml(path: Path) -> dict:
    try:
        data = yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(path, str(exc)) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(path, "top level must be a mapping")
    return data


def _validate(data: dict, source: Path) -> CheckerConfig:
    # accept TOML/YAML-style dashed keys
    normalized = {str(k).replace("-", "_"): v for k, v in data.items()}
    try:
        return CheckerConfig.model_validate(normalized)
    except ValidationError as exc:
        raise ConfigError(source, str(exc)) from exc
