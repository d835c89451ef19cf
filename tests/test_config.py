"""Tests for configuration discovery and validation."""

from __future__ import annotations

import pytest

from alloc_checker.config import (
    DEFAULT_ALLOCATING_BUILTINS,
    YAML_CONFIG_NAME,
    CheckerConfig,
    load_config,
)
from alloc_checker.effects.lattice import Effect
from alloc_checker.errors import ConfigError


class TestDefaults:
    def test_no_config_files(self, tmp_path):
        config = load_config(tmp_path)
        assert config == CheckerConfig()
        assert config.suppression_key == "alloceffect"
        assert config.unresolved_call_effect is Effect.MAY_ALLOC
        assert config.allocating_builtins == DEFAULT_ALLOCATING_BUILTINS
        assert not config.debug_spew

    def test_pyproject_without_table(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text('[project]\nname = "x"\n')
        assert load_config(tmp_path) == CheckerConfig()


class TestDiscovery:
    def test_pyproject_table(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text(
            "[tool.alloc-checker]\n"
            'suppression-key = "noalloc"\n'
            "debug_spew = true\n"
            'exclude = ["tests/*"]\n'
        )
        config = load_config(tmp_path)
        assert config.suppression_key == "noalloc"
        assert config.debug_spew
        assert config.exclude == ["tests/*"]

    def test_yaml_file(self, tmp_path):
        (tmp_path / YAML_CONFIG_NAME).write_text(
            "unresolved_call_effect: NoAlloc\n"
            "non-allocating-builtins: [len]\n"
        )
        config = load_config(tmp_path)
        assert config.unresolved_call_effect is Effect.NO_ALLOC
        assert config.non_allocating_builtins == ["len"]

    def test_pyproject_wins_over_yaml(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text('[tool.alloc-checker]\nsuppression-key = "a"\n')
        (tmp_path / YAML_CONFIG_NAME).write_text("suppression_key: b\n")
        assert load_config(tmp_path).suppression_key == "a"

    def test_file_path_uses_parent(self, tmp_path):
        (tmp_path / YAML_CONFIG_NAME).write_text("suppression_key: b\n")
        target = tmp_path / "mod.py"
        target.write_text("")
        assert load_config(target).suppression_key == "b"

    def test_empty_yaml(self, tmp_path):
        (tmp_path / YAML_CONFIG_NAME).write_text("")
        assert load_config(tmp_path) == CheckerConfig()


class TestExplicit:
    def test_explicit_yaml_overrides_discovery(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text('[tool.alloc-checker]\nsuppression-key = "a"\n')
        explicit = tmp_path / "custom.yml"
        explicit.write_text("suppression_key: c\n")
        assert load_config(tmp_path, explicit).suppression_key == "c"

    def test_explicit_pyproject(self, tmp_path):
        explicit = tmp_path / "other.toml"
        explicit.write_text('[tool.alloc-checker]\nsuppression-key = "d"\n')
        assert load_config(tmp_path, explicit).suppression_key == "d"

    def test_explicit_plain_toml(self, tmp_path):
        explicit = tmp_path / "alloc.toml"
        explicit.write_text('suppression-key = "e"\n')
        assert load_config(tmp_path, explicit).suppression_key == "e"

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path, tmp_path / "nope.yaml")


class TestInvalid:
    def test_bad_effect_value(self, tmp_path):
        (tmp_path / YAML_CONFIG_NAME).write_text("unresolved_call_effect: Sometimes\n")
        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path)
        assert YAML_CONFIG_NAME in exc_info.value.source

    def test_yaml_not_a_mapping(self, tmp_path):
        (tmp_path / YAML_CONFIG_NAME).write_text("- one\n- two\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(tmp_path)

    def test_malformed_toml(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text("[tool.alloc-checker\n")
        with pytest.raises(ConfigError):
            load_config(tmp_path)

    def test_malformed_yaml(self, tmp_path):
        (tmp_path / YAML_CONFIG_NAME).write_text("key: [unclosed\n")
        with pytest.raises(ConfigError):
            load_config(tmp_path)
