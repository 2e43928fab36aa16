"""
Tests for settings loading — file discovery, env overrides, validation.
"""

from pathlib import Path

import pytest

from shivvie.core import context
from shivvie.core.config.loader import Settings, find_config_file, load_settings
from shivvie.core.errors import ConfigError


class TestFindConfigFile:
    def test_finds_in_start_dir(self, tmp_path):
        (tmp_path / "shivvie.yml").write_text("max_delegation_depth: 4\n")
        assert find_config_file(tmp_path) == (tmp_path / "shivvie.yml").resolve()

    def test_walks_up(self, tmp_path):
        (tmp_path / "shivvie.yml").write_text("")
        nested = tmp_path / "a" / "b" / "c"
        nested.mkdir(parents=True)
        assert find_config_file(nested) == (tmp_path / "shivvie.yml").resolve()

    def test_none_when_absent(self, tmp_path):
        nested = tmp_path / "empty"
        nested.mkdir()
        found = find_config_file(nested)
        # An unrelated shivvie.yml above the tmp dir may exist on the host
        assert found is None or tmp_path.resolve() not in found.parents


class TestLoadSettings:
    def test_defaults(self):
        s = Settings()
        assert s.max_delegation_depth == 32
        assert s.git_host == "https://github.com"
        assert s.package_manager is None
        assert s.cache_dir == Path.home() / ".cache" / "shivvie"

    def test_from_file(self, tmp_path):
        config = tmp_path / "shivvie.yml"
        config.write_text("max_delegation_depth: 5\npackage_manager: pnpm\ncache_dir: /var/cache/sv\n")
        s = load_settings(config, environ={})
        assert s.max_delegation_depth == 5
        assert s.package_manager == "pnpm"
        assert s.cache_dir == Path("/var/cache/sv")

    def test_empty_file(self, tmp_path):
        config = tmp_path / "shivvie.yml"
        config.write_text("")
        assert load_settings(config, environ={}).max_delegation_depth == 32

    def test_env_overrides_file(self, tmp_path):
        config = tmp_path / "shivvie.yml"
        config.write_text("max_delegation_depth: 5\nshell: /bin/zsh\n")
        s = load_settings(config, environ={"SHIVVIE_MAX_DEPTH": "9", "SHIVVIE_GIT_HOST": "https://git.example"})
        assert s.max_delegation_depth == 9
        assert s.git_host == "https://git.example"
        assert s.shell == "/bin/zsh"

    def test_auto_detect(self, tmp_path, monkeypatch):
        (tmp_path / "shivvie.yml").write_text("git_host: https://mirror.local\n")
        monkeypatch.chdir(tmp_path)
        assert load_settings(environ={}).git_host == "https://mirror.local"

    def test_explicit_missing(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_settings(tmp_path / "nope.yml", environ={})

    def test_invalid_yaml(self, tmp_path):
        config = tmp_path / "shivvie.yml"
        config.write_text("a: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_settings(config, environ={})

    def test_not_a_mapping(self, tmp_path):
        config = tmp_path / "shivvie.yml"
        config.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_settings(config, environ={})

    def test_invalid_value(self, tmp_path):
        config = tmp_path / "shivvie.yml"
        config.write_text("package_manager: bun\n")
        with pytest.raises(ConfigError, match="Invalid settings"):
            load_settings(config, environ={})

    def test_invalid_env_value(self, tmp_path):
        config = tmp_path / "shivvie.yml"
        config.write_text("")
        with pytest.raises(ConfigError):
            load_settings(config, environ={"SHIVVIE_MAX_DEPTH": "0"})


class TestContext:
    def test_default_when_unset(self):
        context.reset_settings()
        assert context.get_settings().max_delegation_depth == 32

    def test_set_and_get(self, tmp_path):
        s = Settings(temp_dir=tmp_path / "t", max_delegation_depth=2)
        context.set_settings(s)
        assert context.get_settings() is s

    def test_temp_root_created(self, settings):
        assert not settings.temp_dir.exists()
        assert context.temp_root() == settings.temp_dir
        assert settings.temp_dir.is_dir()

    def test_fresh_temp_dirs_are_unique(self, settings):
        a = context.fresh_temp_dir()
        b = context.fresh_temp_dir()
        assert a != b
        assert a.is_dir() and b.is_dir()
        assert a.parent == settings.temp_dir

    def test_npm_cache_dir(self, settings):
        assert context.npm_cache_dir() == settings.cache_dir / "npm"
        assert (settings.cache_dir / "npm").is_dir()
