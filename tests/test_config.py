# =============================================================================
# tests/test_config.py - Configuration Loading Tests
# =============================================================================
# Sources (mapping, .py, .json), override precedence, defaults and
# environment fallback.
# =============================================================================

from pathlib import Path

import pytest
from pydantic import ValidationError

from portico import ConfigurationError, Settings, load_config


# =============================================================================
# Sources
# =============================================================================

class TestConfigSources:
    """Test the different configuration sources."""

    def test_mapping_source(self, tmp_path):
        """Test that a mapping is taken as-is."""
        settings = load_config({"name": "svc", "port": 8080, "root": tmp_path})

        assert settings.name == "svc"
        assert settings.port == 8080
        assert settings.root == tmp_path

    def test_py_file_sets_root_to_its_directory(self, site):
        """Test loading a .py module exporting `config`."""
        settings = load_config(str(site / "config.py"))

        assert settings.name == "fixture-site"
        assert settings.port == 4321
        assert settings.root == site.resolve()
        assert settings.static_dirs == [site.resolve() / "public", site.resolve() / "assets"]

    def test_py_file_without_config_dict(self, site):
        """Test that module attributes are used when there is no `config`."""
        settings = load_config(site / "plain_config.py")

        assert settings.name == "plain-site"
        assert settings.port == 6000
        assert settings.log_dir == site.resolve() / "var" / "log"

    def test_json_file(self, site):
        """Test loading a .json file; a single static dir becomes a list."""
        settings = load_config(site / "settings.json")

        assert settings.name == "json-site"
        assert settings.static == ["public"]
        assert settings.root == site.resolve()

    def test_missing_file(self, tmp_path):
        """Test that a missing file is a configuration error."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(tmp_path / "nope.py")

        assert "not found" in exc_info.value.message

    def test_unsupported_file_type(self, tmp_path):
        """Test that unknown extensions are rejected."""
        path = tmp_path / "config.toml"
        path.write_text("name = 'x'\n")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(path)

        assert exc_info.value.suggestion

    def test_invalid_json(self, tmp_path):
        """Test that broken JSON is a configuration error."""
        path = tmp_path / "config.json"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_settings_source(self, tmp_path):
        """Test that an existing Settings object can be re-merged."""
        base = load_config({"root": tmp_path, "name": "base"})

        settings = load_config(base, {"port": 9000})

        assert settings.name == "base"
        assert settings.port == 9000


# =============================================================================
# Merging and Defaults
# =============================================================================

class TestConfigMerge:
    """Test override precedence and defaults."""

    def test_overrides_merge_in_order(self, tmp_path):
        """Test that later overrides win."""
        settings = load_config(
            {"root": tmp_path, "port": 1000, "name": "a"},
            {"port": 2000},
            {"port": 3001, "logs": "var/logs"},
        )

        assert settings.port == 3001
        assert settings.name == "a"
        assert settings.logs == "var/logs"

    def test_override_can_change_root(self, site, tmp_path):
        """Test that an override replaces the root derived from the file."""
        settings = load_config(site / "config.py", {"root": tmp_path})

        assert settings.root == tmp_path

    def test_defaults(self, tmp_path):
        """Test default values."""
        settings = load_config({"root": tmp_path})

        assert settings.view_engine == "html"
        assert settings.env == "development"
        assert settings.is_development
        assert settings.logs == "logs"
        assert settings.upload == "assets/upload"
        assert settings.upload_field_name == "upload"
        assert settings.static == []
        assert settings.before_route == []
        assert settings.views_dir is None

    def test_defaults_without_source(self):
        """Test that no source at all still yields usable settings."""
        settings = load_config()

        assert settings.root == Path.cwd()

    def test_extra_keys_are_kept(self, site):
        """Test that application-specific keys survive validation."""
        settings = load_config(site / "config.py")

        assert settings.greeting == "hi"

    def test_single_hook_becomes_list(self, tmp_path):
        """Test that a lone hook is accepted where a list is expected."""

        async def hook(request, call_next):
            return await call_next(request)

        settings = load_config({"root": tmp_path, "before_route": hook})

        assert settings.before_route == [hook]

    def test_invalid_port(self, tmp_path):
        """Test that out-of-range ports are rejected."""
        with pytest.raises(ValidationError):
            load_config({"root": tmp_path, "port": 70000})


# =============================================================================
# Environment
# =============================================================================

class TestConfigEnvironment:
    """Test PORTICO_* environment variables."""

    def test_env_var_fills_missing_key(self, tmp_path, monkeypatch):
        """Test that PORTICO_ENV is used when the config does not set env."""
        monkeypatch.setenv("PORTICO_ENV", "production")

        settings = load_config({"root": tmp_path})

        assert settings.env == "production"
        assert not settings.is_development

    def test_config_beats_env_var(self, tmp_path, monkeypatch):
        """Test that an explicit config value wins over the environment."""
        monkeypatch.setenv("PORTICO_ENV", "production")

        settings = load_config({"root": tmp_path, "env": "staging"})

        assert settings.env == "staging"

    def test_settings_class_reads_env(self, monkeypatch):
        """Test the Settings class directly."""
        monkeypatch.setenv("PORTICO_PORT", "8081")

        assert Settings().port == 8081
