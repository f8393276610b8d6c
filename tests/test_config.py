"""Tests for config file parsing."""

import pytest

from lumenclew.config import DEFAULT_CONFIG_NAME, Config, load_config
from lumenclew.models import ScanMode


class TestLoadConfig:
    def test_defaults_when_no_file(self, tmp_path):
        config = load_config(project_root=str(tmp_path))
        assert config.max_findings_per_panel == 25
        assert config.max_files_for(ScanMode.FAST) == 300
        assert config.max_files_for(ScanMode.FULL) == 999999
        assert config.max_file_size_bytes == 1024 * 1024
        assert "node_modules" in config.ignored_directories

    def test_loads_from_project_root(self, tmp_path):
        (tmp_path / DEFAULT_CONFIG_NAME).write_text(
            "max_findings_per_panel: 10\n"
            "fast_max_files: 50\n"
            "max_file_size_mb: 0.5\n"
            "ignored_directories:\n  - node_modules\n  - generated\n"
        )
        config = load_config(project_root=str(tmp_path))
        assert config.max_findings_per_panel == 10
        assert config.fast_max_files == 50
        assert config.max_file_size_mb == 0.5
        assert config.ignored_directories == ["node_modules", "generated"]

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "custom.yml"
        path.write_text("model: claude-test\nallowed_file_types:\n  - .JS\n")
        config = load_config(config_path=str(path))
        assert config.model == "claude-test"
        assert config.allowed_file_types == [".js"]

    def test_missing_explicit_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(config_path=str(tmp_path / "nope.yml"))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yml"
        path.write_text("fast_max_files: [1, 2\n")
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_config(config_path=str(path))

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="must be a YAML mapping"):
            load_config(config_path=str(path))

    @pytest.mark.parametrize("body,message", [
        ("max_findings_per_panel: 0\n", "max_findings_per_panel must be a positive integer"),
        ("fast_max_files: true\n", "fast_max_files must be a positive integer"),
        ("lint_timeout_seconds: -1\n", "lint_timeout_seconds must be a positive number"),
        ("ignored_directories: node_modules\n", "ignored_directories must be a list of strings"),
        ("model: ''\n", "model must be a non-empty string"),
    ])
    def test_validation_errors(self, tmp_path, body, message):
        path = tmp_path / "cfg.yml"
        path.write_text(body)
        with pytest.raises(ValueError, match=message):
            load_config(config_path=str(path))


class TestEnvironment:
    def test_api_key_from_env(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
        assert Config().api_key == "sk-test"

    def test_empty_env_is_missing(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "")
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        config = Config()
        assert config.api_key is None
        assert config.github_token is None
