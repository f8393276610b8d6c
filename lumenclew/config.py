"""Configuration file support for Lumen Clew (.lumenclew.yml)."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from lumenclew.models import ScanMode

DEFAULT_CONFIG_NAME = ".lumenclew.yml"

API_KEY_ENV = "ANTHROPIC_API_KEY"
GITHUB_TOKEN_ENV = "GITHUB_TOKEN"


@dataclass
class Config:
    """Lumen Clew configuration loaded from .lumenclew.yml."""

    max_findings_per_panel: int = 25
    fast_max_files: int = 300
    full_max_files: int = 999999
    max_file_size_mb: float = 1.0
    ignored_directories: list[str] = field(default_factory=lambda: [
        "node_modules", ".git", "dist", "build", "coverage", "vendor", ".next",
    ])
    allowed_file_types: list[str] = field(default_factory=lambda: [
        ".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs", ".json", ".html", ".htm",
        ".vue", ".svelte", ".css", ".md", ".yml", ".yaml", ".env", ".config",
    ])
    download_batch_size: int = 10
    tree_timeout_seconds: float = 30.0
    file_timeout_seconds: float = 10.0
    lint_timeout_seconds: float = 60.0
    audit_timeout_seconds: float = 60.0
    secrets_timeout_seconds: float = 30.0
    a11y_timeout_seconds: float = 20.0
    translation_timeout_seconds: float = 45.0
    model: str = "claude-sonnet-4-5-20250929"
    max_tokens: int = 4096
    max_scans_per_day: int = 10
    lint_command: list[str] = field(default_factory=lambda: [
        "npx", "--no-install", "eslint", ".", "--format", "json", "--no-ignore",
    ])
    audit_command: list[str] = field(default_factory=lambda: ["npm", "audit", "--json"])

    @property
    def max_file_size_bytes(self) -> int:
        return int(self.max_file_size_mb * 1024 * 1024)

    def max_files_for(self, mode: ScanMode) -> int:
        return self.fast_max_files if mode == ScanMode.FAST else self.full_max_files

    @property
    def api_key(self) -> str | None:
        return os.environ.get(API_KEY_ENV) or None

    @property
    def github_token(self) -> str | None:
        return os.environ.get(GITHUB_TOKEN_ENV) or None


_INT_KEYS = (
    "max_findings_per_panel", "fast_max_files", "full_max_files",
    "download_batch_size", "max_tokens", "max_scans_per_day",
)
_NUMBER_KEYS = (
    "max_file_size_mb", "tree_timeout_seconds", "file_timeout_seconds",
    "lint_timeout_seconds", "audit_timeout_seconds", "secrets_timeout_seconds",
    "a11y_timeout_seconds", "translation_timeout_seconds",
)
_LIST_KEYS = ("ignored_directories", "allowed_file_types", "lint_command", "audit_command")


def load_config(config_path: str | None = None, project_root: str | None = None) -> Config:
    """Load configuration from a YAML file.

    Priority: explicit --config path > .lumenclew.yml in project root > defaults.
    """
    path = None

    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    elif project_root:
        candidate = Path(project_root) / DEFAULT_CONFIG_NAME
        if candidate.exists():
            path = candidate

    if path is None:
        return Config()

    try:
        raw = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ValueError(f"Config file {path} must be a YAML mapping, got {type(raw).__name__}")

    return _parse_config(raw)


def _parse_config(raw: dict) -> Config:
    """Parse and validate raw YAML dict into a Config object."""
    config = Config()

    for key in _INT_KEYS:
        if key in raw:
            val = raw[key]
            if not isinstance(val, int) or isinstance(val, bool) or val <= 0:
                raise ValueError(f"{key} must be a positive integer")
            setattr(config, key, val)

    for key in _NUMBER_KEYS:
        if key in raw:
            val = raw[key]
            if not isinstance(val, (int, float)) or isinstance(val, bool) or val <= 0:
                raise ValueError(f"{key} must be a positive number")
            setattr(config, key, float(val))

    for key in _LIST_KEYS:
        if key in raw:
            val = raw[key]
            if not isinstance(val, list) or not all(isinstance(v, str) for v in val):
                raise ValueError(f"{key} must be a list of strings")
            setattr(config, key, val)

    if "allowed_file_types" in raw:
        config.allowed_file_types = [ext.lower() for ext in config.allowed_file_types]

    if "model" in raw:
        if not isinstance(raw["model"], str) or not raw["model"]:
            raise ValueError("model must be a non-empty string")
        config.model = raw["model"]

    return config
