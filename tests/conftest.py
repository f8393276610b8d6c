"""Shared fixtures for Lumen Clew tests."""

import textwrap
from pathlib import Path

import pytest

from lumenclew.config import Config
from lumenclew.fingerprint import finding_id
from lumenclew.models import Panel, RawFinding, Severity


@pytest.fixture
def config() -> Config:
    return Config()


@pytest.fixture
def tmp_dir_with_files(tmp_path: Path):
    """Create a temp directory with multiple files."""

    def _create(files: dict[str, str]) -> Path:
        for name, content in files.items():
            p = tmp_path / name
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_text(textwrap.dedent(content))
        return tmp_path

    return _create


@pytest.fixture
def make_finding():
    """Build a RawFinding with a deterministic id."""

    def _create(
        panel: Panel = Panel.SECRETS,
        severity: Severity = Severity.HIGH,
        message: str = "Possible Generic API Key detected",
        file: str | None = "src/app.js",
        line: int | None = 1,
        key: str = "0",
    ) -> RawFinding:
        return RawFinding(
            id=finding_id(panel.value, "test", key, file, line),
            panel=panel,
            tool="test",
            severity=severity,
            message=message,
            file=file,
            line=line,
        )

    return _create
