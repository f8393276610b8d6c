"""Tests for the ESLint code-quality runner."""

import json
import subprocess
from unittest.mock import MagicMock, patch

from lumenclew.config import Config
from lumenclew.models import Panel, Severity, StatusReason
from lumenclew.runners.base import RunStatus
from lumenclew.runners.lint import LintRunner


def _completed(stdout="", returncode=1, stderr=""):
    proc = MagicMock()
    proc.stdout = stdout
    proc.returncode = returncode
    proc.stderr = stderr
    return proc


def _eslint_output(workdir, messages_by_file):
    return json.dumps([
        {"filePath": str(workdir / name), "messages": messages}
        for name, messages in messages_by_file.items()
    ])


class TestLintRunner:
    def test_parses_findings(self, config, tmp_path):
        output = _eslint_output(tmp_path, {
            "src/app.js": [
                {"ruleId": "no-unused-vars", "severity": 2, "message": "'x' is defined but never used.", "line": 3, "column": 7},
                {"ruleId": "semi", "severity": 1, "message": "Missing semicolon.", "line": 9, "column": 12},
            ],
            "src/clean.js": [],
        })
        with patch("lumenclew.runners.lint.subprocess.run", return_value=_completed(output)):
            result = LintRunner(config).run(tmp_path, 60)

        assert result.status == RunStatus.COMPLETED
        assert result.panel == Panel.CODE_QUALITY
        assert result.files_analyzed == 2
        assert result.total_issues == 2
        first, second = result.findings
        assert first.severity == Severity.HIGH
        assert first.file == "src/app.js"
        assert first.line == 3
        assert first.metadata == {"ruleId": "no-unused-vars"}
        assert second.severity == Severity.LOW

    def test_missing_rule_id(self, config, tmp_path):
        output = _eslint_output(tmp_path, {"a.js": [{"ruleId": None, "severity": 2, "message": "Parsing error", "line": 1}]})
        with patch("lumenclew.runners.lint.subprocess.run", return_value=_completed(output)):
            result = LintRunner(config).run(tmp_path, 60)
        assert result.findings[0].metadata["ruleId"] == "unknown"

    def test_cap_keeps_total(self, tmp_path):
        config = Config(max_findings_per_panel=2)
        messages = [{"ruleId": "semi", "severity": 1, "message": "Missing semicolon.", "line": i} for i in range(1, 6)]
        output = _eslint_output(tmp_path, {"a.js": messages})
        with patch("lumenclew.runners.lint.subprocess.run", return_value=_completed(output)):
            result = LintRunner(config).run(tmp_path, 60)
        assert len(result.findings) == 2
        assert result.total_issues == 5

    def test_timeout(self, config, tmp_path):
        with patch("lumenclew.runners.lint.subprocess.run",
                   side_effect=subprocess.TimeoutExpired(cmd="eslint", timeout=60)):
            result = LintRunner(config).run(tmp_path, 60)
        assert result.degraded
        assert result.reason == StatusReason.TIMEOUT
        assert result.error == "ESLint timeout after 60s"
        assert result.findings == []

    def test_tool_not_installed(self, config, tmp_path):
        with patch("lumenclew.runners.lint.subprocess.run", side_effect=FileNotFoundError("npx")):
            result = LintRunner(config).run(tmp_path, 60)
        assert result.reason == StatusReason.TOOL_ERROR

    def test_crash_without_output(self, config, tmp_path):
        proc = _completed("", returncode=2, stderr="Oops! Something went wrong!\nNo config found")
        with patch("lumenclew.runners.lint.subprocess.run", return_value=proc):
            result = LintRunner(config).run(tmp_path, 60)
        assert result.reason == StatusReason.TOOL_ERROR
        assert result.error == "ESLint execution failed: No config found"

    def test_unparseable_output(self, config, tmp_path):
        with patch("lumenclew.runners.lint.subprocess.run", return_value=_completed("not json")):
            result = LintRunner(config).run(tmp_path, 60)
        assert result.error == "Failed to parse ESLint JSON output"

    def test_deterministic_ids(self, config, tmp_path):
        output = _eslint_output(tmp_path, {"a.js": [{"ruleId": "semi", "severity": 1, "message": "m", "line": 4}]})
        with patch("lumenclew.runners.lint.subprocess.run", return_value=_completed(output)):
            first = LintRunner(config).run(tmp_path, 60)
            second = LintRunner(config).run(tmp_path, 60)
        assert first.findings[0].id == second.findings[0].id

    def test_run_safely_converts_exceptions(self, config, tmp_path):
        with patch("lumenclew.runners.lint.subprocess.run", side_effect=RuntimeError("boom")):
            result = LintRunner(config).run_safely(tmp_path)
        assert result.degraded
        assert result.error == "Unexpected error: boom"
        assert result.duration_seconds >= 0
