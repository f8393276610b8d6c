"""Tests for the npm audit dependency runner."""

import json
import subprocess
from unittest.mock import MagicMock, patch

from lumenclew.models import Severity, StatusReason
from lumenclew.runners.base import RunStatus
from lumenclew.runners.dependencies import DependencyRunner

AUDIT_OUTPUT = {
    "auditReportVersion": 2,
    "vulnerabilities": {
        "lodash": {
            "name": "lodash",
            "severity": "high",
            "via": [{"title": "Prototype Pollution in lodash", "source": 1065}],
            "range": "<4.17.21",
            "fixAvailable": True,
        },
        "minimist": {
            "name": "minimist",
            "severity": "moderate",
            "via": ["mkdirp"],
            "range": "<1.2.6",
            "fixAvailable": False,
        },
        "left-pad": {
            "name": "left-pad",
            "severity": "info",
            "via": [],
        },
    },
}


def _completed(stdout, returncode=1, stderr=""):
    proc = MagicMock()
    proc.stdout = stdout
    proc.returncode = returncode
    proc.stderr = stderr
    return proc


class TestDependencyRunner:
    def test_missing_manifest_is_not_an_error(self, config, tmp_path):
        with patch("lumenclew.runners.dependencies.subprocess.run") as run:
            result = DependencyRunner(config).run(tmp_path, 60)
        run.assert_not_called()
        assert result.status == RunStatus.COMPLETED
        assert result.findings == []
        assert result.error is None
        assert result.files_analyzed is None

    def test_parses_vulnerabilities(self, config, tmp_dir_with_files):
        workdir = tmp_dir_with_files({"package.json": '{"name": "demo"}'})
        with patch("lumenclew.runners.dependencies.subprocess.run",
                   return_value=_completed(json.dumps(AUDIT_OUTPUT))):
            result = DependencyRunner(config).run(workdir, 60)

        assert result.status == RunStatus.COMPLETED
        assert result.total_issues == 3
        by_pkg = {f.metadata["packageName"]: f for f in result.findings}
        assert by_pkg["lodash"].severity == Severity.HIGH
        assert by_pkg["lodash"].message == "lodash: Prototype Pollution in lodash"
        assert by_pkg["lodash"].file == "package.json"
        assert by_pkg["lodash"].metadata["fixAvailable"] is True
        assert by_pkg["minimist"].severity == Severity.MEDIUM
        assert by_pkg["minimist"].metadata["npmSeverity"] == "moderate"
        assert by_pkg["left-pad"].severity == Severity.LOW
        assert by_pkg["left-pad"].metadata["vulnerability"] == "unknown"

    def test_audit_error_payload(self, config, tmp_dir_with_files):
        workdir = tmp_dir_with_files({"package.json": "{}"})
        payload = {"error": {"code": "ENOLOCK", "summary": "This command requires an existing lockfile."}}
        with patch("lumenclew.runners.dependencies.subprocess.run",
                   return_value=_completed(json.dumps(payload))):
            result = DependencyRunner(config).run(workdir, 60)
        assert result.reason == StatusReason.TOOL_ERROR
        assert "requires an existing lockfile" in result.error

    def test_timeout(self, config, tmp_dir_with_files):
        workdir = tmp_dir_with_files({"package.json": "{}"})
        with patch("lumenclew.runners.dependencies.subprocess.run",
                   side_effect=subprocess.TimeoutExpired(cmd="npm", timeout=60)):
            result = DependencyRunner(config).run(workdir, 60)
        assert result.reason == StatusReason.TIMEOUT
        assert result.error == "npm audit timeout exceeded"

    def test_unparseable_output(self, config, tmp_dir_with_files):
        workdir = tmp_dir_with_files({"package.json": "{}"})
        with patch("lumenclew.runners.dependencies.subprocess.run", return_value=_completed("npm ERR!")):
            result = DependencyRunner(config).run(workdir, 60)
        assert result.error == "Failed to parse npm audit output"

    def test_empty_output(self, config, tmp_dir_with_files):
        workdir = tmp_dir_with_files({"package.json": "{}"})
        with patch("lumenclew.runners.dependencies.subprocess.run",
                   return_value=_completed("", stderr="npm: command failed")):
            result = DependencyRunner(config).run(workdir, 60)
        assert result.degraded
        assert result.error == "npm audit failed: npm: command failed"
