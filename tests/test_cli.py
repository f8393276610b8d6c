"""Tests for the CLI interface and report rendering."""

import json
from unittest.mock import patch

from click.testing import CliRunner
from rich.console import Console

from lumenclew.cli import cli
from lumenclew.models import (
    ErrorCode,
    Importance,
    Panel,
    PanelResult,
    PanelStatus,
    RateLimitState,
    ReportStatus,
    ScanError,
    ScanMode,
    ScanReport,
    ScanResponse,
    ScanScope,
    StatusReason,
    TranslatedFinding,
)
from lumenclew.report import render_json, render_table


def _response(status=ReportStatus.PARTIAL):
    finding = TranslatedFinding(
        id="abc123",
        panel=Panel.SECRETS,
        plain_language="A value that looks like an access key is stored in this file.",
        context="This finding was detected by automated analysis in .env.",
        importance=Importance.IMPORTANT,
        reflection="Is this value meant to be shared?",
        static_analysis_note="Translation unavailable (MISSING_API_KEY). Showing original finding.",
    )
    panels = {panel: PanelResult(panel=panel, status=PanelStatus.SUCCESS, finding_count=0) for panel in Panel}
    panels[Panel.SECRETS] = PanelResult(
        panel=Panel.SECRETS, status=PanelStatus.PARTIAL, finding_count=1, findings=(finding,),
        status_reason=StatusReason.TRANSLATION_ERROR, error_message="translation failed",
    )
    report = ScanReport(
        id="scan-1",
        repo_url="https://github.com/owner/repo",
        scan_mode=ScanMode.FAST,
        status=status,
        scan_scope=ScanScope(300, 1.0, ("node_modules",), files_counted=4, files_scanned=4),
        panels=panels,
        orientation_note="Automated analysis has limits.",
        cloned_at="2026-01-01T00:00:00+00:00",
        scan_duration_ms=1500,
        partial_reasons=("secrets: translation_error (translation failed)",),
    )
    rate = RateLimitState(scans_today=1, max_scans_per_day=10, reset_time="2026-01-02T00:00:00+00:00",
                          remaining=9, can_scan=True)
    return ScanResponse(status=status, report=report, rate_limit=rate)


def _error_response():
    return ScanResponse(status=ReportStatus.ERROR, error=ScanError(ErrorCode.REPO_NOT_FOUND, "Repository not found (404)"))


class TestRenderers:
    def test_render_json(self):
        data = json.loads(render_json(_response()))
        assert data["status"] == "partial"
        assert data["report"]["panels"]["secrets"]["findings"][0]["importance"] == "important"
        assert data["rateLimit"]["remaining"] == 9

    def test_render_table(self):
        console = Console(record=True, width=160)
        render_table(_response(), console=console)
        text = console.export_text()
        assert "https://github.com/owner/repo" in text
        assert "Secrets" in text
        assert "important" in text
        assert "Scans remaining today: 9/10" in text

    def test_render_table_error(self):
        console = Console(record=True, width=120)
        render_table(_error_response(), console=console)
        assert "REPO_NOT_FOUND" in console.export_text()


class TestCLI:
    def test_scan_json_output(self):
        with patch("lumenclew.cli.ScanOrchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.scan.return_value = _response()
            result = CliRunner().invoke(cli, ["scan", "https://github.com/owner/repo", "--format", "json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["report"]["repoUrl"] == "https://github.com/owner/repo"
        request = orchestrator_cls.return_value.scan.call_args.args[0]
        assert request.scan_mode == ScanMode.FAST
        assert request.client_ip == "cli"

    def test_scan_full_mode(self):
        with patch("lumenclew.cli.ScanOrchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.scan.return_value = _response()
            result = CliRunner().invoke(cli, ["scan", "https://github.com/owner/repo", "--mode", "full"])
        assert result.exit_code == 0
        assert orchestrator_cls.return_value.scan.call_args.args[0].scan_mode == ScanMode.FULL

    def test_exit_code_on_error(self):
        with patch("lumenclew.cli.ScanOrchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.scan.return_value = _error_response()
            result = CliRunner().invoke(cli, ["scan", "https://github.com/owner/missing"])
        assert result.exit_code == 1

    def test_output_file(self, tmp_path):
        out = tmp_path / "report.json"
        with patch("lumenclew.cli.ScanOrchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.scan.return_value = _response()
            result = CliRunner().invoke(
                cli, ["scan", "https://github.com/owner/repo", "--format", "json", "-o", str(out)],
            )
        assert result.exit_code == 0
        assert json.loads(out.read_text())["status"] == "partial"

    def test_bad_config_file(self, tmp_path):
        bad = tmp_path / "bad.yml"
        bad.write_text("max_findings_per_panel: -5\n")
        result = CliRunner().invoke(cli, ["scan", "https://github.com/owner/repo", "--config", str(bad)])
        assert result.exit_code != 0
        assert "max_findings_per_panel must be a positive integer" in result.output

    def test_invalid_mode_rejected(self):
        result = CliRunner().invoke(cli, ["scan", "https://github.com/owner/repo", "--mode", "deep"])
        assert result.exit_code != 0
