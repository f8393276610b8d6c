"""Code-quality runner wrapping ESLint's JSON formatter."""

import json
import logging
import subprocess
from pathlib import Path

from lumenclew.fingerprint import finding_id
from lumenclew.models import Panel, RawFinding, Severity, StatusReason
from lumenclew.runners.base import BaseRunner, FindingCollector, RunnerResult, relative_path

logger = logging.getLogger(__name__)

# ESLint exits 1 when it found problems; that is still a usable report.
LINT_OK_EXIT_CODES = (0, 1)


def _map_severity(level: int) -> Severity:
    return Severity.HIGH if level == 2 else Severity.LOW


class LintRunner(BaseRunner):
    name = "eslint"
    panel = Panel.CODE_QUALITY

    @property
    def default_timeout(self) -> float:
        return self.config.lint_timeout_seconds

    def run(self, workdir: Path, timeout: float) -> RunnerResult:
        logger.info("Running ESLint on %s", workdir)
        try:
            proc = subprocess.run(
                self.config.lint_command,
                cwd=str(workdir),
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return self._degraded(StatusReason.TIMEOUT, f"ESLint timeout after {timeout:g}s")
        except OSError as exc:
            return self._degraded(StatusReason.TOOL_ERROR, f"ESLint could not be started: {exc}")

        output = proc.stdout or ""
        if proc.returncode not in LINT_OK_EXIT_CODES and not output.strip():
            detail = (proc.stderr or "").strip().splitlines()
            message = detail[-1] if detail else f"exit code {proc.returncode}"
            return self._degraded(StatusReason.TOOL_ERROR, f"ESLint execution failed: {message}")

        try:
            file_results = json.loads(output)
        except json.JSONDecodeError:
            logger.debug("Unparseable ESLint output: %s", output[:200])
            return self._degraded(StatusReason.TOOL_ERROR, "Failed to parse ESLint JSON output")
        if not isinstance(file_results, list):
            return self._degraded(StatusReason.TOOL_ERROR, "Failed to parse ESLint JSON output")

        collector = FindingCollector(self.config.max_findings_per_panel)
        for file_result in file_results:
            if not isinstance(file_result, dict):
                continue
            rel = relative_path(file_result.get("filePath", ""), workdir)
            for msg in file_result.get("messages", []):
                rule_id = msg.get("ruleId") or "unknown"
                line = msg.get("line")
                collector.add(
                    RawFinding(
                        id=finding_id(self.panel.value, self.name, rule_id, rel, line),
                        panel=self.panel,
                        tool=self.name,
                        severity=_map_severity(msg.get("severity", 1)),
                        message=msg.get("message", "ESLint reported an issue"),
                        file=rel,
                        line=line,
                        column=msg.get("column"),
                        metadata={"ruleId": rule_id},
                    )
                )

        logger.info(
            "ESLint: %d findings (%d total issues, capped at %d)",
            len(collector.findings), collector.total, self.config.max_findings_per_panel,
        )
        return self._result(collector, files_analyzed=len(file_results))
