"""Dependency vulnerability runner using npm audit."""

import json
import logging
import subprocess
from pathlib import Path

from lumenclew.fingerprint import finding_id
from lumenclew.models import Panel, RawFinding, Severity, StatusReason
from lumenclew.runners.base import BaseRunner, FindingCollector, RunnerResult

logger = logging.getLogger(__name__)

MANIFEST_NAME = "package.json"

SEVERITY_MAP = {
    "critical": Severity.CRITICAL,
    "high": Severity.HIGH,
    "moderate": Severity.MEDIUM,
    "low": Severity.LOW,
    "info": Severity.LOW,
}


def _map_severity(npm_severity: str) -> Severity:
    return SEVERITY_MAP.get(npm_severity.lower(), Severity.LOW)


def _describe_via(via) -> str:
    if isinstance(via, list):
        parts = []
        for item in via:
            if isinstance(item, str):
                parts.append(item)
            elif isinstance(item, dict):
                parts.append(item.get("title") or item.get("name") or "unknown")
        return ", ".join(parts) or "unknown"
    return str(via or "unknown")


class DependencyRunner(BaseRunner):
    name = "npm_audit"
    panel = Panel.DEPENDENCIES

    @property
    def default_timeout(self) -> float:
        return self.config.audit_timeout_seconds

    def run(self, workdir: Path, timeout: float) -> RunnerResult:
        collector = FindingCollector(self.config.max_findings_per_panel)

        if not (workdir / MANIFEST_NAME).is_file():
            logger.info("No %s found, skipping dependency audit", MANIFEST_NAME)
            return self._result(collector)

        try:
            proc = subprocess.run(
                self.config.audit_command,
                cwd=str(workdir),
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return self._degraded(StatusReason.TIMEOUT, "npm audit timeout exceeded")
        except OSError as exc:
            return self._degraded(StatusReason.TOOL_ERROR, f"npm audit failed: {exc}")

        # npm audit exits non-zero when vulnerabilities exist; stdout is still JSON.
        output = proc.stdout or ""
        if not output.strip():
            detail = (proc.stderr or "").strip().splitlines()
            message = detail[-1] if detail else f"exit code {proc.returncode}"
            return self._degraded(StatusReason.TOOL_ERROR, f"npm audit failed: {message}")

        try:
            audit = json.loads(output)
        except json.JSONDecodeError:
            return self._degraded(StatusReason.TOOL_ERROR, "Failed to parse npm audit output")
        if not isinstance(audit, dict):
            return self._degraded(StatusReason.TOOL_ERROR, "Failed to parse npm audit output")

        if isinstance(audit.get("error"), dict):
            err = audit["error"]
            summary = err.get("summary") or err.get("code") or "unknown error"
            return self._degraded(StatusReason.TOOL_ERROR, f"npm audit failed: {summary}")

        for package_name, vuln in (audit.get("vulnerabilities") or {}).items():
            if not isinstance(vuln, dict):
                continue
            npm_severity = vuln.get("severity") or "low"
            via = _describe_via(vuln.get("via"))
            collector.add(
                RawFinding(
                    id=finding_id(self.panel.value, self.name, package_name, npm_severity, via),
                    panel=self.panel,
                    tool=self.name,
                    severity=_map_severity(npm_severity),
                    message=f"{package_name}: {via}",
                    file=MANIFEST_NAME,
                    line=1,
                    column=0,
                    metadata={
                        "packageName": package_name,
                        "vulnerability": via,
                        "npmSeverity": npm_severity,
                        "range": vuln.get("range") or "*",
                        "fixAvailable": vuln.get("fixAvailable") or False,
                    },
                )
            )

        logger.info(
            "npm audit: %d vulnerable packages (returning %d)",
            collector.total, len(collector.findings),
        )
        return self._result(collector)
