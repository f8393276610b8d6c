"""Secret and credential pattern scanner."""

import logging
import re
import time
from pathlib import Path, PurePosixPath

from lumenclew.fingerprint import finding_id
from lumenclew.models import Panel, RawFinding, Severity, StatusReason
from lumenclew.runners.base import BaseRunner, DeadlineWalk, FindingCollector, RunnerResult, relative_path

logger = logging.getLogger(__name__)

# Order matters: patterns are applied to each line in this sequence.
SECRET_PATTERNS: list[dict] = [
    {
        "id": "private_key",
        "name": "Private Key",
        "pattern": re.compile(r"-----BEGIN (?:RSA |EC |DSA |OPENSSH |PGP )?PRIVATE KEY-----"),
        "severity": Severity.CRITICAL,
    },
    {
        "id": "aws_key",
        "name": "AWS Access Key",
        "pattern": re.compile(r"AKIA[0-9A-Z]{16}"),
        "severity": Severity.CRITICAL,
    },
    {
        "id": "db_connection_mongo",
        "name": "MongoDB Connection String",
        "pattern": re.compile(r"mongodb(?:\+srv)?://[^:\s]+:[^@\s]+@"),
        "severity": Severity.HIGH,
    },
    {
        "id": "db_connection_postgres",
        "name": "PostgreSQL Connection String",
        "pattern": re.compile(r"postgres(?:ql)?://[^:\s]+:[^@\s]+@"),
        "severity": Severity.HIGH,
    },
    {
        "id": "db_connection_mysql",
        "name": "MySQL Connection String",
        "pattern": re.compile(r"mysql://[^:\s]+:[^@\s]+@"),
        "severity": Severity.HIGH,
    },
    {
        "id": "api_key_generic",
        "name": "Generic API Key",
        "pattern": re.compile(
            r"""['"]?api[_-]?key['"]?\s*[:=]\s*['"][a-zA-Z0-9_\-]{20,}['"]""",
            re.IGNORECASE,
        ),
        "severity": Severity.HIGH,
    },
    {
        "id": "bearer_token",
        "name": "Bearer Token",
        "pattern": re.compile(r"""['"]?Bearer\s+[a-zA-Z0-9_\-.]{20,}['"]?"""),
        "severity": Severity.HIGH,
    },
    {
        "id": "token_generic",
        "name": "Generic Token",
        "pattern": re.compile(
            r"""['"]?token['"]?\s*[:=]\s*['"][a-zA-Z0-9_\-]{20,}['"]""",
            re.IGNORECASE,
        ),
        "severity": Severity.MEDIUM,
    },
]

EXAMPLE_MARKERS = (".example", ".sample", ".template")
TEST_DIRS = {"test", "tests", "__tests__", "spec", "specs", "__mocks__", "fixtures"}
TEST_FILE_MARKERS = (".test.", ".spec.")


def _is_env_file(name: str) -> bool:
    return name == ".env" or name.startswith(".env.")


def _is_test_path(rel_path: str) -> bool:
    pure = PurePosixPath(rel_path)
    if any(part.lower() in TEST_DIRS for part in pure.parts[:-1]):
        return True
    return any(marker in pure.name.lower() for marker in TEST_FILE_MARKERS)


def determine_severity(base: Severity, rel_path: str) -> Severity:
    """Adjust a pattern's base severity for the file it was found in."""
    name = PurePosixPath(rel_path).name.lower()
    if any(marker in name for marker in EXAMPLE_MARKERS):
        return Severity.LOW
    if _is_env_file(name):
        return Severity.CRITICAL
    if _is_test_path(rel_path):
        return min(base, Severity.MEDIUM)
    return base


class SecretsRunner(BaseRunner):
    name = "secrets_regex"
    panel = Panel.SECRETS

    @property
    def default_timeout(self) -> float:
        return self.config.secrets_timeout_seconds

    def run(self, workdir: Path, timeout: float) -> RunnerResult:
        if not workdir.is_dir():
            return self._degraded(StatusReason.TOOL_ERROR, "Scan directory does not exist")

        logger.info("Scanning %s for secrets", workdir)
        collector = FindingCollector(self.config.max_findings_per_panel)
        walk = DeadlineWalk(workdir, self.config.ignored_directories, time.monotonic() + timeout)
        files_scanned = 0

        for filepath in walk:
            if not self._should_scan(filepath):
                continue
            files_scanned += 1
            self._scan_file(filepath, relative_path(filepath, workdir), collector)

        if walk.timed_out:
            return self._degraded(
                StatusReason.TIMEOUT,
                f"Secrets scan timeout after {timeout:g}s",
                collector=collector,
                files_analyzed=files_scanned,
            )

        logger.info(
            "Secrets: scanned %d files, found %d matches (returning %d)",
            files_scanned, collector.total, len(collector.findings),
        )
        return self._result(collector, files_analyzed=files_scanned)

    def _should_scan(self, filepath: Path) -> bool:
        name = filepath.name.lower()
        if _is_env_file(name):
            return True
        suffix = filepath.suffix.lower()
        return not suffix or suffix in self.config.allowed_file_types

    def _scan_file(self, filepath: Path, rel_path: str, collector: FindingCollector) -> None:
        try:
            if filepath.stat().st_size > self.config.max_file_size_bytes:
                logger.debug("Skipping large file: %s", rel_path)
                return
            content = filepath.read_text(errors="ignore")
        except OSError as exc:
            logger.debug("Error reading file %s: %s", rel_path, exc)
            return

        for line_num, line in enumerate(content.splitlines(), start=1):
            for secret in SECRET_PATTERNS:
                match = secret["pattern"].search(line)
                if not match:
                    continue
                severity = determine_severity(secret["severity"], rel_path)
                collector.add(
                    RawFinding(
                        id=finding_id(self.panel.value, self.name, secret["id"], rel_path, line_num),
                        panel=self.panel,
                        tool=self.name,
                        severity=severity,
                        message=f"Possible {secret['name']} detected",
                        file=rel_path,
                        line=line_num,
                        column=match.start(),
                        metadata={
                            "patternId": secret["id"],
                            "patternName": secret["name"],
                            "baseSeverity": secret["severity"].value,
                            "contextSeverity": severity.value,
                        },
                    )
                )
