"""Accessibility pattern scanner for markup-bearing files.

Static pattern matching only. Seven structural regexes are applied to the
whole file, followed by a heading-hierarchy walk that flags jumps of more
than one level (h1 straight to h3). Going back up to a shallower heading is
never a skip.
"""

import logging
import re
import time
from pathlib import Path

from lumenclew.fingerprint import finding_id
from lumenclew.models import Panel, RawFinding, Severity, StatusReason
from lumenclew.runners.base import BaseRunner, DeadlineWalk, FindingCollector, RunnerResult, relative_path

logger = logging.getLogger(__name__)

MARKUP_EXTENSIONS = {".jsx", ".tsx", ".html", ".htm"}

HEADING_PATTERN_ID = "heading_hierarchy"
MATCHED_TEXT_LIMIT = 100

A11Y_PATTERNS: list[dict] = [
    {
        "id": "missing_alt",
        "name": "Missing Alt Text",
        "pattern": re.compile(r"<img\b(?![^>]*\balt\s*=)[^>]*>", re.IGNORECASE),
        "severity": Severity.HIGH,
        "message": "Image missing alt attribute for screen readers",
    },
    {
        "id": "non_semantic_button_div",
        "name": "Non-semantic Button (div)",
        "pattern": re.compile(r"<div\b[^>]*\bonClick\s*=", re.IGNORECASE),
        "severity": Severity.HIGH,
        "message": "Div with onClick should be a button element for keyboard accessibility",
    },
    {
        "id": "non_semantic_button_role",
        "name": "Non-semantic Button (role)",
        "pattern": re.compile(
            r"""<(?!button\b)[a-z][a-z0-9]*\b[^>]*\brole\s*=\s*["']button["'][^>]*>""",
            re.IGNORECASE,
        ),
        "severity": Severity.HIGH,
        "message": 'Element with role="button" should be a native button element',
    },
    {
        "id": "missing_aria_label",
        "name": "Missing ARIA Label",
        "pattern": re.compile(r"<(button|a)\b[^>]*>(?:\s*<[^>]+>)*\s*</\1>", re.IGNORECASE),
        "severity": Severity.MEDIUM,
        "message": "Interactive element has no text content and may need aria-label for screen reader context",
    },
    {
        "id": "link_without_href",
        "name": "Link Without Href",
        "pattern": re.compile(r"<a\b(?![^>]*\bhref\s*=)[^>]*>", re.IGNORECASE),
        "severity": Severity.MEDIUM,
        "message": "Anchor tag missing href attribute - not keyboard navigable",
    },
    {
        "id": "input_without_label",
        "name": "Input Without Label",
        "pattern": re.compile(
            r"<input\b(?![^>]*\b(?:id|aria-label|aria-labelledby)\s*=)[^>]*>",
            re.IGNORECASE,
        ),
        "severity": Severity.MEDIUM,
        "message": "Input element missing associated label or aria-label",
    },
    {
        "id": "empty_heading",
        "name": "Empty Heading",
        "pattern": re.compile(r"<h([1-6])\b[^>]*>\s*</h\1>", re.IGNORECASE),
        "severity": Severity.LOW,
        "message": "Empty heading element - provides no content for screen readers",
    },
]

HEADING_RE = re.compile(r"<h([1-6])\b[^>]*>", re.IGNORECASE)


def _line_number(content: str, index: int) -> int:
    return content.count("\n", 0, index) + 1


def find_heading_skips(content: str) -> list[dict]:
    """Return one entry per heading that jumps more than one level deeper.

    Each entry has ``previous``, ``current``, ``skipped`` and ``line`` keys.
    """
    headings = [
        (int(m.group(1)), _line_number(content, m.start()))
        for m in HEADING_RE.finditer(content)
    ]
    skips = []
    for (prev_level, _), (level, line) in zip(headings, headings[1:]):
        if level > prev_level + 1:
            skips.append({
                "previous": prev_level,
                "current": level,
                "skipped": prev_level + 1,
                "line": line,
            })
    return skips


class AccessibilityRunner(BaseRunner):
    name = "a11y_analyzer"
    panel = Panel.ACCESSIBILITY

    @property
    def default_timeout(self) -> float:
        return self.config.a11y_timeout_seconds

    def run(self, workdir: Path, timeout: float) -> RunnerResult:
        if not workdir.is_dir():
            return self._degraded(StatusReason.TOOL_ERROR, "Directory not found", files_analyzed=0)

        collector = FindingCollector(self.config.max_findings_per_panel)
        walk = DeadlineWalk(workdir, self.config.ignored_directories, time.monotonic() + timeout)
        files_analyzed = 0

        for filepath in walk:
            if filepath.suffix.lower() not in MARKUP_EXTENSIONS:
                continue
            try:
                if filepath.stat().st_size > self.config.max_file_size_bytes:
                    logger.debug("Skipping large file: %s", filepath)
                    continue
                content = filepath.read_text(errors="ignore")
            except OSError as exc:
                logger.debug("Error reading file %s: %s", filepath, exc)
                continue

            files_analyzed += 1
            for finding in self.scan_content(content, relative_path(filepath, workdir)):
                collector.add(finding)

        if walk.timed_out:
            return self._degraded(
                StatusReason.TIMEOUT,
                f"Accessibility scan timeout after {timeout:g}s",
                collector=collector,
                files_analyzed=files_analyzed,
            )

        logger.info(
            "A11y: analyzed %d files, %d issues (returning %d)",
            files_analyzed, collector.total, len(collector.findings),
        )
        return self._result(collector, files_analyzed=files_analyzed)

    def scan_content(self, content: str, rel_path: str) -> list[RawFinding]:
        findings = []
        for pattern in A11Y_PATTERNS:
            for match in pattern["pattern"].finditer(content):
                line = _line_number(content, match.start())
                findings.append(
                    RawFinding(
                        id=finding_id(self.panel.value, self.name, pattern["id"], rel_path, line),
                        panel=self.panel,
                        tool=self.name,
                        severity=pattern["severity"],
                        message=pattern["message"],
                        file=rel_path,
                        line=line,
                        metadata={
                            "patternId": pattern["id"],
                            "patternName": pattern["name"],
                            "matchedText": match.group(0)[:MATCHED_TEXT_LIMIT],
                        },
                    )
                )

        for skip in find_heading_skips(content):
            findings.append(
                RawFinding(
                    id=finding_id(self.panel.value, self.name, HEADING_PATTERN_ID, rel_path, skip["line"]),
                    panel=self.panel,
                    tool=self.name,
                    severity=Severity.MEDIUM,
                    message=(
                        f"Heading hierarchy skip: h{skip['previous']} followed by "
                        f"h{skip['current']} (missing h{skip['skipped']})"
                    ),
                    file=rel_path,
                    line=skip["line"],
                    metadata={
                        "patternId": HEADING_PATTERN_ID,
                        "previousLevel": skip["previous"],
                        "currentLevel": skip["current"],
                        "skippedLevel": skip["skipped"],
                    },
                )
            )
        return findings
