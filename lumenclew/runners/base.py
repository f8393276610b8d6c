"""Abstract analyzer runner and the shared result type."""

import logging
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from lumenclew.config import Config
from lumenclew.models import Panel, RawFinding, StatusReason

logger = logging.getLogger(__name__)


class RunStatus(Enum):
    COMPLETED = "completed"
    DEGRADED = "degraded"


@dataclass
class RunnerResult:
    """Outcome of one runner invocation.

    A runner always hands back one of these. Tool crashes, timeouts and
    unparseable output show up as ``status=DEGRADED`` with a reason and an
    error string, never as an exception.
    """

    runner: str
    panel: Panel
    findings: list[RawFinding] = field(default_factory=list)
    total_issues: int = 0
    status: RunStatus = RunStatus.COMPLETED
    reason: StatusReason | None = None
    error: str | None = None
    files_analyzed: int | None = None
    duration_seconds: float = 0.0

    @property
    def degraded(self) -> bool:
        return self.status == RunStatus.DEGRADED


class FindingCollector:
    """Counts every issue but keeps only the first ``cap`` distinct findings."""

    def __init__(self, cap: int):
        self.cap = cap
        self.findings: list[RawFinding] = []
        self.total = 0
        self._seen: set[str] = set()

    def add(self, finding: RawFinding) -> None:
        self.total += 1
        if finding.id in self._seen or len(self.findings) >= self.cap:
            return
        self._seen.add(finding.id)
        self.findings.append(finding)


def relative_path(path: str | Path, root: Path) -> str:
    """Express ``path`` relative to the working area root, POSIX-style."""
    candidate = Path(path)
    if candidate.is_absolute():
        for base in (root, root.resolve()):
            try:
                return candidate.relative_to(base).as_posix()
            except ValueError:
                continue
        return candidate.name
    return candidate.as_posix()


class DeadlineWalk:
    """Depth-first file walk that checks a monotonic deadline at every entry.

    Iterating yields regular files; ``timed_out`` is set when the walk stopped
    early because the deadline passed.
    """

    def __init__(self, root: Path, ignored_dirs: list[str], deadline: float):
        self.root = root
        self.ignored_dirs = set(ignored_dirs)
        self.deadline = deadline
        self.timed_out = False

    def __iter__(self):
        stack = [self.root]
        while stack:
            directory = stack.pop()
            try:
                with os.scandir(directory) as it:
                    entries = sorted(it, key=lambda e: e.name)
            except OSError as exc:
                logger.debug("Error reading directory %s: %s", directory, exc)
                continue

            subdirs = []
            for entry in entries:
                if time.monotonic() > self.deadline:
                    self.timed_out = True
                    return
                if entry.is_dir(follow_symlinks=False):
                    if entry.name not in self.ignored_dirs:
                        subdirs.append(Path(entry.path))
                elif entry.is_file(follow_symlinks=False):
                    yield Path(entry.path)
            stack.extend(reversed(subdirs))


class BaseRunner(ABC):
    name: str = "base"
    panel: Panel

    def __init__(self, config: Config):
        self.config = config

    @property
    @abstractmethod
    def default_timeout(self) -> float:
        ...

    @abstractmethod
    def run(self, workdir: Path, timeout: float) -> RunnerResult:
        ...

    def run_safely(self, workdir: Path, timeout: float | None = None) -> RunnerResult:
        """Run with timing, converting any unexpected exception into a degraded result."""
        timeout = self.default_timeout if timeout is None else timeout
        start = time.monotonic()
        try:
            result = self.run(workdir, timeout)
        except Exception as exc:
            logger.exception("%s crashed", self.name)
            result = self._degraded(StatusReason.TOOL_ERROR, f"Unexpected error: {exc}")
        result.duration_seconds = round(time.monotonic() - start, 3)
        return result

    def _result(self, collector: FindingCollector, **kwargs) -> RunnerResult:
        return RunnerResult(
            runner=self.name,
            panel=self.panel,
            findings=collector.findings,
            total_issues=collector.total,
            **kwargs,
        )

    def _degraded(
        self,
        reason: StatusReason,
        error: str,
        collector: FindingCollector | None = None,
        files_analyzed: int | None = None,
    ) -> RunnerResult:
        logger.warning("%s degraded (%s): %s", self.name, reason.value, error)
        collector = collector or FindingCollector(self.config.max_findings_per_panel)
        return self._result(
            collector,
            status=RunStatus.DEGRADED,
            reason=reason,
            error=error,
            files_analyzed=files_analyzed,
        )
