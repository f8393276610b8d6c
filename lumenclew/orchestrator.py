"""Scan orchestration: acquisition, parallel analysis, translation, report assembly.

Only a failed acquisition (or a refused rate limit) aborts a scan. Analyzer
and translation problems are folded into per-panel statuses. The working
area is removed on every exit path.
"""

import logging
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from concurrent.futures import TimeoutError as FutureTimeout
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from lumenclew.acquirer import AcquisitionErrorKind, RepositoryAcquirer, cleanup_workdir
from lumenclew.config import Config
from lumenclew.github_url import validate_github_url
from lumenclew.models import (
    ErrorCode,
    Panel,
    PanelResult,
    PanelStatus,
    ReportStatus,
    ScanError,
    ScanReport,
    ScanRequest,
    ScanResponse,
    ScanScope,
    StatusReason,
)
from lumenclew.rate_limit import InMemoryRateLimiter, RateLimiter
from lumenclew.runners import BaseRunner, RunnerResult, RunStatus, default_runners
from lumenclew.translator import FindingTranslator, PanelTranslationResult, TranslationStatus

logger = logging.getLogger(__name__)

ORIENTATION_NOTE = (
    "This report comes from automated static analysis of a subset of the repository's files. "
    "Static tools cannot see how the code runs, so some findings may not apply to your project "
    "and some real issues may not appear here. Treat each item as a prompt for reflection, "
    "not a verdict."
)

# Extra time granted on top of a runner's own budget before the orchestrator gives up waiting.
RUNNER_GRACE_SECONDS = 5.0

# How long cleanup waits for analyzers that overran their deadline before removing the working area.
ABANDONED_RUNNER_WAIT_SECONDS = 10.0

ACQUISITION_ERROR_CODES = {
    AcquisitionErrorKind.INVALID_URL: ErrorCode.INVALID_GITHUB_URL,
    AcquisitionErrorKind.NOT_FOUND: ErrorCode.REPO_NOT_FOUND,
    AcquisitionErrorKind.TIMEOUT: ErrorCode.CLONE_TIMEOUT,
    AcquisitionErrorKind.UPSTREAM_ERROR: ErrorCode.INTERNAL_ERROR,
}

HTTP_STATUS_BY_ERROR = {
    ErrorCode.INVALID_GITHUB_URL: 400,
    ErrorCode.REPO_NOT_FOUND: 404,
    ErrorCode.RATE_LIMIT_EXCEEDED: 429,
    ErrorCode.CLONE_TIMEOUT: 504,
    ErrorCode.INTERNAL_ERROR: 500,
}


class ScanStage(Enum):
    PENDING = "pending"
    ACQUIRING = "acquiring"
    ANALYZING = "analyzing"
    TRANSLATING = "translating"
    ASSEMBLING = "assembling"
    DONE = "done"


def http_status_for(response: ScanResponse) -> int:
    """Transport status code a thin HTTP handler should send for ``response``."""
    if response.status in (ReportStatus.SUCCESS, ReportStatus.PARTIAL):
        return 200
    if response.error is None:
        return 500
    return HTTP_STATUS_BY_ERROR.get(response.error.code, 500)


def aggregate_status(panels: dict[Panel, PanelResult]) -> ReportStatus:
    statuses = [p.status for p in panels.values()]
    if all(s == PanelStatus.SUCCESS for s in statuses):
        return ReportStatus.SUCCESS
    if all(s == PanelStatus.SKIPPED for s in statuses):
        return ReportStatus.ERROR
    return ReportStatus.PARTIAL


def build_panel_result(
    run: RunnerResult,
    translation: PanelTranslationResult,
    cap_hit: bool = False,
    max_files: int = 0,
) -> PanelResult:
    status = PanelStatus.SUCCESS
    reason = None
    message = None

    if run.status == RunStatus.DEGRADED:
        status = PanelStatus.PARTIAL if run.findings else PanelStatus.SKIPPED
        reason = run.reason or StatusReason.TOOL_ERROR
        message = run.error
    elif translation.status != TranslationStatus.SUCCESS:
        status = PanelStatus.PARTIAL
        reason = StatusReason.TRANSLATION_ERROR
        detail = translation.status_reason.value if translation.status_reason else "unknown"
        message = f"Plain-language translation {translation.status.value} ({detail}); showing original findings where needed"
    elif cap_hit and run.files_analyzed is not None:
        status = PanelStatus.PARTIAL
        reason = StatusReason.FILE_CAP_HIT
        message = f"Only the first {max_files} eligible files were analyzed"

    return PanelResult(
        panel=run.panel,
        status=status,
        finding_count=run.total_issues,
        findings=tuple(translation.findings),
        status_reason=reason,
        error_message=message,
    )


class ScanOrchestrator:
    def __init__(
        self,
        config: Config,
        acquirer: RepositoryAcquirer | None = None,
        runners: list[BaseRunner] | None = None,
        translator: FindingTranslator | None = None,
        rate_limiter: RateLimiter | None = None,
    ):
        self.config = config
        self.acquirer = acquirer or RepositoryAcquirer(config)
        self.runners = runners if runners is not None else default_runners(config)
        self.translator = translator or FindingTranslator(config)
        self.rate_limiter = rate_limiter or InMemoryRateLimiter(config.max_scans_per_day)
        self.stage = ScanStage.PENDING

    def _enter(self, stage: ScanStage, scan_id: str) -> None:
        logger.debug("[%s] %s -> %s", scan_id, self.stage.value, stage.value)
        self.stage = stage

    def scan(self, request: ScanRequest) -> ScanResponse:
        scan_id = str(uuid.uuid4())
        started = time.monotonic()
        self.stage = ScanStage.PENDING
        rate_state = None
        workdir: Path | None = None
        abandoned: dict[str, Future] = {}

        try:
            validation = validate_github_url(request.repo_url)
            if not validation.is_valid:
                rate_state = self.rate_limiter.peek(request.client_ip)
                return self._error(ErrorCode.INVALID_GITHUB_URL, validation.error or "Invalid GitHub URL", rate_state)

            decision = self.rate_limiter.check_and_consume(request.client_ip)
            rate_state = decision.state
            if not decision.allowed:
                logger.info("[%s] Rate limit exceeded for %s", scan_id, request.client_ip)
                return self._error(
                    ErrorCode.RATE_LIMIT_EXCEEDED,
                    f"Daily scan limit of {rate_state.max_scans_per_day} reached. Try again after {rate_state.reset_time}.",
                    rate_state,
                )

            logger.info("[%s] Scanning %s (%s)", scan_id, validation.normalized_url, request.scan_mode.value)
            self._enter(ScanStage.ACQUIRING, scan_id)
            acquisition = self.acquirer.acquire(validation.normalized_url, request.scan_mode)
            workdir = acquisition.workdir
            if not acquisition.success:
                code = ACQUISITION_ERROR_CODES.get(acquisition.error_kind, ErrorCode.INTERNAL_ERROR)
                logger.warning("[%s] Acquisition failed (%s): %s", scan_id, code.value, acquisition.error)
                return self._error(code, acquisition.error or "Repository acquisition failed", rate_state)
            cloned_at = datetime.now(timezone.utc).isoformat()

            self._enter(ScanStage.ANALYZING, scan_id)
            runs = self._run_analyzers(workdir, scan_id, abandoned)

            self._enter(ScanStage.TRANSLATING, scan_id)
            translations = self.translator.translate_all({panel: run.findings for panel, run in runs.items()})

            self._enter(ScanStage.ASSEMBLING, scan_id)
            max_files = self.config.max_files_for(request.scan_mode)
            panels = {
                panel: build_panel_result(runs[panel], translations[panel], acquisition.cap_hit, max_files)
                for panel in Panel
            }
            status = aggregate_status(panels)
            partial_reasons = tuple(
                f"{panel.value}: {result.status_reason.value}"
                + (f" ({result.error_message})" if result.error_message else "")
                for panel, result in panels.items()
                if result.status != PanelStatus.SUCCESS and result.status_reason is not None
            )

            report = ScanReport(
                id=scan_id,
                repo_url=validation.normalized_url,
                scan_mode=request.scan_mode,
                status=status,
                scan_scope=ScanScope(
                    max_files_allowed=max_files,
                    max_file_size_mb=self.config.max_file_size_mb,
                    ignored_directories=tuple(self.config.ignored_directories),
                    files_counted=acquisition.file_count,
                    files_scanned=acquisition.files_scanned,
                    files_skipped=acquisition.files_skipped,
                ),
                panels=panels,
                orientation_note=ORIENTATION_NOTE,
                cloned_at=cloned_at,
                scan_duration_ms=int((time.monotonic() - started) * 1000),
                partial_reasons=partial_reasons or None,
            )

            for reason in partial_reasons:
                logger.warning("[%s] %s", scan_id, reason)
            logger.info("[%s] Scan finished with status %s in %dms", scan_id, status.value, report.scan_duration_ms)

            error = None
            if status == ReportStatus.ERROR:
                error = ScanError(ErrorCode.INTERNAL_ERROR, "No analyzer produced usable output")
            return ScanResponse(status=status, report=report, error=error, rate_limit=rate_state)

        except Exception:
            logger.exception("[%s] Unexpected error during scan (stage: %s)", scan_id, self.stage.value)
            return self._error(ErrorCode.INTERNAL_ERROR, "An unexpected error occurred", rate_state)

        finally:
            self._await_abandoned(abandoned, scan_id)
            cleanup_workdir(workdir)
            self._enter(ScanStage.DONE, scan_id)

    def _error(self, code: ErrorCode, message: str, rate_state) -> ScanResponse:
        return ScanResponse(status=ReportStatus.ERROR, error=ScanError(code, message), rate_limit=rate_state)

    def _await_abandoned(self, abandoned: dict[str, Future], scan_id: str) -> None:
        if not abandoned:
            return
        logger.info("[%s] Waiting for %d overrunning analyzer(s) before cleanup", scan_id, len(abandoned))
        wait_futures(list(abandoned.values()), timeout=ABANDONED_RUNNER_WAIT_SECONDS)
        for name, future in abandoned.items():
            if not future.done():
                logger.warning(
                    "[%s] %s is still running; removing its working area while it may be reading it",
                    scan_id, name,
                )

    def _run_analyzers(self, workdir: Path, scan_id: str, abandoned: dict[str, Future]) -> dict[Panel, RunnerResult]:
        """Run every analyzer concurrently, each against its own deadline.

        Analyzers that overrun are recorded in ``abandoned`` so cleanup can wait for them.
        """
        pool = ThreadPoolExecutor(max_workers=max(len(self.runners), 1), thread_name_prefix="analyzer")
        started = time.monotonic()
        try:
            futures = [
                (runner, runner.default_timeout, pool.submit(runner.run_safely, workdir, runner.default_timeout))
                for runner in self.runners
            ]
            results: dict[Panel, RunnerResult] = {}
            for runner, timeout, future in futures:
                remaining = max(started + timeout + RUNNER_GRACE_SECONDS - time.monotonic(), 0)
                try:
                    results[runner.panel] = future.result(timeout=remaining)
                except FutureTimeout:
                    logger.warning("[%s] %s did not finish within %gs", scan_id, runner.name, timeout)
                    abandoned[runner.name] = future
                    results[runner.panel] = RunnerResult(
                        runner=runner.name,
                        panel=runner.panel,
                        status=RunStatus.DEGRADED,
                        reason=StatusReason.TIMEOUT,
                        error=f"{runner.name} did not finish within {timeout:g}s",
                    )
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        for panel in Panel:
            if panel not in results:
                results[panel] = RunnerResult(
                    runner="none",
                    panel=panel,
                    status=RunStatus.DEGRADED,
                    reason=StatusReason.TOOL_ERROR,
                    error="No analyzer configured for this panel",
                )
        return results
