"""Data models for raw findings, translations and scan reports."""

from dataclasses import dataclass, field
from enum import Enum


class Severity(Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {
            Severity.CRITICAL: 3,
            Severity.HIGH: 2,
            Severity.MEDIUM: 1,
            Severity.LOW: 0,
        }[self]

    def __ge__(self, other: "Severity") -> bool:
        return self.rank >= other.rank

    def __gt__(self, other: "Severity") -> bool:
        return self.rank > other.rank

    def __le__(self, other: "Severity") -> bool:
        return self.rank <= other.rank

    def __lt__(self, other: "Severity") -> bool:
        return self.rank < other.rank


class Importance(Enum):
    IMPORTANT = "important"
    EXPLORE = "explore"
    NOTE = "note"
    FYI = "fyi"


IMPORTANCE_BY_SEVERITY = {
    Severity.CRITICAL: Importance.IMPORTANT,
    Severity.HIGH: Importance.EXPLORE,
    Severity.MEDIUM: Importance.NOTE,
    Severity.LOW: Importance.FYI,
}


def importance_for(severity: Severity) -> Importance:
    """Deterministic severity -> importance mapping. Model output never feeds this."""
    return IMPORTANCE_BY_SEVERITY[severity]


class Panel(Enum):
    CODE_QUALITY = "code_quality"
    DEPENDENCIES = "dependencies"
    SECRETS = "secrets"
    ACCESSIBILITY = "accessibility"

    @property
    def report_key(self) -> str:
        return {
            Panel.CODE_QUALITY: "codeQuality",
            Panel.DEPENDENCIES: "dependencies",
            Panel.SECRETS: "secrets",
            Panel.ACCESSIBILITY: "accessibility",
        }[self]


class ScanMode(Enum):
    FAST = "fast"
    FULL = "full"


class PanelStatus(Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    SKIPPED = "skipped"


class StatusReason(Enum):
    TIMEOUT = "timeout"
    TOOL_ERROR = "tool_error"
    MISSING_MANIFEST = "missing_manifest"
    TRANSLATION_ERROR = "translation_error"
    FILE_CAP_HIT = "file_cap_hit"


class ReportStatus(Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"


class ErrorCode(Enum):
    INVALID_GITHUB_URL = "INVALID_GITHUB_URL"
    REPO_NOT_FOUND = "REPO_NOT_FOUND"
    CLONE_TIMEOUT = "CLONE_TIMEOUT"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass(frozen=True)
class RawFinding:
    id: str
    panel: Panel
    tool: str
    severity: Severity
    message: str
    file: str | None = None
    line: int | None = None
    column: int | None = None
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "panel": self.panel.value,
            "tool": self.tool,
            "severity": self.severity.value,
            "message": self.message,
        }
        if self.file is not None:
            data["file"] = self.file
        if self.line is not None:
            data["line"] = self.line
        if self.column is not None:
            data["column"] = self.column
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data


@dataclass(frozen=True)
class TranslatedFinding:
    id: str
    panel: Panel
    plain_language: str
    context: str
    importance: Importance
    reflection: str
    common_approaches: tuple[str, ...] | None = None
    static_analysis_note: str | None = None

    @property
    def is_fallback(self) -> bool:
        return self.static_analysis_note is not None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "panel": self.panel.value,
            "plainLanguage": self.plain_language,
            "context": self.context,
            "importance": self.importance.value,
            "reflection": self.reflection,
        }
        if self.common_approaches is not None:
            data["commonApproaches"] = list(self.common_approaches)
        if self.static_analysis_note is not None:
            data["staticAnalysisNote"] = self.static_analysis_note
        return data


@dataclass(frozen=True)
class PanelResult:
    panel: Panel
    status: PanelStatus
    finding_count: int
    findings: tuple[TranslatedFinding, ...] = ()
    status_reason: StatusReason | None = None
    error_message: str | None = None

    def to_dict(self) -> dict:
        data = {
            "panel": self.panel.value,
            "status": self.status.value,
            "findingCount": self.finding_count,
            "findings": [f.to_dict() for f in self.findings],
        }
        if self.status_reason is not None:
            data["statusReason"] = self.status_reason.value
        if self.error_message is not None:
            data["errorMessage"] = self.error_message
        return data


@dataclass(frozen=True)
class ScanScope:
    max_files_allowed: int
    max_file_size_mb: float
    ignored_directories: tuple[str, ...]
    files_counted: int = 0
    files_scanned: int = 0
    files_skipped: int = 0

    def to_dict(self) -> dict:
        return {
            "maxFilesAllowed": self.max_files_allowed,
            "maxFileSizeMb": self.max_file_size_mb,
            "ignoredDirectories": list(self.ignored_directories),
            "filesCounted": self.files_counted,
            "filesScanned": self.files_scanned,
            "filesSkipped": self.files_skipped,
        }


@dataclass(frozen=True)
class ScanReport:
    id: str
    repo_url: str
    scan_mode: ScanMode
    status: ReportStatus
    scan_scope: ScanScope
    panels: dict[Panel, PanelResult]
    orientation_note: str
    cloned_at: str
    scan_duration_ms: int
    partial_reasons: tuple[str, ...] | None = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "repoUrl": self.repo_url,
            "scanMode": self.scan_mode.value,
            "status": self.status.value,
            "scanScope": self.scan_scope.to_dict(),
            "panels": {p.report_key: r.to_dict() for p, r in self.panels.items()},
            "orientationNote": self.orientation_note,
            "clonedAt": self.cloned_at,
            "scanDuration": self.scan_duration_ms,
        }
        if self.partial_reasons:
            data["partialReasons"] = list(self.partial_reasons)
        return data


@dataclass(frozen=True)
class RateLimitState:
    scans_today: int
    max_scans_per_day: int
    reset_time: str
    remaining: int
    can_scan: bool

    def to_dict(self) -> dict:
        return {
            "scansToday": self.scans_today,
            "maxScansPerDay": self.max_scans_per_day,
            "resetTime": self.reset_time,
            "remaining": self.remaining,
            "canScan": self.can_scan,
        }


@dataclass(frozen=True)
class ScanError:
    code: ErrorCode
    message: str

    def to_dict(self) -> dict:
        return {"code": self.code.value, "message": self.message}


@dataclass(frozen=True)
class ScanRequest:
    repo_url: str
    client_ip: str
    scan_mode: ScanMode = ScanMode.FAST


@dataclass(frozen=True)
class ScanResponse:
    status: ReportStatus
    report: ScanReport | None = None
    error: ScanError | None = None
    rate_limit: RateLimitState | None = None

    def to_dict(self) -> dict:
        data: dict = {"status": self.status.value}
        if self.report is not None:
            data["report"] = self.report.to_dict()
        if self.error is not None:
            data["error"] = self.error.to_dict()
        data["rateLimit"] = self.rate_limit.to_dict() if self.rate_limit else None
        return data
