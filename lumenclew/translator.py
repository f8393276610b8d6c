"""Plain-language translation of raw findings through the Anthropic API.

Translation is best effort. Every raw finding always comes back as a
TranslatedFinding: either the model's rewrite (validated and trimmed) or a
deterministic fallback carrying the original technical message. Importance is
always recomputed from the raw severity.
"""

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum

import anthropic

from lumenclew.config import Config
from lumenclew.models import Panel, RawFinding, TranslatedFinding, importance_for
from lumenclew.response_parser import parse_model_response

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 500
MAX_COMMON_APPROACHES = 5
ELLIPSIS = "..."

FALLBACK_REFLECTION = "Consider reviewing this in the context of your specific project needs."
PARTIAL_NOTE = "Partial translation - showing original finding."


class TranslationStatus(Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class TranslationFailure(Enum):
    MISSING_API_KEY = "MISSING_API_KEY"
    CLAUDE_TIMEOUT = "CLAUDE_TIMEOUT"
    CLAUDE_API_ERROR = "CLAUDE_API_ERROR"
    EMPTY_RESPONSE = "EMPTY_RESPONSE"
    PARTIAL_PARSE = "PARTIAL_PARSE"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


@dataclass(frozen=True)
class PanelTranslationResult:
    panel: Panel
    status: TranslationStatus
    findings: list[TranslatedFinding] = field(default_factory=list)
    status_reason: TranslationFailure | None = None
    truncated: bool = False
    original_count: int = 0
    translated_count: int = 0


BASE_PROMPT = """You are a supportive code mentor helping developers understand their codebase.
Your tone is warm, educational, and encouraging - like a senior developer guiding a colleague.
Never use shame, fear, or urgency. Focus on awareness and reflection, not directives.
Always acknowledge that static analysis has limitations and context matters."""

PANEL_PROMPTS = {
    Panel.CODE_QUALITY: """You're translating ESLint findings about code quality and maintainability.
Focus on:
- Why consistent patterns help teams collaborate
- How certain patterns might affect future maintenance
- The trade-offs between different approaches
Acknowledge that style choices are often team decisions, not universal truths.""",
    Panel.DEPENDENCIES: """You're translating npm audit findings about dependency vulnerabilities.
Focus on:
- What the vulnerability means in plain language
- Whether it's likely to affect this specific project (many vulnerabilities require specific conditions)
- How dependency updates work and their trade-offs
Normalize that all projects have some vulnerabilities - it's about informed prioritization.""",
    Panel.SECRETS: """You're translating findings about potential secrets or credentials in code.
Focus on:
- What was detected and why it might be sensitive
- That false positives are common (test data, example values, etc.)
- General best practices for credential management
Remove any shame - accidental commits happen to everyone. Focus on awareness.""",
    Panel.ACCESSIBILITY: """You're translating accessibility findings from static analysis.
Focus on:
- Who might be affected and how
- The underlying accessibility principle
- That automated tools catch ~30% of issues - manual testing matters too
Add context that accessibility is a journey, not a checklist.""",
}

USER_PROMPT = """Translate these {panel} findings into warm, educational language.

For each finding, return a JSON object with:
- id: the id of the finding you are translating, unchanged
- plainLanguage: A clear, jargon-free explanation (1-2 sentences)
- context: Why this matters and what it might affect
- reflection: A thoughtful question or consideration for the developer
- commonApproaches: (optional) Array of 2-3 common ways teams handle this

Return only a JSON array of translated findings, in the same order as the input.

Findings to translate:
{findings}"""


def system_prompt_for(panel: Panel) -> str:
    return f"{BASE_PROMPT}\n\n{PANEL_PROMPTS[panel]}"


def cap_by_severity(findings: list[RawFinding], max_count: int) -> tuple[list[RawFinding], bool, int]:
    """Keep at most ``max_count`` findings, highest severity first (stable within a tier)."""
    original_count = len(findings)
    if original_count <= max_count:
        return list(findings), False, original_count
    ordered = sorted(findings, key=lambda f: f.severity.rank, reverse=True)
    return ordered[:max_count], True, original_count


def _trim(text: str) -> str:
    if len(text) <= MAX_TEXT_LENGTH:
        return text
    return text[:MAX_TEXT_LENGTH - len(ELLIPSIS)] + ELLIPSIS


def _required_text(candidate: dict, key: str) -> str | None:
    value = candidate.get(key)
    if not isinstance(value, str) or not value.strip():
        return None
    return _trim(value.strip())


def validate_translation(candidate, raw: RawFinding) -> TranslatedFinding | None:
    """Validate one model-produced item against its raw finding.

    Returns ``None`` when a required field is missing or empty. The model's
    own importance label and notes are ignored.
    """
    if not isinstance(candidate, dict):
        return None

    plain_language = _required_text(candidate, "plainLanguage")
    context = _required_text(candidate, "context")
    reflection = _required_text(candidate, "reflection")
    if plain_language is None or context is None or reflection is None:
        return None

    approaches = None
    if isinstance(candidate.get("commonApproaches"), list):
        cleaned = [
            _trim(a.strip())
            for a in candidate["commonApproaches"]
            if isinstance(a, str) and a.strip()
        ]
        approaches = tuple(cleaned[:MAX_COMMON_APPROACHES]) or None

    return TranslatedFinding(
        id=raw.id,
        panel=raw.panel,
        plain_language=plain_language,
        context=context,
        importance=importance_for(raw.severity),
        reflection=reflection,
        common_approaches=approaches,
    )


def _candidate_id(candidate) -> str | None:
    if isinstance(candidate, dict) and isinstance(candidate.get("id"), str):
        return candidate["id"]
    return None


def match_candidates(raw_findings: list[RawFinding], candidates: list) -> list:
    """Pair each raw finding with at most one parsed candidate.

    An echoed id wins. Otherwise the candidate at the same position is used,
    but only if it carries no id belonging to another finding. No candidate
    is ever used twice.
    """
    known_ids = {raw.id for raw in raw_findings}
    by_id: dict[str, int] = {}
    for index, candidate in enumerate(candidates):
        cid = _candidate_id(candidate)
        if cid in known_ids and cid not in by_id:
            by_id[cid] = index

    used = set(by_id.values())
    matched = []
    for index, raw in enumerate(raw_findings):
        if raw.id in by_id:
            matched.append(candidates[by_id[raw.id]])
            continue
        positional = candidates[index] if index < len(candidates) and index not in used else None
        if positional is not None and _candidate_id(positional) not in known_ids:
            used.add(index)
            matched.append(positional)
            continue
        matched.append(None)
    return matched


def fallback_translation(raw: RawFinding, note: str) -> TranslatedFinding:
    location = f" in {raw.file}" if raw.file else ""
    return TranslatedFinding(
        id=raw.id,
        panel=raw.panel,
        plain_language=_trim(raw.message),
        context=f"This finding was detected by automated analysis{location}.",
        importance=importance_for(raw.severity),
        reflection=FALLBACK_REFLECTION,
        static_analysis_note=note,
    )


class FindingTranslator:
    def __init__(self, config: Config, client=None, api_key: str | None = None):
        self.config = config
        self.api_key = api_key or config.api_key
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = anthropic.Anthropic(
                api_key=self.api_key,
                timeout=self.config.translation_timeout_seconds,
                max_retries=0,
            )
        return self._client

    def translate_all(self, findings_by_panel: dict[Panel, list[RawFinding]]) -> dict[Panel, PanelTranslationResult]:
        """Translate every panel concurrently; panels never affect each other."""
        logger.info("Starting parallel translation for all panels")
        with ThreadPoolExecutor(max_workers=len(Panel)) as pool:
            futures = {
                panel: pool.submit(self.translate_panel, panel, findings_by_panel.get(panel, []))
                for panel in Panel
            }
            results = {panel: future.result() for panel, future in futures.items()}
        logger.info("Completed parallel translation for all panels")
        return results

    def translate_panel(self, panel: Panel, raw_findings: list[RawFinding]) -> PanelTranslationResult:
        if not raw_findings:
            return PanelTranslationResult(panel=panel, status=TranslationStatus.SUCCESS)

        capped, truncated, original_count = cap_by_severity(
            raw_findings, self.config.max_findings_per_panel
        )

        if not self.api_key and self._client is None:
            logger.error("Missing API key for %s translation", panel.value)
            return self._failed(panel, capped, TranslationFailure.MISSING_API_KEY, truncated, original_count)

        try:
            text = self._complete(panel, capped)
        except anthropic.APITimeoutError:
            logger.error("Translation timeout for %s", panel.value)
            return self._failed(panel, capped, TranslationFailure.CLAUDE_TIMEOUT, truncated, original_count)
        except anthropic.APIError as exc:
            logger.error("Translation API error for %s: %s", panel.value, exc)
            return self._failed(panel, capped, TranslationFailure.CLAUDE_API_ERROR, truncated, original_count)
        except Exception:
            logger.exception("Unexpected error translating %s", panel.value)
            return self._failed(panel, capped, TranslationFailure.UNEXPECTED_ERROR, truncated, original_count)

        if not text.strip():
            logger.warning("Empty translation response for %s", panel.value)
            return self._failed(panel, capped, TranslationFailure.EMPTY_RESPONSE, truncated, original_count)

        candidates = parse_model_response(text)

        translated = []
        translated_count = 0
        for raw, candidate in zip(capped, match_candidates(capped, candidates)):
            validated = validate_translation(candidate, raw)
            if validated is None:
                translated.append(fallback_translation(raw, PARTIAL_NOTE))
            else:
                translated.append(validated)
                translated_count += 1

        if translated_count == len(capped):
            status, reason = TranslationStatus.SUCCESS, None
        elif translated_count > 0:
            status, reason = TranslationStatus.PARTIAL, TranslationFailure.PARTIAL_PARSE
        else:
            status, reason = TranslationStatus.FAILED, TranslationFailure.PARTIAL_PARSE

        logger.info("Translated %d/%d findings for %s", translated_count, len(capped), panel.value)
        return PanelTranslationResult(
            panel=panel,
            status=status,
            findings=translated,
            status_reason=reason,
            truncated=truncated,
            original_count=original_count,
            translated_count=translated_count,
        )

    def _complete(self, panel: Panel, findings: list[RawFinding]) -> str:
        payload = json.dumps([f.to_dict() for f in findings], indent=2)
        logger.info("Translating %d findings for %s", len(findings), panel.value)
        response = self.client.messages.create(
            model=self.config.model,
            max_tokens=self.config.max_tokens,
            system=system_prompt_for(panel),
            messages=[
                {"role": "user", "content": USER_PROMPT.format(panel=panel.value, findings=payload)},
            ],
            timeout=self.config.translation_timeout_seconds,
        )
        return "".join(
            getattr(block, "text", "") for block in response.content
            if getattr(block, "type", "text") == "text"
        )

    def _failed(
        self,
        panel: Panel,
        findings: list[RawFinding],
        reason: TranslationFailure,
        truncated: bool,
        original_count: int,
    ) -> PanelTranslationResult:
        note = f"Translation unavailable ({reason.value}). Showing original finding."
        return PanelTranslationResult(
            panel=panel,
            status=TranslationStatus.FAILED,
            findings=[fallback_translation(raw, note) for raw in findings],
            status_reason=reason,
            truncated=truncated,
            original_count=original_count,
            translated_count=0,
        )
