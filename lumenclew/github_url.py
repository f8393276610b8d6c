"""GitHub repository URL validation and normalization."""

import re
from dataclasses import dataclass

GITHUB_PREFIX = "https://github.com/"

GITHUB_URL_PATTERN = re.compile(r"^https://github\.com/([\w-]+)/([\w.-]+?)(?:\.git)?/?$")


@dataclass(frozen=True)
class UrlValidation:
    is_valid: bool
    error: str | None = None
    normalized_url: str | None = None
    owner: str | None = None
    repo: str | None = None


def validate_github_url(url: str) -> UrlValidation:
    trimmed = (url or "").strip()

    if not trimmed:
        return UrlValidation(False, error="Please enter a GitHub repository URL")

    if not trimmed.startswith(GITHUB_PREFIX):
        return UrlValidation(False, error=f"URL must start with {GITHUB_PREFIX}")

    match = GITHUB_URL_PATTERN.match(trimmed)
    if not match or match.group(2) in (".", ".."):
        return UrlValidation(
            False,
            error="Invalid GitHub repository URL format. Expected: https://github.com/owner/repo",
        )

    owner, repo = match.group(1), match.group(2)
    return UrlValidation(
        True,
        normalized_url=f"{GITHUB_PREFIX}{owner}/{repo}",
        owner=owner,
        repo=repo,
    )
