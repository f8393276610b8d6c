"""Repository acquisition through the GitHub REST API.

Resolves a repository to its file tree with a single call, filters the tree
by ignored directories, allowed extensions and file size, and downloads the
retained files into a freshly-created working directory in fixed-size
batches.
"""

import logging
import shutil
import tempfile
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath

import requests

from lumenclew.config import Config
from lumenclew.github_url import validate_github_url
from lumenclew.models import ScanMode

logger = logging.getLogger(__name__)

TREE_URL = "https://api.github.com/repos/{owner}/{repo}/git/trees/HEAD?recursive=1"
RAW_URL = "https://raw.githubusercontent.com/{owner}/{repo}/HEAD/{path}"
USER_AGENT = "LumenClew/1.0"
WORKDIR_PREFIX = "lumenclew-"


class AcquisitionErrorKind(Enum):
    INVALID_URL = "INVALID_URL"
    NOT_FOUND = "NOT_FOUND"
    TIMEOUT = "TIMEOUT"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"


@dataclass(frozen=True)
class AcquisitionResult:
    success: bool
    workdir: Path | None = None
    file_count: int = 0
    files_scanned: int = 0
    files_skipped: int = 0
    cap_hit: bool = False
    error_kind: AcquisitionErrorKind | None = None
    error: str | None = None


def _failure(kind: AcquisitionErrorKind, message: str) -> AcquisitionResult:
    return AcquisitionResult(success=False, error_kind=kind, error=message)


def is_allowed_path(path: str, config: Config) -> bool:
    """Check a tree path against ignored directories and allowed extensions."""
    pure = PurePosixPath(path)
    ignored = set(config.ignored_directories)
    if any(part in ignored for part in pure.parts[:-1]):
        return False
    name = pure.name.lower()
    if name == ".env" or name.startswith(".env."):
        return True
    return pure.suffix.lower() in config.allowed_file_types


def cleanup_workdir(workdir: Path | str | None) -> None:
    """Remove a working directory created by :class:`RepositoryAcquirer`."""
    if not workdir:
        return
    path = Path(workdir)
    if path.exists():
        shutil.rmtree(path, ignore_errors=True)
        logger.debug("Cleaned up working directory %s", path)


class RepositoryAcquirer:
    def __init__(self, config: Config, session: requests.Session | None = None):
        self.config = config
        self.session = session or requests.Session()

    def acquire(self, repo_url: str, scan_mode: ScanMode = ScanMode.FAST) -> AcquisitionResult:
        validation = validate_github_url(repo_url)
        if not validation.is_valid:
            return _failure(AcquisitionErrorKind.INVALID_URL, validation.error or "Invalid GitHub URL format")

        owner, repo = validation.owner, validation.repo
        logger.info("Fetching repository %s/%s (mode: %s)", owner, repo, scan_mode.value)
        start = time.monotonic()

        tree = self._fetch_tree(owner, repo)
        if isinstance(tree, AcquisitionResult):
            return tree

        blobs = [item for item in tree.get("tree", []) if item.get("type") == "blob"]
        if tree.get("truncated"):
            logger.warning("GitHub truncated the tree for %s/%s; scanning the returned subset", owner, repo)

        allowed = [item for item in blobs if is_allowed_path(item.get("path", ""), self.config)]
        max_size = self.config.max_file_size_bytes
        sized = [item for item in allowed if not item.get("size") or item["size"] <= max_size]

        max_files = self.config.max_files_for(scan_mode)
        to_download = sized[:max_files]
        cap_hit = len(sized) > max_files

        logger.info(
            "Files: %d total, %d allowed, %d within size cap, %d to download",
            len(blobs), len(allowed), len(sized), len(to_download),
        )

        workdir = Path(tempfile.mkdtemp(prefix=WORKDIR_PREFIX))
        try:
            files_scanned = self._download_all(owner, repo, [item["path"] for item in to_download], workdir)
        except Exception:
            cleanup_workdir(workdir)
            raise

        logger.info(
            "Fetch complete in %.2fs: %d scanned, %d skipped",
            time.monotonic() - start, files_scanned, len(blobs) - files_scanned,
        )

        return AcquisitionResult(
            success=True,
            workdir=workdir,
            file_count=len(blobs),
            files_scanned=files_scanned,
            files_skipped=len(blobs) - files_scanned,
            cap_hit=cap_hit,
        )

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": USER_AGENT,
        }
        if self.config.github_token:
            headers["Authorization"] = f"Bearer {self.config.github_token}"
        return headers

    def _fetch_tree(self, owner: str, repo: str) -> dict | AcquisitionResult:
        url = TREE_URL.format(owner=owner, repo=repo)
        try:
            resp = self.session.get(url, headers=self._headers(), timeout=self.config.tree_timeout_seconds)
        except requests.Timeout:
            return _failure(AcquisitionErrorKind.TIMEOUT, "GitHub API request timed out")
        except requests.RequestException as exc:
            return _failure(AcquisitionErrorKind.UPSTREAM_ERROR, f"Failed to fetch repository tree: {exc}")

        if resp.status_code == 404:
            return _failure(AcquisitionErrorKind.NOT_FOUND, "Repository not found (404)")
        if resp.status_code >= 400:
            return _failure(
                AcquisitionErrorKind.UPSTREAM_ERROR,
                f"GitHub API error: {resp.status_code} {resp.reason}",
            )

        try:
            data = resp.json()
        except ValueError:
            return _failure(AcquisitionErrorKind.UPSTREAM_ERROR, "GitHub API returned invalid JSON")
        if not isinstance(data, dict):
            return _failure(AcquisitionErrorKind.UPSTREAM_ERROR, "Unexpected GitHub tree response")
        return data

    def _download_all(self, owner: str, repo: str, paths: list[str], workdir: Path) -> int:
        batch_size = self.config.download_batch_size
        total_batches = (len(paths) + batch_size - 1) // batch_size
        downloaded = 0

        with ThreadPoolExecutor(max_workers=batch_size) as pool:
            for index in range(0, len(paths), batch_size):
                batch = paths[index:index + batch_size]
                results = list(pool.map(lambda p: self._download_file(owner, repo, p, workdir), batch))
                downloaded += sum(results)
                logger.debug("Downloaded batch %d/%d", index // batch_size + 1, total_batches)

        return downloaded

    def _download_file(self, owner: str, repo: str, path: str, workdir: Path) -> bool:
        target = (workdir / path).resolve()
        if not target.is_relative_to(workdir.resolve()):
            logger.warning("Refusing to write outside the working directory: %s", path)
            return False

        url = RAW_URL.format(owner=owner, repo=repo, path=path)
        try:
            resp = self.session.get(url, headers={"User-Agent": USER_AGENT}, timeout=self.config.file_timeout_seconds)
        except requests.RequestException as exc:
            logger.warning("Error downloading %s: %s", path, exc)
            return False

        if resp.status_code != 200:
            logger.warning("Failed to download %s: %s", path, resp.status_code)
            return False

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(resp.content)
        except OSError as exc:
            logger.warning("Could not write %s: %s", path, exc)
            return False
        return True
