"""Download a hosted repository archive and unpack it into the data directory."""

from __future__ import annotations

import logging
import re
import tarfile
import tempfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

import httpx

from docs_mcp.sync.models import FailureKind, Strategy, StrategyResult

logger = logging.getLogger(__name__)

# Hosts whose archive endpoint follows /<owner>/<repo>/archive/<ref>.tar.gz
ARCHIVE_HOSTS = frozenset({"github.com"})

_HTTPS_URL = re.compile(r"^https?://(?:www\.)?(?P<host>[^/]+)/(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$")
_SSH_URL = re.compile(r"^git@(?P<host>[^:]+):(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$")

_CHUNK_SIZE = 64 * 1024


class UnsupportedRepositoryUrl(ValueError):
    """The repository URL does not map to a known archive endpoint."""


@dataclass(frozen=True)
class RepositoryCoordinates:
    """Host, owner and name parsed from a repository URL."""

    host: str
    owner: str
    repo: str


def parse_repository_url(url: str) -> RepositoryCoordinates:
    """Extract host, owner and repo from a hosted repository URL.

    Handles:
    - https://github.com/owner/repo
    - https://github.com/owner/repo.git
    - git@github.com:owner/repo.git
    """
    url = url.strip()
    match = _HTTPS_URL.match(url) or _SSH_URL.match(url)
    if match is None or match.group("host").lower() not in ARCHIVE_HOSTS:
        msg = f"Cannot determine archive URL from repository URL: {url}"
        raise UnsupportedRepositoryUrl(msg)
    return RepositoryCoordinates(
        host=match.group("host").lower(),
        owner=match.group("owner"),
        repo=match.group("repo"),
    )


def archive_url(coords: RepositoryCoordinates, ref: str) -> str:
    """Build the tarball URL for ``ref``."""
    return f"https://{coords.host}/{coords.owner}/{coords.repo}/archive/{ref}.tar.gz"


def _strip_leading_component(name: str) -> str | None:
    parts = PurePosixPath(name).parts
    if len(parts) <= 1:
        return None
    return str(PurePosixPath(*parts[1:]))


def extract_stripped(archive: tarfile.TarFile, target_dir: Path) -> int:
    """Extract every member below the top-level wrapper directory.

    Returns:
        Number of regular files written.
    """
    written = 0
    for member in archive:
        stripped = _strip_leading_component(member.name)
        if stripped is None:
            continue

        changes: dict[str, str] = {"name": stripped}
        if member.islnk():
            link_target = _strip_leading_component(member.linkname)
            if link_target is None:
                continue
            changes["linkname"] = link_target

        archive.extract(member.replace(**changes, deep=False), target_dir, filter="data")
        if member.isfile():
            written += 1
    return written


class ArchiveFetcher:
    """Fetches ``<owner>/<repo>`` archives over HTTP.

    The target directory must already be empty; the fetcher never purges it.
    Failures are returned as results and never retried here.
    """

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        """Initialize the fetcher.

        Args:
            transport: Optional httpx transport (tests use ``httpx.MockTransport``).
        """
        self._transport = transport

    def _download(self, url: str, spool: tempfile.SpooledTemporaryFile[bytes]) -> int:
        size = 0
        with httpx.Client(transport=self._transport, follow_redirects=True) as client:
            with client.stream("GET", url) as response:
                response.raise_for_status()
                for chunk in response.iter_bytes(_CHUNK_SIZE):
                    spool.write(chunk)
                    size += len(chunk)
        spool.seek(0)
        return size

    def fetch_archive(self, repository_url: str, ref: str, target_dir: Path) -> StrategyResult:
        """Download ``ref`` of ``repository_url`` and unpack it into ``target_dir``."""
        try:
            coords = parse_repository_url(repository_url)
        except UnsupportedRepositoryUrl as e:
            logger.warning("%s", e)
            return StrategyResult.failure(Strategy.ARCHIVE, FailureKind.CONFIGURATION, str(e))

        url = archive_url(coords, ref)
        logger.info("Downloading archive %s to %s", url, target_dir)

        try:
            with tempfile.SpooledTemporaryFile(max_size=16 * 1024 * 1024) as spool:
                size = self._download(url, spool)
                logger.debug("Downloaded %d bytes from %s", size, url)
                with tarfile.open(fileobj=spool, mode="r:*") as archive:
                    file_count = extract_stripped(archive, Path(target_dir))
        except httpx.HTTPStatusError as e:
            detail = f"HTTP {e.response.status_code} downloading {url}"
            logger.warning("Archive download failed: %s", detail)
            return StrategyResult.failure(Strategy.ARCHIVE, FailureKind.TRANSIENT_IO, detail)
        except httpx.HTTPError as e:
            detail = f"Network error downloading {url}: {e}"
            logger.warning("Archive download failed: %s", detail)
            return StrategyResult.failure(Strategy.ARCHIVE, FailureKind.TRANSIENT_IO, detail)
        except (tarfile.TarError, OSError, EOFError) as e:
            detail = f"Failed to extract {url}: {e}"
            logger.warning("Archive extraction failed: %s", detail)
            return StrategyResult.failure(Strategy.ARCHIVE, FailureKind.TRANSIENT_IO, detail)

        logger.info("Extracted %d files from %s into %s", file_count, url, target_dir)
        return StrategyResult.success(Strategy.ARCHIVE, file_count=file_count, detail=url)
