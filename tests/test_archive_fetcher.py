"""Tests for archive URL parsing and tarball download/extraction."""

from __future__ import annotations

import io
import tarfile
from typing import TYPE_CHECKING

import httpx
import pytest

from docs_mcp.sync.archive import (
    ArchiveFetcher,
    RepositoryCoordinates,
    UnsupportedRepositoryUrl,
    archive_url,
    parse_repository_url,
)
from docs_mcp.sync.models import FailureKind, Strategy

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


def _fetcher(handler: Callable[[httpx.Request], httpx.Response]) -> ArchiveFetcher:
    return ArchiveFetcher(transport=httpx.MockTransport(handler))


class TestParseRepositoryUrl:
    """Test host/owner/repo extraction."""

    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/acme/docs",
            "https://github.com/acme/docs.git",
            "https://github.com/acme/docs/",
            "http://www.github.com/acme/docs",
            "git@github.com:acme/docs.git",
            "  https://github.com/acme/docs  ",
        ],
    )
    def test_supported_forms(self, url: str) -> None:
        """All common GitHub URL forms map to the same coordinates."""
        assert parse_repository_url(url) == RepositoryCoordinates("github.com", "acme", "docs")

    def test_repo_name_with_dots(self) -> None:
        """Only a trailing .git suffix is stripped."""
        coords = parse_repository_url("https://github.com/acme/docs.site.git")
        assert coords.repo == "docs.site"

    @pytest.mark.parametrize(
        "url",
        [
            "https://gitlab.com/acme/docs",
            "https://github.com/acme",
            "https://github.com/acme/docs/tree/main",
            "file:///srv/git/docs",
            "not a url",
        ],
    )
    def test_unsupported_forms(self, url: str) -> None:
        """URLs without a known archive endpoint are rejected."""
        with pytest.raises(UnsupportedRepositoryUrl):
            parse_repository_url(url)

    def test_archive_url(self) -> None:
        """Tarball URL follows the /archive/<ref>.tar.gz layout."""
        coords = parse_repository_url("https://github.com/acme/docs")
        assert archive_url(coords, "v2") == "https://github.com/acme/docs/archive/v2.tar.gz"


class TestFetchArchive:
    """Test downloading and unpacking archives."""

    def test_extracts_without_wrapper_directory(self, tmp_path: Path, make_tarball) -> None:
        """Files land directly in the target, one leading component stripped."""
        payload = make_tarball({"README.md": b"# Docs\n", "guide/intro.md": b"## Intro\n"})
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return httpx.Response(200, content=payload)

        target = tmp_path / "data"
        target.mkdir()
        result = _fetcher(handler).fetch_archive("https://github.com/acme/docs.git", "main", target)

        assert result.ok
        assert result.strategy is Strategy.ARCHIVE
        assert result.file_count == 2
        assert requested == ["https://github.com/acme/docs/archive/main.tar.gz"]
        assert (target / "README.md").read_bytes() == b"# Docs\n"
        assert (target / "guide" / "intro.md").read_bytes() == b"## Intro\n"
        assert not (target / "docs-main").exists()

    def test_follows_redirect(self, tmp_path: Path, make_tarball) -> None:
        """Archive endpoints redirect to a download host; the redirect is followed."""
        payload = make_tarball({"index.md": b"hello"})

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "github.com":
                return httpx.Response(302, headers={"Location": "https://codeload.github.com/acme/docs/tar.gz/main"})
            return httpx.Response(200, content=payload)

        result = _fetcher(handler).fetch_archive("https://github.com/acme/docs", "main", tmp_path)

        assert result.ok
        assert (tmp_path / "index.md").read_text() == "hello"

    def test_http_404_is_transient(self, tmp_path: Path) -> None:
        """A missing ref yields a TRANSIENT_IO failure naming the status."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, text="Not Found")

        result = _fetcher(handler).fetch_archive("https://github.com/acme/docs", "no-such-ref", tmp_path)

        assert not result.ok
        assert result.kind is FailureKind.TRANSIENT_IO
        assert "404" in result.detail
        assert list(tmp_path.iterdir()) == []

    def test_network_error_is_transient(self, tmp_path: Path) -> None:
        """Connection failures are reported, not raised."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        result = _fetcher(handler).fetch_archive("https://github.com/acme/docs", "main", tmp_path)

        assert not result.ok
        assert result.kind is FailureKind.TRANSIENT_IO

    def test_corrupt_payload_is_transient(self, tmp_path: Path) -> None:
        """A body that is not a tarball fails extraction."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>definitely not gzip</html>")

        result = _fetcher(handler).fetch_archive("https://github.com/acme/docs", "main", tmp_path)

        assert not result.ok
        assert result.kind is FailureKind.TRANSIENT_IO

    def test_rejects_members_escaping_target(self, tmp_path: Path) -> None:
        """Members that resolve outside the target are refused."""
        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
            info = tarfile.TarInfo("docs-main/../../escaped.txt")
            info.size = 3
            archive.addfile(info, io.BytesIO(b"bad"))
        payload = buffer.getvalue()

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=payload)

        target = tmp_path / "data"
        target.mkdir()
        result = _fetcher(handler).fetch_archive("https://github.com/acme/docs", "main", target)

        assert not result.ok
        assert result.kind is FailureKind.TRANSIENT_IO
        assert not (tmp_path / "escaped.txt").exists()

    def test_unsupported_url_is_configuration_error(self, tmp_path: Path) -> None:
        """Non-GitHub URLs fail before any request is made."""
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200)

        result = _fetcher(handler).fetch_archive("https://gitlab.com/acme/docs", "main", tmp_path)

        assert not result.ok
        assert result.kind is FailureKind.CONFIGURATION
        assert calls == []
