"""Shared test fixtures for docs-mcp."""

from __future__ import annotations

import io
import shutil
import tarfile
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from git import Actor, Repo

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

ACTOR = Actor("Docs Bot", "docs-bot@example.com")

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git executable not available")


def commit_file(repo: Repo, rel_path: str, content: str, message: str | None = None) -> str:
    """Write ``rel_path`` in the repo's working tree and commit it."""
    assert repo.working_tree_dir is not None
    path = Path(repo.working_tree_dir) / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    repo.index.add([rel_path])
    commit = repo.index.commit(message or f"Update {rel_path}", author=ACTOR, committer=ACTOR)
    return commit.hexsha


@pytest.fixture
def origin_repo(tmp_path: Path) -> Iterator[Repo]:
    """A local repository with two commits on ``main`` and a side branch."""
    repo = Repo.init(tmp_path / "origin")
    repo.git.symbolic_ref("HEAD", "refs/heads/main")
    commit_file(repo, "README.md", "# Docs\n", "Initial commit")
    commit_file(repo, "guide/intro.md", "## Intro\n", "Add intro")
    repo.git.branch("other")
    yield repo
    repo.close()


@pytest.fixture
def make_tarball() -> Callable[..., bytes]:
    """Build a gzipped tarball whose members sit under one wrapper directory."""

    def _make(files: dict[str, bytes], wrapper: str = "docs-main") -> bytes:
        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
            top = tarfile.TarInfo(wrapper)
            top.type = tarfile.DIRTYPE
            top.mode = 0o755
            archive.addfile(top)
            for name, data in files.items():
                info = tarfile.TarInfo(f"{wrapper}/{name}")
                info.size = len(data)
                info.mode = 0o644
                archive.addfile(info, io.BytesIO(data))
        return buffer.getvalue()

    return _make
