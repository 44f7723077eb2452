"""Shallow, single-branch git mirror of the documentation repository."""

from __future__ import annotations

import logging
from pathlib import Path

from git import InvalidGitRepositoryError, NoSuchPathError, Repo
from git.exc import GitCommandError, GitError

from docs_mcp.sync.models import FailureKind, Strategy, StrategyResult, SyncStatus

logger = logging.getLogger(__name__)


class RepositoryMirror:
    """Clones and synchronizes a depth-1 clone with GitPython.

    Detection is re-run on every call; nothing about the directory is cached.
    """

    def __init__(self, remote_name: str = "origin") -> None:
        self._remote_name = remote_name

    def clone_shallow(self, url: str, ref: str, target_dir: Path) -> StrategyResult:
        """Clone ``ref`` of ``url`` into ``target_dir`` with depth 1.

        ``target_dir`` must be empty; purging it is the caller's job.
        """
        logger.info("Cloning %s (ref: %s, depth: 1) to %s", url, ref, target_dir)
        try:
            repo = Repo.clone_from(
                url,
                target_dir,
                branch=ref,
                depth=1,
                single_branch=True,
            )
        except (GitError, OSError) as e:
            detail = f"Failed to clone {url} at {ref}: {e}"
            logger.warning("%s", detail)
            return StrategyResult.failure(Strategy.SHALLOW_CLONE, FailureKind.TRANSIENT_IO, detail)

        file_count = sum(1 for item in repo.head.commit.tree.traverse() if item.type == "blob")
        repo.close()
        logger.info("Successfully cloned %s to %s", url, target_dir)
        return StrategyResult.success(Strategy.SHALLOW_CLONE, file_count=file_count, detail=url)

    def is_valid_clone(self, target_dir: Path) -> bool:
        """Return True if ``target_dir`` is itself the root of a working clone."""
        try:
            repo = Repo(target_dir)
        except (InvalidGitRepositoryError, NoSuchPathError):
            return False
        except Exception:
            logger.debug("Clone detection failed for %s", target_dir, exc_info=True)
            return False

        try:
            if repo.bare or repo.working_tree_dir is None:
                return False
            return Path(repo.working_tree_dir).resolve() == Path(target_dir).resolve()
        except Exception:
            logger.debug("Clone detection failed for %s", target_dir, exc_info=True)
            return False
        finally:
            repo.close()

    def _tracking_ref(self, repo: Repo, ref: str) -> str | None:
        """Remote-tracking ref to compare against, or None when ``ref`` is a pinned tag."""
        if not repo.head.is_detached:
            tracking = repo.active_branch.tracking_branch()
            if tracking is not None:
                return tracking.name

        candidate = f"{self._remote_name}/{ref}"
        try:
            repo.git.rev_parse("--verify", "--quiet", f"refs/remotes/{candidate}")
        except GitCommandError:
            return None
        return candidate

    @staticmethod
    def _count(repo: Repo, revision_range: str) -> int:
        return int(repo.git.rev_list("--count", revision_range) or 0)

    def synchronize(self, target_dir: Path, ref: str) -> SyncStatus:
        """Fetch the remote and pull ``ref`` when the clone is behind.

        Errors are logged and returned in the status; they never propagate.
        """
        if not self.is_valid_clone(target_dir):
            message = f"Data directory {target_dir} is not a Git repository. Skipping update."
            logger.error("%s", message)
            return SyncStatus(error=message)

        repo = Repo(target_dir)
        try:
            remote = repo.remote(self._remote_name)
            remote.fetch()

            tracking = self._tracking_ref(repo, ref)
            if tracking is None:
                logger.info("Documentation is pinned to %s (no remote branch to track); nothing to pull.", ref)
                return SyncStatus()

            behind = self._count(repo, f"HEAD..{tracking}")
            ahead = self._count(repo, f"{tracking}..HEAD")

            if behind <= 0:
                logger.info("Documentation is up-to-date (tracking %s).", tracking)
                return SyncStatus(updated=False, behind_count=0, ahead_count=ahead)

            logger.info(
                "Local branch is %d commits behind %s. Pulling updates...",
                behind,
                tracking,
            )
            remote.pull(ref, ff_only=True)
            logger.info("Documentation updated successfully.")
            return SyncStatus(updated=True, behind_count=behind, ahead_count=ahead)
        except (GitError, ValueError, OSError) as e:
            logger.error("Error checking for updates in %s: %s", target_dir, e)
            return SyncStatus(error=str(e))
        finally:
            repo.close()
