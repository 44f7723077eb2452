"""Copy a local documentation directory into the data directory."""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Iterable
from pathlib import Path, PurePosixPath

import pathspec

from docs_mcp.sync.models import FailureKind, Strategy, StrategyResult

logger = logging.getLogger(__name__)

IGNORE_FILE = ".gitignore"


def _scope_pattern(line: str, scope: str) -> str | None:
    """Rewrite one ignore-file line so it is rooted at ``scope``.

    ``scope`` is the POSIX path of the directory holding the ignore file,
    relative to the copy root ("" for the root itself).
    """
    stripped = line.rstrip("\n").rstrip("\r")
    if not stripped.strip() or stripped.lstrip().startswith("#"):
        return None
    if not scope:
        return stripped

    negate = stripped.startswith("!")
    body = stripped[1:] if negate else stripped
    prefix = "!" if negate else ""

    # A slash anywhere but the end anchors the pattern to its directory
    anchored = "/" in body.rstrip("/")
    body = body.lstrip("/")
    if anchored:
        return f"{prefix}{scope}/{body}"
    return f"{prefix}{scope}/**/{body}"


def load_ignore_rules(source_dir: Path) -> pathspec.GitIgnoreSpec:
    """Combine every ignore file under ``source_dir`` into one ``GitIgnoreSpec``.

    Files are read root-first, so rules from deeper directories come later
    and take precedence (last match wins, as in git).
    """
    ignore_files: list[Path] = sorted(
        source_dir.rglob(IGNORE_FILE),
        key=lambda p: (len(p.relative_to(source_dir).parts), p.as_posix()),
    )

    lines: list[str] = []
    for ignore_file in ignore_files:
        if not ignore_file.is_file():
            continue
        scope = ignore_file.parent.relative_to(source_dir).as_posix()
        scope = "" if scope == "." else scope
        for line in ignore_file.read_text(encoding="utf-8", errors="replace").splitlines():
            pattern = _scope_pattern(line, scope)
            if pattern is not None:
                lines.append(pattern)

    logger.debug("Loaded %d ignore rules from %d files", len(lines), len(ignore_files))
    return pathspec.GitIgnoreSpec.from_lines(lines)


class StaticCopier:
    """Copies files from a source tree, honoring glob and ignore-file rules."""

    def _iter_files(
        self,
        source_dir: Path,
        patterns: pathspec.GitIgnoreSpec,
        ignore_rules: pathspec.GitIgnoreSpec,
    ) -> Iterable[str]:
        for root, dirs, files in os.walk(source_dir, onerror=self._raise):
            rel_root = PurePosixPath(Path(root).relative_to(source_dir).as_posix())
            prefix = "" if str(rel_root) == "." else f"{rel_root}/"

            # Prune excluded directories so their contents are never listed
            dirs[:] = sorted(d for d in dirs if not self._excluded(f"{prefix}{d}/", patterns, ignore_rules))

            for name in sorted(files):
                rel_path = f"{prefix}{name}"
                if not self._excluded(rel_path, patterns, ignore_rules):
                    yield rel_path

    @staticmethod
    def _excluded(
        rel_path: str,
        patterns: pathspec.GitIgnoreSpec,
        ignore_rules: pathspec.GitIgnoreSpec,
    ) -> bool:
        # Configured patterns always exclude; ignore files cannot re-include them
        return patterns.match_file(rel_path) or ignore_rules.match_file(rel_path)

    @staticmethod
    def _raise(error: OSError) -> None:
        raise error

    def list_files(self, source_dir: Path, ignore_patterns: Iterable[str] = ()) -> list[str]:
        """Return POSIX relative paths of every file that would be copied."""
        patterns = pathspec.GitIgnoreSpec.from_lines(list(ignore_patterns))
        ignore_rules = load_ignore_rules(source_dir)
        return list(self._iter_files(source_dir, patterns, ignore_rules))

    def copy_tree(
        self,
        source_dir: Path,
        target_dir: Path,
        ignore_patterns: Iterable[str] = (),
    ) -> StrategyResult:
        """Copy every non-ignored file of ``source_dir`` into ``target_dir``."""
        source_dir = Path(source_dir)
        target_dir = Path(target_dir)
        logger.info("Copying %s to %s...", source_dir, target_dir)

        if not source_dir.is_dir():
            detail = f"Static source directory does not exist: {source_dir}"
            logger.error("%s", detail)
            return StrategyResult.failure(Strategy.STATIC_COPY, FailureKind.FATAL_SETUP, detail)

        try:
            files = self.list_files(source_dir, ignore_patterns)
            logger.info("Found %d files in %s (respecting %s)", len(files), source_dir, IGNORE_FILE)

            for rel_path in files:
                destination = target_dir / rel_path
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source_dir / rel_path, destination)
        except OSError as e:
            detail = f"Error copying {source_dir}: {e}"
            logger.error("%s", detail)
            return StrategyResult.failure(Strategy.STATIC_COPY, FailureKind.FATAL_SETUP, detail)

        logger.info("Successfully copied %d files to %s", len(files), target_dir)
        return StrategyResult.success(Strategy.STATIC_COPY, file_count=len(files), detail=str(source_dir))
