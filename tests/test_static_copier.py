"""Tests for static directory copies with glob and ignore-file filtering."""

from __future__ import annotations

from typing import TYPE_CHECKING

from docs_mcp.config import DEFAULT_IGNORE_PATTERNS
from docs_mcp.sync.models import FailureKind, Strategy
from docs_mcp.sync.static import StaticCopier, _scope_pattern

if TYPE_CHECKING:
    from pathlib import Path


def _write(root: Path, rel_path: str, content: str = "x") -> None:
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _tree(root: Path) -> set[str]:
    return {p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file()}


class TestScopePattern:
    """Test rewriting nested ignore-file lines."""

    def test_root_lines_unchanged(self) -> None:
        assert _scope_pattern("*.log", "") == "*.log"

    def test_comments_and_blanks_dropped(self) -> None:
        assert _scope_pattern("# comment", "docs") is None
        assert _scope_pattern("   ", "docs") is None

    def test_unanchored_matches_at_any_depth(self) -> None:
        assert _scope_pattern("draft.md", "docs") == "docs/**/draft.md"

    def test_anchored_stays_in_directory(self) -> None:
        assert _scope_pattern("/local.md", "docs") == "docs/local.md"
        assert _scope_pattern("api/gen", "docs") == "docs/api/gen"

    def test_negation_preserved(self) -> None:
        assert _scope_pattern("!keep.log", "docs") == "!docs/**/keep.log"


class TestCopyTree:
    """Test copying a source directory into the data directory."""

    def test_copies_bytes_exactly(self, tmp_path: Path) -> None:
        """Copied files are byte-identical and keep their relative paths."""
        source = tmp_path / "src"
        (source / "guide").mkdir(parents=True)
        (source / "guide" / "image.bin").write_bytes(bytes(range(256)))
        _write(source, "README.md", "# Title\n")
        target = tmp_path / "data"
        target.mkdir()

        result = StaticCopier().copy_tree(source, target)

        assert result.ok
        assert result.strategy is Strategy.STATIC_COPY
        assert result.file_count == 2
        assert (target / "guide" / "image.bin").read_bytes() == bytes(range(256))
        assert (target / "README.md").read_text() == "# Title\n"

    def test_configured_patterns_exclude(self, tmp_path: Path) -> None:
        """Files matching a configured glob are skipped."""
        source = tmp_path / "src"
        _write(source, "a.md")
        _write(source, "b.tmp")
        target = tmp_path / "data"

        result = StaticCopier().copy_tree(source, target, ["*.tmp"])

        assert result.ok
        assert _tree(target) == {"a.md"}

    def test_default_patterns_prune_directories(self, tmp_path: Path) -> None:
        """Default patterns drop dependency and build directories at any depth."""
        source = tmp_path / "src"
        _write(source, "index.md")
        _write(source, "node_modules/pkg/readme.md")
        _write(source, "site/node_modules/x.js")
        _write(source, "dist/bundle.js")
        _write(source, "site/page.md")

        StaticCopier().copy_tree(source, tmp_path / "data", DEFAULT_IGNORE_PATTERNS)

        assert _tree(tmp_path / "data") == {"index.md", "site/page.md"}

    def test_root_gitignore_respected(self, tmp_path: Path) -> None:
        """A root .gitignore excludes matching files anywhere below it."""
        source = tmp_path / "src"
        _write(source, ".gitignore", "*.log\nscratch/\n")
        _write(source, "notes.md")
        _write(source, "debug.log")
        _write(source, "deep/trace.log")
        _write(source, "scratch/todo.md")

        files = StaticCopier().list_files(source)

        assert files == [".gitignore", "notes.md"]

    def test_nested_gitignore_reincludes(self, tmp_path: Path) -> None:
        """A deeper negation overrides a broader rule from the root."""
        source = tmp_path / "src"
        _write(source, ".gitignore", "*.log\n")
        _write(source, "docs/.gitignore", "!keep.log\n")
        _write(source, "docs/keep.log")
        _write(source, "docs/other.log")
        _write(source, "keep.log")

        files = set(StaticCopier().list_files(source))

        assert "docs/keep.log" in files
        assert "docs/other.log" not in files
        assert "keep.log" not in files

    def test_nested_gitignore_scoped_to_its_directory(self, tmp_path: Path) -> None:
        """Nested rules never reach siblings; anchored rules stay at their level."""
        source = tmp_path / "src"
        _write(source, "docs/.gitignore", "draft.md\n/local.md\n")
        _write(source, "draft.md")
        _write(source, "local.md")
        _write(source, "docs/draft.md")
        _write(source, "docs/sub/draft.md")
        _write(source, "docs/local.md")
        _write(source, "docs/sub/local.md")

        files = set(StaticCopier().list_files(source))

        assert files == {"draft.md", "local.md", "docs/.gitignore", "docs/sub/local.md"}

    def test_configured_patterns_cannot_be_reincluded(self, tmp_path: Path) -> None:
        """An ignore-file negation does not override a configured pattern."""
        source = tmp_path / "src"
        _write(source, ".gitignore", "!*.tmp\n")
        _write(source, "keep.tmp")

        files = StaticCopier().list_files(source, ["*.tmp"])

        assert files == [".gitignore"]

    def test_missing_source_is_fatal(self, tmp_path: Path) -> None:
        """A missing source directory fails with FATAL_SETUP."""
        result = StaticCopier().copy_tree(tmp_path / "missing", tmp_path / "data")

        assert not result.ok
        assert result.kind is FailureKind.FATAL_SETUP
        assert "missing" in result.detail

    def test_empty_source_succeeds(self, tmp_path: Path) -> None:
        """Zero copied files is still success."""
        source = tmp_path / "src"
        source.mkdir()

        result = StaticCopier().copy_tree(source, tmp_path / "data")

        assert result.ok
        assert result.file_count == 0
