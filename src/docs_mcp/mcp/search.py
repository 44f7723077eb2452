"""Search collaborator backed by the ``probe`` command-line tool."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


class SearchError(Exception):
    """The search collaborator could not produce results."""


class DocsSearcher(Protocol):
    """Anything that can search a directory for a query."""

    async def search(self, path: Path, query: str, max_tokens: int) -> str: ...


class ProbeSearcher:
    """Runs ``probe search <query> <path> --max-tokens N`` and returns its output."""

    def __init__(self, binary: str = "probe") -> None:
        self._binary = binary

    def build_command(self, path: Path, query: str, max_tokens: int) -> list[str]:
        return [self._binary, "search", query, str(path), "--max-tokens", str(max_tokens)]

    async def search(self, path: Path, query: str, max_tokens: int) -> str:
        command = self.build_command(path, query, max_tokens)
        logger.debug("Executing search: %s", command)

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            msg = f"Cannot run search binary {self._binary!r}: {e}"
            raise SearchError(msg) from e

        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip() or f"exit code {process.returncode}"
            msg = f"Search failed: {detail}"
            raise SearchError(msg)

        return stdout.decode("utf-8", errors="replace")
