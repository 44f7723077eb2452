"""FastMCP server exposing the documentation search tool."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from importlib.metadata import PackageNotFoundError, version
from typing import TYPE_CHECKING, Annotated

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

from docs_mcp import __version__
from docs_mcp.mcp.search import DocsSearcher, ProbeSearcher, SearchError
from docs_mcp.sync.engine import ProvisioningEngine
from docs_mcp.sync.models import ProvisioningMode

if TYPE_CHECKING:
    from docs_mcp.config import DocsConfig
    from docs_mcp.sync.scheduler import UpdateScheduler

logger = logging.getLogger(__name__)

SERVER_NAME = "docs-mcp"


def package_version() -> str:
    """Installed distribution version, falling back to the source version."""
    try:
        return version(SERVER_NAME)
    except PackageNotFoundError:
        return __version__


async def execute_docs_search(
    config: DocsConfig,
    searcher: DocsSearcher,
    query: str,
    page: int = 1,
) -> str:
    """Search the data directory and return the collaborator's text.

    Raises:
        ToolError: If the query is empty or the search fails.
    """
    tool = config.tool_name
    logger.info("Received request for tool: %s (query=%r, page=%d)", tool, query, page)

    if not query or not query.strip():
        msg = f"Error executing {tool}: Query is required in arguments"
        raise ToolError(msg)

    try:
        return await searcher.search(config.data_dir, query, config.max_tokens)
    except SearchError as e:
        logger.error("Error executing docs search: %s", e)
        msg = f"Error executing {tool}: {e}"
        raise ToolError(msg) from e


def create_server(config: DocsConfig, searcher: DocsSearcher | None = None) -> FastMCP:
    """Build a server with the single configured search tool."""
    searcher = searcher or ProbeSearcher(config.probe_binary)
    mcp = FastMCP(SERVER_NAME, version=package_version())

    async def search_docs(
        query: Annotated[
            str,
            Field(
                description=(
                    "Elasticsearch query string. Focus on keywords and use ES syntax "
                    '(e.g., "install AND guide", "configure OR setup", "api NOT internal").'
                ),
            ),
        ],
        page: Annotated[
            int,
            Field(ge=1, description="Optional page number for pagination of results. Default is 1."),
        ] = 1,
    ) -> str:
        return await execute_docs_search(config, searcher, query, page)

    mcp.tool(search_docs, name=config.tool_name, description=config.tool_description)
    return mcp


def _install_sigterm_handler() -> None:
    loop = asyncio.get_running_loop()
    task = asyncio.current_task()
    if task is None:
        return
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGTERM, task.cancel)


async def run_server(
    config: DocsConfig,
    scheduler: UpdateScheduler | None = None,
    searcher: DocsSearcher | None = None,
) -> None:
    """Start the scheduler (if any) and serve over stdio until cancelled."""
    _install_sigterm_handler()
    mcp = create_server(config, searcher)

    try:
        if scheduler is not None:
            await scheduler.start()
        logger.info("Docs MCP server running on stdio (tool: %s)", config.tool_name)
        await mcp.run_async(transport="stdio", show_banner=False)
    finally:
        if scheduler is not None:
            await scheduler.stop()


def serve(config: DocsConfig, engine: ProvisioningEngine | None = None) -> None:
    """Provision the data directory, then run the server.

    Raises:
        ProvisioningError: If the startup content could not be provisioned.
    """
    logger.info("Starting Docs MCP server %s...", package_version())
    logger.info("Using data directory: %s", config.data_dir)
    logger.info("MCP Tool Name: %s", config.tool_name)
    if config.git_url:
        logger.info("Using Git repository: %s (ref: %s)", config.git_url, config.git_ref)
        logger.info("Auto-update interval: %d minutes", config.auto_update_interval)
    elif config.include_dir:
        logger.info("Using static directory: %s", config.include_dir)

    engine = engine or ProvisioningEngine(config)
    outcome = engine.provision(ProvisioningMode.RUNTIME)
    scheduler = engine.create_scheduler() if outcome.schedule_updates else None

    try:
        asyncio.run(run_server(config, scheduler))
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Docs MCP server stopped")
