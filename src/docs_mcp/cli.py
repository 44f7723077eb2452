"""Command-line entry point: ``docs-mcp build`` and ``docs-mcp serve``."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from docs_mcp.config import ConfigError, DocsConfig, load_config
from docs_mcp.sync.engine import ProvisioningEngine
from docs_mcp.sync.models import ProvisioningError, ProvisioningMode

logger = logging.getLogger("docs_mcp")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str) -> None:
    """Send logs to stderr; stdout carries the MCP stdio transport."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docs-mcp",
        description="Provision a documentation snapshot and serve it over MCP",
    )
    parser.add_argument("command", nargs="?", choices=["build", "serve"], default="serve")
    parser.add_argument("--config", type=Path, help="Path to docs-mcp.config.json")
    parser.add_argument("--data-dir", type=Path, help="Directory to provision documentation into")
    parser.add_argument("--include-dir", type=Path, help="Local directory to copy documentation from")
    parser.add_argument("--git-url", help="Git repository holding the documentation")
    parser.add_argument("--git-ref", help="Branch or tag to use (default: main)")
    parser.add_argument(
        "--auto-update-interval",
        type=int,
        help="Minutes between update checks; 0 downloads an archive once",
    )
    parser.add_argument(
        "--ignore-pattern",
        action="append",
        dest="ignore_patterns",
        help="Glob excluded from static copies (repeatable)",
    )
    parser.add_argument("--tool-name", help="Name of the MCP search tool")
    parser.add_argument("--tool-description", help="Description of the MCP search tool")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def config_from_args(args: argparse.Namespace) -> DocsConfig:
    overrides: dict[str, Any] = {
        "data_dir": args.data_dir,
        "include_dir": args.include_dir,
        "git_url": args.git_url,
        "git_ref": args.git_ref,
        "auto_update_interval": args.auto_update_interval,
        "ignore_patterns": args.ignore_patterns,
        "tool_name": args.tool_name,
        "tool_description": args.tool_description,
    }
    if args.verbose:
        overrides["log_level"] = "DEBUG"
    return load_config(args.config, overrides)


def run_build(config: DocsConfig) -> None:
    logger.info("Building docs-mcp data directory...")
    ProvisioningEngine(config).provision(ProvisioningMode.BUILD)
    logger.info("Build completed successfully!")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging("DEBUG" if args.verbose else "INFO")

    try:
        config = config_from_args(args)
    except ConfigError as e:
        logger.error("%s", e)
        return 1

    configure_logging(config.log_level)

    try:
        if args.command == "build":
            run_build(config)
        else:
            from docs_mcp.mcp.server import serve

            serve(config)
    except ProvisioningError as e:
        logger.error("Provisioning failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
