"""Runtime configuration for docs-mcp.

Values are resolved once per process, lowest precedence first: field
defaults, the JSON config file, ``DOCS_MCP_*`` environment variables, then
command-line overrides.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from docs_mcp.sync.models import SourceKind

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "docs-mcp.config.json"
CONFIG_ENV_VAR = "DOCS_MCP_CONFIG"
ENV_PREFIX = "DOCS_MCP_"

DEFAULT_IGNORE_PATTERNS = ["node_modules", ".git", "dist", "build", "coverage"]
DEFAULT_TOOL_NAME = "search_docs"
DEFAULT_TOOL_DESCRIPTION = (
    "Search the documentation using the probe search engine. "
    "Use keywords and Elasticsearch query syntax (AND, OR, NOT)."
)

# Environment variable suffix -> config alias
_ENV_FIELDS: dict[str, str] = {
    "DATA_DIR": "dataDir",
    "INCLUDE_DIR": "includeDir",
    "GIT_URL": "gitUrl",
    "GIT_REF": "gitRef",
    "AUTO_UPDATE_INTERVAL": "autoUpdateInterval",
    "IGNORE_PATTERNS": "ignorePatterns",
    "TOOL_NAME": "toolName",
    "TOOL_DESCRIPTION": "toolDescription",
    "PROBE_BINARY": "probeBinary",
    "LOG_LEVEL": "logLevel",
}


class ConfigError(Exception):
    """Configuration could not be loaded or is invalid."""


class DocsConfig(BaseModel):
    """Provisioning and server configuration (immutable)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    # Provisioning
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".docs-mcp" / "data",
        alias="dataDir",
        description="Directory the documentation is provisioned into",
    )
    include_dir: Path | None = Field(default=None, alias="includeDir", description="Static source directory")
    git_url: str | None = Field(default=None, alias="gitUrl", description="Documentation repository URL")
    git_ref: str = Field(default="main", alias="gitRef", description="Branch or tag to provision")
    auto_update_interval: int = Field(
        default=5,
        ge=0,
        alias="autoUpdateInterval",
        description="Minutes between update checks (0 disables and uses archive download)",
    )
    ignore_patterns: tuple[str, ...] = Field(
        default=tuple(DEFAULT_IGNORE_PATTERNS),
        alias="ignorePatterns",
        description="Glob patterns excluded from static copies",
    )

    # Server
    tool_name: str = Field(default=DEFAULT_TOOL_NAME, alias="toolName", min_length=1)
    tool_description: str = Field(default=DEFAULT_TOOL_DESCRIPTION, alias="toolDescription")
    probe_binary: str = Field(default="probe", alias="probeBinary")
    max_tokens: int = Field(default=10000, gt=0, alias="maxTokens")
    shutdown_grace_seconds: float = Field(default=10.0, ge=0, alias="shutdownGraceSeconds")
    log_level: str = Field(default="INFO", alias="logLevel")

    @field_validator("git_url", "include_dir", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("git_ref", mode="before")
    @classmethod
    def _default_ref(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return "main"
        return value

    @field_validator("ignore_patterns", mode="before")
    @classmethod
    def _split_patterns(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            return tuple(p.strip() for p in value.split(",") if p.strip())
        return value

    @field_validator("data_dir", "include_dir", mode="after")
    @classmethod
    def _expand_path(cls, value: Path | None) -> Path | None:
        if value is None:
            return None
        return value.expanduser().resolve()

    @property
    def source_kind(self) -> SourceKind:
        """Which acquisition strategy the configuration selects."""
        if self.git_url:
            return SourceKind.REPOSITORY
        if self.include_dir:
            return SourceKind.STATIC_DIR
        return SourceKind.NONE

    @property
    def auto_update_enabled(self) -> bool:
        return self.auto_update_interval > 0


def _read_config_file(path: Path) -> dict[str, Any]:
    """Load a JSON config file into a dict of aliased fields."""
    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        msg = f"Cannot read config file {path}: {e}"
        raise ConfigError(msg) from e
    except json.JSONDecodeError as e:
        msg = f"Config file {path} is not valid JSON: {e}"
        raise ConfigError(msg) from e

    if not isinstance(data, dict):
        msg = f"Config file {path} must contain a JSON object"
        raise ConfigError(msg)

    # Relative paths in the file resolve against the file's directory
    for key in ("dataDir", "includeDir"):
        value = data.get(key)
        if isinstance(value, str) and value and not Path(value).expanduser().is_absolute():
            data[key] = str(path.parent / value)

    logger.info("Loaded configuration from %s", path)
    return data


def _read_environment(environ: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for suffix, alias in _ENV_FIELDS.items():
        raw = environ.get(f"{ENV_PREFIX}{suffix}")
        if raw is not None:
            values[alias] = raw
    return values


def _locate_config_file(
    config_path: Path | None,
    environ: Mapping[str, str],
) -> Path | None:
    if config_path is not None:
        if not config_path.is_file():
            msg = f"Config file not found: {config_path}"
            raise ConfigError(msg)
        return config_path

    env_path = environ.get(CONFIG_ENV_VAR)
    if env_path:
        path = Path(env_path).expanduser()
        if not path.is_file():
            msg = f"Config file not found: {path} (from {CONFIG_ENV_VAR})"
            raise ConfigError(msg)
        return path

    default = Path.cwd() / CONFIG_FILENAME
    return default if default.is_file() else None


def load_config(
    config_path: Path | None = None,
    overrides: dict[str, Any] | None = None,
    environ: dict[str, str] | None = None,
) -> DocsConfig:
    """Resolve the process configuration.

    Args:
        config_path: Explicit config file; otherwise ``$DOCS_MCP_CONFIG`` or
            ``./docs-mcp.config.json`` when present.
        overrides: Highest-precedence values keyed by alias or field name;
            ``None`` values are ignored.
        environ: Environment mapping (defaults to ``os.environ``).

    Raises:
        ConfigError: If the file cannot be read or a value fails validation.
    """
    env = os.environ if environ is None else environ

    merged: dict[str, Any] = {}
    file_path = _locate_config_file(config_path, env)
    if file_path is not None:
        merged.update(_read_config_file(file_path))

    merged.update(_read_environment(env))

    for key, value in (overrides or {}).items():
        if value is None:
            continue
        field = DocsConfig.model_fields.get(key)
        merged[field.alias if field is not None and field.alias else key] = value

    try:
        return DocsConfig.model_validate(merged)
    except ValidationError as e:
        msg = f"Invalid configuration: {e}"
        raise ConfigError(msg) from e
