"""Select and drive the acquisition strategy for the data directory."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from docs_mcp.sync.archive import ArchiveFetcher
from docs_mcp.sync.mirror import RepositoryMirror
from docs_mcp.sync.models import (
    ProvisioningError,
    ProvisioningMode,
    ProvisioningOutcome,
    SourceKind,
    Strategy,
    StrategyResult,
)
from docs_mcp.sync.scheduler import UpdateScheduler
from docs_mcp.sync.static import StaticCopier
from docs_mcp.sync.workspace import ensure_directory, is_empty, reset_directory

if TYPE_CHECKING:
    from pathlib import Path

    from docs_mcp.config import DocsConfig

logger = logging.getLogger(__name__)


class ProvisioningEngine:
    """Makes the data directory hold the configured documentation.

    Exactly one strategy is selected per pass:

    - repository + positive interval: shallow clone (kept fresh by an
      ``UpdateScheduler`` at runtime)
    - repository + zero interval: archive download, falling back to a
      shallow clone
    - static directory: one copy, no scheduling
    - none: the directory is left empty
    """

    def __init__(
        self,
        config: DocsConfig,
        fetcher: ArchiveFetcher | None = None,
        mirror: RepositoryMirror | None = None,
        copier: StaticCopier | None = None,
    ) -> None:
        self._config = config
        self._fetcher = fetcher or ArchiveFetcher()
        self._mirror = mirror or RepositoryMirror()
        self._copier = copier or StaticCopier()

    @property
    def data_dir(self) -> Path:
        return self._config.data_dir

    @property
    def mirror(self) -> RepositoryMirror:
        return self._mirror

    def provision(self, mode: ProvisioningMode) -> ProvisioningOutcome:
        """Populate the data directory for ``mode``.

        Raises:
            ProvisioningError: If the required strategy (and its fallback) failed.
        """
        config = self._config
        kind = config.source_kind
        logger.info(
            "Provisioning mode=%s source=%s data_dir=%s",
            mode,
            kind,
            config.data_dir,
        )

        if mode is ProvisioningMode.BUILD:
            reset_directory(config.data_dir)
        else:
            ensure_directory(config.data_dir)

        if kind is SourceKind.REPOSITORY:
            if config.auto_update_enabled:
                outcome = self._provision_clone(mode)
            else:
                outcome = self._provision_archive(mode)
        elif kind is SourceKind.STATIC_DIR:
            outcome = self._provision_static(mode)
        else:
            logger.info(
                "No includeDir or gitUrl specified; using content in %s as is",
                config.data_dir,
            )
            outcome = ProvisioningOutcome(mode=mode, source_kind=kind, strategy=Strategy.NONE)

        logger.info(
            "Provisioning complete mode=%s strategy=%s fell_back=%s files=%d schedule_updates=%s",
            outcome.mode,
            outcome.strategy,
            outcome.fell_back,
            outcome.file_count,
            outcome.schedule_updates,
        )
        return outcome

    def _require(self, result: StrategyResult) -> StrategyResult:
        if not result.ok:
            logger.error("Strategy %s failed (%s): %s", result.strategy, result.kind, result.detail)
            raise ProvisioningError(result.detail, result)
        return result

    def _provision_clone(self, mode: ProvisioningMode) -> ProvisioningOutcome:
        config = self._config
        assert config.git_url is not None
        schedule = mode is ProvisioningMode.RUNTIME
        logger.info(
            "Auto-update enabled (interval: %d mins); using git clone strategy",
            config.auto_update_interval,
        )

        if mode is ProvisioningMode.RUNTIME and self._mirror.is_valid_clone(config.data_dir):
            logger.info("Directory %s is a Git repository; keeping existing clone", config.data_dir)
            return ProvisioningOutcome(
                mode=mode,
                source_kind=SourceKind.REPOSITORY,
                strategy=Strategy.EXISTING_CLONE,
                schedule_updates=schedule,
            )

        if not is_empty(config.data_dir):
            logger.warning("Data directory %s is not empty. Clearing before cloning.", config.data_dir)
            reset_directory(config.data_dir)

        result = self._require(self._mirror.clone_shallow(config.git_url, config.git_ref, config.data_dir))
        return ProvisioningOutcome(
            mode=mode,
            source_kind=SourceKind.REPOSITORY,
            strategy=Strategy.SHALLOW_CLONE,
            file_count=result.file_count,
            schedule_updates=schedule,
        )

    def _provision_archive(self, mode: ProvisioningMode) -> ProvisioningOutcome:
        config = self._config
        assert config.git_url is not None
        logger.info("Auto-update disabled; attempting to download tarball archive")

        if mode is ProvisioningMode.RUNTIME:
            reset_directory(config.data_dir)

        result = self._fetcher.fetch_archive(config.git_url, config.git_ref, config.data_dir)
        if result.ok:
            return ProvisioningOutcome(
                mode=mode,
                source_kind=SourceKind.REPOSITORY,
                strategy=Strategy.ARCHIVE,
                file_count=result.file_count,
            )

        logger.warning(
            "Archive strategy failed (%s): %s. Falling back to git clone.",
            result.kind,
            result.detail,
        )
        # A failed extraction may have left partial content behind
        reset_directory(config.data_dir)
        fallback = self._require(self._mirror.clone_shallow(config.git_url, config.git_ref, config.data_dir))
        return ProvisioningOutcome(
            mode=mode,
            source_kind=SourceKind.REPOSITORY,
            strategy=Strategy.SHALLOW_CLONE,
            fell_back=True,
            file_count=fallback.file_count,
        )

    def _provision_static(self, mode: ProvisioningMode) -> ProvisioningOutcome:
        config = self._config
        assert config.include_dir is not None
        if mode is ProvisioningMode.RUNTIME and self._mirror.is_valid_clone(config.data_dir):
            logger.warning("Data directory %s holds a git clone. Clearing before copying.", config.data_dir)
            reset_directory(config.data_dir)

        result =self._require(self._copier.copy_tree(config.include_dir, config.data_dir, config.ignore_patterns))
        return ProvisioningOutcome(
            mode=mode,
            source_kind=SourceKind.STATIC_DIR,
            strategy=Strategy.STATIC_COPY,
            file_count=result.file_count,
        )

    def create_scheduler(self) -> UpdateScheduler:
        """Build the scheduler that keeps the clone fresh."""
        config = self._config
        if config.source_kind is not SourceKind.REPOSITORY or not config.auto_update_enabled:
            msg = "Update scheduling requires a gitUrl and a positive autoUpdateInterval"
            raise ValueError(msg)
        return UpdateScheduler(
            mirror=self._mirror,
            target_dir=config.data_dir,
            ref=config.git_ref,
            interval_minutes=config.auto_update_interval,
            shutdown_grace_seconds=config.shutdown_grace_seconds,
        )
