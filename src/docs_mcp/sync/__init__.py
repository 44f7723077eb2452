"""Content provisioning and synchronization for the documentation directory."""

from docs_mcp.sync.archive import ArchiveFetcher, RepositoryCoordinates, parse_repository_url
from docs_mcp.sync.engine import ProvisioningEngine
from docs_mcp.sync.mirror import RepositoryMirror
from docs_mcp.sync.models import (
    FailureKind,
    ProvisioningError,
    ProvisioningMode,
    ProvisioningOutcome,
    SourceKind,
    Strategy,
    StrategyResult,
    SyncStatus,
)
from docs_mcp.sync.scheduler import SchedulerState, UpdateScheduler
from docs_mcp.sync.static import StaticCopier

__all__ = [
    "ArchiveFetcher",
    "FailureKind",
    "ProvisioningEngine",
    "ProvisioningError",
    "ProvisioningMode",
    "ProvisioningOutcome",
    "RepositoryCoordinates",
    "RepositoryMirror",
    "SchedulerState",
    "SourceKind",
    "StaticCopier",
    "Strategy",
    "StrategyResult",
    "SyncStatus",
    "UpdateScheduler",
    "parse_repository_url",
]
