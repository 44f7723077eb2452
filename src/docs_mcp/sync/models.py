"""Result and status types shared by the provisioning strategies."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ProvisioningMode(StrEnum):
    """When provisioning runs."""

    BUILD = "build"
    RUNTIME = "runtime"


class SourceKind(StrEnum):
    """Where documentation content comes from."""

    NONE = "none"
    STATIC_DIR = "static_dir"
    REPOSITORY = "repository"


class Strategy(StrEnum):
    """Acquisition strategies the engine can drive."""

    NONE = "none"
    STATIC_COPY = "static_copy"
    SHALLOW_CLONE = "shallow_clone"
    EXISTING_CLONE = "existing_clone"
    ARCHIVE = "archive"


class FailureKind(StrEnum):
    """Why a strategy failed.

    CONFIGURATION is permanent (the input can never work as given),
    TRANSIENT_IO covers network, HTTP status, extraction and git transport
    errors, FATAL_SETUP covers missing or unreadable local sources.
    """

    CONFIGURATION = "configuration"
    TRANSIENT_IO = "transient_io"
    FATAL_SETUP = "fatal_setup"


@dataclass(frozen=True)
class StrategyResult:
    """Outcome of a single strategy call."""

    strategy: Strategy
    ok: bool
    kind: FailureKind | None = None
    detail: str = ""
    file_count: int = 0

    @classmethod
    def success(cls, strategy: Strategy, file_count: int = 0, detail: str = "") -> StrategyResult:
        return cls(strategy=strategy, ok=True, detail=detail, file_count=file_count)

    @classmethod
    def failure(cls, strategy: Strategy, kind: FailureKind, detail: str) -> StrategyResult:
        return cls(strategy=strategy, ok=False, kind=kind, detail=detail)


@dataclass(frozen=True)
class SyncStatus:
    """Synchronization state of a clone versus its remote."""

    updated: bool = False
    behind_count: int = 0
    ahead_count: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ProvisioningOutcome:
    """What a provisioning pass did."""

    mode: ProvisioningMode
    source_kind: SourceKind
    strategy: Strategy
    fell_back: bool = False
    file_count: int = 0
    schedule_updates: bool = False


class ProvisioningError(Exception):
    """Provisioning failed and no further fallback exists."""

    def __init__(self, message: str, result: StrategyResult | None = None) -> None:
        super().__init__(message)
        self.result = result
