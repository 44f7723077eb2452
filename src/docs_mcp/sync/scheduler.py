"""Timer-driven refresh of the documentation clone."""

from __future__ import annotations

import asyncio
import logging
import threading
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from docs_mcp.sync.models import SyncStatus

if TYPE_CHECKING:
    from pathlib import Path

    from docs_mcp.sync.mirror import RepositoryMirror

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SchedulerState(StrEnum):
    """Scheduler lifecycle states."""

    IDLE = "idle"
    SCHEDULED = "scheduled"


def run_in_daemon_thread(func: Callable[..., T], *args: Any) -> asyncio.Future[T]:
    """Run ``func`` on a daemon thread and return a future for its result.

    Unlike ``asyncio.to_thread`` the worker is never joined at interpreter
    exit, so an abandoned git operation cannot hold the process open.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[T] = loop.create_future()

    def _deliver(setter: Callable[[Any], None], value: Any) -> None:
        if not future.done():
            setter(value)

    def _worker() -> None:
        try:
            result = func(*args)
        except BaseException as e:  # delivered to the awaiting coroutine
            outcome: tuple[Callable[[Any], None], Any] = (future.set_exception, e)
        else:
            outcome = (future.set_result, result)
        try:
            loop.call_soon_threadsafe(_deliver, *outcome)
        except RuntimeError:
            logger.debug("Event loop closed before %s finished; result discarded", func)

    threading.Thread(target=_worker, name="docs-mcp-sync", daemon=True).start()
    return future


class UpdateScheduler:
    """Periodically synchronizes a clone with its remote.

    One cycle runs immediately on ``start()``; afterwards a new wait is only
    armed once the previous cycle has fully completed, so cycles never
    overlap. Failures are logged and the scheduler always re-arms.
    """

    def __init__(
        self,
        mirror: RepositoryMirror,
        target_dir: Path,
        ref: str,
        interval_minutes: float,
        shutdown_grace_seconds: float = 10.0,
    ) -> None:
        """Initialize the scheduler.

        Args:
            mirror: Mirror used to run each synchronize cycle.
            target_dir: Clone to keep up to date.
            ref: Branch or tag pulled from origin.
            interval_minutes: Minutes between the end of one cycle and the next.
            shutdown_grace_seconds: How long ``stop()`` waits for an in-flight cycle.
        """
        if interval_minutes <= 0:
            msg = f"interval_minutes must be positive, got {interval_minutes}"
            raise ValueError(msg)

        self._mirror = mirror
        self._target_dir = target_dir
        self._ref = ref
        self._interval_seconds = interval_minutes * 60
        self._shutdown_grace = shutdown_grace_seconds
        self._state = SchedulerState.IDLE
        self._task: asyncio.Task[None] | None = None
        self._in_flight: asyncio.Future[SyncStatus] | None = None
        self.cycles_completed = 0
        self.last_status: SyncStatus | None = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    def is_running(self) -> bool:
        return self._state is SchedulerState.SCHEDULED

    async def _run_cycle(self) -> None:
        """Run one fetch/compare/pull cycle; never raises."""
        logger.info("Checking for documentation updates...")
        try:
            self._in_flight = run_in_daemon_thread(self._mirror.synchronize, self._target_dir, self._ref)
            status = await self._in_flight
        except Exception:
            logger.exception("Error checking for updates")
            status = SyncStatus(error="unexpected error during update check")
        finally:
            self._in_flight = None

        self.last_status = status
        self.cycles_completed += 1
        if not status.ok:
            logger.warning("Update check failed, serving existing content: %s", status.error)

    async def _loop(self) -> None:
        while self._state is SchedulerState.SCHEDULED:
            await asyncio.sleep(self._interval_seconds)
            await self._run_cycle()

    async def start(self) -> None:
        """Run one cycle now, then keep cycling every interval."""
        if self._state is SchedulerState.SCHEDULED:
            return

        await self._run_cycle()
        self._state = SchedulerState.SCHEDULED
        self._task = asyncio.create_task(self._loop(), name="docs-mcp-update-scheduler")
        logger.info("Auto-update scheduled every %.1f minutes", self._interval_seconds / 60)

    async def stop(self) -> None:
        """Cancel the pending timer, waiting briefly for an in-flight cycle."""
        self._state = SchedulerState.IDLE

        in_flight = self._in_flight
        if in_flight is not None and not in_flight.done():
            logger.info("Waiting up to %.0fs for in-flight update check", self._shutdown_grace)
            done, _ = await asyncio.wait({in_flight}, timeout=self._shutdown_grace)
            if not done:
                logger.warning("Abandoning in-flight update check on shutdown")

        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Update scheduler stopped")
