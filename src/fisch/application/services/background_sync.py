from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable

from fisch.application.dtos import SyncReport, SyncStatus
from fisch.application.services.data_service import DataService
from fisch.application.services.event_bus import EventBus
from fisch.application.services.scheduling import PeriodicTask
from fisch.domain.events import DataSynced, SyncOutcome
from fisch.infrastructure.resilient_http import call_with_retry


SYNC_KINDS = ("codes", "fish", "rods")
DEFAULT_SYNC_INTERVAL_SECONDS = 300
DEFAULT_MAX_SYNC_AGE_SECONDS = 600


class BackgroundSync:
    """Periodically refreshes every entity kind and announces ``DataSynced``.

    Nothing starts until the host calls ``start()`` from inside its event loop.
    """

    def __init__(
        self,
        data_service: DataService,
        event_bus: EventBus,
        *,
        interval_seconds: float = DEFAULT_SYNC_INTERVAL_SECONDS,
        attempts: int = 3,
        retry_delay_seconds: float = 1.0,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.data_service = data_service
        self.event_bus = event_bus
        self.attempts = attempts
        self.retry_delay_seconds = retry_delay_seconds
        self._clock = clock
        self._sleep = sleep
        self._is_online = True
        self._last_sync: float | None = None
        self._timer = PeriodicTask("background-sync", self.sync, interval_seconds)
        self._logger = logging.getLogger(__name__)

    @property
    def is_online(self) -> bool:
        return self._is_online

    @property
    def last_sync_time(self) -> float | None:
        return self._last_sync

    def start(self, interval_seconds: float | None = None) -> None:
        if interval_seconds is not None:
            self._timer.interval_seconds = float(interval_seconds)
        self._timer.start()

    def stop(self) -> None:
        self._timer.stop()

    async def wait_idle(self) -> None:
        await self._timer.wait_idle()

    def set_online(self, online: bool) -> None:
        was_online = self._is_online
        self._is_online = bool(online)
        if self._is_online and not was_online:
            self._logger.info("Connectivity restored, syncing")
            self._timer.fire()

    async def _sync_kind(self, kind: str) -> list[dict[str, Any]]:
        return await call_with_retry(
            lambda: self.data_service.refresh(kind),
            attempts=self.attempts,
            base_delay_seconds=self.retry_delay_seconds,
            sleep=self._sleep,
            label=f"{kind} sync",
        )

    async def sync(self) -> SyncReport | None:
        if not self._is_online:
            self._logger.info("Offline, skipping sync")
            return None

        self._logger.info("Starting background data sync")
        settled = await asyncio.gather(
            *(self._sync_kind(kind) for kind in SYNC_KINDS),
            return_exceptions=True,
        )

        results: dict[str, SyncOutcome] = {}
        for kind, outcome in zip(SYNC_KINDS, settled):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                results[kind] = SyncOutcome(kind=kind, ok=False, error=str(outcome))
                self._logger.error("%s sync failed", kind, extra={"kind": kind, "error": str(outcome)})
            else:
                results[kind] = SyncOutcome(kind=kind, ok=True, item_count=len(outcome))
                self._logger.info("%s synced", kind, extra={"kind": kind, "item_count": len(outcome)})

        timestamp = self._clock()
        self._last_sync = timestamp
        self.event_bus.publish(DataSynced(timestamp=timestamp, results=dict(results)))
        return SyncReport(timestamp=timestamp, results=results)

    async def force_sync(self) -> SyncReport | None:
        self.data_service.clear_cache()
        return await self.sync()

    def needs_sync(self, max_age_seconds: float = DEFAULT_MAX_SYNC_AGE_SECONDS) -> bool:
        if self._last_sync is None:
            return True
        return self._clock() - self._last_sync > max_age_seconds

    def status(self) -> SyncStatus:
        return SyncStatus(
            is_running=self._timer.is_running,
            last_sync=self._last_sync,
            needs_sync=self.needs_sync(),
            is_online=self._is_online,
        )


class CacheSweeper:
    """Evicts expired cache entries on a timer, whether or not anyone reads them."""

    def __init__(self, cache, interval_seconds: float = 300) -> None:
        self.cache = cache
        self._timer = PeriodicTask("cache-sweep", self.sweep, interval_seconds, run_immediately=False)
        self._logger = logging.getLogger(__name__)

    @property
    def is_running(self) -> bool:
        return self._timer.is_running

    async def sweep(self) -> int:
        removed = self.cache.sweep_expired()
        if removed:
            self._logger.debug("Evicted expired cache entries", extra={"removed": removed})
        return removed

    def start(self) -> None:
        self._timer.start()

    def stop(self) -> None:
        self._timer.stop()
