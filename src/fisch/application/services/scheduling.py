import asyncio
import logging
from typing import Any, Awaitable, Callable


logger = logging.getLogger(__name__)


class PeriodicTask:
    """Runs ``action`` every ``interval_seconds`` on the running event loop.

    Each tick spawns its own task, so ``stop()`` only halts the ticker; a run
    that is already in flight completes. Runs can overlap when one takes
    longer than the interval.
    """

    def __init__(
        self,
        name: str,
        action: Callable[[], Awaitable[Any]],
        interval_seconds: float,
        *,
        run_immediately: bool = True,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.name = name
        self.action = action
        self.interval_seconds = float(interval_seconds)
        self.run_immediately = run_immediately
        self._ticker: asyncio.Task | None = None
        self._in_flight: set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def start(self) -> None:
        if self.is_running:
            self._ticker.cancel()
        self._ticker = asyncio.get_running_loop().create_task(self._tick_forever(), name=f"{self.name}-ticker")
        logger.info(
            "%s started with %.0fs interval",
            self.name,
            self.interval_seconds,
            extra={"task": self.name, "interval_seconds": self.interval_seconds},
        )

    def stop(self) -> None:
        if self._ticker is None:
            return
        self._ticker.cancel()
        self._ticker = None
        logger.info("%s stopped", self.name, extra={"task": self.name})

    def fire(self) -> asyncio.Task:
        run = asyncio.get_running_loop().create_task(self._run_once(), name=f"{self.name}-run")
        self._in_flight.add(run)
        run.add_done_callback(self._in_flight.discard)
        return run

    async def wait_idle(self) -> None:
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def _run_once(self) -> None:
        try:
            await self.action()
        except Exception:
            logger.exception("%s run failed", self.name, extra={"task": self.name})

    async def _tick_forever(self) -> None:
        if self.run_immediately:
            self.fire()
        while True:
            await asyncio.sleep(self.interval_seconds)
            self.fire()
