"""Periodic background sweep for in-memory stores.

Both the response cache and the rate limiter keep state that expires
logically before it is removed physically. A ``PeriodicSweeper`` owns one
asyncio task that calls the store's synchronous sweep on a fixed period, so
memory stays bounded under a long tail of distinct keys or clients.

The sweep itself never awaits, so under the event loop it runs as one
atomic step between requests.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

logger = logging.getLogger(__name__)


class PeriodicSweeper:
    """Run ``sweep`` every ``interval_seconds`` on the running event loop.

    Attributes:
        name: Label used in logs and as the asyncio task name.
        interval_seconds: Delay between two sweeps.
    """

    def __init__(
        self,
        name: str,
        sweep: Callable[[], int],
        *,
        interval_seconds: float,
    ) -> None:
        """Initialize the sweeper.

        Args:
            name: Label used in logs.
            sweep: Callable removing expired state and returning how many
                entries it removed.
            interval_seconds: Period between sweeps.

        Raises:
            ValueError: If interval_seconds is not positive.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")

        self.name = name
        self.interval_seconds = interval_seconds
        self._sweep = sweep
        self._task: asyncio.Task[None] | None = None

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"PeriodicSweeper(name={self.name!r}, interval_seconds={self.interval_seconds}, "
            f"running={self.running})"
        )

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the sweep loop on the running event loop.

        Calling start on a sweeper that is already running is a no-op.

        Raises:
            RuntimeError: If no event loop is running.
        """
        if self.running:
            return

        self._task = asyncio.get_running_loop().create_task(
            self._loop(), name=f"reaper:{self.name}"
        )
        logger.info(
            "reaper.started",
            extra={"reaper": self.name, "interval_s": self.interval_seconds},
        )

    async def stop(self) -> None:
        """Cancel the sweep loop and wait until it has finished."""

        task, self._task = self._task, None
        if task is None:
            return

        if not task.done():
            task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        logger.info("reaper.stopped", extra={"reaper": self.name})

    def run_once(self) -> int:
        """Run a single sweep immediately and return the removed count."""

        removed = self._sweep()
        if removed:
            logger.debug(
                "reaper.swept",
                extra={"reaper": self.name, "removed": removed},
            )
        return removed

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.run_once()
            except Exception:  # noqa: BLE001
                # Keep reaping on the next tick; a failed pass leaves state intact.
                logger.exception("reaper.sweep_failed", extra={"reaper": self.name})
