"""Time-driven online/offline classification.

A device is ``OFFLINE`` once more than :data:`OFFLINE_AFTER` has elapsed
since the engine last received an event for it. Classification is
recomputed by a periodic sweep so silent devices flip without needing new
events; :class:`LivenessMonitor` drives that sweep.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import timedelta
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

logger = logging.getLogger(__name__)

OFFLINE_AFTER = timedelta(seconds=30)
SWEEP_INTERVAL = timedelta(seconds=5)


class Liveness(StrEnum):
    """Derived device classification."""

    ONLINE = "online"
    OFFLINE = "offline"


def classify(
    last_seen: datetime,
    now: datetime,
    threshold: timedelta = OFFLINE_AFTER,
) -> Liveness:
    """Return ``OFFLINE`` iff ``now - last_seen`` is strictly above *threshold*."""
    if now - last_seen > threshold:
        return Liveness.OFFLINE
    return Liveness.ONLINE


class LivenessMonitor:
    """Periodic sweep timer.

    Calls *on_tick* every *interval* until stopped. The callback only
    requests a sweep; the engine performs it on its own consumer task so
    the store keeps a single writer.

    Parameters:
        on_tick: Called once per interval.
        interval: Sweep cadence.
    """

    def __init__(
        self,
        on_tick: Callable[[], None],
        interval: timedelta = SWEEP_INTERVAL,
    ) -> None:
        if interval <= timedelta(0):
            raise ValueError("Sweep interval must be positive")
        self._on_tick = on_tick
        self._interval = interval
        self._task: asyncio.Task[None] | None = None
        self._tick_count = 0

    @property
    def interval(self) -> timedelta:
        return self._interval

    @property
    def tick_count(self) -> int:
        """Number of sweeps requested since start."""
        return self._tick_count

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the sweep timer on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.debug("Liveness monitor started (every %.1fs)", self._interval.total_seconds())

    async def stop(self) -> None:
        """Cancel the timer. Already applied classifications are kept."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.debug("Liveness monitor stopped after %d sweeps", self._tick_count)

    async def _run(self) -> None:
        delay = self._interval.total_seconds()
        while True:
            await asyncio.sleep(delay)
            self._tick_count += 1
            try:
                self._on_tick()
            except Exception:
                logger.warning("Liveness sweep request failed", exc_info=True)

    async def __aenter__(self) -> LivenessMonitor:
        self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()
