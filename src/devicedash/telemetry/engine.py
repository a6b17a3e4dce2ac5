"""Single-writer telemetry engine.

The engine owns a :class:`~devicedash.telemetry.store.DeviceStore` and one
:class:`asyncio.Queue`. Producers never touch the store: the stream client
calls :meth:`TelemetryEngine.submit` with raw messages and the liveness
monitor calls :meth:`TelemetryEngine.request_sweep`. The :meth:`run` task
drains the queue and performs each decode+apply or sweep to completion
before taking the next item, then publishes a fresh :class:`FleetView` so
readers only ever see fully applied updates.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from devicedash.telemetry.decoder import EventDecoder, decode_event
from devicedash.telemetry.liveness import OFFLINE_AFTER
from devicedash.telemetry.ordering import order_devices
from devicedash.telemetry.store import DeviceStore
from devicedash.telemetry.summary import summarize

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import timedelta

    from devicedash.telemetry.store import DeviceState
    from devicedash.telemetry.summary import FleetSummary

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class _Command(enum.Enum):
    SWEEP = "sweep"
    STOP = "stop"


@dataclass(frozen=True, slots=True)
class FleetView:
    """Consistent read-only picture of the fleet after one mutation."""

    devices: dict[str, DeviceState]
    order: list[str]
    summary: FleetSummary
    generated_at: datetime

    def ordered(self) -> list[DeviceState]:
        """Device states in display order."""
        return [self.devices[device_id] for device_id in self.order]


class TelemetryEngine:
    """Applies stream messages and liveness sweeps to a device store.

    Parameters:
        store: The store to mutate. A new one is created when omitted.
        decoder: Message decoder.
        on_view: Awaited with a :class:`FleetView` after every mutation.
        offline_after: Liveness threshold.
        clock: Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        store: DeviceStore | None = None,
        *,
        decoder: EventDecoder | None = None,
        on_view: Callable[[FleetView], Awaitable[None]] | None = None,
        offline_after: timedelta = OFFLINE_AFTER,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store if store is not None else DeviceStore()
        self._decoder = decoder or EventDecoder()
        self._on_view = on_view
        self._offline_after = offline_after
        self._clock = clock
        self._queue: asyncio.Queue[str | bytes | _Command] = asyncio.Queue()
        self._applied_count = 0
        self._dropped_count = 0
        self._sweep_count = 0

    # -- Properties -----------------------------------------------------------

    @property
    def store(self) -> DeviceStore:
        return self._store

    @property
    def offline_after(self) -> timedelta:
        return self._offline_after

    @property
    def applied_count(self) -> int:
        """Messages decoded and applied."""
        return self._applied_count

    @property
    def dropped_count(self) -> int:
        """Messages dropped because they could not be decoded."""
        return self._dropped_count

    @property
    def sweep_count(self) -> int:
        return self._sweep_count

    @property
    def pending(self) -> int:
        """Queued items not yet processed."""
        return self._queue.qsize()

    # -- Producers (never mutate the store) -----------------------------------

    def submit(self, raw: str | bytes) -> None:
        """Queue a raw stream message for the consumer task."""
        self._queue.put_nowait(raw)

    def request_sweep(self) -> None:
        """Queue a liveness sweep for the consumer task."""
        self._queue.put_nowait(_Command.SWEEP)

    # -- Synchronous mutations --------------------------------------------------

    def process(self, raw: str | bytes, now: datetime | None = None) -> bool:
        """Decode *raw* and apply it. Returns ``False`` if it was dropped."""
        event = decode_event(raw, self._decoder)
        if event is None:
            self._dropped_count += 1
            return False
        self._store.apply(event, now or self._clock())
        self._applied_count += 1
        return True

    def sweep(self, now: datetime | None = None) -> list[str]:
        """Recompute liveness for every device. Returns the changed ids."""
        self._sweep_count += 1
        return self._store.refresh_liveness(now or self._clock(), self._offline_after)

    def view(self, now: datetime | None = None) -> FleetView:
        """Build a :class:`FleetView` from the current store contents."""
        devices = self._store.snapshot()
        return FleetView(
            devices=devices,
            order=order_devices(devices),
            summary=summarize(devices),
            generated_at=now or self._clock(),
        )

    # -- Consumer task ------------------------------------------------------------

    async def run(self) -> None:
        """Drain the queue until :meth:`stop` is called.

        Each item is handled to completion and followed by a published view.
        Dropped messages do not publish since nothing changed. An item that
        raises is logged and counted as dropped; the loop keeps going.
        """
        logger.debug("Telemetry engine consumer started")
        while True:
            item = await self._queue.get()
            if item is _Command.STOP:
                break
            try:
                if item is _Command.SWEEP:
                    self.sweep()
                elif not self.process(item):
                    continue
            except Exception:
                logger.warning("Failed to handle queued item", exc_info=True)
                if item is not _Command.SWEEP:
                    self._dropped_count += 1
                continue
            await self._publish()
        logger.debug(
            "Telemetry engine consumer stopped (%d applied, %d dropped)",
            self._applied_count,
            self._dropped_count,
        )

    async def stop(self) -> None:
        """Ask :meth:`run` to return after the items already queued."""
        self._queue.put_nowait(_Command.STOP)

    async def _publish(self) -> None:
        if self._on_view is None:
            return
        try:
            await self._on_view(self.view())
        except Exception:
            logger.warning("View callback failed", exc_info=True)
