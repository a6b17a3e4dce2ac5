"""In-memory device state store.

Maps each device id to a :class:`DeviceState` holding the display name,
a bounded history of readings and the derived liveness. The store is the
only place device state is mutated; :class:`~devicedash.telemetry.engine.TelemetryEngine`
owns one instance and serializes every write through its consumer task.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from devicedash.telemetry.decoder import Reading
from devicedash.telemetry.liveness import OFFLINE_AFTER, Liveness, classify

if TYPE_CHECKING:
    from datetime import datetime, timedelta

    from devicedash.telemetry.decoder import UpdateEvent

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 20


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """One retained reading and the time it is plotted at."""

    observed_at: datetime
    sample: Reading


@dataclass(slots=True)
class DeviceState:
    """Live state for a single device."""

    device_id: str
    display_name: str
    last_seen: datetime
    history: deque[HistoryEntry] = field(default_factory=deque)
    liveness: Liveness = Liveness.ONLINE

    @property
    def latest(self) -> Reading:
        """Most recent sample, or an empty reading when there is none."""
        if not self.history:
            return Reading()
        return self.history[-1].sample

    def copy(self) -> DeviceState:
        """Return an independent copy (history entries are immutable)."""
        return DeviceState(
            device_id=self.device_id,
            display_name=self.display_name,
            last_seen=self.last_seen,
            history=deque(self.history, maxlen=self.history.maxlen),
            liveness=self.liveness,
        )


class DeviceStore:
    """Mapping of device id to :class:`DeviceState`.

    Devices are created on their first event and kept indefinitely; a
    silent device stays tracked as ``OFFLINE``. Pass *max_devices* to bound
    the store, in which case the device with the oldest ``last_seen`` is
    evicted to make room for a new one.

    Parameters:
        history_limit: Entries retained per device (oldest evicted first).
        max_devices: Optional upper bound on tracked devices.
    """

    def __init__(
        self,
        *,
        history_limit: int = HISTORY_LIMIT,
        max_devices: int | None = None,
    ) -> None:
        if history_limit < 1:
            raise ValueError("history_limit must be at least 1")
        if max_devices is not None and max_devices < 1:
            raise ValueError("max_devices must be at least 1")
        self._history_limit = history_limit
        self._max_devices = max_devices
        self._devices: dict[str, DeviceState] = {}
        self._evicted_count = 0

    @property
    def history_limit(self) -> int:
        return self._history_limit

    @property
    def evicted_count(self) -> int:
        """Devices dropped by the *max_devices* bound."""
        return self._evicted_count

    def __len__(self) -> int:
        return len(self._devices)

    def __contains__(self, device_id: object) -> bool:
        return device_id in self._devices

    def get(self, device_id: str) -> DeviceState | None:
        """Return a copy of the state for *device_id*, or ``None``."""
        state = self._devices.get(device_id)
        return state.copy() if state is not None else None

    def apply(self, event: UpdateEvent, now: datetime) -> None:
        """Upsert the device named by *event*.

        Appends a history entry in arrival order, overwrites the display
        name and marks the device ``ONLINE`` with ``last_seen = now``. The
        entry is plotted at the event's source timestamp when it has one,
        otherwise at *now*.
        """
        entry = HistoryEntry(
            observed_at=event.source_timestamp or now,
            sample=event.sample,
        )
        state = self._devices.get(event.device_id)
        if state is None:
            self._make_room()
            state = DeviceState(
                device_id=event.device_id,
                display_name=event.display_name,
                last_seen=now,
                history=deque(maxlen=self._history_limit),
            )
            self._devices[event.device_id] = state
            logger.info("New device %s (%s)", event.device_id, event.display_name)

        state.history.append(entry)
        state.display_name = event.display_name
        state.last_seen = now
        if state.liveness is not Liveness.ONLINE:
            logger.info("Device %s is back online", event.device_id)
        state.liveness = Liveness.ONLINE

    def refresh_liveness(
        self,
        now: datetime,
        threshold: timedelta = OFFLINE_AFTER,
    ) -> list[str]:
        """Reclassify every device against *now*.

        Never touches history and never removes devices. Returns the ids
        whose classification changed.
        """
        changed: list[str] = []
        for device_id, state in self._devices.items():
            liveness = classify(state.last_seen, now, threshold)
            if liveness is not state.liveness:
                state.liveness = liveness
                changed.append(device_id)
                logger.info("Device %s is now %s", device_id, liveness.value)
        return changed

    def snapshot(self) -> dict[str, DeviceState]:
        """Return independent copies of all device states."""
        return {device_id: state.copy() for device_id, state in self._devices.items()}

    def _make_room(self) -> None:
        if self._max_devices is None or len(self._devices) < self._max_devices:
            return
        oldest = min(self._devices.values(), key=lambda s: s.last_seen)
        del self._devices[oldest.device_id]
        self._evicted_count += 1
        logger.info("Evicted least recently seen device %s", oldest.device_id)
