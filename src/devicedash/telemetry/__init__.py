"""Device telemetry state engine: decoder, store, liveness, ordering and dashboard."""

from __future__ import annotations

from devicedash.telemetry.client import StreamClient
from devicedash.telemetry.decoder import (
    METRIC_KEYS,
    EventDecoder,
    Reading,
    UpdateEvent,
    decode_event,
)
from devicedash.telemetry.engine import FleetView, TelemetryEngine
from devicedash.telemetry.fanout import ViewFanout
from devicedash.telemetry.liveness import (
    OFFLINE_AFTER,
    SWEEP_INTERVAL,
    Liveness,
    LivenessMonitor,
    classify,
)
from devicedash.telemetry.ordering import order_devices, prefix_group
from devicedash.telemetry.store import HISTORY_LIMIT, DeviceState, DeviceStore, HistoryEntry
from devicedash.telemetry.summary import FleetSummary, summarize

__all__ = [
    "HISTORY_LIMIT",
    "METRIC_KEYS",
    "OFFLINE_AFTER",
    "SWEEP_INTERVAL",
    "DeviceState",
    "DeviceStore",
    "EventDecoder",
    "FleetSummary",
    "FleetView",
    "HistoryEntry",
    "Liveness",
    "LivenessMonitor",
    "Reading",
    "StreamClient",
    "TelemetryEngine",
    "UpdateEvent",
    "ViewFanout",
    "classify",
    "decode_event",
    "order_devices",
    "prefix_group",
    "summarize",
]
