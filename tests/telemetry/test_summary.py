"""Tests for fleet summary counts."""

from __future__ import annotations

from collections import deque
from datetime import datetime

import pytest
from pydantic import ValidationError

from devicedash.telemetry.liveness import Liveness
from devicedash.telemetry.store import DeviceState
from devicedash.telemetry.summary import FleetSummary, summarize


def _state(device_id: str, liveness: Liveness, t0: datetime) -> DeviceState:
    return DeviceState(
        device_id=device_id,
        display_name=device_id,
        last_seen=t0,
        history=deque(),
        liveness=liveness,
    )


class TestSummarize:
    def test_empty(self) -> None:
        assert summarize({}) == FleetSummary(total=0, online=0, offline=0)

    def test_mixed(self, t0: datetime) -> None:
        snapshot = {
            "a": _state("a", Liveness.ONLINE, t0),
            "b": _state("b", Liveness.OFFLINE, t0),
            "c": _state("c", Liveness.ONLINE, t0),
        }
        summary = summarize(snapshot)
        assert summary.total == 3
        assert summary.online == 2
        assert summary.offline == 1

    def test_all_offline(self, t0: datetime) -> None:
        snapshot = {k: _state(k, Liveness.OFFLINE, t0) for k in ("a", "b")}
        assert summarize(snapshot) == FleetSummary(total=2, online=0, offline=2)


class TestFleetSummary:
    def test_counts_must_add_up(self) -> None:
        with pytest.raises(ValidationError, match="total"):
            FleetSummary(total=3, online=1, offline=1)

    def test_dump(self) -> None:
        assert FleetSummary(total=2, online=1, offline=1).model_dump() == {
            "total": 2,
            "online": 1,
            "offline": 1,
        }
