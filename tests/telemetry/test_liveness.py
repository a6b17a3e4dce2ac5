"""Tests for liveness classification and the periodic sweep timer."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

import pytest

from devicedash.telemetry.liveness import (
    OFFLINE_AFTER,
    SWEEP_INTERVAL,
    Liveness,
    LivenessMonitor,
    classify,
)


class TestClassify:
    def test_defaults(self) -> None:
        assert timedelta(seconds=30) == OFFLINE_AFTER
        assert timedelta(seconds=5) == SWEEP_INTERVAL

    def test_recent_is_online(self, t0: datetime) -> None:
        assert classify(t0, t0 + timedelta(seconds=29)) is Liveness.ONLINE

    def test_stale_is_offline(self, t0: datetime) -> None:
        assert classify(t0, t0 + timedelta(seconds=31)) is Liveness.OFFLINE

    def test_exact_threshold_is_online(self, t0: datetime) -> None:
        assert classify(t0, t0 + timedelta(seconds=30)) is Liveness.ONLINE

    def test_just_past_threshold_is_offline(self, t0: datetime) -> None:
        assert classify(t0, t0 + timedelta(seconds=30, milliseconds=1)) is Liveness.OFFLINE

    def test_clock_behind_last_seen_is_online(self, t0: datetime) -> None:
        assert classify(t0, t0 - timedelta(seconds=60)) is Liveness.ONLINE

    def test_custom_threshold(self, t0: datetime) -> None:
        assert classify(t0, t0 + timedelta(seconds=3), timedelta(seconds=2)) is Liveness.OFFLINE

    def test_values(self) -> None:
        assert Liveness.ONLINE == "online"
        assert Liveness.OFFLINE == "offline"


class TestLivenessMonitor:
    @pytest.mark.asyncio
    async def test_ticks_repeatedly(self) -> None:
        ticks: list[int] = []
        monitor = LivenessMonitor(lambda: ticks.append(1), interval=timedelta(milliseconds=10))
        monitor.start()
        assert monitor.running
        await asyncio.sleep(0.1)
        await monitor.stop()

        assert len(ticks) >= 2
        assert monitor.tick_count == len(ticks)
        assert not monitor.running

    @pytest.mark.asyncio
    async def test_stop_halts_ticks(self) -> None:
        ticks: list[int] = []
        monitor = LivenessMonitor(lambda: ticks.append(1), interval=timedelta(milliseconds=10))
        monitor.start()
        await asyncio.sleep(0.05)
        await monitor.stop()
        seen = len(ticks)
        await asyncio.sleep(0.05)
        assert len(ticks) == seen

    @pytest.mark.asyncio
    async def test_context_manager(self) -> None:
        ticks: list[int] = []
        async with LivenessMonitor(
            lambda: ticks.append(1), interval=timedelta(milliseconds=10)
        ) as monitor:
            assert monitor.running
            await asyncio.sleep(0.05)
        assert not monitor.running
        assert ticks

    @pytest.mark.asyncio
    async def test_failing_callback_keeps_running(self) -> None:
        calls: list[int] = []

        def boom() -> None:
            calls.append(1)
            raise RuntimeError("boom")

        monitor = LivenessMonitor(boom, interval=timedelta(milliseconds=10))
        monitor.start()
        await asyncio.sleep(0.06)
        await monitor.stop()
        assert len(calls) >= 2

    @pytest.mark.asyncio
    async def test_stop_without_start(self) -> None:
        monitor = LivenessMonitor(lambda: None)
        await monitor.stop()
        assert not monitor.running

    @pytest.mark.asyncio
    async def test_start_twice_is_single_timer(self) -> None:
        monitor = LivenessMonitor(lambda: None, interval=timedelta(milliseconds=10))
        monitor.start()
        first = monitor._task
        monitor.start()
        assert monitor._task is first
        await monitor.stop()

    def test_rejects_non_positive_interval(self) -> None:
        with pytest.raises(ValueError, match="positive"):
            LivenessMonitor(lambda: None, interval=timedelta(0))

    def test_interval_property(self) -> None:
        monitor = LivenessMonitor(lambda: None, interval=timedelta(seconds=2))
        assert monitor.interval == timedelta(seconds=2)
