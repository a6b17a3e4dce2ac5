"""``devicedash watch``: live dashboard for a telemetry stream."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from datetime import timedelta
from typing import TYPE_CHECKING, Any

import click

from devicedash.cli.main import load_settings
from devicedash.errors import ConfigError

if TYPE_CHECKING:
    from devicedash.cli.main import AppContext
    from devicedash.telemetry.engine import FleetView

logger = logging.getLogger(__name__)


@click.command("watch")
@click.option("--url", default=None, help="Stream WebSocket URL (env: DEVICEDASH_STREAM_URL)")
@click.option("--event", "event_name", default=None, help="Stream event name to consume")
@click.option(
    "--offline-after",
    type=float,
    default=None,
    help="Seconds of silence before a device is offline (default: 30)",
)
@click.option(
    "--sweep-interval",
    type=float,
    default=None,
    help="Seconds between liveness sweeps (default: 5)",
)
@click.option(
    "--max-devices",
    type=click.IntRange(min=1),
    default=None,
    help="Evict the least recently seen device beyond this many",
)
@click.pass_obj
def watch_cmd(
    app_ctx: AppContext,
    url: str | None,
    event_name: str | None,
    offline_after: float | None,
    sweep_interval: float | None,
    max_devices: int | None,
) -> None:
    """Subscribe to the device stream and show live device state.

    On a terminal a full-screen dashboard is shown; when output is piped,
    one JSON line is written per update.

    \b
    Examples:
      devicedash watch --url ws://localhost:4000/stream
      DEVICEDASH_STREAM_URL=ws://proxy:4000 devicedash watch
      devicedash --format json watch | jq .summary
    """
    settings = load_settings(
        stream_url=url,
        event_name=event_name,
        offline_after_seconds=offline_after,
        sweep_interval_seconds=sweep_interval,
        max_devices=max_devices,
    )
    if not settings.stream_url:
        raise ConfigError(
            "No stream URL configured. Pass --url or set DEVICEDASH_STREAM_URL."
        )
    asyncio.run(_cmd_watch(app_ctx, settings))


async def _cmd_watch(app_ctx: AppContext, settings: Any) -> None:
    from devicedash.telemetry.client import StreamClient
    from devicedash.telemetry.engine import TelemetryEngine
    from devicedash.telemetry.fanout import ViewFanout
    from devicedash.telemetry.liveness import LivenessMonitor
    from devicedash.telemetry.store import DeviceStore

    formatter = app_ctx.formatter
    fanout = ViewFanout()

    tui = None
    if formatter.format == "rich":
        from devicedash.telemetry.tui import DashboardTUI

        tui = DashboardTUI(stream_url=settings.stream_url)
        fanout.add_sink(tui.push_view)
    elif formatter.format == "json":

        async def _jsonl_sink(view: FleetView) -> None:
            formatter.output_view_line(view)

        fanout.add_sink(_jsonl_sink)

    engine = TelemetryEngine(
        DeviceStore(history_limit=settings.history_limit, max_devices=settings.max_devices),
        on_view=fanout.on_view,
        offline_after=timedelta(seconds=settings.offline_after_seconds),
    )
    client = StreamClient(settings.stream_url, engine.submit, event_name=settings.event_name)
    monitor = LivenessMonitor(
        engine.request_sweep,
        interval=timedelta(seconds=settings.sweep_interval_seconds),
    )

    # -- SIGTERM handler for graceful container/systemd shutdown --
    shutdown_event = asyncio.Event()

    def _handle_sigterm() -> None:
        logger.info("SIGTERM received, shutting down gracefully")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    if hasattr(signal, "SIGTERM"):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(signal.SIGTERM, _handle_sigterm)

    engine_task = asyncio.create_task(engine.run())
    client_task = asyncio.create_task(client.run())
    try:
        async with monitor:
            if tui is not None:
                await _race_shutdown(tui.run_async(), shutdown_event)
            else:
                await _race_shutdown(client_task, shutdown_event)
    finally:
        await client.stop()
        client_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await client_task
        await engine.stop()
        with contextlib.suppress(asyncio.CancelledError):
            await engine_task
        logger.info(
            "Stopped: %d update(s) applied, %d dropped, %d device(s) tracked",
            engine.applied_count,
            engine.dropped_count,
            len(engine.store),
        )


async def _race_shutdown(
    coro: Any,
    shutdown_event: asyncio.Event,
) -> None:
    """Run *coro* but return early if *shutdown_event* fires (SIGTERM)."""
    task = asyncio.ensure_future(coro)
    shutdown_waiter = asyncio.create_task(shutdown_event.wait())
    done, pending = await asyncio.wait(
        [task, shutdown_waiter],
        return_when=asyncio.FIRST_COMPLETED,
    )
    for t in pending:
        t.cancel()
    # Re-raise exceptions from the main task if it finished with an error.
    for t in done:
        if t is not shutdown_waiter:
            t.result()
