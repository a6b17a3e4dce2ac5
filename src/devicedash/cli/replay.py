"""``devicedash replay``: feed recorded stream messages through the engine."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.markup import escape

from devicedash.cli.main import load_settings
from devicedash.telemetry.client import extract_message
from devicedash.telemetry.engine import TelemetryEngine
from devicedash.telemetry.store import DeviceStore

if TYPE_CHECKING:
    from devicedash.cli.main import AppContext


@click.command("replay")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--interval",
    type=click.FloatRange(min=0),
    default=1.0,
    show_default=True,
    help="Simulated seconds between consecutive messages",
)
@click.option(
    "--at-offset",
    type=click.FloatRange(min=0),
    default=None,
    help="Run a liveness sweep this many seconds after the last message",
)
@click.option("--history", "history_of", default=None, help="Also show this device's history")
@click.option(
    "--offline-after",
    type=float,
    default=None,
    help="Seconds of silence before a device is offline (default: 30)",
)
@click.pass_obj
def replay_cmd(
    app_ctx: AppContext,
    path: Path,
    interval: float,
    at_offset: float | None,
    history_of: str | None,
    offline_after: float | None,
) -> None:
    """Replay recorded messages from PATH and print the resulting fleet.

    PATH holds one message per line: either the raw ``{"payload": ...}``
    text or a full stream frame ``{"event": ..., "data": {"message": ...}}``.
    Blank lines are skipped. Message N is received at ``N * --interval``
    seconds on a simulated clock.

    \b
    Examples:
      devicedash replay capture.jsonl
      devicedash replay capture.jsonl --at-offset 31
      devicedash --format json replay capture.jsonl --history AA:BB:CC:01
    """
    settings = load_settings(offline_after_seconds=offline_after)
    formatter = app_ctx.formatter

    engine = TelemetryEngine(
        DeviceStore(history_limit=settings.history_limit, max_devices=settings.max_devices),
        offline_after=timedelta(seconds=settings.offline_after_seconds),
    )

    started = datetime.now(tz=UTC)
    now = started
    count = 0
    with path.open(encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line:
                continue
            now = started + timedelta(seconds=count * interval)
            message = extract_message(line, settings.event_name)
            engine.process(message if message is not None else line, now)
            count += 1

    if at_offset is not None:
        now += timedelta(seconds=at_offset)
        engine.sweep(now)

    if formatter.format == "rich":
        formatter.rich.info(
            f"Replayed {count} message(s) from {escape(str(path))} "
            f"([green]{engine.applied_count} applied[/green], "
            f"[yellow]{engine.dropped_count} dropped[/yellow])"
        )
    formatter.output_view(engine.view(now), command="replay", history_of=history_of)
