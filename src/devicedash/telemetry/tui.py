"""Full-screen Textual dashboard for the device fleet.

Shows fleet counts, one row per device in display order with its latest
reading, and the retained history of the highlighted device. The engine
pushes a :class:`~devicedash.telemetry.engine.FleetView` after every
mutation; a 1 s timer keeps the header clock and uptime current.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, ClassVar

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import DataTable, Footer, Header, RichLog, Static

from devicedash.telemetry.liveness import Liveness
from devicedash.telemetry.metrics import METRICS, device_category, format_metric

if TYPE_CHECKING:
    from devicedash.telemetry.engine import FleetView
    from devicedash.telemetry.store import DeviceState

logger = logging.getLogger(__name__)

_STATUS_STYLE: dict[Liveness, tuple[str, str]] = {
    Liveness.ONLINE: ("● online", "bold green"),
    Liveness.OFFLINE: ("✕ offline", "bold red"),
}


# ---------------------------------------------------------------------------
# Activity sidebar: logging handler that funnels into an asyncio queue
# ---------------------------------------------------------------------------

# Logger-name prefix -> (short label, Rich color).
SOURCE_MAP: dict[str, tuple[str, str]] = {
    "devicedash.telemetry.client": ("STREAM", "yellow"),
    "devicedash.telemetry.store": ("STORE", "cyan"),
    "devicedash.telemetry.engine": ("ENGINE", "magenta"),
    "devicedash.telemetry.liveness": ("SWEEP", "dim"),
}


class ActivityLogHandler(logging.Handler):
    """Logging handler that enqueues messages for the activity log."""

    def __init__(self, queue: asyncio.Queue[tuple[str, str, str]]) -> None:
        super().__init__()
        self._queue = queue

    def emit(self, record: logging.LogRecord) -> None:
        source = "LOG"
        color = "white"
        for prefix, (label, clr) in SOURCE_MAP.items():
            if record.name.startswith(prefix):
                source = label
                color = clr
                break
        with contextlib.suppress(asyncio.QueueFull):
            self._queue.put_nowait((source, color, self.format(record)))


def _format_time(ts: datetime) -> str:
    return ts.astimezone().strftime("%H:%M:%S")


def _status_text(liveness: Liveness) -> Text:
    label, style = _STATUS_STYLE[liveness]
    return Text(label, style=style)


def device_row(state: DeviceState) -> tuple[str | Text, ...]:
    """Cells for one device in the fleet table."""
    latest = state.latest
    return (
        Text(state.display_name),
        Text(state.device_id),
        device_category(state.device_id),
        *(format_metric(m.key, latest.get(m.key)) for m in METRICS),
        _format_time(state.last_seen),
        _status_text(state.liveness),
    )


# ---------------------------------------------------------------------------
# Main TUI application
# ---------------------------------------------------------------------------


class DashboardTUI(App[None]):
    """Live device dashboard.

    ``push_view()`` matches the :class:`~devicedash.telemetry.fanout.ViewFanout`
    sink signature and redraws the tables from the pushed view.
    """

    TITLE = "devicedash"

    CSS = """
    #summary-bar {
        height: auto;
        background: $panel;
        padding: 0 1;
    }
    #main-area {
        height: 1fr;
    }
    #devices-table {
        width: 3fr;
        height: 1fr;
        border: solid $primary;
    }
    #sidebar {
        width: 2fr;
        min-width: 40;
        height: 1fr;
    }
    #history-table {
        height: 1fr;
        border: solid $secondary;
    }
    #activity-log {
        height: 12;
        border: solid $accent;
        padding: 0 1;
    }
    """

    BINDINGS: ClassVar[list[Binding]] = [  # type: ignore[assignment]
        Binding("q", "quit", "Quit"),
    ]

    def __init__(self, *, stream_url: str = "") -> None:
        super().__init__()
        self._stream_url = stream_url
        self._view: FleetView | None = None
        self._view_count: int = 0
        self._selected: str | None = None
        self._ui_ready: bool = False
        self._summary_text: str = ""
        self._started_at: datetime = datetime.now(tz=UTC)

        # Shutdown event: signalled when the TUI exits (e.g. user presses q).
        self.shutdown_event: asyncio.Event = asyncio.Event()

        self._activity_queue: asyncio.Queue[tuple[str, str, str]] = asyncio.Queue(maxsize=500)
        self._activity_handler: ActivityLogHandler | None = None
        self._original_propagate: dict[str, bool] = {}
        self._original_levels: dict[str, int] = {}

    # -- Compose layout -------------------------------------------------------

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield Static(id="summary-bar")
        with Horizontal(id="main-area"):
            yield DataTable(id="devices-table", cursor_type="row", zebra_stripes=True)
            with Vertical(id="sidebar"):
                yield DataTable(id="history-table", cursor_type="none", zebra_stripes=True)
                yield RichLog(id="activity-log", wrap=True, markup=True)
        yield Footer()

    def on_mount(self) -> None:
        devices = self.query_one("#devices-table", DataTable)
        devices.border_title = "Devices"
        devices.add_column("Name", key="name")
        devices.add_column("ID", key="id")
        devices.add_column("Type", key="type")
        for m in METRICS:
            devices.add_column(m.label, key=m.key)
        devices.add_column("Last Seen", key="last_seen")
        devices.add_column("Status", key="status")

        history = self.query_one("#history-table", DataTable)
        history.border_title = "History"
        history.add_column("Time", key="time")
        for m in METRICS:
            history.add_column(m.label, key=m.key)

        self.query_one("#activity-log", RichLog).border_title = "Activity"

        self._setup_activity_handler()
        self._ui_ready = True
        if self._view is not None:
            self._render_view()
        else:
            self._render_summary()
        self._update_header()
        self.set_interval(1.0, self._update_header)
        self.run_worker(self._process_activity_queue, exclusive=False, thread=False)  # type: ignore[arg-type]

    # -- Activity log -----------------------------------------------------------

    def _setup_activity_handler(self) -> None:
        """Route devicedash log records to the activity log only.

        Propagation is disabled so records do not reach the console, which
        would corrupt the Textual screen.
        """
        handler = ActivityLogHandler(self._activity_queue)
        handler.setLevel(logging.INFO)
        handler.setFormatter(logging.Formatter("%(message)s"))
        self._activity_handler = handler

        for logger_name in SOURCE_MAP:
            log = logging.getLogger(logger_name)
            log.addHandler(handler)
            self._original_levels[logger_name] = log.level
            if log.level == logging.NOTSET or log.level > logging.INFO:
                log.setLevel(logging.INFO)
            self._original_propagate[logger_name] = log.propagate
            log.propagate = False

    def _cleanup_activity_handler(self) -> None:
        """Remove the activity handler and restore console logging."""
        handler = self._activity_handler
        if handler is None:
            return
        for logger_name in SOURCE_MAP:
            logging.getLogger(logger_name).removeHandler(handler)
        for logger_name, propagate in self._original_propagate.items():
            logging.getLogger(logger_name).propagate = propagate
        self._original_propagate.clear()
        for logger_name, level in self._original_levels.items():
            logging.getLogger(logger_name).setLevel(level)
        self._original_levels.clear()
        self._activity_handler = None

    def on_unmount(self) -> None:
        self._cleanup_activity_handler()

    async def _process_activity_queue(self) -> None:
        """Background worker: drain activity queue into the RichLog widget."""
        while True:
            source, color, message = await self._activity_queue.get()
            ts = datetime.now().strftime("%H:%M:%S")
            rich_log = self.query_one("#activity-log", RichLog)
            rich_log.write(Text.assemble((f"{ts} {source}", color), " ", message))

    # -- View ingestion (called from fanout) -----------------------------------

    async def push_view(self, view: FleetView) -> None:
        """Redraw from *view*.

        Matches the :class:`~devicedash.telemetry.fanout.ViewFanout`
        callback signature. Views pushed before the app is mounted are kept
        and drawn on the next redraw.
        """
        self._view = view
        self._view_count += 1
        if self._ui_ready:
            self._render_view()

    def _render_view(self) -> None:
        self._render_summary()
        self._render_devices()
        self._render_history()

    def _render_summary(self) -> None:
        summary = self._view.summary if self._view is not None else None
        total = summary.total if summary else 0
        online = summary.online if summary else 0
        offline = summary.offline if summary else 0
        if total == 0:
            text = "Waiting for devices…"
        else:
            text = (
                f"[b]{total}[/b] Total   "
                f"[b green]{online}[/b green] Online   "
                f"[b red]{offline}[/b red] Offline"
            )
        self._summary_text = text
        self.query_one("#summary-bar", Static).update(text)

    def _render_devices(self) -> None:
        """Rebuild the device table in display order, keeping the cursor."""
        assert self._view is not None
        table = self.query_one("#devices-table", DataTable)
        table.clear()
        for state in self._view.ordered():
            table.add_row(*device_row(state), key=state.device_id)

        if not self._view.order:
            self._selected = None
            return
        if self._selected not in self._view.devices:
            self._selected = self._view.order[0]
        table.move_cursor(row=self._view.order.index(self._selected))

    def _render_history(self) -> None:
        table = self.query_one("#history-table", DataTable)
        table.clear()
        if self._view is None or self._selected is None:
            table.border_title = "History"
            return
        state = self._view.devices[self._selected]
        table.border_title = Text(f"History: {state.display_name}")
        for entry in state.history:
            table.add_row(
                _format_time(entry.observed_at),
                *(format_metric(m.key, entry.sample.get(m.key)) for m in METRICS),
            )

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        if event.data_table.id != "devices-table" or event.row_key.value is None:
            return
        if event.row_key.value == self._selected:
            return
        self._selected = event.row_key.value
        self._render_history()

    # -- Header (runs every 1 second) ------------------------------------------

    def _update_header(self) -> None:
        uptime = datetime.now(tz=UTC) - self._started_at
        hours, remainder = divmod(int(uptime.total_seconds()), 3600)
        minutes, seconds = divmod(remainder, 60)
        source = self._stream_url or "(no stream)"
        self.title = f"devicedash  {source}"
        self.sub_title = (
            f"Updates: {self._view_count:,}  Up: {hours:02d}:{minutes:02d}:{seconds:02d}"
        )

    # -- Quit (signals shutdown to the watch command) --------------------------

    async def action_quit(self) -> None:
        """Quit the TUI and signal the watch loop to shut down."""
        self._cleanup_activity_handler()
        self.shutdown_event.set()
        self.exit()
