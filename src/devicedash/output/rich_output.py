from __future__ import annotations

from typing import TYPE_CHECKING

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from devicedash.telemetry.liveness import Liveness
from devicedash.telemetry.metrics import METRICS, device_category, format_metric

if TYPE_CHECKING:
    from rich.console import Console

    from devicedash.telemetry.engine import FleetView
    from devicedash.telemetry.store import DeviceState
    from devicedash.telemetry.summary import FleetSummary


class RichOutput:
    """Rich-based terminal output helpers for *devicedash*."""

    def __init__(self, console: Console) -> None:
        self._con = console

    # ------------------------------------------------------------------
    # Fleet summary
    # ------------------------------------------------------------------

    def fleet_summary(self, summary: FleetSummary) -> None:
        """Print the total / online / offline counts."""
        self._con.print(
            Panel(
                f"[bold]{summary.total}[/bold] Total   "
                f"[bold green]{summary.online}[/bold green] Online   "
                f"[bold red]{summary.offline}[/bold red] Offline",
                title="Fleet",
                expand=False,
            )
        )

    # ------------------------------------------------------------------
    # Device list
    # ------------------------------------------------------------------

    def device_table(self, view: FleetView) -> None:
        """Print one row per device in display order."""
        if not view.order:
            self._con.print("[dim]Waiting for devices…[/dim]")
            return

        table = Table(title="Devices")
        table.add_column("Name", style="bold")
        table.add_column("ID", style="cyan")
        table.add_column("Type")
        for m in METRICS:
            table.add_column(m.label, justify="right")
        table.add_column("Last Seen")
        table.add_column("Status")

        for state in view.ordered():
            latest = state.latest
            status_style = "green" if state.liveness is Liveness.ONLINE else "red"
            table.add_row(
                Text(state.display_name),
                Text(state.device_id),
                device_category(state.device_id),
                *(format_metric(m.key, latest.get(m.key)) for m in METRICS),
                state.last_seen.astimezone().strftime("%H:%M:%S"),
                f"[{status_style}]{state.liveness.value}[/{status_style}]",
            )

        self._con.print(table)

    # ------------------------------------------------------------------
    # Device history
    # ------------------------------------------------------------------

    def device_history(self, state: DeviceState) -> None:
        """Print the retained history of one device, oldest first."""
        table = Table(title=Text(f"{state.display_name} ({state.device_id})"))
        table.add_column("Time")
        for m in METRICS:
            table.add_column(m.label, justify="right")

        for entry in state.history:
            table.add_row(
                entry.observed_at.astimezone().strftime("%Y-%m-%d %H:%M:%S"),
                *(format_metric(m.key, entry.sample.get(m.key)) for m in METRICS),
            )

        self._con.print(table)

    # ------------------------------------------------------------------
    # Generic messages
    # ------------------------------------------------------------------

    def error(self, message: str) -> None:
        """Print a bold red error line."""
        self._con.print(f"[bold red]Error:[/bold red] {message}")

    def info(self, message: str) -> None:
        """Print an informational message (plain)."""
        self._con.print(message)
