from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Any

from rich.console import Console

from devicedash.output.json_output import (
    format_json_error,
    format_json_line,
    format_json_response,
    view_payload,
)
from devicedash.output.rich_output import RichOutput

if TYPE_CHECKING:
    from io import TextIOBase

    from devicedash.telemetry.engine import FleetView


class OutputFormatter:
    """Output formatter that auto-detects JSON vs Rich output.

    * If *force_format* is provided, use it unconditionally.
    * Otherwise, if *stream* (default ``sys.stdout``) is a TTY, use ``"rich"``.
    * If the stream is **not** a TTY (piped / redirected), use ``"json"``.

    In ``"quiet"`` mode the Rich console writes to *stderr* so stdout stays
    empty.
    """

    def __init__(
        self,
        *,
        stream: TextIOBase | Any | None = None,
        force_format: str | None = None,
    ) -> None:
        self._stream = stream or sys.stdout
        if force_format is not None:
            self._format = force_format
        elif hasattr(self._stream, "isatty") and self._stream.isatty():
            self._format = "rich"
        else:
            self._format = "json"

        if self._format == "quiet":
            self._console = Console(stderr=True)
        else:
            self._console = Console(file=stream) if stream is not None else Console()

        self._rich = RichOutput(self._console)

    @property
    def format(self) -> str:  # noqa: A003
        """Return the active output format (``"rich"``, ``"json"``, or ``"quiet"``)."""
        return self._format

    @property
    def rich(self) -> RichOutput:
        return self._rich

    @property
    def console(self) -> Console:
        return self._console

    def _print(self, text: str) -> None:
        print(text, file=self._stream)  # noqa: T201

    def output_view(self, view: FleetView, *, command: str, history_of: str | None = None) -> None:
        """Emit a fleet view.

        * **json**: full envelope with every device and its history.
        * **rich**: summary panel, device table and, when *history_of*
          names a tracked device, its history table.
        * **quiet**: nothing.
        """
        if self._format == "json":
            self._print(format_json_response(data=view_payload(view), command=command))
        elif self._format == "rich":
            self._rich.fleet_summary(view.summary)
            self._rich.device_table(view)
            if history_of is not None and history_of in view.devices:
                self._rich.device_history(view.devices[history_of])

    def output_view_line(self, view: FleetView) -> None:
        """Emit one compact JSON line per view (streaming mode)."""
        self._print(format_json_line(view))

    def output_error(self, *, code: str, message: str, command: str) -> None:
        """Emit an error using the current format.

        * **json**: prints :func:`format_json_error` to stdout.
        * **rich** / **quiet**: prints via :meth:`RichOutput.error`.
        """
        if self._format == "json":
            self._print(format_json_error(code=code, message=message, command=command))
        else:
            self._rich.error(message)
