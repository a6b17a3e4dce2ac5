"""Fan-out dispatcher for fleet views.

Multiplexes the engine's single ``on_view`` callback to N sinks, each
error-isolated. One sink failing does not affect others.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from devicedash.telemetry.engine import FleetView

logger = logging.getLogger(__name__)


class ViewFanout:
    """Fan-out dispatcher: delivers each fleet view to all registered sinks."""

    def __init__(self) -> None:
        self._sinks: list[Callable[[FleetView], Awaitable[None]]] = []

    def add_sink(self, callback: Callable[[FleetView], Awaitable[None]]) -> None:
        """Register a sink to receive fleet views."""
        self._sinks.append(callback)

    @property
    def sink_count(self) -> int:
        """Number of registered sinks."""
        return len(self._sinks)

    def has_sinks(self) -> bool:
        """Return ``True`` if at least one sink is registered."""
        return len(self._sinks) > 0

    async def on_view(self, view: FleetView) -> None:
        """Dispatch *view* to all registered sinks.

        Each sink is called independently. If a sink raises, the exception
        is logged and the remaining sinks still receive the view.
        """
        for sink in self._sinks:
            try:
                await sink(view)
            except Exception:
                logger.warning("Sink %s failed for view", sink, exc_info=True)
