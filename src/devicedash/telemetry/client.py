"""WebSocket client for the device telemetry stream.

The stream endpoint pushes named events as JSON text frames::

  {"event": "mqtt_message", "data": {"message": "<JSON text>"}}

Frames whose ``event`` matches the configured name have their ``message``
string handed to the ``on_message`` callback (normally
:meth:`TelemetryEngine.submit`). Anything else is skipped.

Includes exponential backoff reconnection (1s base → 30s max) with jitter.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import random
from typing import TYPE_CHECKING, Any

from devicedash.errors import StreamConnectionError

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

DEFAULT_EVENT_NAME = "mqtt_message"

_BACKOFF_BASE = 1.0
_BACKOFF_MAX = 30.0
_BACKOFF_FACTOR = 2.0


def extract_message(raw: str | bytes, event_name: str = DEFAULT_EVENT_NAME) -> str | None:
    """Return the ``message`` text of a matching event frame, else ``None``."""
    if not isinstance(raw, str):
        return None
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(frame, dict) or frame.get("event") != event_name:
        return None
    data = frame.get("data")
    if not isinstance(data, dict):
        return None
    message = data.get("message")
    return message if isinstance(message, str) else None


class StreamClient:
    """Subscribes to the telemetry stream and forwards event messages.

    Parameters:
        url: WebSocket URL of the stream endpoint, read once.
        on_message: Called with each matching event's ``message`` text.
        event_name: Name of the events to forward.
    """

    def __init__(
        self,
        url: str,
        on_message: Callable[[str], None],
        *,
        event_name: str = DEFAULT_EVENT_NAME,
    ) -> None:
        self._url = url
        self._on_message = on_message
        self._event_name = event_name
        self._ws: Any = None
        self._connected = False
        self._stopping = False
        self._frame_count = 0
        self._forwarded_count = 0
        self._connect_count = 0

    @property
    def url(self) -> str:
        return self._url

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def frame_count(self) -> int:
        """Frames received since start (all kinds)."""
        return self._frame_count

    @property
    def forwarded_count(self) -> int:
        """Event messages passed to ``on_message``."""
        return self._forwarded_count

    @property
    def connect_count(self) -> int:
        """Successful connections since start."""
        return self._connect_count

    async def connect(self) -> None:
        """Open the WebSocket connection.

        Raises :class:`StreamConnectionError` on failure.
        """
        import websockets.asyncio.client as ws_client

        try:
            self._ws = await ws_client.connect(self._url)
        except Exception as exc:
            raise StreamConnectionError(
                f"Failed to connect to stream at {self._url}: {exc}"
            ) from exc

        self._connected = True
        self._connect_count += 1
        logger.info("Connected to telemetry stream at %s", self._url)

    async def connect_with_backoff(self, *, max_attempts: int = 0) -> None:
        """Connect with exponential backoff retry.

        Parameters
        ----------
        max_attempts:
            Maximum connection attempts. ``0`` means infinite.

        Returns without connecting once :meth:`stop` has been called.
        """
        attempt = 0
        backoff = _BACKOFF_BASE

        while max_attempts == 0 or attempt < max_attempts:
            if self._stopping:
                return
            attempt += 1
            try:
                await self.connect()
                return
            except StreamConnectionError as exc:
                if max_attempts > 0 and attempt >= max_attempts:
                    raise
                if self._stopping:
                    return
                jitter = random.uniform(0, backoff * 0.1)
                wait = min(backoff + jitter, _BACKOFF_MAX)
                logger.info(
                    "Connection attempt %d failed: %s; retrying in %.1fs",
                    attempt,
                    exc,
                    wait,
                )
                await asyncio.sleep(wait)
                backoff = min(backoff * _BACKOFF_FACTOR, _BACKOFF_MAX)

    async def run(self) -> None:
        """Receive frames until :meth:`stop`, reconnecting when dropped."""
        self._stopping = False
        while not self._stopping:
            await self.connect_with_backoff()
            if self._stopping:
                await self.stop()
                break
            await self._receive_loop()
            if not self._stopping:
                logger.info("Stream connection lost, reconnecting")

    async def stop(self) -> None:
        """Close the connection and stop reconnecting."""
        self._stopping = True
        self._connected = False
        if self._ws is not None:
            with contextlib.suppress(Exception):
                await self._ws.close()
            self._ws = None

    def handle_frame(self, raw: str | bytes) -> bool:
        """Forward *raw* if it is a matching event. Returns ``True`` if forwarded."""
        self._frame_count += 1
        message = extract_message(raw, self._event_name)
        if message is None:
            logger.debug("Skipping non-event frame (%d chars)", len(raw))
            return False
        self._forwarded_count += 1
        self._on_message(message)
        return True

    async def _receive_loop(self) -> None:
        assert self._ws is not None
        try:
            async for raw in self._ws:
                self.handle_frame(raw)
        except Exception:
            # ConnectionClosed and other WS errors
            logger.debug("Receive loop ended", exc_info=True)
        finally:
            self._connected = False
