"""Exception hierarchy for devicedash."""

from __future__ import annotations


class DeviceDashError(Exception):
    """Base class for all devicedash errors."""


class ConfigError(DeviceDashError):
    """Settings are missing or inconsistent."""


class DecodeError(DeviceDashError, ValueError):
    """An inbound stream message could not be decoded into an update event.

    Raised by :class:`~devicedash.telemetry.decoder.EventDecoder`. The
    engine recovers from it locally: the message is dropped and no state
    changes.
    """


class StreamConnectionError(DeviceDashError):
    """The telemetry stream endpoint could not be reached."""
