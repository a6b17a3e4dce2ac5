"""Decode JSON-encoded device update messages.

Each inbound stream event carries a ``message`` string holding a JSON
envelope::

  {
    "payload": {
      "id": "AA:BB:CC:01",        // device address, colon-delimited
      "name": "Tank1",            // display name
      "fields": [                 // ordered readings, oldest first
        {"ph": 7.1, "temp": 22, "cod": 110, "ss": 0.4, "timestamp": 1000}
      ]
    }
  }

Only the last element of ``fields`` is kept. Its ``timestamp`` (seconds
since epoch) becomes the event's source timestamp when it is usable.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from devicedash.errors import DecodeError

logger = logging.getLogger(__name__)

METRIC_KEYS: tuple[str, ...] = ("ph", "temp", "cod", "ss")


def _metric_value(value: Any) -> float | None:
    """Return *value* as a float, or ``None`` when it is not a number."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        return float(value)
    except OverflowError:
        return None


@dataclass(frozen=True, slots=True)
class Reading:
    """One measurement snapshot across the fixed metric keys.

    ``None`` means "no data" for that metric; it is never coerced to zero.
    """

    ph: float | None = None
    temp: float | None = None
    cod: float | None = None
    ss: float | None = None

    @classmethod
    def from_mapping(cls, raw: dict[str, Any]) -> Reading:
        """Build a reading from a decoded JSON object, ignoring unknown keys."""
        return cls(**{key: _metric_value(raw.get(key)) for key in METRIC_KEYS})

    def get(self, key: str) -> float | None:
        """Return the value for metric *key* (``None`` for unknown keys)."""
        if key not in METRIC_KEYS:
            return None
        value: float | None = getattr(self, key)
        return value

    def as_dict(self) -> dict[str, float | None]:
        return {key: getattr(self, key) for key in METRIC_KEYS}

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, key) is None for key in METRIC_KEYS)


@dataclass(frozen=True, slots=True)
class UpdateEvent:
    """A decoded device update."""

    device_id: str
    display_name: str
    sample: Reading = field(default_factory=Reading)
    source_timestamp: datetime | None = None


def _source_timestamp(value: Any) -> datetime | None:
    """Convert an epoch-seconds ``timestamp`` to a UTC datetime, if usable."""
    seconds = _metric_value(value)
    if seconds is None:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


class EventDecoder:
    """Decodes inbound ``message`` strings into :class:`UpdateEvent`."""

    def decode(self, raw: str | bytes) -> UpdateEvent:
        """Decode one message.

        Args:
            raw: The JSON text carried by the stream event.

        Returns:
            An :class:`UpdateEvent`. An empty or missing ``fields`` list
            yields an event with an empty :class:`Reading`.

        Raises:
            DecodeError: If the envelope is malformed or a required key is
                missing.
        """
        try:
            envelope = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as exc:
            raise DecodeError(f"Message is not valid JSON: {exc}") from exc

        if not isinstance(envelope, dict):
            raise DecodeError("Message envelope is not a JSON object")

        payload = envelope.get("payload")
        if not isinstance(payload, dict):
            raise DecodeError("Message has no 'payload' object")

        device_id = payload.get("id")
        if not isinstance(device_id, str) or not device_id:
            raise DecodeError("Payload 'id' is missing or not a string")

        name = payload.get("name")
        if not isinstance(name, str):
            raise DecodeError(f"Payload 'name' is missing for device {device_id}")

        fields = payload.get("fields")
        if fields is None:
            fields = []
        if not isinstance(fields, list):
            raise DecodeError(f"Payload 'fields' is not a list for device {device_id}")

        latest = fields[-1] if fields else {}
        if not isinstance(latest, dict):
            latest = {}

        return UpdateEvent(
            device_id=device_id,
            display_name=name,
            sample=Reading.from_mapping(latest),
            source_timestamp=_source_timestamp(latest.get("timestamp")),
        )


_DEFAULT_DECODER = EventDecoder()


def decode_event(raw: str | bytes, decoder: EventDecoder | None = None) -> UpdateEvent | None:
    """Decode *raw*, returning ``None`` instead of raising on bad input."""
    try:
        return (decoder or _DEFAULT_DECODER).decode(raw)
    except DecodeError as exc:
        logger.debug("Dropping undecodable message: %s", exc)
        return None
