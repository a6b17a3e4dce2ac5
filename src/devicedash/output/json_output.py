from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

if TYPE_CHECKING:
    from devicedash.telemetry.engine import FleetView
    from devicedash.telemetry.store import DeviceState


def _serialize(obj: Any) -> Any:
    """Convert *obj* to a JSON-friendly structure.

    * :class:`pydantic.BaseModel` instances are dumped via
      :meth:`~pydantic.BaseModel.model_dump` with *exclude_none=True*.
    * Lists are recursed element-wise.
    * Everything else is returned as-is (``json.dumps`` handles the rest via
      *default=str*).
    """
    if isinstance(obj, BaseModel):
        return obj.model_dump(exclude_none=True)
    if isinstance(obj, list):
        return [_serialize(item) for item in obj]
    return obj


def device_payload(state: DeviceState) -> dict[str, Any]:
    """JSON-friendly dict for one device; missing metric values are ``null``."""
    return {
        "id": state.device_id,
        "name": state.display_name,
        "status": state.liveness.value,
        "last_seen": state.last_seen.isoformat(),
        "latest": state.latest.as_dict(),
        "history": [
            {"time": entry.observed_at.isoformat(), **entry.sample.as_dict()}
            for entry in state.history
        ],
    }


def view_payload(view: FleetView, *, include_history: bool = True) -> dict[str, Any]:
    """JSON-friendly dict for a fleet view, devices in display order."""
    devices = []
    for state in view.ordered():
        item = device_payload(state)
        if not include_history:
            del item["history"]
        devices.append(item)
    return {
        "summary": view.summary.model_dump(),
        "devices": devices,
        "generated_at": view.generated_at.isoformat(),
    }


def format_json_line(view: FleetView) -> str:
    """Compact single-line JSON for streaming output (no history)."""
    return json.dumps(view_payload(view, include_history=False), default=str)


def format_json_response(*, data: Any, command: str) -> str:
    """Return a JSON envelope for a successful response.

    The envelope has the shape::

        {
          "ok": true,
          "command": "<command>",
          "data": <serialised payload>,
          "timestamp": "<ISO-8601 UTC>"
        }
    """
    envelope: dict[str, Any] = {
        "ok": True,
        "command": command,
        "data": _serialize(data),
        "timestamp": datetime.now(UTC).isoformat(),
    }
    return json.dumps(envelope, indent=2, default=str)


def format_json_error(
    *,
    code: str,
    message: str,
    command: str,
    **extra: Any,
) -> str:
    """Return a JSON envelope for an error response.

    The envelope has the shape::

        {
          "ok": false,
          "command": "<command>",
          "error": {"code": "...", "message": "...", ...extra},
          "timestamp": "<ISO-8601 UTC>"
        }
    """
    error_body: dict[str, Any] = {"code": code, "message": message, **extra}
    envelope: dict[str, Any] = {
        "ok": False,
        "command": command,
        "error": error_body,
        "timestamp": datetime.now(UTC).isoformat(),
    }
    return json.dumps(envelope, indent=2, default=str)
