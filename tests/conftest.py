"""Shared fixtures for devicedash tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import pytest

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


def build_message(
    device_id: str = "AA:BB:CC:01",
    name: str = "Tank1",
    fields: list[dict[str, Any]] | None = None,
) -> str:
    """JSON ``message`` text as carried by one stream event."""
    if fields is None:
        fields = [{"ph": 7.1, "temp": 22, "timestamp": 1000}]
    return json.dumps({"payload": {"id": device_id, "name": name, "fields": fields}})


def build_frame(message: str, event: str = "mqtt_message") -> str:
    """Full stream frame wrapping *message*."""
    return json.dumps({"event": event, "data": {"message": message}})


@pytest.fixture()
def t0() -> datetime:
    return T0


@pytest.fixture()
def message() -> Callable[..., str]:
    return build_message


@pytest.fixture()
def frame() -> Callable[..., str]:
    return build_frame


@pytest.fixture(autouse=True)
def _isolated_settings_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Any) -> None:
    """Keep a developer's DEVICEDASH_* environment and .env out of tests."""
    import os

    for key in list(os.environ):
        if key.startswith("DEVICEDASH_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
