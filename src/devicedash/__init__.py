"""devicedash: live dashboard for sensor device telemetry streams."""

from __future__ import annotations

__version__ = "0.1.0"
