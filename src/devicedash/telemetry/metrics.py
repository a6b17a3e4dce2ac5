"""Metric display table: labels, units and value formatting."""

from __future__ import annotations

from typing import NamedTuple

NO_DATA = "--"


class MetricInfo(NamedTuple):
    key: str
    label: str
    unit: str
    color: str


METRICS: tuple[MetricInfo, ...] = (
    MetricInfo("ph", "PH", "pH", "#2196f3"),
    MetricInfo("temp", "TEMP", "°C", "#ff9800"),
    MetricInfo("cod", "COD", "mg/L", "#9c27b0"),
    MetricInfo("ss", "SS", "g/L", "#00bcd4"),
)

_BY_KEY: dict[str, MetricInfo] = {m.key: m for m in METRICS}


def metric_info(key: str) -> MetricInfo | None:
    return _BY_KEY.get(key)


def format_number(value: float) -> str:
    """Render *value* without a trailing ``.0`` for whole numbers."""
    if value.is_integer():
        return str(int(value))
    return f"{value:g}"


def format_metric(key: str, value: float | None) -> str:
    """Format a metric value with its unit, or :data:`NO_DATA` when absent.

    >>> format_metric("ph", 7.1)
    '7.1 pH'
    >>> format_metric("cod", None)
    '--'
    """
    if value is None:
        return NO_DATA
    info = _BY_KEY.get(key)
    text = format_number(value)
    return f"{text} {info.unit}" if info else text


def device_category(device_id: str) -> str:
    """Label for the device's category prefix (first ``:`` segment).

    The prefix names a metric when the device is a single-metric probe;
    any other prefix is shown as ``"?"``.
    """
    info = _BY_KEY.get(device_id.split(":", 1)[0])
    return info.label if info else "?"
