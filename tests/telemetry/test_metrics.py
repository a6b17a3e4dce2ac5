"""Tests for metric labels, units and formatting."""

from __future__ import annotations

import pytest

from devicedash.telemetry.decoder import METRIC_KEYS
from devicedash.telemetry.metrics import (
    METRICS,
    NO_DATA,
    device_category,
    format_metric,
    format_number,
    metric_info,
)


class TestMetricTable:
    def test_covers_every_metric_key(self) -> None:
        assert tuple(m.key for m in METRICS) == METRIC_KEYS

    def test_units(self) -> None:
        units = {m.key: m.unit for m in METRICS}
        assert units == {"ph": "pH", "temp": "°C", "cod": "mg/L", "ss": "g/L"}

    def test_metric_info(self) -> None:
        info = metric_info("temp")
        assert info is not None
        assert info.label == "TEMP"
        assert info.color == "#ff9800"
        assert metric_info("bogus") is None


class TestFormatNumber:
    def test_whole_number(self) -> None:
        assert format_number(22.0) == "22"

    def test_fraction(self) -> None:
        assert format_number(7.1) == "7.1"

    def test_negative(self) -> None:
        assert format_number(-3.5) == "-3.5"


class TestFormatMetric:
    @pytest.mark.parametrize(
        ("key", "value", "expected"),
        [
            ("ph", 7.1, "7.1 pH"),
            ("temp", 22.0, "22 °C"),
            ("cod", 110.0, "110 mg/L"),
            ("ss", 0.4, "0.4 g/L"),
            ("ss", 0.0, "0 g/L"),
        ],
    )
    def test_with_unit(self, key: str, value: float, expected: str) -> None:
        assert format_metric(key, value) == expected

    def test_missing_value(self) -> None:
        assert format_metric("ph", None) == NO_DATA == "--"

    def test_unknown_key_has_no_unit(self) -> None:
        assert format_metric("do", 8.0) == "8"


class TestDeviceCategory:
    @pytest.mark.parametrize(
        ("device_id", "expected"),
        [
            ("ph:AA:BB:01", "PH"),
            ("temp:01", "TEMP"),
            ("cod", "COD"),
            ("ss:x", "SS"),
            ("AA:BB:CC:01", "?"),
            ("PH:AA:BB:01", "?"),
            ("", "?"),
        ],
    )
    def test_category(self, device_id: str, expected: str) -> None:
        assert device_category(device_id) == expected
