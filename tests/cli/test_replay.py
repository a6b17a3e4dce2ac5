"""Tests for ``devicedash replay``."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest
from click.testing import CliRunner

from devicedash.cli.main import cli


@pytest.fixture()
def capture(tmp_path: Path, message: Callable[..., str], frame: Callable[..., str]) -> Path:
    lines = [
        message(device_id="AA:BB:CC:02", name="Tank2"),
        "",
        frame(message(device_id="AA:BB:CC:01", name="Tank1")),
        "not json at all",
        frame("ignored", event="status"),
        message(device_id="AA:00:00:01", name="Inlet", fields=[{"cod": 110, "ss": 0.4}]),
    ]
    path = tmp_path / "capture.jsonl"
    path.write_text("\n".join(lines) + "\n")
    return path


def _run(*args: str) -> dict:
    result = CliRunner().invoke(cli, ["--format", "json", "replay", *args])
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


class TestReplayJson:
    def test_fleet(self, capture: Path) -> None:
        parsed = _run(str(capture))
        assert parsed["ok"] is True
        assert parsed["command"] == "replay"
        data = parsed["data"]
        assert data["summary"] == {"total": 3, "online": 3, "offline": 0}
        assert [d["id"] for d in data["devices"]] == ["AA:00:00:01", "AA:BB:CC:01", "AA:BB:CC:02"]
        inlet = data["devices"][0]
        assert inlet["latest"] == {"ph": None, "temp": None, "cod": 110.0, "ss": 0.4}

    def test_sweep_offset_marks_devices_offline(self, capture: Path) -> None:
        # Five non-blank lines one second apart.
        data = _run(str(capture), "--at-offset", "28")["data"]
        assert data["summary"] == {"total": 3, "online": 1, "offline": 2}
        status = {d["id"]: d["status"] for d in data["devices"]}
        assert status["AA:00:00:01"] == "online"

    def test_offline_after_option(self, capture: Path) -> None:
        data = _run(str(capture), "--at-offset", "8", "--offline-after", "7")["data"]
        assert data["summary"]["offline"] == 3

    def test_history_limit_from_env(
        self, tmp_path: Path, message: Callable[..., str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("DEVICEDASH_HISTORY_LIMIT", "3")
        path = tmp_path / "many.jsonl"
        path.write_text("\n".join(message() for _ in range(10)))
        data = _run(str(path))["data"]
        assert len(data["devices"][0]["history"]) == 3

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.jsonl"
        path.write_text("")
        data = _run(str(path))["data"]
        assert data["summary"]["total"] == 0
        assert data["devices"] == []


class TestReplayRich:
    def test_table_and_counts(self, capture: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("COLUMNS", "400")
        result = CliRunner().invoke(
            cli, ["--format", "rich", "replay", str(capture), "--history", "AA:BB:CC:01"]
        )
        assert result.exit_code == 0, result.output
        assert "Replayed 5 message(s)" in result.output
        assert "3 applied" in result.output
        assert "2 dropped" in result.output
        assert "Tank1" in result.output
        assert "Inlet" in result.output

    def test_bracketed_names(
        self, tmp_path: Path, message: Callable[..., str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("COLUMNS", "400")
        path = tmp_path / "odd[bold].jsonl"
        path.write_text(message(name="Tank[/]") + "\n")
        result = CliRunner().invoke(
            cli, ["--format", "rich", "replay", str(path), "--history", "AA:BB:CC:01"]
        )
        assert result.exit_code == 0, result.output
        assert "Tank[/]" in result.output
        assert "odd[bold].jsonl" in result.output

    def test_missing_file(self, tmp_path: Path) -> None:
        result = CliRunner().invoke(cli, ["replay", str(tmp_path / "nope.jsonl")])
        assert result.exit_code == 2
