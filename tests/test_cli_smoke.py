from __future__ import annotations

import json
from pathlib import Path

import pytest
from conftest import FakeSource

from swgoh_sync import cli
from swgoh_sync.cli import main


@pytest.fixture(autouse=True)
def _data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("SWGOH_SYNC_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("SWGOH_SYNC_STATS_RETRY_BACKOFF_S", "0")


def test_cli_stats_on_empty_store(capsys: pytest.CaptureFixture[str]) -> None:
    code = main(["stats"])
    captured = capsys.readouterr()

    assert code == 0
    assert "player_count=0" in captured.out
    assert "oldest_player_sync=" in captured.out


def test_cli_stale_on_empty_store(capsys: pytest.CaptureFixture[str]) -> None:
    code = main(["stale"])
    captured = capsys.readouterr()

    assert code == 0
    assert "no stale players" in captured.out


def test_cli_profile_then_run_jobs(capsys: pytest.CaptureFixture[str]) -> None:
    source = FakeSource()

    assert main(["profile", "ronoaldo", "--json"], source=source) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["state"] == "stale_scheduled"
    assert len(payload["collection"]) == 3

    assert main(["run-jobs"], source=source) == 0
    assert "handled=1" in capsys.readouterr().out
    assert source.count("stats") == 2

    assert main(["stats", "--json"], source=source) == 0
    stats = json.loads(capsys.readouterr().out)
    assert stats["player_count"] == 1


def test_cli_profile_unavailable_schedules_reload(capsys: pytest.CaptureFixture[str]) -> None:
    source = FakeSource()
    source.failing.add("arena")

    code = main(["profile", "ronoaldo"], source=source)
    captured = capsys.readouterr()

    assert code == 0
    assert json.loads(captured.out) == {"Status": "Reloading"}
    assert "profile unavailable" in captured.err


def test_cli_rejects_invalid_player_key(capsys: pytest.CaptureFixture[str]) -> None:
    code = main(["profile", "a/b"], source=FakeSource())
    captured = capsys.readouterr()

    assert code == 2
    assert "invalid player key" in captured.err


def test_cli_reload_all_with_nothing_stale(
    capsys: pytest.CaptureFixture[str], tmp_path: Path
) -> None:
    code = main(["--data-dir", str(tmp_path / "other"), "reload-all"], source=FakeSource())
    captured = capsys.readouterr()

    assert code == 0
    assert "scheduled=0" in captured.out
    assert (tmp_path / "other" / "queue").is_dir()


def test_cli_closes_http_source(
    capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    opened: list[ClosingSource] = []

    class ClosingSource(FakeSource):
        def __init__(self, settings) -> None:
            super().__init__()
            self.closed = False
            opened.append(self)

        def __enter__(self) -> ClosingSource:
            return self

        def __exit__(self, exc_type, exc_val, exc_tb) -> None:
            self.closed = True

    monkeypatch.setattr(cli, "HttpProfileSource", ClosingSource)

    assert main(["profile", "ronoaldo"]) == 0
    assert "state=stale_scheduled" in capsys.readouterr().out
    assert len(opened) == 1
    assert opened[0].closed is True
