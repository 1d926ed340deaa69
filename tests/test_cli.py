"""Tests for the stats-agent command line."""

import json
import logging

import pytest

from stats_agent import cli
from stats_agent.config import DEFAULT_INTERVAL, parse_interval


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo setup_logging() so later tests keep pytest's log capture."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestParseInterval:
    """Tests for parse_interval."""

    def test_valid(self):
        """Test a whole number of seconds is accepted."""
        assert parse_interval("10") == 10
        assert parse_interval(" 3 ") == 3
        assert parse_interval("0") == 0

    def test_missing_uses_default(self):
        """Test no interval falls back to the default."""
        assert parse_interval(None) == DEFAULT_INTERVAL

    def test_unparseable_uses_default(self, caplog):
        """Test garbage falls back to the default with a warning."""
        with caplog.at_level(logging.WARNING, logger="stats_agent.config"):
            assert parse_interval("soon") == DEFAULT_INTERVAL
            assert parse_interval("1.5") == DEFAULT_INTERVAL

        assert "invalid interval" in caplog.text

    def test_negative_uses_default(self):
        """Test a negative interval falls back to the default."""
        assert parse_interval("-4") == DEFAULT_INTERVAL

    def test_custom_default(self):
        """Test callers can choose their own fallback."""
        assert parse_interval("x", default=2) == 2


class TestCommands:
    """Tests for main()."""

    def test_version(self, capsys):
        """Test the version command prints only a version string."""
        assert cli.main(["version"]) == 0

        out = capsys.readouterr().out
        assert out.startswith("stats-agent v")
        assert out.count("\n") == 1

    def test_unknown_command(self, capsys, monkeypatch):
        """Test an unknown command prints usage and never samples."""
        monkeypatch.setattr(cli, "json_once", lambda *a, **k: pytest.fail("sampled"))

        with pytest.raises(SystemExit) as exc_info:
            cli.main(["bogus"])

        assert exc_info.value.code == 2
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "usage: stats-agent" in captured.err

    def test_daemon_interval_parsed(self, monkeypatch):
        """Test the daemon receives the requested interval."""
        calls = []
        monkeypatch.setattr(cli, "daemon_mode", lambda interval, processes: calls.append((interval, processes)) or 0)

        assert cli.main(["daemon", "2"]) == 0
        assert cli.main(["daemon", "--processes"]) == 0

        assert calls == [(2, False), (DEFAULT_INTERVAL, True)]

    def test_daemon_bad_interval_falls_back(self, monkeypatch):
        """Test an unparseable interval does not fail the invocation."""
        calls = []
        monkeypatch.setattr(cli, "daemon_mode", lambda interval, processes: calls.append(interval) or 0)

        assert cli.main(["daemon", "fast"]) == 0

        assert calls == [DEFAULT_INTERVAL]

    def test_no_command_is_summary(self, monkeypatch):
        """Test running without a command takes one summary snapshot."""
        calls = []
        monkeypatch.setattr(cli, "json_once", lambda include_processes: calls.append(include_processes) or 0)

        assert cli.main([]) == 0
        assert cli.main(["json"]) == 0
        assert cli.main(["json-processes"]) == 0

        assert calls == [False, False, True]

    def test_watch_interval(self, monkeypatch):
        """Test the viewer defaults to a two second refresh."""
        calls = []
        monkeypatch.setattr(cli, "watch_mode", lambda interval: calls.append(interval) or 0)

        assert cli.main(["watch"]) == 0
        assert cli.main(["watch", "7"]) == 0

        assert calls == [2, 7]

    def test_logging_goes_to_stderr(self, capsys):
        """Test diagnostics never reach stdout."""
        cli.setup_logging("INFO")
        logging.getLogger("stats_agent.test").info("diagnostic line")

        captured = capsys.readouterr()
        assert "diagnostic line" not in captured.out
        assert "diagnostic line" in captured.err


class TestEndToEnd:
    """Single-shot runs against the real host."""

    def test_summary(self, capsys):
        """Test single-shot summary prints one pretty record with OS identity."""
        assert cli.main(["json"]) == 0

        out = capsys.readouterr().out
        assert "\n  " in out
        record = json.loads(out)
        assert {"cpu", "cpu_avg", "memory", "disks", "network", "os"} <= set(record)
        assert "processes" not in record
        assert all(0.0 <= c <= 100.0 for c in record["cpu"])
        assert record["memory"]["total"] > 0
        assert all(d["total"] > 0 for d in record["disks"])

    def test_with_processes(self, capsys):
        """Test single-shot with processes includes a ranked top ten."""
        assert cli.main(["json-processes"]) == 0

        record = json.loads(capsys.readouterr().out)
        processes = record["processes"]
        assert 0 < len(processes) <= 10
        cpus = [p["cpu"] for p in processes]
        assert cpus == sorted(cpus, reverse=True)
        assert set(processes[0]) == {"pid", "name", "exe", "memory", "cpu"}
        assert "os" in record

    def test_daemon_stream(self, capsys, monkeypatch):
        """Test daemon mode streams compact lines with OS identity only first."""
        real_run_daemon = cli.run_daemon
        monkeypatch.setattr(
            cli,
            "run_daemon",
            lambda sampler, emitter, interval, **kwargs: real_run_daemon(
                sampler, emitter, interval, max_ticks=3, **kwargs
            ),
        )

        assert cli.main(["daemon", "1"]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 3
        records = [json.loads(line) for line in lines]
        assert "os" in records[0]
        assert "os" not in records[1]
        assert "os" not in records[2]
