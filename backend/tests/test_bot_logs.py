"""
Tests for bot log parsing and filtering.
"""

import pytest


class TestParseLogLine:
    """Test both supported line shapes."""

    def test_dashboard_line(self):
        from bot_logs import parse_log_line
        entry = parse_log_line("[2024-05-01T10:00:00+00:00] INFO: Bot process started with PID: 42\n")
        assert entry.timestamp == "2024-05-01T10:00:00+00:00"
        assert entry.level == "info"
        assert entry.message == "Bot process started with PID: 42"

    def test_tracing_line_drops_target(self):
        from bot_logs import parse_log_line
        entry = parse_log_line("2024-05-01T10:00:00.123456Z  WARN discord_bot::plugins: slow start")
        assert entry.timestamp == "2024-05-01T10:00:00.123456Z"
        assert entry.level == "warning"
        assert entry.message == "slow start"

    def test_tracing_level_in_asterisks(self):
        from bot_logs import parse_log_line
        entry = parse_log_line("2024-05-01T10:00:00.1Z *ERROR* bot: crashed")
        assert entry.level == "error"
        assert entry.message == "crashed"

    @pytest.mark.parametrize("line", [
        "",
        "   ",
        "plain text",
        "[2024-05-01] NOTICE: unknown level",
        "2024-05-01 INFO bot: no T in timestamp",
    ])
    def test_unparsable(self, line):
        from bot_logs import parse_log_line
        assert parse_log_line(line) is None


class TestReadLogs:
    """Test reading, filtering and limiting a log file."""

    @pytest.fixture
    def log_file(self, tmp_path):
        path = tmp_path / "bot.log"
        path.write_text("\n".join([
            "[t1] INFO: one",
            "[t2] ERROR: two",
            "garbage",
            "[t3] INFO: three",
            "[t4] DEBUG: four",
            "[t5] INFO: five",
        ]) + "\n")
        return path

    def test_missing_file(self, tmp_path):
        from bot_logs import read_logs
        assert read_logs(tmp_path / "nope.log") == []

    def test_newest_first(self, log_file):
        from bot_logs import read_logs
        assert [e.message for e in read_logs(log_file)] == ["five", "four", "three", "two", "one"]

    def test_limit_keeps_most_recent(self, log_file):
        from bot_logs import read_logs
        assert [e.message for e in read_logs(log_file, limit=2)] == ["five", "four"]

    def test_level_filter(self, log_file):
        from bot_logs import read_logs
        assert [e.message for e in read_logs(log_file, level="info")] == ["five", "three", "one"]
        assert [e.message for e in read_logs(log_file, level="ERROR")] == ["two"]

    def test_limit_must_be_positive(self, log_file):
        from bot_logs import read_logs
        with pytest.raises(ValueError):
            read_logs(log_file, limit=0)
