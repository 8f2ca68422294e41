"""
Tests for bot process control.
psutil and subprocess are mocked; no real process is started.
"""

from unittest.mock import MagicMock, patch

import psutil
import pytest


@pytest.fixture
def bot(tmp_path):
    from bot_control import BotController
    return BotController(
        command=["./discord-bot", "--quiet"],
        pid_file=tmp_path / "bot.pid",
        log_file=tmp_path / "logs" / "bot.log",
        working_dir=tmp_path,
    )


def _alive(alive=True):
    proc = MagicMock()
    proc.status.return_value = psutil.STATUS_RUNNING
    return patch.multiple(
        "bot_control.psutil",
        pid_exists=MagicMock(return_value=alive),
        Process=MagicMock(return_value=proc),
    ), proc


class TestStatus:
    """Test status reporting from the PID file."""

    def test_no_pid_file(self, bot):
        status = bot.status()
        assert status.status == "stopped"
        assert status.pid is None

    def test_running(self, bot):
        bot.pid_file.write_text("4242")
        patcher, _ = _alive(True)
        with patcher:
            status = bot.status()
        assert status.status == "running"
        assert status.pid == 4242

    def test_stale_pid_file_removed(self, bot):
        bot.pid_file.write_text("4242")
        patcher, _ = _alive(False)
        with patcher:
            status = bot.status()
        assert status.status == "stopped"
        assert not bot.pid_file.exists()

    def test_garbage_pid_file(self, bot):
        bot.pid_file.write_text("not-a-pid")
        assert bot.status().status == "stopped"
        assert not bot.pid_file.exists()

    def test_zombie_counts_as_stopped(self, bot):
        bot.pid_file.write_text("4242")
        patcher, proc = _alive(True)
        proc.status.return_value = psutil.STATUS_ZOMBIE
        with patcher:
            assert bot.status().status == "stopped"


class TestStart:
    """Test starting the bot."""

    def test_start_spawns_detached_and_logs(self, bot):
        fake = MagicMock(pid=5151)
        with patch("bot_control.subprocess.Popen", return_value=fake) as popen:
            result = bot.start()

        assert result.success
        assert result.status == "running"
        assert result.pid == 5151
        assert bot.pid_file.read_text() == "5151"
        assert "INFO: Bot process started with PID: 5151" in bot.log_file.read_text()

        args, kwargs = popen.call_args
        assert args[0] == ["./discord-bot", "--quiet"]
        assert kwargs["start_new_session"] is True
        assert kwargs["cwd"] == str(bot.working_dir)

    def test_already_running(self, bot):
        bot.pid_file.write_text("4242")
        patcher, _ = _alive(True)
        with patcher, patch("bot_control.subprocess.Popen") as popen:
            result = bot.start()
        assert not result.success
        assert result.status == "running"
        assert result.message == "Bot is already running"
        popen.assert_not_called()

    def test_spawn_failure(self, bot):
        with patch("bot_control.subprocess.Popen", side_effect=FileNotFoundError("no such file")):
            result = bot.start()
        assert not result.success
        assert result.status == "stopped"
        assert "no such file" in result.message
        assert not bot.pid_file.exists()


class TestStop:
    """Test stopping the bot."""

    def test_not_running(self, bot):
        result = bot.stop()
        assert not result.success
        assert result.message == "Bot is not running"

    def test_stop_running(self, bot):
        bot.pid_file.write_text("4242")
        patcher, proc = _alive(True)
        with patcher:
            result = bot.stop()
        assert result.success
        assert result.status == "stopped"
        proc.terminate.assert_called_once()
        assert not bot.pid_file.exists()
        assert "Bot process with PID 4242 was stopped" in bot.log_file.read_text()

    def test_stale_pid_cleaned_up(self, bot):
        bot.pid_file.write_text("4242")
        patcher, proc = _alive(False)
        with patcher:
            result = bot.stop()
        assert result.success
        assert result.message == "Bot was not running, cleaned up stale PID file"
        proc.terminate.assert_not_called()
        assert not bot.pid_file.exists()


class TestWireForm:
    """Test BotStatus serialization."""

    def test_to_dict_omits_empty(self):
        from bot_control import BotStatus
        assert BotStatus(success=True, status="stopped").to_dict() == {
            "success": True, "status": "stopped",
        }
