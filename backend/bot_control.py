"""
Bot process control — start, stop and inspect the bot through its PID file.

The bot runs detached from the dashboard (own session, stdio discarded) so
that restarting the dashboard does not take the bot down with it.
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

import psutil

logger = logging.getLogger(__name__)

RUNNING = "running"
STOPPED = "stopped"
UNKNOWN = "unknown"


@dataclass
class BotStatus:
    success: bool
    status: str
    pid: Optional[int] = None
    message: Optional[str] = None

    def to_dict(self) -> dict:
        d = {"success": self.success, "status": self.status}
        if self.pid is not None:
            d["pid"] = self.pid
        if self.message:
            d["message"] = self.message
        return d


def _is_alive(pid: int) -> bool:
    if not psutil.pid_exists(pid):
        return False
    try:
        return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False
    except psutil.AccessDenied:
        # exists but belongs to someone else
        return True


class BotController:
    """Start/stop the bot process and report whether it is running."""

    def __init__(self, command: list[str], pid_file: Union[str, Path],
                 log_file: Union[str, Path], working_dir: Union[str, Path] = "."):
        self.command = list(command)
        self.pid_file = Path(pid_file)
        self.log_file = Path(log_file)
        self.working_dir = Path(working_dir)

    # ── PID file ──

    def read_pid(self) -> Optional[int]:
        """PID recorded in the PID file, or None when absent or unreadable."""
        try:
            text = self.pid_file.read_text().strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("[Bot] Cannot read %s: %s", self.pid_file, e)
            return None
        try:
            return int(text)
        except ValueError:
            logger.warning("[Bot] PID file %s holds %r, not a PID", self.pid_file, text)
            return None

    def _write_pid(self, pid: int):
        self.pid_file.parent.mkdir(parents=True, exist_ok=True)
        self.pid_file.write_text(str(pid))

    def _remove_pid(self):
        self.pid_file.unlink(missing_ok=True)

    def _append_log(self, message: str):
        stamp = datetime.now(timezone.utc).isoformat()
        try:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            with self.log_file.open("a", encoding="utf-8") as f:
                f.write(f"[{stamp}] INFO: {message}\n")
        except OSError as e:
            logger.warning("[Bot] Could not write to %s: %s", self.log_file, e)

    # ── Operations ──

    def status(self) -> BotStatus:
        if not self.pid_file.exists():
            return BotStatus(success=True, status=STOPPED)
        pid = self.read_pid()
        if pid is not None and _is_alive(pid):
            return BotStatus(success=True, status=RUNNING, pid=pid)
        logger.info("[Bot] Removing stale PID file %s", self.pid_file)
        self._remove_pid()
        return BotStatus(success=True, status=STOPPED)

    def start(self) -> BotStatus:
        current = self.status()
        if current.status == RUNNING:
            return BotStatus(success=False, status=RUNNING, pid=current.pid,
                             message="Bot is already running")
        if not self.command:
            return BotStatus(success=False, status=STOPPED,
                             message="Failed to start bot: no bot command configured")

        try:
            proc = subprocess.Popen(
                self.command,
                cwd=str(self.working_dir),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            logger.error("[Bot] Failed to start %s: %s", self.command[0], e)
            return BotStatus(success=False, status=STOPPED,
                             message=f"Failed to start bot: {e}")

        self._write_pid(proc.pid)
        self._append_log(f"Bot process started with PID: {proc.pid}")
        logger.info("[Bot] Started with PID %d", proc.pid)
        return BotStatus(success=True, status=RUNNING, pid=proc.pid,
                         message="Bot started successfully")

    def stop(self) -> BotStatus:
        if not self.pid_file.exists():
            return BotStatus(success=False, status=STOPPED, message="Bot is not running")

        pid = self.read_pid()
        if pid is None or not _is_alive(pid):
            self._remove_pid()
            return BotStatus(success=True, status=STOPPED,
                             message="Bot was not running, cleaned up stale PID file")

        try:
            psutil.Process(pid).terminate()
        except psutil.NoSuchProcess:
            self._remove_pid()
            return BotStatus(success=True, status=STOPPED,
                             message="Bot was not running, cleaned up stale PID file")
        except psutil.AccessDenied as e:
            logger.error("[Bot] Not allowed to stop PID %d: %s", pid, e)
            return BotStatus(success=False, status=UNKNOWN, pid=pid,
                             message=f"Failed to stop bot: {e}")

        self._append_log(f"Bot process with PID {pid} was stopped")
        self._remove_pid()
        logger.info("[Bot] Stopped PID %d", pid)
        return BotStatus(success=True, status=STOPPED, message="Bot stopped successfully")


def controller_from_settings(settings) -> BotController:
    return BotController(
        command=settings.bot.command,
        pid_file=settings.pid_file,
        log_file=settings.log_file,
        working_dir=os.path.expanduser(settings.bot.working_dir),
    )
