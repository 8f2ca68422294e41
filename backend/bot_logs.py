"""
Bot log reader.

Two line shapes are understood:

    [2024-05-01T10:00:00+00:00] INFO: Bot process started with PID: 4242
    2024-05-01T10:00:00.123456Z  INFO discord_bot::plugins: Loaded 3 plugins

The first is what the dashboard itself appends; the second is the bot's own
tracing output, where the level may be wrapped in asterisks and the target
before the first colon is dropped.
"""

import logging
import re
from collections import deque
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

LEVELS = ("info", "error", "warning", "debug", "trace")

_BRACKETED = re.compile(r"^\[(?P<ts>[^\]]+)\]\s+(?P<level>\w+):\s?(?P<msg>.*)$")
_TRACING = re.compile(
    r"^(?P<ts>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?Z)\s+"
    r"\**(?P<level>INFO|ERROR|WARNING|WARN|DEBUG|TRACE)\**\s*(?P<rest>.*)$"
)
_TARGET = re.compile(r"^\S+:\s+")


@dataclass
class LogEntry:
    timestamp: str
    level: str
    message: str

    def to_dict(self) -> dict:
        return asdict(self)


def _normalize_level(level: str) -> Optional[str]:
    level = level.lower()
    if level == "warn":
        level = "warning"
    return level if level in LEVELS else None


def parse_log_line(line: str) -> Optional[LogEntry]:
    """Parse one log line, or return None when it matches neither shape."""
    line = line.rstrip("\r\n")
    if not line.strip():
        return None

    m = _BRACKETED.match(line)
    if m:
        level = _normalize_level(m.group("level"))
        if level is None:
            return None
        return LogEntry(timestamp=m.group("ts"), level=level, message=m.group("msg").strip())

    m = _TRACING.match(line.strip())
    if m:
        level = _normalize_level(m.group("level"))
        message = _TARGET.sub("", m.group("rest"), count=1).strip()
        return LogEntry(timestamp=m.group("ts"), level=level, message=message)

    return None


def read_logs(path: Union[str, Path], level: str = "all", limit: int = 100) -> list[LogEntry]:
    """Return up to ``limit`` entries at ``level``, newest first.

    A missing file yields an empty list. Other read errors propagate as OSError.
    """
    if limit < 1:
        raise ValueError("limit must be a positive integer")
    wanted = level.lower() if level else "all"
    if wanted == "warn":
        wanted = "warning"

    path = Path(path)
    if not path.exists():
        return []

    recent: deque[LogEntry] = deque(maxlen=limit)
    skipped = 0
    with path.open("r", encoding="utf-8", errors="replace") as f:
        for line in f:
            entry = parse_log_line(line)
            if entry is None:
                if line.strip():
                    skipped += 1
                continue
            if wanted != "all" and entry.level != wanted:
                continue
            recent.append(entry)

    if skipped:
        logger.debug("[Logs] Skipped %d unparsable line(s) in %s", skipped, path)
    return list(reversed(recent))
