"""Bot log endpoint."""

import logging

from fastapi import APIRouter, Depends, Query

from bot_control import BotController
from bot_logs import LEVELS, read_logs
from config import DEFAULT_LOG_LIMIT, MAX_LOG_LIMIT
from routes.common import get_bot

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/logs")
def get_logs(level: str = "all",
             limit: int = Query(DEFAULT_LOG_LIMIT, ge=1, le=MAX_LOG_LIMIT),
             bot: BotController = Depends(get_bot)):
    level = level.lower()
    if level != "all" and level not in LEVELS and level != "warn":
        return {"logs": [], "error": f"Unknown log level: {level}"}
    try:
        entries = read_logs(bot.log_file, level=level, limit=limit)
    except OSError as e:
        logger.error("[Logs] Failed to read %s: %s", bot.log_file, e)
        return {"logs": [], "error": f"Failed to read logs: {e}"}
    return {"logs": [e.to_dict() for e in entries]}
