"""Bot process control endpoints."""

from fastapi import APIRouter, Depends

from bot_control import BotController
from routes.common import get_bot

router = APIRouter(prefix="/api/bot")


@router.get("/status")
def status(bot: BotController = Depends(get_bot)):
    return bot.status().to_dict()


@router.post("/start")
def start(bot: BotController = Depends(get_bot)):
    return bot.start().to_dict()


@router.post("/stop")
def stop(bot: BotController = Depends(get_bot)):
    return bot.stop().to_dict()
