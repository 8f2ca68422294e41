"""
Route registration — includes all API routers into the FastAPI app.
"""

from fastapi import FastAPI

from routes.health import router as health_router
from routes.plugins import router as plugins_router
from routes.registry import router as registry_router
from routes.bot import router as bot_router
from routes.logs import router as logs_router


def register_routes(app: FastAPI):
    """Mount all API routers onto the app."""
    app.include_router(health_router)
    app.include_router(plugins_router)
    app.include_router(registry_router)
    app.include_router(bot_router)
    app.include_router(logs_router)
