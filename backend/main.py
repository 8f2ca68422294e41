"""
Bot Dashboard — backend for managing a chat bot and its plugins.
FastAPI app over the plugin registry, the local plugin configuration and the bot process.
"""

import logging

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bot_control import controller_from_settings
from config import (
    APP_NAME, APP_VERSION, BIND_HOST, BIND_PORT, CORS_ORIGINS, LOG_DATEFMT, LOG_FORMAT,
)
from plugins.reconciler import PluginReconciler
from plugins.registry import RegistryClient
from plugins.store import ConfigStore
from routes import register_routes
from settings import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.logging.level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )
    registry = RegistryClient(
        base_url=settings.registry.base_url,
        timeout=settings.registry.timeout_seconds,
    )
    store = ConfigStore(settings.config_path, schema_version=settings.plugins.schema_version)
    app.state.registry = registry
    app.state.store = store
    app.state.reconciler = PluginReconciler(store, registry)
    app.state.bot = controller_from_settings(settings)
    logger.info("Registry: %s", registry.base_url)
    logger.info("Plugin configuration: %s", store.path)
    yield
    await registry.close()


app = FastAPI(
    title=APP_NAME,
    description="Plugin registry, plugin configuration and bot process management API",
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_routes(app)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=BIND_HOST, port=BIND_PORT)
