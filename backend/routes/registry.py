"""Registry catalog endpoints (read-only view of the remote plugin registry)."""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from plugins.errors import PluginManagerError
from plugins.registry import RegistryClient
from routes.common import get_registry

router = APIRouter(prefix="/api/registry")


def _error(e: PluginManagerError) -> JSONResponse:
    return JSONResponse(
        status_code=e.status_code,
        content={"success": False, "error": e.message, "errorKind": e.kind},
    )


def _dump(plugin) -> dict:
    return plugin.model_dump(by_alias=False)


@router.get("")
async def list_plugins(registry: RegistryClient = Depends(get_registry)):
    try:
        plugins = await registry.list_available()
    except PluginManagerError as e:
        return _error(e)
    return {"success": True, "plugins": [_dump(p) for p in plugins]}


@router.get("/search")
async def search(query: Optional[str] = None, tag: Optional[str] = None,
                 registry: RegistryClient = Depends(get_registry)):
    try:
        plugins = await registry.search(query=query, tag=tag)
    except PluginManagerError as e:
        return _error(e)
    return {"success": True, "plugins": [_dump(p) for p in plugins]}


@router.get("/tags")
async def tags(registry: RegistryClient = Depends(get_registry)):
    return {"success": True, "tags": await registry.list_tags()}


@router.get("/health")
async def health(registry: RegistryClient = Depends(get_registry)):
    healthy = await registry.check_health()
    return {"success": True, "healthy": healthy, "url": registry.manifest_url}


@router.get("/plugins/{name}")
async def plugin_details(name: str, registry: RegistryClient = Depends(get_registry)):
    try:
        plugin = await registry.get_plugin_details(name)
    except PluginManagerError as e:
        return _error(e)
    return {"success": True, "plugin": _dump(plugin)}


@router.get("/plugins/{name}/latest")
async def latest_version(name: str, registry: RegistryClient = Depends(get_registry)):
    try:
        version = await registry.resolve_latest_version(name)
    except PluginManagerError as e:
        return _error(e)
    return {"success": True, "name": name, "version": version}
