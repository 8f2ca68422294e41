"""Installed-plugin endpoints: add, update, remove and the raw configuration document."""

import json

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from models import AddPluginRequest, ConfigDocument, UpdatePluginRequest
from plugins.errors import InvalidConfig
from plugins.reconciler import PluginReconciler
from plugins.records import OperationResult
from routes.common import get_reconciler, result_response

router = APIRouter(prefix="/api/plugins")


@router.get("/config")
async def get_config(reconciler: PluginReconciler = Depends(get_reconciler)):
    return result_response(await reconciler.get_config())


@router.put("/config")
async def replace_config(request: Request, reconciler: PluginReconciler = Depends(get_reconciler)):
    """Replace the whole document. Accepts JSON, or YAML text with a yaml content type."""
    content_type = request.headers.get("content-type", "")
    body = await request.body()
    if "yaml" in content_type:
        return result_response(await reconciler.replace_config(body.decode("utf-8", errors="replace")))

    try:
        doc = ConfigDocument.model_validate(json.loads(body or b"null"))
    except (ValueError, ValidationError) as e:
        return result_response(OperationResult.failure(InvalidConfig(f"Invalid configuration: {e}")))
    document = {"plugins": doc.plugins}
    if doc.metadata is not None:
        document["metadata"] = doc.metadata
    return result_response(await reconciler.replace_config(document))


@router.get("/installed/{name}")
async def get_installed(name: str, reconciler: PluginReconciler = Depends(get_reconciler)):
    return result_response(await reconciler.get_plugin(name))


@router.post("")
async def add_plugin(req: AddPluginRequest, reconciler: PluginReconciler = Depends(get_reconciler)):
    deps = [d.model_dump() for d in req.dependencies] if req.dependencies else None
    result = await reconciler.add_plugin(
        req.name, req.version,
        environment=req.environment,
        settings=req.settings,
        enabled=req.enabled,
        dependencies=deps,
    )
    return result_response(result)


@router.patch("/{name}")
async def update_plugin(name: str, req: UpdatePluginRequest,
                        reconciler: PluginReconciler = Depends(get_reconciler)):
    return result_response(await reconciler.update_plugin(name, req.updates()))


@router.delete("/{name}")
async def remove_plugin(name: str, reconciler: PluginReconciler = Depends(get_reconciler)):
    return result_response(await reconciler.remove_plugin(name))
