"""Shared helpers for route modules: app-state accessors and result rendering."""

from fastapi import Request
from fastapi.responses import JSONResponse

from bot_control import BotController
from plugins.reconciler import PluginReconciler
from plugins.records import OperationResult
from plugins.registry import RegistryClient


def get_reconciler(request: Request) -> PluginReconciler:
    return request.app.state.reconciler


def get_registry(request: Request) -> RegistryClient:
    return request.app.state.registry


def get_bot(request: Request) -> BotController:
    return request.app.state.bot


def result_response(result: OperationResult) -> JSONResponse:
    """Render an OperationResult with the status its error kind maps to."""
    status = result.status_code if not result.success else 200
    return JSONResponse(status_code=status, content=result.to_dict())
