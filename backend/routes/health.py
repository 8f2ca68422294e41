"""Health endpoint."""

from fastapi import APIRouter, Depends

from config import APP_NAME, APP_VERSION
from routes.common import get_reconciler
from plugins.reconciler import PluginReconciler

router = APIRouter()


@router.get("/health")
def health(reconciler: PluginReconciler = Depends(get_reconciler)):
    return {
        "status": "ok",
        "name": APP_NAME,
        "version": APP_VERSION,
        "config_path": str(reconciler.store.path),
        "config_exists": reconciler.store.exists(),
    }
