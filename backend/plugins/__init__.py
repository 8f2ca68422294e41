"""
Plugin manager — registry resolution and local plugin configuration.

Modules:
  - versions: version ordering and latest-version selection
  - manifest_schema: registry manifest / metadata documents
  - registry: RegistryClient (HTTP)
  - records: installed-plugin records and operation results
  - store: ConfigStore (YAML document on disk)
  - reconciler: PluginReconciler (add / update / remove)
  - errors: error taxonomy shared by all of the above
"""

from plugins.errors import PluginManagerError
from plugins.reconciler import PluginReconciler
from plugins.records import InstalledPlugin, OperationResult, PluginConfig
from plugins.registry import RegistryClient
from plugins.store import ConfigStore

__all__ = [
    "ConfigStore",
    "InstalledPlugin",
    "OperationResult",
    "PluginConfig",
    "PluginManagerError",
    "PluginReconciler",
    "RegistryClient",
]
