"""
PluginReconciler — add, update and remove installed plugins.

Each mutation is one load -> mutate -> save cycle on the configuration
document, run under a lock scoped to the document's path so concurrent
requests cannot overwrite each other's changes.

Registry lookups decide the version that is actually installed and the
defaults a plugin starts with (required environment variables, settings
schema defaults). Metadata and dependency lookups degrade softly: a missing
metadata document means empty defaults, an unresolvable dependency is
skipped. A registry manifest that cannot be fetched aborts the operation.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from plugins.errors import (
    AlreadyInstalled,
    InvalidConfig,
    InvalidRequest,
    InvalidVersionFormat,
    MetadataUnavailable,
    NotFound,
    PluginManagerError,
)
from plugins.manifest_schema import RegistryManifest
from plugins.records import InstalledPlugin, OperationResult, PluginDependency, utc_now
from plugins.registry import RegistryClient
from plugins.store import ConfigStore, parse_config

logger = logging.getLogger(__name__)

_path_locks: dict[str, asyncio.Lock] = {}


def lock_for(path: Path) -> asyncio.Lock:
    """One lock per configuration file, shared by every reconciler using it."""
    key = str(Path(path).resolve())
    lock = _path_locks.get(key)
    if lock is None:
        lock = _path_locks[key] = asyncio.Lock()
    return lock


@dataclass
class _Resolution:
    version: str
    environment: dict[str, Any] = field(default_factory=dict)
    settings: dict[str, Any] = field(default_factory=dict)
    dependencies: list[PluginDependency] = field(default_factory=list)


def _parse_dependencies(raw: Any) -> list[PluginDependency]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise InvalidRequest("dependencies must be a list")
    try:
        return [PluginDependency.from_dict(d) for d in raw]
    except ValueError as e:
        raise InvalidRequest(f"Invalid dependency: {e}")


def _unique(deps: list[PluginDependency]) -> list[PluginDependency]:
    seen = set()
    out = []
    for dep in deps:
        if dep.name not in seen:
            seen.add(dep.name)
            out.append(dep)
    return out


def _merge_update(current: Optional[dict], update: Any, field_name: str) -> Optional[dict]:
    """Apply one environment/settings update.

    None or an empty mapping clears the field; a non-empty mapping is merged
    over the current value.
    """
    if update is None:
        return None
    if not isinstance(update, dict):
        raise InvalidRequest(f"{field_name} must be an object or null")
    if not update:
        return None
    merged = {**(current or {}), **update}
    return merged or None


class PluginReconciler:
    """Keeps the local plugin configuration in line with registry data."""

    def __init__(self, store: ConfigStore, registry: RegistryClient):
        self.store = store
        self.registry = registry
        self._lock = lock_for(store.path)

    # ── Resolution ──

    async def _resolve_plugin(self, name: str, requested_version: str,
                              manifest: RegistryManifest) -> _Resolution:
        latest = await self.registry.resolve_latest_version(name, manifest)
        if latest is None:
            logger.warning("[Reconciler] %s has no installable registry version; using %s",
                           name, requested_version)
            return _Resolution(version=requested_version)

        try:
            meta = await self.registry.fetch_metadata(name, latest)
        except MetadataUnavailable as e:
            logger.warning("[Reconciler] %s; installing %s@%s without defaults",
                           e.message, name, requested_version)
            return _Resolution(version=requested_version)

        return _Resolution(
            version=latest,
            environment=meta.required_environment(),
            settings=meta.settings_defaults(),
            dependencies=[PluginDependency(d.name, d.version, d.url) for d in meta.dependencies],
        )

    async def _resolve_dependency(self, dep: PluginDependency, owner: str,
                                  manifest: RegistryManifest,
                                  installed_at: str) -> Optional[InstalledPlugin]:
        try:
            latest = await self.registry.resolve_latest_version(dep.name, manifest)
        except InvalidVersionFormat as e:
            logger.warning("[Reconciler] Skipping dependency %s of %s: %s", dep.name, owner, e.message)
            return None
        if latest is None:
            logger.warning("[Reconciler] Skipping dependency %s of %s: not in registry", dep.name, owner)
            return None

        try:
            meta = await self.registry.fetch_metadata(dep.name, latest)
        except MetadataUnavailable as e:
            logger.warning("[Reconciler] %s; installing dependency without defaults", e.message)
            version, environment, settings = dep.version or latest, {}, {}
        else:
            version = latest
            environment = meta.required_environment()
            settings = meta.settings_defaults()

        return InstalledPlugin(
            version=version,
            enabled=True,
            installed_at=installed_at,
            environment=environment or None,
            settings=settings or None,
            is_dependency=True,
            dependent_plugin=owner,
        )

    # ── Operations ──

    async def add_plugin(self, name: str, version: str,
                         environment: Optional[dict] = None,
                         settings: Optional[dict] = None,
                         enabled: Optional[bool] = None,
                         dependencies: Optional[list] = None) -> OperationResult:
        """Install ``name`` plus any dependencies that are not installed yet."""
        try:
            return await self._add_plugin(name, version, environment, settings, enabled, dependencies)
        except PluginManagerError as e:
            logger.warning("[Reconciler] Add %s failed: %s", name, e.message)
            return OperationResult.failure(e)

    async def _add_plugin(self, name, version, environment, settings, enabled, dependencies):
        name = name.strip() if isinstance(name, str) else ""
        if not name or not isinstance(version, str) or not version.strip():
            raise InvalidRequest("Invalid plugin data: name and version are required")
        if environment is not None and not isinstance(environment, dict):
            raise InvalidRequest("environment must be an object")
        if settings is not None and not isinstance(settings, dict):
            raise InvalidRequest("settings must be an object")
        if enabled is not None and not isinstance(enabled, bool):
            raise InvalidRequest("enabled must be a boolean")
        declared = _parse_dependencies(dependencies)

        async with self._lock:
            config = self.store.load()
            if name in config.plugins:
                raise AlreadyInstalled(f"Plugin {name} is already installed")

            manifest = await self.registry.fetch_registry_manifest()
            resolved = await self._resolve_plugin(name, version.strip(), manifest)

            merged_env = {**resolved.environment, **(environment or {})}
            merged_settings = {**resolved.settings, **(settings or {})}
            declared = [d for d in _unique(declared or resolved.dependencies) if d.name != name]
            now = utc_now()

            record = InstalledPlugin(
                version=resolved.version,
                enabled=True if enabled is None else enabled,
                installed_at=now,
                environment=merged_env or None,
                settings=merged_settings or None,
                dependencies=declared or None,
            )

            pending = [d for d in declared if d.name not in config.plugins]
            outcomes = await asyncio.gather(
                *(self._resolve_dependency(d, name, manifest, now) for d in pending),
                return_exceptions=True,
            )

            config.plugins[name] = record
            installed = 0
            for dep, outcome in zip(pending, outcomes):
                if isinstance(outcome, PluginManagerError):
                    logger.warning("[Reconciler] Skipping dependency %s of %s: %s",
                                   dep.name, name, outcome.message)
                    continue
                if isinstance(outcome, BaseException):
                    raise outcome
                if outcome is not None:
                    config.plugins[dep.name] = outcome
                    installed += 1

            self.store.save(config)

        logger.info("[Reconciler] Installed %s@%s (%d dependencies)", name, record.version, installed)
        return OperationResult(
            success=True,
            message=f"Plugin {name} installed successfully",
            plugin=record.describe(name),
            dependencies_installed=installed,
        )

    async def update_plugin(self, name: str, updates: Any) -> OperationResult:
        """Apply a partial update. Keys present in ``updates`` are acted on;
        keys that are absent leave the stored value alone."""
        try:
            return await self._update_plugin(name, updates)
        except PluginManagerError as e:
            logger.warning("[Reconciler] Update %s failed: %s", name, e.message)
            return OperationResult.failure(e)

    async def _update_plugin(self, name, updates):
        if not name:
            raise InvalidRequest("Plugin name is required")
        if not isinstance(updates, dict):
            raise InvalidRequest("updates must be an object")
        if updates.get("enabled") is not None and not isinstance(updates["enabled"], bool):
            raise InvalidRequest("enabled must be a boolean")

        async with self._lock:
            config = self.store.load()
            record = config.plugins.get(name)
            if record is None:
                raise NotFound("Plugin not found")

            if "environment" in updates:
                record.environment = _merge_update(record.environment, updates["environment"], "environment")
            if "settings" in updates:
                record.settings = _merge_update(record.settings, updates["settings"], "settings")
            if updates.get("enabled") is not None:
                record.enabled = updates["enabled"]
            if "dependencies" in updates:
                deps = [d for d in _parse_dependencies(updates["dependencies"]) if d.name != name]
                record.dependencies = deps or None

            self.store.save(config)

        logger.info("[Reconciler] Updated %s (%s)", name, ", ".join(sorted(updates)) or "no fields")
        return OperationResult(
            success=True,
            message="Plugin updated successfully",
            plugin=record.describe(name),
        )

    async def remove_plugin(self, name: str) -> OperationResult:
        """Remove ``name`` and the records installed as its dependencies.

        Only direct dependencies go: a dependency of a dependency stays.
        """
        try:
            return await self._remove_plugin(name)
        except PluginManagerError as e:
            logger.warning("[Reconciler] Remove %s failed: %s", name, e.message)
            return OperationResult.failure(e)

    async def _remove_plugin(self, name):
        if not name:
            raise InvalidRequest("Plugin name is required")

        async with self._lock:
            config = self.store.load()
            record = config.plugins.pop(name, None)
            if record is None:
                raise NotFound("Plugin not found")
            dependents = config.dependents_of(name)
            for dep_name in dependents:
                del config.plugins[dep_name]
            self.store.save(config)

        logger.info("[Reconciler] Removed %s and %d dependencies", name, len(dependents))
        message = "Plugin removed successfully"
        if dependents:
            message += f" ({len(dependents)} dependencies also removed)"
        return OperationResult(
            success=True,
            message=message,
            plugin=record.describe(name),
            removed=1 + len(dependents),
        )

    async def replace_config(self, document: Union[str, dict, None]) -> OperationResult:
        """Validate and store a whole configuration document (YAML text or mapping)."""
        try:
            if isinstance(document, str):
                try:
                    document = yaml.safe_load(document)
                except yaml.YAMLError as e:
                    raise InvalidConfig(f"Invalid configuration: {e}")
            if not isinstance(document, dict) or document.get("plugins") is None:
                raise InvalidConfig("Invalid configuration: plugins object is required")
            config = parse_config(document, InvalidConfig)
            async with self._lock:
                self.store.save(config)
        except PluginManagerError as e:
            logger.warning("[Reconciler] Configuration rejected: %s", e.message)
            return OperationResult.failure(e)

        return OperationResult(
            success=True,
            message="Configuration saved successfully",
            config=config.to_dict(),
        )

    # ── Reads ──

    async def get_config(self) -> OperationResult:
        try:
            config = self.store.load()
        except PluginManagerError as e:
            logger.error("[Reconciler] Failed to read configuration: %s", e.message)
            return OperationResult.failure(e)
        return OperationResult(success=True, config=config.to_dict())

    async def get_plugin(self, name: str) -> OperationResult:
        try:
            config = self.store.load()
            record = config.plugins.get(name)
            if record is None:
                raise NotFound("Plugin not found")
        except PluginManagerError as e:
            return OperationResult.failure(e)
        return OperationResult(success=True, plugin=record.describe(name))
