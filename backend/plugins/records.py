"""
Installed-plugin records — the persisted side of the plugin manager.

Shared dataclasses for the configuration document (config.yaml) and the
result records handed back to the HTTP layer and the CLI.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from plugins.errors import PluginManagerError

DEFAULT_SCHEMA_VERSION = "1.0.0"


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class PluginDependency:
    name: str
    version: Optional[str] = None
    url: Optional[str] = None

    def to_dict(self) -> dict:
        d = {"name": self.name}
        if self.version:
            d["version"] = self.version
        if self.url:
            d["url"] = self.url
        return d

    @classmethod
    def from_dict(cls, d: Any) -> "PluginDependency":
        if not isinstance(d, dict):
            raise ValueError(f"dependency must be a mapping, got {type(d).__name__}")
        name = d.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError("dependency name must be a non-empty string")
        version = d.get("version")
        url = d.get("url")
        return cls(
            name=name.strip(),
            version=str(version) if version not in (None, "") else None,
            url=str(url) if url not in (None, "") else None,
        )


_RECORD_FIELDS = (
    "version", "enabled", "installed_at", "environment", "settings",
    "dependencies", "is_dependency", "dependent_plugin",
)


@dataclass
class InstalledPlugin:
    version: str
    enabled: bool = True
    installed_at: str = field(default_factory=utc_now)
    environment: Optional[dict[str, Any]] = None
    settings: Optional[dict[str, Any]] = None
    dependencies: Optional[list[PluginDependency]] = None
    is_dependency: bool = False
    dependent_plugin: Optional[str] = None
    # keys written by other tools; carried through untouched
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Persisted form. Empty optional fields are left out."""
        d: dict[str, Any] = {
            "version": self.version,
            "enabled": self.enabled,
            "installed_at": self.installed_at,
        }
        if self.environment:
            d["environment"] = dict(self.environment)
        if self.settings:
            d["settings"] = dict(self.settings)
        if self.dependencies:
            d["dependencies"] = [dep.to_dict() for dep in self.dependencies]
        if self.is_dependency:
            d["is_dependency"] = True
        if self.dependent_plugin:
            d["dependent_plugin"] = self.dependent_plugin
        for key, value in self.extra.items():
            d.setdefault(key, value)
        return d

    def describe(self, name: str) -> dict:
        return {"name": name, **self.to_dict()}

    @classmethod
    def from_dict(cls, d: dict) -> "InstalledPlugin":
        deps = d.get("dependencies")
        return cls(
            version=d["version"],
            enabled=True if d.get("enabled") is None else d["enabled"],
            installed_at=str(d.get("installed_at") or utc_now()),
            environment=dict(d["environment"]) if d.get("environment") else None,
            settings=dict(d["settings"]) if d.get("settings") else None,
            dependencies=[PluginDependency.from_dict(x) for x in deps] if deps else None,
            is_dependency=bool(d.get("is_dependency", False)),
            dependent_plugin=d.get("dependent_plugin") or None,
            extra={k: v for k, v in d.items() if k not in _RECORD_FIELDS},
        )


@dataclass
class ConfigMetadata:
    last_updated: str = field(default_factory=utc_now)
    version: str = DEFAULT_SCHEMA_VERSION

    def to_dict(self) -> dict:
        return {"last_updated": self.last_updated, "version": self.version}


@dataclass
class PluginConfig:
    """Root document: plugin name -> installed record, plus bookkeeping."""

    plugins: dict[str, InstalledPlugin] = field(default_factory=dict)
    metadata: ConfigMetadata = field(default_factory=ConfigMetadata)

    def to_dict(self) -> dict:
        return {
            "plugins": {name: rec.to_dict() for name, rec in self.plugins.items()},
            "metadata": self.metadata.to_dict(),
        }

    def dependents_of(self, name: str) -> list[str]:
        """Names of records installed as dependencies of ``name``."""
        return [
            key for key, rec in self.plugins.items()
            if rec.is_dependency and rec.dependent_plugin == name
        ]


@dataclass
class OperationResult:
    """Outcome of one reconciler operation, transport-neutral."""

    success: bool
    message: Optional[str] = None
    plugin: Optional[dict] = None
    dependencies_installed: Optional[int] = None
    removed: Optional[int] = None
    config: Optional[dict] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    status_code: int = 200

    @classmethod
    def failure(cls, exc: PluginManagerError) -> "OperationResult":
        return cls(
            success=False,
            error=exc.message,
            error_kind=exc.kind,
            status_code=exc.status_code,
        )

    def to_dict(self) -> dict:
        """Wire form (camelCase, unset fields omitted)."""
        wire = {
            "success": self.success,
            "message": self.message,
            "plugin": self.plugin,
            "dependenciesInstalled": self.dependencies_installed,
            "removed": self.removed,
            "config": self.config,
            "error": self.error,
            "errorKind": self.error_kind,
        }
        return {k: v for k, v in wire.items() if v is not None}
