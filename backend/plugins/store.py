"""
ConfigStore — the YAML document that lists installed plugins.

The bot reads the same file at startup, so writes must never leave a
truncated document behind: the new content goes to a temporary file in the
same directory and is swapped in with os.replace().
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Union

import yaml

from plugins.errors import CorruptConfig, InvalidConfig, PluginManagerError
from plugins.records import (
    DEFAULT_SCHEMA_VERSION,
    ConfigMetadata,
    InstalledPlugin,
    PluginConfig,
    utc_now,
)

logger = logging.getLogger(__name__)


# ── Structural checks ──

def _check_record(name: Any, record: Any, error: type[PluginManagerError]):
    if not isinstance(name, str) or not name.strip():
        raise error("Invalid plugin structure: plugin name must be a non-empty string")
    if not isinstance(record, dict):
        raise error(f"Invalid plugin structure for {name}: plugin data must be a mapping")
    version = record.get("version")
    if not isinstance(version, str) or not version.strip():
        raise error(
            f"Invalid plugin structure for {name}: version is required and must be a non-empty string"
        )
    for key in ("environment", "settings"):
        if record.get(key) is not None and not isinstance(record[key], dict):
            raise error(f"Invalid plugin structure for {name}: {key} must be a mapping")
    if record.get("dependencies") is not None and not isinstance(record["dependencies"], list):
        raise error(f"Invalid plugin structure for {name}: dependencies must be a list")
    if record.get("enabled") is not None and not isinstance(record["enabled"], bool):
        raise error(f"Invalid plugin structure for {name}: enabled must be a boolean")


def parse_config(raw: Any, error: type[PluginManagerError] = CorruptConfig) -> PluginConfig:
    """Build a PluginConfig from a decoded YAML/JSON document.

    ``error`` selects the exception raised on bad structure: CorruptConfig
    for what is already on disk, InvalidConfig for documents submitted by a
    caller.
    """
    if raw is None:
        return PluginConfig()
    if not isinstance(raw, dict):
        raise error("Invalid configuration: document root must be a mapping")

    plugins_raw = raw.get("plugins")
    if plugins_raw is None:
        plugins_raw = {}
    if isinstance(plugins_raw, list):
        raise error("Invalid configuration: plugins must be a mapping, not a list")
    if not isinstance(plugins_raw, dict):
        raise error("Invalid configuration: plugins must be a mapping")

    plugins: dict[str, InstalledPlugin] = {}
    for name, record in plugins_raw.items():
        _check_record(name, record, error)
        try:
            plugins[name] = InstalledPlugin.from_dict(record)
        except (KeyError, TypeError, ValueError) as e:
            raise error(f"Invalid plugin structure for {name}: {e}")

    meta_raw = raw.get("metadata") or {}
    if not isinstance(meta_raw, dict):
        raise error("Invalid configuration: metadata must be a mapping")
    metadata = ConfigMetadata(
        last_updated=str(meta_raw.get("last_updated") or utc_now()),
        version=str(meta_raw.get("version") or DEFAULT_SCHEMA_VERSION),
    )
    return PluginConfig(plugins=plugins, metadata=metadata)


def validate_config(config: PluginConfig):
    """Check the invariants a document must hold before it is written.

    Raises:
        InvalidConfig: on the first violation found.
    """
    if not isinstance(config, PluginConfig) or not isinstance(config.plugins, dict):
        raise InvalidConfig("Invalid configuration: plugins object is required")
    for name, record in config.plugins.items():
        if not isinstance(name, str) or not name.strip():
            raise InvalidConfig("Invalid plugin structure: plugin name must be a non-empty string")
        if not isinstance(record, InstalledPlugin):
            raise InvalidConfig(f"Invalid plugin structure for {name}: not an installed-plugin record")
        if not isinstance(record.version, str) or not record.version.strip():
            raise InvalidConfig(
                f"Invalid plugin structure for {name}: version is required and must be a non-empty string"
            )
        for key in ("environment", "settings"):
            value = getattr(record, key)
            if value is not None and not isinstance(value, dict):
                raise InvalidConfig(f"Invalid plugin structure for {name}: {key} must be a mapping")
        if not isinstance(record.enabled, bool):
            raise InvalidConfig(f"Invalid plugin structure for {name}: enabled must be a boolean")


# ── Store ──

class ConfigStore:
    """Load and atomically save the plugin configuration document."""

    def __init__(self, path: Union[str, Path], schema_version: str = DEFAULT_SCHEMA_VERSION):
        self.path = Path(path)
        self.schema_version = schema_version

    def exists(self) -> bool:
        return self.path.exists()

    def empty(self) -> PluginConfig:
        return PluginConfig(metadata=ConfigMetadata(version=self.schema_version))

    def load(self) -> PluginConfig:
        """Return the stored document, or an empty one if there is none yet."""
        if not self.path.exists():
            return self.empty()
        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise CorruptConfig(f"Failed to read configuration: {e}")
        try:
            raw = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise CorruptConfig(f"Failed to parse {self.path.name}: {e}")
        return parse_config(raw, CorruptConfig)

    def save(self, config: PluginConfig):
        """Validate, stamp last_updated and write the document.

        Raises:
            InvalidConfig: validation failed; the file on disk is untouched.
        """
        validate_config(config)
        config.metadata.last_updated = utc_now()
        if not config.metadata.version:
            config.metadata.version = self.schema_version

        text = yaml.safe_dump(
            config.to_dict(),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
            indent=2,
        )
        self._write_atomic(text)
        logger.info("[ConfigStore] Saved %d plugin(s) to %s", len(config.plugins), self.path)

    def _write_atomic(self, text: str):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent),
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except Exception:
            Path(tmp_name).unlink(missing_ok=True)
            raise
