"""
Plugin registry schema — validates plugins.json and metadata.json documents.

The registry is served as static JSON. These models are the only place its
shape is interpreted: anything that does not parse here is rejected at the
boundary instead of leaking half-populated dicts into the reconciler.
"""

import copy
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _RegistryModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PluginVersion(_RegistryModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    version: str
    deprecated: bool = False
    compatible_bot_version: Optional[int] = Field(default=None, alias="compatible-bot-version")
    deprecated_reason: Optional[str] = Field(default=None, alias="deprecated-reason")

    @field_validator("deprecated", mode="before")
    @classmethod
    def _null_is_false(cls, value):
        return False if value is None else value


class RegistryPluginEntry(_RegistryModel):
    description: str = ""
    update_time: Optional[str] = Field(default=None, alias="update-time")
    deprecated: bool = False
    deprecated_reason: Optional[str] = Field(default=None, alias="deprecated-reason")
    versions: list[PluginVersion] = []

    @field_validator("deprecated", mode="before")
    @classmethod
    def _null_is_false(cls, value):
        return False if value is None else value

    @field_validator("description", mode="before")
    @classmethod
    def _null_is_empty(cls, value):
        return "" if value is None else value


class RegistryManifest(_RegistryModel):
    name: str = ""
    description: str = ""
    maintainers: list[str] = []
    plugins: dict[str, RegistryPluginEntry] = {}

    @classmethod
    def from_payload(cls, payload: Any) -> "RegistryManifest":
        """Parse either a bare ``{name: entry}`` mapping or the wrapped form
        ``{"name": ..., "plugins": {name: entry}}``.

        Raises ValueError / pydantic.ValidationError on anything else.
        """
        if not isinstance(payload, dict):
            raise ValueError("registry manifest must be a JSON object")
        if isinstance(payload.get("plugins"), dict):
            return cls.model_validate(payload)
        return cls.model_validate({"plugins": payload})

    def get(self, name: str) -> Optional[RegistryPluginEntry]:
        return self.plugins.get(name)


class DependencySpec(_RegistryModel):
    name: str = Field(min_length=1)
    version: Optional[str] = None
    url: Optional[str] = None


class PluginMetadata(_RegistryModel):
    """Per-version metadata.json."""

    name: str = ""
    version: str = ""
    description: str = ""
    authors: list[str] = []
    license: str = ""
    homepage: Optional[str] = None
    documentation: Optional[str] = None
    repository: Optional[str] = None
    tags: list[str] = []
    update_time: Optional[str] = Field(default=None, alias="update-time")
    compatible_bot_version: Optional[int] = Field(default=None, alias="compatible-bot-version")
    version_deprecated: bool = Field(default=False, alias="version-deprecated")
    plugin_deprecated: bool = Field(default=False, alias="plugin-deprecated")
    plugin_deprecation_reason: Optional[str] = Field(default=None, alias="plugin-deprecation-reason")
    # var name -> required
    environment_schema: dict[str, bool] = Field(default_factory=dict, alias="environment")
    settings_schema: dict[str, Any] = Field(default_factory=dict, alias="settings")
    dependencies: list[DependencySpec] = []

    @field_validator("authors", "tags", "dependencies", mode="before")
    @classmethod
    def _null_is_empty_list(cls, value):
        return [] if value is None else value

    @field_validator("environment_schema", "settings_schema", mode="before")
    @classmethod
    def _null_is_empty_dict(cls, value):
        return {} if value is None else value

    @field_validator("version_deprecated", "plugin_deprecated", mode="before")
    @classmethod
    def _null_is_false(cls, value):
        return False if value is None else value

    def required_environment(self) -> dict[str, str]:
        """Required variables, each defaulting to an empty string."""
        return {var: "" for var, required in self.environment_schema.items() if required}

    def settings_defaults(self) -> dict[str, Any]:
        return schema_defaults(self.settings_schema)


def schema_defaults(schema: Any) -> dict[str, Any]:
    """Collect ``default`` values from a JSON-Schema-like object.

    Object properties without a default of their own contribute their nested
    defaults, when they have any.
    """
    if not isinstance(schema, dict):
        return {}
    properties = schema.get("properties")
    if not isinstance(properties, dict):
        return {}

    defaults: dict[str, Any] = {}
    for key, prop in properties.items():
        if not isinstance(prop, dict):
            continue
        if "default" in prop:
            defaults[key] = copy.deepcopy(prop["default"])
        elif prop.get("type") == "object" or "properties" in prop:
            nested = schema_defaults(prop)
            if nested:
                defaults[key] = nested
    return defaults


class RegistryPlugin(_RegistryModel):
    """Catalog view of one plugin: manifest entry plus latest-version metadata."""

    name: str
    description: str = ""
    versions: list[PluginVersion] = []
    latest_version: Optional[str] = None
    deprecated: bool = False
    deprecated_reason: Optional[str] = None
    update_time: Optional[str] = None
    authors: list[str] = []
    license: str = "Unknown"
    homepage: Optional[str] = None
    documentation: Optional[str] = None
    repository: Optional[str] = None
    tags: list[str] = []
    environment: Optional[dict[str, bool]] = None
    settings: Optional[dict[str, Any]] = None
    dependencies: list[DependencySpec] = []
    metadata_available: bool = False
