"""
Registry client — reads the remote plugin registry over HTTP.

The registry is a tree of static JSON files:

    <base>/plugins.json                          manifest: name -> versions
    <base>/<name>/<version>/metadata.json        per-version metadata

Nothing is cached: each call goes back to the registry, so the dashboard
always shows what is currently published.
"""

import asyncio
import logging
from typing import Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from plugins.errors import (
    InvalidVersionFormat,
    MetadataUnavailable,
    NotFound,
    RegistryUnavailable,
)
from plugins.manifest_schema import (
    PluginMetadata,
    RegistryManifest,
    RegistryPlugin,
    RegistryPluginEntry,
)
from plugins.versions import select_latest

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_URL = "https://raw.githubusercontent.com/Celarye/discord-bot-plugins/refs/heads/master"
DEFAULT_TIMEOUT = 10.0


def _describe(exc: Exception) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}"
    text = str(exc)
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__


class RegistryClient:
    """Async client for the plugin registry.

    Pass ``client`` to reuse an existing httpx.AsyncClient (the caller then
    owns it); otherwise one is created on first use and closed by close().
    """

    def __init__(self, base_url: str = DEFAULT_REGISTRY_URL,
                 timeout: float = DEFAULT_TIMEOUT,
                 client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    # ── HTTP plumbing ──

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout, headers={"Accept": "application/json"},
            )
        return self._client

    async def close(self):
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "RegistryClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    @property
    def manifest_url(self) -> str:
        return f"{self.base_url}/plugins.json"

    def metadata_url(self, name: str, version: str) -> str:
        return f"{self.base_url}/{quote(name, safe='')}/{quote(version, safe='')}/metadata.json"

    async def _get_json(self, url: str):
        logger.debug("[Registry] GET %s", url)
        resp = await self._http().get(url, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    # ── Resolution ──

    async def fetch_registry_manifest(self) -> RegistryManifest:
        """Fetch and parse plugins.json.

        Raises:
            RegistryUnavailable: transport error, non-2xx status, or a body
                that is not a valid manifest.
        """
        try:
            payload = await self._get_json(self.manifest_url)
        except httpx.HTTPError as e:
            logger.warning("[Registry] Manifest fetch failed: %s", _describe(e))
            raise RegistryUnavailable(f"Failed to fetch registry: {_describe(e)}")
        except ValueError as e:
            logger.warning("[Registry] Manifest is not valid JSON: %s", e)
            raise RegistryUnavailable(f"Registry returned malformed JSON: {e}")

        try:
            return RegistryManifest.from_payload(payload)
        except (ValidationError, ValueError) as e:
            logger.warning("[Registry] Manifest failed validation: %s", e)
            raise RegistryUnavailable(f"Registry manifest is malformed: {e}")

    async def resolve_latest_version(self, name: str,
                                     manifest: Optional[RegistryManifest] = None) -> Optional[str]:
        """Latest installable version of ``name``, or None.

        Raises:
            RegistryUnavailable: when ``manifest`` is not given and cannot be fetched.
            InvalidVersionFormat: the plugin lists an unparsable version.
        """
        if manifest is None:
            manifest = await self.fetch_registry_manifest()
        entry = manifest.get(name)
        if entry is None or not entry.versions:
            return None
        latest = select_latest(entry.versions)
        return latest.version if latest else None

    async def fetch_metadata(self, name: str, version: str) -> PluginMetadata:
        """Fetch metadata.json for one plugin version.

        Raises:
            MetadataUnavailable: on any fetch or parse failure. Callers treat
                this as non-fatal.
        """
        url = self.metadata_url(name, version)
        try:
            payload = await self._get_json(url)
        except httpx.HTTPError as e:
            logger.warning("[Registry] Metadata fetch failed for %s@%s: %s", name, version, _describe(e))
            raise MetadataUnavailable(
                f"Failed to fetch metadata for {name} v{version}: {_describe(e)}"
            )
        except ValueError as e:
            raise MetadataUnavailable(f"Metadata for {name} v{version} is not valid JSON: {e}")

        if not isinstance(payload, dict):
            raise MetadataUnavailable(f"Metadata for {name} v{version} must be a JSON object")
        try:
            return PluginMetadata.model_validate(payload)
        except ValidationError as e:
            raise MetadataUnavailable(f"Metadata for {name} v{version} is malformed: {e}")

    # ── Catalog ──

    async def _catalog_entry(self, name: str, entry: RegistryPluginEntry) -> RegistryPlugin:
        try:
            latest = select_latest(entry.versions)
        except InvalidVersionFormat as e:
            logger.warning("[Registry] %s: %s", name, e)
            latest = None

        fields = {
            "name": name,
            "description": entry.description,
            "versions": entry.versions,
            "latest_version": latest.version if latest else None,
            "deprecated": entry.deprecated,
            "deprecated_reason": entry.deprecated_reason,
            "update_time": entry.update_time,
        }
        if latest is None:
            return RegistryPlugin(**fields)

        try:
            meta = await self.fetch_metadata(name, latest.version)
        except MetadataUnavailable as e:
            logger.warning("[Registry] Using registry data only for %s: %s", name, e)
            return RegistryPlugin(**fields)

        fields.update(
            description=entry.description or meta.description,
            deprecated=entry.deprecated or meta.plugin_deprecated,
            deprecated_reason=entry.deprecated_reason or meta.plugin_deprecation_reason,
            update_time=entry.update_time or meta.update_time,
            authors=meta.authors,
            license=meta.license or "Unknown",
            homepage=meta.homepage,
            documentation=meta.documentation,
            repository=meta.repository,
            tags=meta.tags,
            environment=meta.environment_schema or None,
            settings=meta.settings_schema or None,
            dependencies=meta.dependencies,
            metadata_available=True,
        )
        return RegistryPlugin(**fields)

    async def list_available(self) -> list[RegistryPlugin]:
        """Every registry plugin with its latest-version metadata merged in."""
        manifest = await self.fetch_registry_manifest()
        names = list(manifest.plugins)
        results = await asyncio.gather(
            *(self._catalog_entry(n, manifest.plugins[n]) for n in names),
            return_exceptions=True,
        )
        plugins = []
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                logger.error("[Registry] Failed to build catalog entry for %s: %s", name, result)
                entry = manifest.plugins[name]
                result = RegistryPlugin(name=name, description=entry.description,
                                        versions=entry.versions)
            plugins.append(result)
        return plugins

    async def get_plugin_details(self, name: str) -> RegistryPlugin:
        manifest = await self.fetch_registry_manifest()
        entry = manifest.get(name)
        if entry is None:
            raise NotFound(f"Plugin '{name}' not found")
        return await self._catalog_entry(name, entry)

    async def search(self, query: Optional[str] = None,
                     tag: Optional[str] = None) -> list[RegistryPlugin]:
        """Filter the catalog by exact tag and/or case-insensitive text."""
        plugins = await self.list_available()
        if tag:
            plugins = [p for p in plugins if tag in p.tags]
        if query:
            needle = query.lower()
            plugins = [
                p for p in plugins
                if needle in p.name.lower()
                or needle in p.description.lower()
                or any(needle in t.lower() for t in p.tags)
            ]
        return plugins

    async def list_tags(self) -> list[str]:
        try:
            plugins = await self.list_available()
        except RegistryUnavailable as e:
            logger.error("[Registry] Cannot list tags: %s", e)
            return []
        return sorted({t for p in plugins for t in p.tags})

    async def check_health(self) -> bool:
        """True when the manifest URL answers with a 2xx status."""
        try:
            resp = await self._http().get(self.manifest_url, timeout=self.timeout)
        except httpx.HTTPError as e:
            logger.warning("[Registry] Health check failed: %s", _describe(e))
            return False
        return resp.is_success
