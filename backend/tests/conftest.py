"""
Test fixtures for the plugin manager test suite.
"""

import os
import sys
from pathlib import Path

import httpx
import pytest

# Add backend to path
BACKEND_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(BACKEND_DIR))

# Set up a minimal profile before importing anything that reads settings
os.environ["BOTDASH_PROFILE_PATH"] = str(BACKEND_DIR.parent / "profile.yaml.example")

REGISTRY_URL = "https://registry.test/plugins"

SAMPLE_MANIFEST = {
    "foo": {
        "description": "Foo does things",
        "versions": [
            {"version": "1.0.0"},
            {"version": "1.1.0", "deprecated": True, "deprecated-reason": "broken"},
        ],
    },
    "bar": {
        "description": "Bar helper",
        "versions": [{"version": "1.9.0"}, {"version": "2.0.0"}],
    },
    "baz": {
        "description": "Baz without metadata",
        "versions": [{"version": "0.3.0"}],
    },
}

SAMPLE_METADATA = {
    ("foo", "1.0.0"): {
        "name": "foo",
        "version": "1.0.0",
        "description": "Foo does things",
        "authors": ["alice"],
        "license": "MIT",
        "tags": ["utility", "fun"],
        "environment": {"FOO_TOKEN": True, "FOO_OPTIONAL": False},
        "settings": {
            "type": "object",
            "properties": {
                "prefix": {"type": "string", "default": "!"},
                "limits": {
                    "type": "object",
                    "properties": {"max": {"type": "integer", "default": 5}},
                },
                "nickname": {"type": "string"},
            },
        },
        "dependencies": [{"name": "bar", "version": "2.0.0"}],
    },
    ("bar", "2.0.0"): {
        "name": "bar",
        "version": "2.0.0",
        "description": "Bar helper",
        "tags": ["core"],
        "environment": {"BAR_KEY": True},
        "settings": {
            "type": "object",
            "properties": {"verbose": {"type": "boolean", "default": False}},
        },
    },
}


class FakeRegistry:
    """In-memory registry served through httpx.MockTransport.

    ``manifest=None`` makes plugins.json answer 503. Metadata documents are
    looked up by (name, version); anything else is a 404.
    """

    def __init__(self, manifest=None, metadata=None):
        self.manifest = manifest
        self.metadata = dict(metadata or {})
        self.requests: list[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append(path)
        prefix = httpx.URL(REGISTRY_URL).path
        rel = path[len(prefix):].strip("/") if path.startswith(prefix) else path.strip("/")
        if rel == "plugins.json":
            if self.manifest is None:
                return httpx.Response(503, text="unavailable")
            return httpx.Response(200, json=self.manifest)
        parts = rel.split("/")
        if len(parts) == 3 and parts[2] == "metadata.json":
            doc = self.metadata.get((parts[0], parts[1]))
            if doc is not None:
                return httpx.Response(200, json=doc)
        return httpx.Response(404, text="not found")

    def metadata_requests(self) -> list[str]:
        return [p for p in self.requests if p.endswith("metadata.json")]

    def client(self):
        from plugins.registry import RegistryClient
        http = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return RegistryClient(REGISTRY_URL, timeout=5.0, client=http)


@pytest.fixture
def fake_registry():
    """Registry with foo (1.0.0 + deprecated 1.1.0), bar (2.0.0) and baz (no metadata)."""
    return FakeRegistry(
        manifest={k: dict(v) for k, v in SAMPLE_MANIFEST.items()},
        metadata=SAMPLE_METADATA,
    )


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "bot" / "config.yaml"


@pytest.fixture
def store(config_path):
    from plugins.store import ConfigStore
    return ConfigStore(config_path)


@pytest.fixture
def reconciler(store, fake_registry):
    from plugins.reconciler import PluginReconciler
    return PluginReconciler(store, fake_registry.client())
