"""
Tests for the YAML configuration store.
"""

import pytest
import yaml


def _record(version="1.0.0", **kw):
    from plugins.records import InstalledPlugin
    return InstalledPlugin(version=version, **kw)


class TestLoad:
    """Test reading the configuration document."""

    def test_missing_file_gives_empty_config(self, store):
        config = store.load()
        assert config.plugins == {}
        assert config.metadata.version == "1.0.0"

    def test_empty_file_gives_empty_config(self, store, config_path):
        config_path.parent.mkdir(parents=True)
        config_path.write_text("")
        assert store.load().plugins == {}

    def test_reads_records(self, store, config_path):
        config_path.parent.mkdir(parents=True)
        config_path.write_text(yaml.safe_dump({
            "plugins": {
                "foo": {
                    "version": "1.0.0",
                    "enabled": False,
                    "environment": {"TOKEN": "x"},
                    "dependencies": [{"name": "bar", "version": "2.0.0"}],
                },
            },
            "metadata": {"last_updated": "2024-01-01T00:00:00+00:00", "version": "1.0.0"},
        }))
        config = store.load()
        foo = config.plugins["foo"]
        assert foo.enabled is False
        assert foo.environment == {"TOKEN": "x"}
        assert foo.dependencies[0].name == "bar"

    @pytest.mark.parametrize("text", [
        "plugins: [",
        "- just\n- a list\n",
        "plugins:\n  - foo\n",
        "plugins:\n  foo: not-a-mapping\n",
        "plugins:\n  foo:\n    enabled: true\n",
        "plugins:\n  foo:\n    version: ''\n",
        "plugins:\n  foo:\n    version: 1.0.0\n    environment: [a, b]\n",
        "plugins:\n  foo:\n    version: 1.0.0\n    dependencies: bar\n",
        "plugins:\n  foo:\n    version: 1.0.0\n    enabled: 'false'\n",
        "plugins:\n  foo:\n    version: 1.0.0\n    enabled: 0\n",
    ])
    def test_corrupt_documents(self, store, config_path, text):
        from plugins.errors import CorruptConfig
        config_path.parent.mkdir(parents=True)
        config_path.write_text(text)
        with pytest.raises(CorruptConfig):
            store.load()

    def test_invalid_utf8_is_corrupt(self, store, config_path):
        from plugins.errors import CorruptConfig
        config_path.parent.mkdir(parents=True)
        config_path.write_bytes(b"plugins:\n  foo:\n    version: 1.0.0\n    note: '\xff\xfe'\n")
        with pytest.raises(CorruptConfig):
            store.load()

    def test_unknown_record_keys_survive_round_trip(self, store, config_path):
        config_path.parent.mkdir(parents=True)
        config_path.write_text("plugins:\n  foo:\n    version: 1.0.0\n    pinned: true\n")
        store.save(store.load())
        raw = yaml.safe_load(config_path.read_text())
        assert raw["plugins"]["foo"]["pinned"] is True


class TestSave:
    """Test validation and atomic writes."""

    def test_creates_directory_and_file(self, store, config_path):
        from plugins.records import PluginConfig
        config = PluginConfig(plugins={"foo": _record()})
        store.save(config)
        raw = yaml.safe_load(config_path.read_text())
        assert raw["plugins"]["foo"]["version"] == "1.0.0"
        assert raw["metadata"]["version"] == "1.0.0"
        assert "last_updated" in raw["metadata"]

    def test_updates_last_updated(self, store):
        from plugins.records import ConfigMetadata, PluginConfig
        config = PluginConfig(metadata=ConfigMetadata(last_updated="2000-01-01T00:00:00+00:00"))
        store.save(config)
        assert store.load().metadata.last_updated != "2000-01-01T00:00:00+00:00"

    def test_empty_optional_fields_omitted(self, store, config_path):
        from plugins.records import PluginConfig
        store.save(PluginConfig(plugins={"foo": _record(environment={}, settings=None)}))
        raw = yaml.safe_load(config_path.read_text())
        assert set(raw["plugins"]["foo"]) == {"version", "enabled", "installed_at"}

    def test_rejects_empty_version_and_keeps_previous_document(self, store, config_path):
        from plugins.errors import InvalidConfig
        from plugins.records import PluginConfig
        store.save(PluginConfig(plugins={"foo": _record()}))
        before = config_path.read_text()

        with pytest.raises(InvalidConfig):
            store.save(PluginConfig(plugins={"foo": _record(version="")}))

        assert config_path.read_text() == before
        assert list(config_path.parent.iterdir()) == [config_path]

    def test_rejects_empty_name(self, store):
        from plugins.errors import InvalidConfig
        from plugins.records import PluginConfig
        with pytest.raises(InvalidConfig):
            store.save(PluginConfig(plugins={"": _record()}))

    def test_failed_write_removes_temp_file(self, store, config_path, monkeypatch):
        import os
        from plugins.records import PluginConfig

        def boom(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", boom)
        with pytest.raises(OSError):
            store.save(PluginConfig(plugins={"foo": _record()}))
        assert list(config_path.parent.iterdir()) == []


class TestParseConfig:
    """Test the shared document parser."""

    def test_error_class_is_selectable(self):
        from plugins.errors import InvalidConfig
        from plugins.store import parse_config
        with pytest.raises(InvalidConfig):
            parse_config({"plugins": ["foo"]}, InvalidConfig)

    def test_null_plugins_is_empty(self):
        from plugins.store import parse_config
        assert parse_config({"plugins": None}).plugins == {}

    def test_string_enabled_rejected(self):
        from plugins.errors import InvalidConfig
        from plugins.store import parse_config
        with pytest.raises(InvalidConfig):
            parse_config({"plugins": {"foo": {"version": "1.0.0", "enabled": "false"}}}, InvalidConfig)

    def test_null_enabled_means_enabled(self):
        from plugins.store import parse_config
        config = parse_config({"plugins": {"foo": {"version": "1.0.0", "enabled": None}}})
        assert config.plugins["foo"].enabled is True
