"""
Plugin manager errors — one exception class per failure kind.

Each class carries a stable ``kind`` string (surfaced to callers next to the
human message) and the HTTP status the dashboard API answers with.
"""


class PluginManagerError(Exception):
    """Base class for registry, configuration and reconciliation failures."""

    kind = "PluginManagerError"
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind)
        self.message = message or self.kind


class RegistryUnavailable(PluginManagerError):
    """Registry manifest could not be fetched or did not parse."""
    kind = "RegistryUnavailable"
    status_code = 502


class MetadataUnavailable(PluginManagerError):
    """Per-version metadata document could not be fetched or did not parse."""
    kind = "MetadataUnavailable"
    status_code = 502


class InvalidVersionFormat(PluginManagerError):
    kind = "InvalidVersionFormat"
    status_code = 422


class AlreadyInstalled(PluginManagerError):
    kind = "AlreadyInstalled"
    status_code = 409


class NotFound(PluginManagerError):
    kind = "NotFound"
    status_code = 404


class CorruptConfig(PluginManagerError):
    """Stored configuration exists but is not a valid plugin document."""
    kind = "CorruptConfig"
    status_code = 500


class InvalidConfig(PluginManagerError):
    """A document about to be written fails validation. Nothing is written."""
    kind = "InvalidConfig"
    status_code = 400


class InvalidRequest(PluginManagerError):
    kind = "InvalidRequest"
    status_code = 400
