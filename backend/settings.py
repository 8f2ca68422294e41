"""
Settings — loads profile.yaml and provides validated dashboard configuration.

profile.yaml holds everything an operator may change: the registry endpoint,
where the plugin configuration document lives, how the bot is launched and
which origins may call the API.

Usage:
    from settings import get_settings
    settings = get_settings()
    print(settings.registry.base_url)
"""

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

# ── Path Resolution ──
_PROJECT_ROOT = Path(__file__).parent.parent
_DEFAULT_PROFILE_PATH = _PROJECT_ROOT / "profile.yaml"


# ── Dataclasses ──

@dataclass
class DashboardConfig:
    name: str = "Bot Dashboard"
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list[str] = field(default_factory=lambda: [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8000",
        "http://127.0.0.1:8000",
    ])


@dataclass
class RegistryConfig:
    base_url: str = "https://raw.githubusercontent.com/Celarye/discord-bot-plugins/refs/heads/master"
    timeout_seconds: float = 10.0


@dataclass
class PluginsConfig:
    config_path: str = "config.yaml"
    schema_version: str = "1.0.0"


@dataclass
class BotConfig:
    command: list[str] = field(default_factory=lambda: ["./discord-bot"])
    working_dir: str = "."
    pid_file: str = "bot.pid"
    log_file: str = "bot.log"


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class Settings:
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    plugins: PluginsConfig = field(default_factory=PluginsConfig)
    bot: BotConfig = field(default_factory=BotConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def resolve_path(self, value: str) -> Path:
        """Resolve a configured path; relative paths hang off the bot working dir."""
        path = Path(value).expanduser()
        if path.is_absolute():
            return path
        return Path(self.bot.working_dir).expanduser() / path

    @property
    def config_path(self) -> Path:
        return self.resolve_path(self.plugins.config_path)

    @property
    def pid_file(self) -> Path:
        return self.resolve_path(self.bot.pid_file)

    @property
    def log_file(self) -> Path:
        return self.resolve_path(self.bot.log_file)


# ── Parsing ──

def _parse_dict(data: dict, cls, **overrides):
    """Create a dataclass instance from a dict, ignoring unknown keys."""
    field_names = {f.name for f in dataclasses.fields(cls)}
    filtered = {k: v for k, v in data.items() if k in field_names}
    filtered.update(overrides)
    return cls(**filtered)


def _load_settings_from_dict(raw: dict) -> Settings:
    """Parse a raw YAML dict into a Settings dataclass."""
    settings = Settings()

    if isinstance(raw.get("dashboard"), dict):
        settings.dashboard = _parse_dict(raw["dashboard"], DashboardConfig)

    if isinstance(raw.get("registry"), dict):
        reg = _parse_dict(raw["registry"], RegistryConfig)
        reg.timeout_seconds = float(reg.timeout_seconds)
        settings.registry = reg

    if isinstance(raw.get("plugins"), dict):
        settings.plugins = _parse_dict(raw["plugins"], PluginsConfig)

    if isinstance(raw.get("bot"), dict):
        bot_raw = raw["bot"].copy()
        # a single string is split like a shell word list
        if isinstance(bot_raw.get("command"), str):
            bot_raw["command"] = bot_raw["command"].split()
        settings.bot = _parse_dict(bot_raw, BotConfig)

    if isinstance(raw.get("logging"), dict):
        settings.logging = _parse_dict(raw["logging"], LoggingConfig)

    return settings


def _apply_env_overrides(settings: Settings) -> Settings:
    if os.environ.get("BOTDASH_REGISTRY_URL"):
        settings.registry.base_url = os.environ["BOTDASH_REGISTRY_URL"]
    if os.environ.get("BOTDASH_REGISTRY_TIMEOUT"):
        try:
            settings.registry.timeout_seconds = float(os.environ["BOTDASH_REGISTRY_TIMEOUT"])
        except ValueError:
            logger.warning("Ignoring BOTDASH_REGISTRY_TIMEOUT=%r (not a number)",
                           os.environ["BOTDASH_REGISTRY_TIMEOUT"])
    if os.environ.get("BOTDASH_CONFIG_PATH"):
        settings.plugins.config_path = os.environ["BOTDASH_CONFIG_PATH"]
    if os.environ.get("BOTDASH_LOG_LEVEL"):
        settings.logging.level = os.environ["BOTDASH_LOG_LEVEL"].upper()
    return settings


def profile_path() -> Path:
    env = os.environ.get("BOTDASH_PROFILE_PATH")
    return Path(env) if env else _DEFAULT_PROFILE_PATH


def _load_settings() -> Settings:
    """Load settings from YAML. Falls back to defaults if missing or invalid."""
    path = profile_path()

    if not path.exists():
        logger.info("No profile.yaml found at %s, using defaults", path)
        return _apply_env_overrides(Settings())

    try:
        raw = yaml.safe_load(path.read_text()) or {}
        if not isinstance(raw, dict):
            logger.warning("profile.yaml is not a valid YAML mapping, using defaults")
            return _apply_env_overrides(Settings())
        settings = _load_settings_from_dict(raw)
    except (OSError, yaml.YAMLError, TypeError, ValueError) as e:
        logger.error("Failed to load profile.yaml: %s, using defaults", e)
        return _apply_env_overrides(Settings())

    settings = _apply_env_overrides(settings)
    logger.info("Settings loaded: dashboard=%s, registry=%s, config=%s",
                settings.dashboard.name, settings.registry.base_url, settings.config_path)
    return settings


# ── Singleton ──

_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the settings singleton. Loads on first call."""
    global _settings
    if _settings is None:
        _settings = _load_settings()
    return _settings


def reload_settings() -> Settings:
    """Force reload of the settings from disk."""
    global _settings
    _settings = _load_settings()
    return _settings
