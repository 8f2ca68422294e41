"""
Configuration — derived constants for the dashboard backend.
All operator-configurable values come from profile.yaml via get_settings().
Protocol details of the registry and the API remain as code constants.
"""

from settings import get_settings

_settings = get_settings()

# ── Dashboard ──
APP_NAME = _settings.dashboard.name
APP_VERSION = "1.0.0"
BIND_HOST = _settings.dashboard.host
BIND_PORT = _settings.dashboard.port
CORS_ORIGINS = _settings.dashboard.cors_origins

# ── Logs API ──
DEFAULT_LOG_LIMIT = 100
MAX_LOG_LIMIT = 5000

# ── Logging ──
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
