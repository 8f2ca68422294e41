#!/usr/bin/env python3
"""
Bot Dashboard — Interactive Setup Wizard.

Generates profile.yaml for a fresh installation and checks that the plugin
registry is reachable.
Run: python scripts/setup.py
"""

import shlex
from pathlib import Path

import httpx
import yaml

PROJECT_ROOT = Path(__file__).parent.parent
PROFILE_PATH = PROJECT_ROOT / "profile.yaml"
DEFAULT_REGISTRY = "https://raw.githubusercontent.com/Celarye/discord-bot-plugins/refs/heads/master"


def _input(prompt: str, default: str = "") -> str:
    suffix = f" [{default}]" if default else ""
    result = input(f"{prompt}{suffix}: ").strip()
    return result or default


def _yes_no(prompt: str, default: bool = False) -> bool:
    suffix = " [Y/n]" if default else " [y/N]"
    result = input(f"{prompt}{suffix}: ").strip().lower()
    if not result:
        return default
    return result in ("y", "yes")


def probe_registry(base_url: str, timeout: float = 5.0) -> list[str]:
    """Return the plugin names the registry lists, or [] if it cannot be read."""
    url = f"{base_url.rstrip('/')}/plugins.json"
    try:
        resp = httpx.get(url, timeout=timeout)
        resp.raise_for_status()
        payload = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        print(f"  Could not read {url}: {e}")
        return []
    if not isinstance(payload, dict):
        return []
    plugins = payload.get("plugins") if isinstance(payload.get("plugins"), dict) else payload
    return sorted(plugins)


def build_profile(name: str, host: str, port: int, registry_url: str, timeout: float,
                  config_path: str, bot_command: list[str], working_dir: str,
                  log_level: str = "INFO") -> dict:
    return {
        "dashboard": {
            "name": name,
            "host": host,
            "port": port,
            "cors_origins": [
                "http://localhost:3000",
                "http://127.0.0.1:3000",
                f"http://localhost:{port}",
                f"http://127.0.0.1:{port}",
            ],
        },
        "registry": {
            "base_url": registry_url,
            "timeout_seconds": timeout,
        },
        "plugins": {
            "config_path": config_path,
            "schema_version": "1.0.0",
        },
        "bot": {
            "command": bot_command,
            "working_dir": working_dir,
            "pid_file": "bot.pid",
            "log_file": "logs/bot.log",
        },
        "logging": {
            "level": log_level,
        },
    }


def main():
    print("=" * 60)
    print("  Bot Dashboard — Setup Wizard")
    print("=" * 60)
    print()

    # Step 1: Dashboard
    print("Step 1: Dashboard")
    print("-" * 40)
    name = _input("Dashboard name", "Bot Dashboard")
    host = _input("Bind host", "127.0.0.1")
    port = int(_input("Port", "8000"))
    print()

    # Step 2: Registry
    print("Step 2: Plugin Registry")
    print("-" * 40)
    registry_url = _input("Registry base URL", DEFAULT_REGISTRY)
    timeout = float(_input("Request timeout (seconds)", "10"))
    print(f"  Probing {registry_url}...", end=" ")
    available = probe_registry(registry_url, timeout=timeout)
    if available:
        print(f"found {len(available)} plugin(s)")
    elif not _yes_no("  Registry not reachable. Keep this URL anyway?", default=True):
        registry_url = DEFAULT_REGISTRY
    print()

    # Step 3: Bot process
    print("Step 3: Bot Process")
    print("-" * 40)
    working_dir = _input("Bot working directory", str(PROJECT_ROOT))
    bot_command = shlex.split(_input("Bot command", "./discord-bot"))
    config_path = _input("Plugin configuration file (relative to working dir)", "config.yaml")
    print()

    profile = build_profile(name, host, port, registry_url, timeout,
                            config_path, bot_command, working_dir)

    # Write profile.yaml
    print("=" * 60)
    print("  Writing configuration...")
    print("-" * 40)
    if PROFILE_PATH.exists() and not _yes_no(f"  {PROFILE_PATH} exists. Overwrite?"):
        print("  Aborted, nothing written.")
        return
    PROFILE_PATH.write_text(yaml.dump(profile, default_flow_style=False, sort_keys=False))
    print(f"  Profile written to {PROFILE_PATH}")

    print()
    print("=" * 60)
    print("  Setup complete!")
    print()
    print(f"  Registry: {registry_url}")
    print(f"  Bot: {' '.join(bot_command)} (in {working_dir})")
    print()
    print("  To start the server:")
    print("    cd backend && python main.py")
    print("=" * 60)


if __name__ == "__main__":
    main()
