#!/usr/bin/env python3
"""
botdash-plugins — manage installed bot plugins from the command line.

Works on the same configuration document and registry as the dashboard API.

Usage:
    botdash-plugins list
    botdash-plugins show NAME
    botdash-plugins latest NAME
    botdash-plugins add NAME VERSION [--env K=V] [--setting K=V] [--disabled] [--dep NAME[@VERSION]]
    botdash-plugins update NAME [--env K=V] [--clear-env] [--setting K=V] [--clear-settings] [--enable|--disable]
    botdash-plugins remove NAME

Exit codes:
    0 = operation succeeded
    1 = operation failed (message on stderr, or in the JSON body with --json)
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

import yaml

from config import LOG_DATEFMT, LOG_FORMAT
from plugins.errors import InvalidRequest, PluginManagerError
from plugins.reconciler import PluginReconciler
from plugins.records import OperationResult
from plugins.registry import RegistryClient
from plugins.store import ConfigStore
from settings import get_settings


# ── Argument parsing ──

def _scalar(text: str):
    """Read ``text`` as a YAML bool, int, float or string; anything else stays literal."""
    if not text:
        return ""
    try:
        value = yaml.safe_load(text)
    except yaml.YAMLError:
        return text
    if isinstance(value, (bool, int, float, str)):
        return value
    return text


def _pairs(values: Optional[list[str]], typed: bool) -> dict:
    """Turn ``K=V`` arguments into a dict. ``typed`` reads values as YAML scalars."""
    out = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise InvalidRequest(f"Expected KEY=VALUE, got {item!r}")
        out[key.strip()] = _scalar(value) if typed else value
    return out


def _deps(values: Optional[list[str]]) -> Optional[list[dict]]:
    if not values:
        return None
    deps = []
    for item in values:
        name, _, version = item.partition("@")
        dep = {"name": name}
        if version:
            dep["version"] = version
        deps.append(dep)
    return deps


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="botdash-plugins",
                                     description="Manage installed bot plugins")
    parser.add_argument("--config", help="Plugin configuration file (default: from profile.yaml)")
    parser.add_argument("--registry-url", help="Registry base URL (default: from profile.yaml)")
    parser.add_argument("--json", action="store_true", help="JSON output")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List installed plugins")

    p = sub.add_parser("show", help="Show one installed plugin")
    p.add_argument("name")

    p = sub.add_parser("latest", help="Latest installable registry version of a plugin")
    p.add_argument("name")

    p = sub.add_parser("add", help="Install a plugin and its dependencies")
    p.add_argument("name")
    p.add_argument("version")
    p.add_argument("--env", action="append", metavar="K=V", help="Environment variable")
    p.add_argument("--setting", action="append", metavar="K=V", help="Setting (YAML scalar value)")
    p.add_argument("--disabled", action="store_true", help="Install disabled")
    p.add_argument("--dep", action="append", metavar="NAME[@VERSION]", help="Declared dependency")

    p = sub.add_parser("update", help="Change an installed plugin")
    p.add_argument("name")
    p.add_argument("--env", action="append", metavar="K=V", help="Merge an environment variable")
    p.add_argument("--clear-env", action="store_true", help="Remove all environment variables")
    p.add_argument("--setting", action="append", metavar="K=V", help="Merge a setting")
    p.add_argument("--clear-settings", action="store_true", help="Remove all settings")
    toggle = p.add_mutually_exclusive_group()
    toggle.add_argument("--enable", dest="enabled", action="store_const", const=True)
    toggle.add_argument("--disable", dest="enabled", action="store_const", const=False)

    p = sub.add_parser("remove", help="Remove a plugin and the plugins installed as its dependencies")
    p.add_argument("name")

    return parser


# ── Commands ──

def _update_payload(args) -> dict:
    updates = {}
    if args.clear_env:
        updates["environment"] = None
    elif args.env:
        updates["environment"] = _pairs(args.env, typed=False)
    if args.clear_settings:
        updates["settings"] = None
    elif args.setting:
        updates["settings"] = _pairs(args.setting, typed=True)
    if args.enabled is not None:
        updates["enabled"] = args.enabled
    return updates


async def run_command(args, reconciler: PluginReconciler, registry: RegistryClient) -> dict:
    """Execute one parsed command and return its wire-form result."""
    try:
        if args.command == "list":
            return (await reconciler.get_config()).to_dict()
        if args.command == "show":
            return (await reconciler.get_plugin(args.name)).to_dict()
        if args.command == "latest":
            version = await registry.resolve_latest_version(args.name)
            if version is None:
                return {"success": False, "name": args.name,
                        "error": f"No installable version of {args.name} in the registry",
                        "errorKind": "NotFound"}
            return {"success": True, "name": args.name, "version": version}
        if args.command == "add":
            result = await reconciler.add_plugin(
                args.name, args.version,
                environment=_pairs(args.env, typed=False) or None,
                settings=_pairs(args.setting, typed=True) or None,
                enabled=False if args.disabled else None,
                dependencies=_deps(args.dep),
            )
            return result.to_dict()
        if args.command == "update":
            return (await reconciler.update_plugin(args.name, _update_payload(args))).to_dict()
        if args.command == "remove":
            return (await reconciler.remove_plugin(args.name)).to_dict()
    except PluginManagerError as e:
        return OperationResult.failure(e).to_dict()
    raise ValueError(f"Unknown command: {args.command}")


def _print_human(args, result: dict):
    if not result.get("success"):
        print(f"Error: {result.get('error', 'operation failed')}", file=sys.stderr)
        return
    if args.command == "list":
        plugins = (result.get("config") or {}).get("plugins") or {}
        if not plugins:
            print("No plugins installed.")
            return
        for name, rec in plugins.items():
            state = "enabled" if rec.get("enabled", True) else "disabled"
            line = f"  {name:<28s} {rec.get('version', '?'):<12s} {state}"
            if rec.get("is_dependency"):
                line += f"  (dependency of {rec.get('dependent_plugin')})"
            print(line)
        print(f"{len(plugins)} plugin(s)")
    elif args.command == "show":
        print(yaml.safe_dump(result["plugin"], sort_keys=False, default_flow_style=False).rstrip())
    elif args.command == "latest":
        print(f"{result['name']} {result['version']}")
    else:
        print(result.get("message", "OK"))
        if result.get("dependenciesInstalled"):
            print(f"  dependencies installed: {result['dependenciesInstalled']}")


async def _main_async(args) -> dict:
    settings = get_settings()
    store = ConfigStore(args.config or settings.config_path,
                        schema_version=settings.plugins.schema_version)
    async with RegistryClient(base_url=args.registry_url or settings.registry.base_url,
                              timeout=settings.registry.timeout_seconds) as registry:
        return await run_command(args, PluginReconciler(store, registry), registry)


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )
    result = asyncio.run(_main_async(args))
    if args.json:
        print(json.dumps(result, indent=2))
    else:
        _print_human(args, result)
    return 0 if result.get("success") else 1


if __name__ == "__main__":
    sys.exit(main())
