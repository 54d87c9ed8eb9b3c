"""Administrative commands for the geocode cache."""
from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
from typing import List, Optional

from georesolve.config import DEFAULT_LOGGING_PATH, DEFAULT_SETTINGS_PATH, Settings, load_settings
from georesolve.observability.log import configure_logging
from georesolve.service import build_cache


async def _stats(settings: Settings) -> dict:
    async with build_cache(settings) as cache:
        return cache.stats().as_dict()


async def _clear(settings: Settings) -> dict:
    cache = build_cache(settings)
    await cache.clear()
    return {"path": str(cache.path), "size": 0}


async def _prune(settings: Settings) -> dict:
    async with build_cache(settings) as cache:
        removed = await cache.prune()
        return {"path": str(cache.path), "removed": removed, "size": cache.stats().size}


def cmd_stats(args: argparse.Namespace, settings: Settings) -> None:
    stats = asyncio.run(_stats(settings))
    if not getattr(args, "verbose", False):
        stats = {"size": stats["size"]}
    print(json.dumps(stats, indent=2, ensure_ascii=False))


def cmd_clear(args: argparse.Namespace, settings: Settings) -> None:
    print(json.dumps(asyncio.run(_clear(settings)), indent=2))


def cmd_prune(args: argparse.Namespace, settings: Settings) -> None:
    print(json.dumps(asyncio.run(_prune(settings)), indent=2))


COMMANDS = {
    "stats": cmd_stats,
    "clear": cmd_clear,
    "prune": cmd_prune,
}


def add_cache_commands(sub: argparse._SubParsersAction, *, prefix: str = "") -> None:
    """Register the cache administration subcommands on ``sub``."""
    stats = sub.add_parser(f"{prefix}stats", help="Show the number of cached locations")
    stats.add_argument("--verbose", action="store_true", help="Also list every cached location")
    sub.add_parser(f"{prefix}clear", help="Remove every cached location and tombstone")
    sub.add_parser(f"{prefix}prune", help="Drop entries older than the configured TTLs")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="georesolve.admin.cli", description="Geocode cache administration")
    parser.add_argument("--settings", default=str(DEFAULT_SETTINGS_PATH), help="Path to settings TOML")
    sub = parser.add_subparsers(dest="command", required=True)
    add_cache_commands(sub)
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    configure_logging(DEFAULT_LOGGING_PATH)
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = load_settings(Path(args.settings))
    except ValueError as exc:
        raise SystemExit(f"Failed to load settings: {exc}")
    COMMANDS[args.command](args, settings)


if __name__ == "__main__":
    main()
