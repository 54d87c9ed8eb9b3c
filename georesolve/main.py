"""Command-line entrypoints for the location resolver."""
from __future__ import annotations

import argparse
import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

try:
    import uvloop
except ImportError:  # pragma: no cover - uvloop optional on some platforms
    uvloop = None

from georesolve.admin import cli as admin_cli
from georesolve.config import DEFAULT_LOGGING_PATH, DEFAULT_SETTINGS_PATH, Settings, load_settings
from georesolve.observability.log import configure_logging
from georesolve.observability.metrics import MetricsRegistry
from georesolve.service import open_resolver


def build_arg_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(prog="georesolve", description="Resolve event locations to coordinates")
    parser.add_argument("--settings", default=str(DEFAULT_SETTINGS_PATH), help="Path to settings TOML")
    sub = parser.add_subparsers(dest="command", required=True)

    resolve = sub.add_parser("resolve", help="Resolve one or more location strings")
    resolve.add_argument("queries", nargs="*", help="Addresses or 'lat,lon' pairs")
    resolve.add_argument("--file", help="Read additional queries from a file, one per line")
    resolve.add_argument("--no-metrics", action="store_true", help="Skip writing the metrics export")
    resolve.add_argument("--run-id", help="Name for the metrics export; defaults to a UTC timestamp")

    admin_cli.add_cache_commands(sub, prefix="cache-")
    return parser


def read_queries(args: argparse.Namespace) -> List[str]:
    queries = list(args.queries or [])
    if args.file:
        lines = Path(args.file).read_text(encoding="utf-8").splitlines()
        queries.extend(line for line in lines if line.strip())
    return queries


async def run_resolve(args: argparse.Namespace, settings: Settings) -> Dict[str, Dict[str, float]]:
    """Resolve the requested queries and export run metrics."""
    queries = read_queries(args)
    if not queries:
        return {}
    metrics = MetricsRegistry()
    async with open_resolver(settings, metrics=metrics) as resolver:
        results = await resolver.resolve_batch(queries)
    if not getattr(args, "no_metrics", False):
        run_id = args.run_id or datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
        metrics.export(path=settings.app.metrics_dir / f"resolve_{run_id}.json", run_id=run_id)
    return {query: coordinate.as_dict() for query, coordinate in results.items()}


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI."""
    load_dotenv()
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    configure_logging(DEFAULT_LOGGING_PATH)
    try:
        settings = load_settings(Path(args.settings))
    except ValueError as exc:
        raise SystemExit(f"Failed to load settings: {exc}")

    if args.command == "resolve":
        if uvloop is not None:
            uvloop.install()
        resolved = asyncio.run(run_resolve(args, settings))
        print(json.dumps(resolved, indent=2, ensure_ascii=False))
        return

    command = args.command.removeprefix("cache-")
    admin_cli.COMMANDS[command](args, settings)


if __name__ == "__main__":
    main()
