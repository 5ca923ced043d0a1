"""Entry point for probegate."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

import uvicorn
from rich.console import Console
from rich.panel import Panel

from probegate.config import settings
from probegate.health.errors import ConfigError, GroupNotFoundError
from probegate.health.groups import CallerContext
from probegate.health.loader import load_engine
from probegate.health.models import Status

console = Console()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)

EXIT_UP = 0
EXIT_NOT_UP = 1
EXIT_MISCONFIGURED = 2


def run_server() -> None:
    """Start the FastAPI server."""
    console.print(Panel("Starting probegate health server", style="bold green"))
    uvicorn.run(
        "probegate.api.server:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )


def run_check(group: str, config: str | None, authorized: bool) -> int:
    """Evaluate one group (or every check when ``group`` is empty) and print the body."""
    try:
        engine = load_engine(settings, Path(config) if config else None)
    except ConfigError as e:
        console.print(f"[bold red]Config error:[/bold red] {e}")
        return EXIT_MISCONFIGURED

    caller = CallerContext(authorized=authorized)
    try:
        if group:
            code, result = asyncio.run(engine.query(group, caller))
        else:
            code, result = asyncio.run(engine.query_root(caller))
    except GroupNotFoundError as e:
        console.print(f"[bold red]{e}[/bold red]")
        return EXIT_MISCONFIGURED
    finally:
        engine.close()

    console.print_json(json.dumps(result.to_dict()))
    console.print(f"[dim]HTTP {code}[/dim]")
    return EXIT_UP if result.status is Status.UP else EXIT_NOT_UP


def main() -> None:
    parser = argparse.ArgumentParser(description="probegate health aggregator")
    sub = parser.add_subparsers(dest="command")

    # Server mode
    sub.add_parser("serve", help="Start the probe HTTP server")

    # One-shot query
    check_parser = sub.add_parser("check", help="Evaluate a health group once")
    check_parser.add_argument("group", nargs="?", default="", help="Group name (omit for all checks)")
    check_parser.add_argument("--config", help="Path to health.yaml")
    check_parser.add_argument("--authorized", action="store_true", help="Treat the caller as authorized")

    args = parser.parse_args()

    if args.command == "serve":
        run_server()
    elif args.command == "check":
        sys.exit(run_check(args.group, args.config, args.authorized))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
