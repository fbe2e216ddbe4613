"""Entry point for the check runner — `checkrunner` console script."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

import uvicorn
from rich.console import Console
from rich.panel import Panel

from .config import settings
from .errors import CheckRunnerError
from .service import RunnerService

console = Console()


def _configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )


def _banner(mode: str) -> None:
    console.print(
        Panel.fit(
            f"[bold]Check Runner[/bold] ({mode})\n"
            f"Web API:  {settings.api_host}:{settings.api_port}\n"
            f"Folder:   {settings.ansible_folder}\n"
            f"Interval: {settings.interval}s",
            title="checkrunner",
            border_style="green",
        )
    )


def run_server() -> None:
    """HTTP surface + runner loop."""
    _banner(f"serve on {settings.runner_host}:{settings.runner_port}")
    uvicorn.run(
        "checkrunner.api.app:create_app",
        factory=True,
        host=settings.runner_host,
        port=settings.runner_port,
        log_level=settings.log_level.lower(),
    )


async def _run_loop_only() -> None:
    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown.set)
        except NotImplementedError:  # Windows
            pass
    await RunnerService(settings).start(shutdown)


def run_loop() -> int:
    """Runner loop only, until SIGINT/SIGTERM."""
    _banner("loop")
    try:
        asyncio.run(_run_loop_only())
    except CheckRunnerError as e:
        console.print(f"[red]Runner failed to start:[/red] {e}")
        return 1
    return 0


def run_catalog() -> int:
    """Build the checks catalog once and exit."""
    runner = RunnerService(settings)
    with console.status("[bold green]Building checks catalog..."):
        try:
            runner.build_catalog()
        except CheckRunnerError as e:
            console.print(f"[red]Catalog build failed:[/red] {e}")
            return 1
    console.print(f"[green]Catalog written to {runner.catalog_file}[/green]")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Fleet check runner")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Start the HTTP API and the runner loop")
    sub.add_parser("start", help="Start the runner loop without the HTTP API")
    sub.add_parser("catalog", help="Build the checks catalog once and exit")

    args = parser.parse_args()
    _configure_logging()

    if args.command == "serve":
        run_server()
    elif args.command == "start":
        sys.exit(run_loop())
    elif args.command == "catalog":
        sys.exit(run_catalog())
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
