#!/usr/bin/env python3
"""
PixFeed - Feed Image Collector
==============================

Main application entry point with CLI interface.

Usage:
    python main.py --help                    # Show all commands
    python main.py check-config              # Validate configuration
    python main.py run-once                  # Fetch the feed and run one cycle
    python main.py serve                     # Poll on the configured interval
    python main.py sweep --cap 1048576       # Run only the retention sweep
"""

import signal
import sys
import logging
import threading
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from pixfeed.config.settings import get_settings
from pixfeed.ingestion.feed_source import FeedSource
from pixfeed.scheduler.poller import PollingService
from pixfeed.scheduler.run_cycle import RunCycle, CycleResult
from pixfeed.storage.retention import RetentionSweeper
from pixfeed.utils.logging import configure_application_logging, get_logger_for_component
from pixfeed.utils.exceptions import PixFeedError, FeedFetchError, get_user_friendly_message
from pixfeed.utils.process_lock import lock_for_storage_dir

console = Console()
logger = logging.getLogger(__name__)


def _load(ctx):
    """Load settings and configure logging once per invocation."""
    if "settings" not in ctx.obj:
        settings = get_settings()
        configure_application_logging(
            log_level="DEBUG" if ctx.obj.get("debug") else settings.get_effective_log_level(),
            log_file=settings.logging.file_path,
            enable_console=settings.logging.console_logging,
            structured_logging=settings.logging.structured_logging,
            max_file_size=settings.logging.max_file_size_mb * 1024 * 1024,
            backup_count=settings.logging.backup_count,
        )
        ctx.obj["settings"] = settings
    return ctx.obj["settings"]


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, debug):
    """PixFeed - download feed images into a size-capped directory."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.pass_context
def check_config(ctx):
    """Validate configuration and environment variables."""
    console.print("[bold blue]🔧 Checking PixFeed Configuration[/bold blue]")

    try:
        settings = get_settings()
    except PixFeedError as e:
        console.print(f"[bold red]❌ Configuration error: {e}[/bold red]")
        sys.exit(1)

    table = Table(title="Configuration Status")
    table.add_column("Component", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Details")

    checks = [
        ("Feed", _check_feed_config),
        ("Storage", _check_storage_config),
        ("Logging", _check_logging_config),
    ]

    all_passed = True
    for name, check_func in checks:
        status, details = check_func(settings)
        table.add_row(name, "✅ Valid" if status else "❌ Invalid", details)
        all_passed = all_passed and status

    console.print(table)

    if all_passed:
        console.print("[bold green]✅ All configuration checks passed![/bold green]")
        sys.exit(0)
    console.print("[bold red]❌ Configuration validation failed[/bold red]")
    sys.exit(1)


@cli.command()
@click.pass_context
def run_once(ctx):
    """Fetch the feed and run a single download + cleanup cycle."""
    settings = _load(ctx)
    console.print(f"[bold blue]📡 Fetching feed: {settings.feed.url}[/bold blue]")

    source = FeedSource()
    try:
        source.fetch()
    except FeedFetchError as e:
        console.print(f"[bold red]❌ {get_user_friendly_message(e)}[/bold red]")
        sys.exit(1)

    result = RunCycle().run(source.entries)
    _print_cycle(result)


@cli.command()
@click.pass_context
def serve(ctx):
    """Poll the feed on the configured interval until interrupted."""
    settings = _load(ctx)
    log = get_logger_for_component("service")

    lock = lock_for_storage_dir(settings.storage.directory)
    if not lock.acquire():
        pid = lock.holder_pid()
        console.print(
            f"[bold red]❌ Another poller is using {settings.storage.directory}"
            f"{f' (PID: {pid})' if pid else ''}[/bold red]"
        )
        sys.exit(1)

    stop_event = threading.Event()
    service = PollingService(
        FeedSource(),
        RunCycle(),
        interval_seconds=settings.feed.poll_interval_seconds,
        stop_event=stop_event,
    )

    def _request_stop(signum, frame):
        log.info(f"Received signal {signum}")
        service.stop()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    console.print(f"🕐 PixFeed polling {settings.feed.url} "
                  f"every {settings.feed.poll_interval_seconds}s. Press Ctrl+C to stop.")
    try:
        service.start()
    except FeedFetchError as e:
        log.critical(f"Initial feed fetch failed: {e}", extra=e.to_dict())
        console.print(f"[bold red]❌ {get_user_friendly_message(e)}[/bold red]")
        sys.exit(1)
    finally:
        lock.release()

    console.print("[yellow]👋 PixFeed stopped[/yellow]")


@cli.command()
@click.option('--cap', type=int, default=None, help='Retention cap in bytes (default from config)')
@click.pass_context
def sweep(ctx, cap):
    """Run only the retention sweep over the storage directory."""
    settings = _load(ctx)
    cap_bytes = cap if cap is not None else settings.storage.max_total_bytes

    try:
        result = RetentionSweeper().sweep(settings.storage.directory, cap_bytes)
    except PixFeedError as e:
        console.print(f"[bold red]❌ Cleanup failed: {e}[/bold red]")
        sys.exit(1)

    console.print(
        f"Total size {result.total_size} bytes, cap {cap_bytes} bytes, "
        f"removed {result.removed_count} files"
    )
    for name in sorted(result.removed):
        console.print(f"  🗑️  {name}")
    for name, error in result.failed.items():
        console.print(f"  [red]❌ {name}: {error}[/red]")


def _print_cycle(result: CycleResult) -> None:
    table = Table(title="Run Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Stored", str(len(result.stored)))
    table.add_row("Skipped", str(result.skipped))
    table.add_row("Errors", str(len(result.errors)))
    if result.sweep is not None:
        table.add_row("Storage Size", f"{result.sweep.total_size} bytes")
        table.add_row("Removed", str(result.sweep.removed_count))
    table.add_row("Duration", f"{result.duration_seconds:.2f}s")
    console.print(table)

    for error in result.errors:
        console.print(f"  [red]❌ {error['stage']}: {error['error']}[/red]")


# Helper functions for configuration checks
def _check_feed_config(settings) -> tuple[bool, str]:
    return True, f"URL: {settings.feed.url}, every {settings.feed.poll_interval_seconds}s"


def _check_storage_config(settings) -> tuple[bool, str]:
    path = Path(settings.storage.directory)
    if not path.is_dir():
        return False, f"Missing directory: {path}"
    return True, f"Path: {path}, cap: {settings.storage.max_total_bytes} bytes"


def _check_logging_config(settings) -> tuple[bool, str]:
    return True, f"Level: {settings.logging.level.value}, Console: {settings.logging.console_logging}"


if __name__ == "__main__":
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 PixFeed interrupted by user[/yellow]")
        sys.exit(130)
