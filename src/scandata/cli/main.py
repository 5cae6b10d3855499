"""Main CLI entry point for scandata.

Provides commands to inspect and refresh the local reference data cache.
"""

import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional

import click
from filelock import FileLock, Timeout
from rich.console import Console
from rich.table import Table

from scandata.cache import BundleCache, CacheConfig, CacheError, CacheLockError
from scandata.cache.config import get_global_config
from scandata.output import Reporter


def build_cache(
    config_path: Optional[str] = None,
    cache_dir: Optional[str] = None,
    archive: Optional[str] = None,
) -> BundleCache:
    """Create the bundle cache from CLI options.

    Priority:
    1. Explicit --cache-dir/--archive flags
    2. --config file
    3. Global configuration (~/.scandata/config.json, then SCANDATA_* env vars)

    Raises:
        click.ClickException: If the config file cannot be loaded
    """
    if config_path:
        try:
            config = CacheConfig.load(Path(config_path))
        except (OSError, ValueError, TypeError) as e:
            raise click.ClickException(f"Invalid config {config_path}: {e}")
    else:
        config = get_global_config()

    return BundleCache(config, cache_dir=cache_dir, archive_path=archive)


def lock_path_for(cache_dir: Path) -> Path:
    """Lock file guarding refreshes of a cache directory.

    The lock sits beside the cache directory so it survives the directory
    being created or emptied.
    """
    return cache_dir.parent / f".{cache_dir.name}.lock"


def locked_refresh(cache: BundleCache, timeout: int):
    """Refresh the cache while holding the advisory refresh lock.

    Raises:
        CacheLockError: If another process holds the lock past ``timeout``
    """
    lock_path = lock_path_for(cache.cache_dir)
    lock_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with FileLock(lock_path, timeout=timeout):
            return cache.refresh()
    except Timeout as e:
        raise CacheLockError(
            f"Timeout acquiring refresh lock after {timeout} seconds", lock_path
        ) from e


def _format_age(delta: Optional[timedelta]) -> str:
    if delta is None:
        return "never"
    seconds = int(delta.total_seconds())
    days, seconds = divmod(seconds, 86400)
    hours, seconds = divmod(seconds, 3600)
    if days:
        return f"{days}d {hours}h"
    return f"{hours}h {seconds // 60}m"


@click.group()
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False),
    help="Data cache directory (default: ~/.scandata/data or SCANDATA_CACHE_DIR)",
)
@click.option(
    "--archive",
    type=click.Path(dir_okay=False),
    help="Local data bundle archive (default: ~/.scandata/data.zip or SCANDATA_ARCHIVE)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help="Path to a JSON cache configuration file",
)
@click.option("--no-color", is_flag=True, help="Disable coloured output")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, cache_dir, archive, config_path, no_color, verbose):
    """scandata CLI - Inspect and refresh the scanner's reference data.

    The exit code is the number of warnings and critical errors reported.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    ctx.ensure_object(dict)
    ctx.obj["cache"] = build_cache(config_path, cache_dir, archive)
    ctx.obj["reporter"] = Reporter(color=not no_color)


@cli.result_callback()
@click.pass_context
def finish(ctx, result, **kwargs):
    """Exit with the number of reported problems."""
    ctx.exit(min(ctx.obj["reporter"].exit_code, 255))


@cli.command("status")
@click.pass_context
def status(ctx):
    """Show the state of the data cache.

    Example:
        scandata status
    """
    cache: BundleCache = ctx.obj["cache"]
    reporter: Reporter = ctx.obj["reporter"]

    info = cache.get_status()

    table = Table(title=f"Data cache ({info['cache_dir']})")
    table.add_column("File", style="cyan", no_wrap=True)
    table.add_column("Present", justify="center")
    for name, present in info["files"].items():
        table.add_row(name, "[green]✓[/green]" if present else "[red]✗[/red]")

    console: Console = reporter.console
    console.print(table)

    if info["last_update"]:
        age = _format_age(timedelta(seconds=max(0, info["age_seconds"])))
        reporter.echo(
            reporter.notice(f"Last update: {info['last_update']} ({age} ago)")
        )
    else:
        reporter.echo(reporter.notice("Last update: never"))
    reporter.echo(reporter.notice(f"State: {info['state']}"))
    if info["stale_in_seconds"] is not None:
        age = _format_age(timedelta(seconds=info["stale_in_seconds"]))
        reporter.echo(reporter.notice(f"Stale in: {age}"))

    if info["needs_refresh"]:
        reporter.echo(reporter.warning("The data cache needs to be refreshed"))


@cli.command("check")
@click.pass_context
def check(ctx):
    """Report whether the data cache needs a refresh.

    Exits with status 1 when a refresh is needed.

    Example:
        scandata check || scandata refresh
    """
    cache: BundleCache = ctx.obj["cache"]
    reporter: Reporter = ctx.obj["reporter"]

    if not cache.is_complete():
        missing = ", ".join(cache.missing_files())
        reporter.echo(reporter.warning(f"Missing data files: {missing}"))
    elif cache.is_stale():
        reporter.echo(reporter.warning("The data cache is out of date"))
    else:
        reporter.echo(reporter.info("The data cache is up to date"))


@cli.command("refresh")
@click.option(
    "--force", "-f", is_flag=True, help="Refresh even if the cache is up to date"
)
@click.pass_context
def refresh(ctx, force):
    """Refresh the data cache from the local bundle archive.

    Downloading a new archive is not handled here; when no local archive is
    available the command reports an error.

    Example:
        scandata refresh
        scandata --archive ./data.zip refresh --force
    """
    cache: BundleCache = ctx.obj["cache"]
    reporter: Reporter = ctx.obj["reporter"]

    if not force and not cache.needs_refresh():
        reporter.echo(reporter.info("The data cache is up to date"))
        return

    if not cache.archive_available():
        reporter.echo(
            reporter.critical(
                f"No local data archive at {cache.archive_path}, a remote update is required"
            )
        )
        return

    reporter.echo(reporter.notice(f"Extracting {cache.archive_path}"))
    try:
        extracted = locked_refresh(cache, cache.config.lock_timeout)
    except CacheError as e:
        reporter.echo(reporter.critical(f"Refresh failed: {e}"))
        return

    for path in extracted:
        reporter.echo(reporter.info(f"Extracted: {path.name}"))

    missing = cache.missing_files()
    if missing:
        reporter.echo(
            reporter.warning(f"Archive did not provide: {', '.join(missing)}")
        )
    else:
        reporter.echo(reporter.info(f"Data cache refreshed in {cache.cache_dir}"))


if __name__ == "__main__":
    cli()
