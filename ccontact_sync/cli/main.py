"""
Command-line interface for ccontact_sync.

Provides CLI commands for keeping a Constant Contact account in step with
race registrations: caching remote contacts, reconciling an entrant export,
bulk loading and list cleanup.

Usage:
    # Show help
    ccontact-sync --help

    # Refresh the local contact cache
    ccontact-sync contacts

    # Reconcile the latest export in the downloads directory
    ccontact-sync update
    ccontact-sync update --refresh
    ccontact-sync update --file downloads/entrants.xlsx

    # Remove every non-reserved list
    ccontact-sync lists --prune --dry-run
"""

import signal
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, NoReturn

import click

from ccontact_sync import __version__
from ccontact_sync.api.client import ConstantContactClient
from ccontact_sync.api.errors import ConstantContactError
from ccontact_sync.config.loader import ConfigError, ConfigLoader
from ccontact_sync.config.settings import Settings
from ccontact_sync.sources.exports import ExportError, download_export, latest_export
from ccontact_sync.sources.spreadsheet import SpreadsheetError, load_registrations
from ccontact_sync.storage.cache import CacheError, ContactCache
from ccontact_sync.sync.engine import ReconciliationEngine, ReconciliationError
from ccontact_sync.sync.lists import prune_lists, removable_lists
from ccontact_sync.utils import resolve_config_dir, resolve_config_file
from ccontact_sync.utils.logging import cleanup_old_logs, get_logger, setup_logging

# Errors a command reports and turns into exit status 1
COMMAND_ERRORS = (
    ConstantContactError,
    ConfigError,
    CacheError,
    ReconciliationError,
    SpreadsheetError,
    ExportError,
)


def fail(message: str) -> NoReturn:
    """Print an error in red and exit with status 1."""
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    sys.exit(1)


@contextmanager
def cancel_on_interrupt() -> Iterator[threading.Event]:
    """
    Yield an event that is set on SIGINT or SIGTERM.

    The previous handlers are restored on exit. Outside the main thread no
    handler can be installed and the event is only a placeholder.
    """
    cancel_event = threading.Event()

    def _handler(signum: int, frame: object) -> None:
        signal_name = signal.Signals(signum).name
        get_logger(__name__).warning(f"Received {signal_name}, cancelling...")
        cancel_event.set()

    if threading.current_thread() is not threading.main_thread():
        yield cancel_event
        return

    original_sigint = signal.signal(signal.SIGINT, _handler)
    original_sigterm = signal.signal(signal.SIGTERM, _handler)
    try:
        yield cancel_event
    finally:
        signal.signal(signal.SIGINT, original_sigint)
        signal.signal(signal.SIGTERM, original_sigterm)


def build_engine(settings: Settings) -> ReconciliationEngine:
    """Create the engine for a command; credentials are read here."""
    client = ConstantContactClient(settings.client_config())
    return ReconciliationEngine(
        client=client,
        cache=ContactCache(settings.cache_file),
        registered_list_id=settings.registered_list_id,
        unregistered_list_id=settings.unregistered_list_id,
    )


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="ccontact-sync")
@click.option(
    "--verbose", "-v", is_flag=True, help="Enable verbose output with detailed logging."
)
@click.option(
    "--config-dir",
    "-c",
    type=click.Path(exists=False, file_okay=False, dir_okay=True),
    envvar="CCONTACT_SYNC_CONFIG_DIR",
    help="Configuration directory path (default: ~/.ccontact-sync).",
)
@click.option(
    "--config-file",
    "-f",
    type=click.Path(exists=False, file_okay=True, dir_okay=False),
    envvar="CCONTACT_SYNC_CONFIG_FILE",
    help="Configuration file path (default: <config-dir>/config.yaml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    config_dir: str | None,
    config_file: str | None,
) -> None:
    """
    Constant Contact registration sync.

    Keeps the contacts of a Constant Contact account in step with the
    registrations of a race. API credentials are read from the CC_API_KEY
    and CC_ACCESS_TOKEN environment variables.
    """
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help(), err=True)
        fail("no command given")

    ctx.ensure_object(dict)

    resolved_config_dir = resolve_config_dir(config_dir)
    resolved_config_file = resolve_config_file(resolved_config_dir, config_file)
    ctx.obj["config_dir"] = resolved_config_dir
    ctx.obj["config_file"] = resolved_config_file

    config: dict[str, Any] = {}
    try:
        loader = ConfigLoader(config_dir=resolved_config_dir)
        config = loader.load_from_file(resolved_config_file)
        if config:
            loader.validate(config)
    except ConfigError as e:
        fail(f"Configuration error: {e}")

    ctx.obj["config"] = config
    ctx.obj["settings"] = Settings.from_config(config)

    # CLI flag takes precedence over config file
    effective_verbose = verbose or config.get("verbose", False)
    ctx.obj["verbose"] = effective_verbose

    log_dir = (
        Path(config["log_dir"]).expanduser()
        if config.get("log_dir")
        else resolved_config_dir / "logs"
    )
    setup_logging(verbose=effective_verbose, log_dir=log_dir, enable_file_logging=True)

    log_retention = config.get("log_retention_count", 10)
    if log_retention > 0:
        cleanup_old_logs(log_dir=log_dir, keep_count=log_retention)


# =============================================================================
# Lists Command
# =============================================================================


@cli.command("lists")
@click.option("--prune", is_flag=True, help="Delete every non-reserved list.")
@click.option(
    "--dry-run", is_flag=True, help="With --prune, show what would be deleted."
)
@click.pass_context
def lists_command(ctx: click.Context, prune: bool, dry_run: bool) -> None:
    """
    Show the lists that are not reserved.

    The registered and unregistered lists are never shown or deleted.

    Examples:

        # Show removable lists
        ccontact-sync lists

        # Delete them
        ccontact-sync lists --prune
    """
    logger = get_logger(__name__)
    settings: Settings = ctx.obj["settings"]

    try:
        client = ConstantContactClient(settings.client_config())
        with cancel_on_interrupt() as cancel_event:
            if prune:
                targets = prune_lists(
                    client,
                    settings.reserved_list_ids,
                    dry_run=dry_run,
                    cancel_event=cancel_event,
                )
            else:
                lists, _ = client.lists.get_all(cancel_event)
                targets = removable_lists(lists, settings.reserved_list_ids)
    except COMMAND_ERRORS as e:
        logger.error(f"Failed to list lists: {e}")
        fail(str(e))

    for lst in targets:
        click.echo(f"{lst.name} [{lst.id}]: {lst.status}")

    if prune:
        verb = "Would delete" if dry_run else "Deleted"
        click.echo(f"{verb} {len(targets)} list(s)")


# =============================================================================
# Contacts Command
# =============================================================================


@cli.command("contacts")
@click.pass_context
def contacts_command(ctx: click.Context) -> None:
    """
    Refresh the local contact cache.

    Fetches every page of remote contacts and replaces the cache file.
    """
    logger = get_logger(__name__)
    settings: Settings = ctx.obj["settings"]

    try:
        engine = build_engine(settings)
        with cancel_on_interrupt() as cancel_event:
            mapping = engine.refresh_cache(cancel_event)
    except COMMAND_ERRORS as e:
        logger.error(f"Failed to refresh contacts: {e}")
        fail(str(e))

    click.echo(f"Cached {len(mapping)} contacts in {settings.cache_file}")


# =============================================================================
# Output Command
# =============================================================================


@cli.command("output")
@click.pass_context
def output_command(ctx: click.Context) -> None:
    """Print the cached contacts as tab-separated email and names."""
    logger = get_logger(__name__)
    settings: Settings = ctx.obj["settings"]

    try:
        cached = ContactCache(settings.cache_file).load()
    except CacheError as e:
        logger.error(f"Failed to read cache: {e}")
        fail(str(e))

    for email, contact in cached.items():
        click.echo(f"{email}\t{contact.first_name or ''}\t{contact.last_name or ''}")


# =============================================================================
# Load Command
# =============================================================================


@cli.command("load")
@click.pass_context
def load_command(ctx: click.Context) -> None:
    """
    Bulk import every cached email into the unregistered list.

    The import job runs on the server; its progress is not tracked.
    """
    logger = get_logger(__name__)
    settings: Settings = ctx.obj["settings"]

    try:
        engine = build_engine(settings)
        with cancel_on_interrupt() as cancel_event:
            ack = engine.import_unregistered(cancel_event=cancel_event)
    except COMMAND_ERRORS as e:
        logger.error(f"Failed to import contacts: {e}")
        fail(str(e))

    click.echo(f"Import job {ack.id or '(unknown)'} submitted")


# =============================================================================
# Update Command
# =============================================================================


@cli.command("update")
@click.option(
    "--file",
    "export_file",
    type=click.Path(exists=True, file_okay=True, dir_okay=False),
    help="Export to reconcile (default: latest file in the downloads directory).",
)
@click.option(
    "--refresh",
    is_flag=True,
    help="Drain remote contacts into the cache before reconciling.",
)
@click.pass_context
def update_command(
    ctx: click.Context, export_file: str | None, refresh: bool
) -> None:
    """
    Reconcile an entrant export against the cache.

    Existing contacts are updated and new ones created, both moving to the
    registered list. Without --refresh the cache is used as it is; run
    'ccontact-sync contacts' first or pass --refresh to bring it up to date.

    Examples:

        ccontact-sync update
        ccontact-sync update --refresh
        ccontact-sync update --file downloads/entrants.xlsx
    """
    logger = get_logger(__name__)
    settings: Settings = ctx.obj["settings"]

    try:
        path = (
            Path(export_file)
            if export_file
            else latest_export(settings.downloads_dir)
        )
        click.echo(f"Reconciling {path}...")
        registrations = load_registrations(path, settings.sheet_name)

        engine = build_engine(settings)
        with cancel_on_interrupt() as cancel_event:
            if refresh:
                click.echo("Refreshing contact cache...")
                result = engine.sync(registrations, cancel_event=cancel_event)
            else:
                modified = engine.cache.modified_at()
                if modified is not None:
                    click.echo(
                        f"Using cache {engine.cache.path} from "
                        f"{modified:%Y-%m-%d %H:%M:%S}"
                    )
                result = engine.reconcile(registrations, cancel_event=cancel_event)
    except ReconciliationError as e:
        logger.error(f"Reconciliation failed: {e}")
        click.echo(e.result.summary())
        fail(str(e))
    except COMMAND_ERRORS as e:
        logger.error(f"Reconciliation failed: {e}")
        fail(str(e))

    click.echo(result.summary())


# =============================================================================
# Fetch-Export Command
# =============================================================================


@cli.command("fetch-export")
@click.argument("url")
@click.pass_context
def fetch_export_command(ctx: click.Context, url: str) -> None:
    """Download an entrant export into the downloads directory."""
    logger = get_logger(__name__)
    settings: Settings = ctx.obj["settings"]

    try:
        target = download_export(url, settings.downloads_dir)
    except ExportError as e:
        logger.error(f"Failed to download export: {e}")
        fail(str(e))

    click.echo(f"Saved {target}")


if __name__ == "__main__":
    cli()
