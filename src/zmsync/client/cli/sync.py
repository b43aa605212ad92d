"""Sync command for zmsync CLI.

Commands:
- sync: Archive event directories and upload the ones missing on Drive

Exit codes:
- 0: success, or nothing to do
- 1: fatal error (events root, authorization, remote folder or manifest)
- 2: usage error (from click)
- 3: run completed but some archives or uploads failed
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path

import click
import httplib2

from zmsync.client.auth import AuthError
from zmsync.client.cli.common import (
    auth_options,
    configure_logging,
    create_store,
    resolve_secret,
    resolve_token_dir,
)
from zmsync.client.cli.config import config_path, load_config
from zmsync.client.drive import APIError
from zmsync.client.sync import ARCHIVERS, SyncError, SyncOrchestrator, SyncReport
from zmsync.core.config import DEFAULT_FOLDER_NAME, SyncConfig
from zmsync.core.dates import DateRange

logger = logging.getLogger(__name__)

ISO_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S"]

EXIT_FATAL = 1
EXIT_PARTIAL = 3

FATAL_EXCEPTIONS: tuple[type[Exception], ...] = (
    SyncError,
    AuthError,
    APIError,
    httplib2.HttpLib2Error,
    OSError,
)


def display_failures(report: SyncReport) -> None:
    """Print the items that could not be archived or uploaded."""
    if report.archive_failures:
        click.echo(click.style("\nNot archived:", fg="red"), err=True)
        for path in report.archive_failures:
            click.echo(f"  ✗ {path}", err=True)
    if report.upload_failures:
        click.echo(click.style("\nNot uploaded:", fg="red"), err=True)
        for name in report.upload_failures:
            click.echo(f"  ✗ {name}", err=True)


@click.command()
@click.argument(
    "events_dir",
    required=False,
    type=click.Path(file_okay=False, path_type=Path),
)
@auth_options
@click.option("--from", "from_date", type=click.DateTime(ISO_FORMATS),
              help="Only sync events after this date (ISO-8601).")
@click.option("--to", "to_date", type=click.DateTime(ISO_FORMATS),
              help="Only sync events before this date (ISO-8601).")
@click.option("--folder", help=f"Remote folder name (default: {DEFAULT_FOLDER_NAME}).")
@click.option("--archiver", type=click.Choice(sorted(ARCHIVERS)), default="native",
              show_default=True, help="Archive backend.")
@click.option("--workers", type=click.IntRange(min=1),
              help="Concurrent archive jobs (default: CPU count).")
@click.option("--upload-workers", type=click.IntRange(min=1), default=1,
              show_default=True, help="Concurrent uploads.")
def sync(
    events_dir: Path | None,
    secret: Path | None,
    token_dir: Path | None,
    auth_code_file: Path | None,
    verbose: int,
    from_date: datetime | None,
    to_date: datetime | None,
    folder: str | None,
    archiver: str,
    workers: int | None,
    upload_workers: int,
) -> None:
    """Upload new event directories under EVENTS_DIR to Google Drive.

    Each event directory is zipped; archives whose checksum already exists
    in the remote folder are skipped.
    """
    configure_logging(verbose)
    config = load_config()

    events_dir = events_dir or config_path(config, "events_dir")
    if events_dir is None:
        raise click.UsageError("Missing argument 'EVENTS_DIR' (or 'events_dir' in config.json).")

    try:
        date_range = DateRange(start=from_date, end=to_date)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_FATAL)

    sync_config = SyncConfig(
        events_dir=events_dir,
        secret_path=resolve_secret(secret),
        token_dir=resolve_token_dir(token_dir),
        date_range=date_range,
        folder_name=folder or config.get("folder") or DEFAULT_FOLDER_NAME,
        archive_workers=workers,
        upload_workers=upload_workers,
    )

    with create_store(auth_code_file) as store:
        orchestrator = SyncOrchestrator(
            sync_config,
            store,
            archiver=ARCHIVERS[archiver](),
            on_status=click.echo,
        )
        try:
            report = orchestrator.run()
        except FATAL_EXCEPTIONS as e:
            logger.debug("Sync failed", exc_info=True)
            click.echo(f"Error: {e}", err=True)
            sys.exit(EXIT_FATAL)

    display_failures(report)
    click.echo("Done!")
    if report.has_failures:
        sys.exit(EXIT_PARTIAL)
